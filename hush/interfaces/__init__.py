"""Protocol interfaces for the private lending orchestrator."""
from .chain import ChainClient
from .lending_adapter import LendingAdapter
from .privacy_engine import EngineHandle, PrivacyEngine
from .signer import Signer
from .storage import KeyValueStore

__all__ = [
    "ChainClient",
    "EngineHandle",
    "KeyValueStore",
    "LendingAdapter",
    "PrivacyEngine",
    "Signer",
]
