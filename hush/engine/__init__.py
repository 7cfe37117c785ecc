from .cache import EngineSessionCache, seed_fingerprint
from .http_client import HttpEngineHandle, HttpPrivacyEngine, extract_tx_hash

__all__ = [
    "EngineSessionCache",
    "HttpEngineHandle",
    "HttpPrivacyEngine",
    "extract_tx_hash",
    "seed_fingerprint",
]
