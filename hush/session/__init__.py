"""Session key derivation and encrypted persistence."""
from .deriver import SessionKeyDeriver, challenge_message
from .store import SessionStore, storage_key

__all__ = ["SessionKeyDeriver", "SessionStore", "challenge_message", "storage_key"]
