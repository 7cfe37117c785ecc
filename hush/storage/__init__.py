"""Storage backends, selected at startup from configuration."""
from __future__ import annotations

from ..config import StorageConfig
from ..interfaces.storage import KeyValueStore
from .file_store import FileKeyValueStore
from .memory_store import MemoryKeyValueStore

__all__ = ["FileKeyValueStore", "MemoryKeyValueStore", "build_store"]


def build_store(config: StorageConfig) -> KeyValueStore:
    """Instantiate the configured storage backend."""
    if config.backend == "memory":
        return MemoryKeyValueStore()
    return FileKeyValueStore(config.path)
