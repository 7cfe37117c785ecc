"""Key-value storage protocol used for session persistence."""
from typing import Iterable, Protocol


class KeyValueStore(Protocol):
    """Abstract interface for a small string key-value store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> Iterable[str]: ...
