"""JSON-file key-value store for non-browser targets."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

_STORE_VERSION = 1


class FileKeyValueStore:
    """Persist string values in a single JSON document on disk.

    Each write rewrites the whole document through a temporary file and an
    atomic rename, so a crash never leaves a half-written store behind.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            self._set_aside(str(e))
            return {}
        if not isinstance(raw, dict) or raw.get("version") != _STORE_VERSION:
            self._set_aside("unsupported store format")
            return {}
        entries = raw.get("entries")
        if not isinstance(entries, dict):
            self._set_aside("missing entries")
            return {}
        return {str(k): str(v) for k, v in entries.items()}

    def _set_aside(self, reason: str) -> None:
        """Move an unusable store file out of the way so no write replaces it."""
        target = self._path.with_name(f"{self._path.name}.corrupt")
        counter = 1
        while target.exists():
            target = self._path.with_name(f"{self._path.name}.corrupt.{counter}")
            counter += 1
        try:
            os.replace(self._path, target)
        except OSError as e:
            raise ConfigurationError(
                f"Session store {self._path} is unreadable ({reason}) and could not be "
                f"moved aside: {e}"
            ) from e
        logger.warning("Moved unreadable store %s to %s: %s", self._path, target, reason)

    def _write(self, entries: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(
            {"version": _STORE_VERSION, "entries": entries}, indent=2, sort_keys=True
        )
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        entries = self._read()
        entries[key] = value
        self._write(entries)

    def delete(self, key: str) -> None:
        entries = self._read()
        if entries.pop(key, None) is not None:
            self._write(entries)

    def keys(self) -> Iterable[str]:
        return list(self._read().keys())
