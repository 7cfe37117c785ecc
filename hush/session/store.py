"""Encrypted session persistence — one record per (chain, owner address)."""
from __future__ import annotations

import json
import logging
import shutil
import time
from pathlib import Path
from typing import Any, Callable, Iterable

from ..crypto.envelope import (
    decrypt_object,
    encrypt_object,
    envelope_from_dict,
    envelope_to_dict,
)
from ..errors import IntegrityError
from ..interfaces.storage import KeyValueStore
from ..models import StoredSession

logger = logging.getLogger(__name__)

SESSION_FORMAT_VERSION = 1
SESSION_KEY_PREFIX = "hush.privacy.session"

# Obsolete key prefixes from the previous privacy backend.
LEGACY_KEY_PREFIXES = ("hush.railgun.session", "railgun-artifact:")


def storage_key(chain_id: int, owner_address: str) -> str:
    return f"{SESSION_KEY_PREFIX}:v{SESSION_FORMAT_VERSION}:{chain_id}:{owner_address.lower()}"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _serialize(session: StoredSession, updated_at: int) -> dict[str, Any]:
    return {
        "privateAddress": session.private_address,
        "seedMaterial": session.seed_material,
        "positionSecrets": dict(session.position_secrets),
        "updatedAt": updated_at,
    }


def _deserialize(raw: Any) -> StoredSession | None:
    """Build a session from decrypted JSON, or None if required fields are missing."""
    if not isinstance(raw, dict):
        return None
    private_address = raw.get("privateAddress")
    seed_material = raw.get("seedMaterial")
    if not isinstance(private_address, str) or not private_address:
        return None
    if not isinstance(seed_material, str) or not seed_material:
        return None

    secrets = raw.get("positionSecrets") or {}
    if not isinstance(secrets, dict):
        return None
    updated_at = raw.get("updatedAt")
    return StoredSession(
        private_address=private_address,
        seed_material=seed_material,
        position_secrets={str(k): str(v) for k, v in secrets.items()},
        updated_at=int(updated_at) if isinstance(updated_at, (int, float)) else _now_ms(),
    )


class SessionStore:
    """Load, save and forget encrypted sessions in a key-value backend."""

    def __init__(
        self,
        backend: KeyValueStore,
        legacy_cache_dirs: Iterable[str | Path] = (),
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._backend = backend
        self._legacy_cache_dirs = tuple(Path(d) for d in legacy_cache_dirs)
        self._clock = clock
        self._legacy_purged = False

    def load(
        self, chain_id: int, owner_address: str, session_key: bytes
    ) -> StoredSession | None:
        """Return the stored session, or None for any "start fresh" condition."""
        raw = self._backend.get(storage_key(chain_id, owner_address))
        if raw is None:
            return None

        try:
            wrapped = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored session for %s is not JSON; ignoring", owner_address)
            return None
        if not isinstance(wrapped, dict):
            return None
        if wrapped.get("version") != SESSION_FORMAT_VERSION:
            logger.info(
                "Stored session format %s != %s; starting fresh",
                wrapped.get("version"),
                SESSION_FORMAT_VERSION,
            )
            return None

        try:
            envelope = envelope_from_dict(wrapped)
            payload = decrypt_object(session_key, envelope)
        except IntegrityError as e:
            logger.warning("Stored session for %s failed integrity check: %s", owner_address, e)
            return None

        session = _deserialize(payload)
        if session is None:
            logger.warning("Stored session for %s is missing required fields", owner_address)
        return session

    def save(
        self,
        chain_id: int,
        owner_address: str,
        session_key: bytes,
        session: StoredSession,
    ) -> StoredSession:
        """Rewrite the whole record with a fresh nonce and ``updatedAt``."""
        updated_at = self._clock()
        envelope = encrypt_object(session_key, _serialize(session, updated_at))
        wrapped = {"version": SESSION_FORMAT_VERSION, **envelope_to_dict(envelope)}
        self._backend.set(storage_key(chain_id, owner_address), json.dumps(wrapped))
        session.updated_at = updated_at
        logger.debug("Session saved for %s on chain %s", owner_address.lower(), chain_id)
        return session

    def forget(self, chain_id: int, owner_address: str) -> None:
        self._backend.delete(storage_key(chain_id, owner_address))

    def purge_legacy(self) -> int:
        """Drop obsolete records and engine caches, once per store instance.

        Returns:
            Number of removed keys (0 on every call after the first).
        """
        if self._legacy_purged:
            return 0

        removed = 0
        for key in list(self._backend.keys()):
            if key.startswith(LEGACY_KEY_PREFIXES):
                self._backend.delete(key)
                removed += 1

        for cache_dir in self._legacy_cache_dirs:
            if cache_dir.is_dir():
                shutil.rmtree(cache_dir, ignore_errors=True)
                logger.info("Removed legacy engine cache %s", cache_dir)

        if removed:
            logger.info("Purged %d legacy storage entries", removed)
        self._legacy_purged = True
        return removed
