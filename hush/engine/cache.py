"""Keyed cache of initialized privacy-engine sessions."""
from __future__ import annotations

import asyncio
import hashlib
import logging

from ..errors import EngineUnavailableError, HushError
from ..interfaces.privacy_engine import EngineHandle, PrivacyEngine
from ..interfaces.signer import Signer

logger = logging.getLogger(__name__)

CacheKey = tuple[int, str, str]


def seed_fingerprint(seed: str) -> str:
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()


class EngineSessionCache:
    """Share one engine session per (chain, signer address, identity seed).

    Concurrent callers for the same key await the same initialization. A
    failed initialization is dropped so the next call retries it.
    """

    def __init__(self, engine: PrivacyEngine) -> None:
        self._engine = engine
        self._sessions: dict[CacheKey, asyncio.Task] = {}

    @staticmethod
    def cache_key(chain_id: int, address: str, seed: str) -> CacheKey:
        return (chain_id, address.lower(), seed_fingerprint(seed))

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._sessions

    async def _init(self, signer: Signer, seed: str) -> EngineHandle:
        try:
            return await self._engine.init_session(signer, seed)
        except HushError:
            raise
        except Exception as e:
            raise EngineUnavailableError(
                f"Privacy engine is unavailable at runtime: {e}.",
                hint="Check that the engine bridge is running and reachable.",
            ) from e

    async def get(self, chain_id: int, signer: Signer, seed: str) -> EngineHandle:
        key = self.cache_key(chain_id, signer.address, seed)
        task = self._sessions.get(key)
        if task is None:
            logger.debug("Initializing engine session for %s on chain %s", key[1], chain_id)
            task = asyncio.ensure_future(self._init(signer, seed))
            self._sessions[key] = task

        try:
            return await asyncio.shield(task)
        except BaseException:
            if task.done() and self._sessions.get(key) is task:
                del self._sessions[key]
            raise

    def invalidate(self, chain_id: int, address: str, seed: str) -> None:
        """Force the next ``get`` for this key to rebuild the session."""
        task = self._sessions.pop(self.cache_key(chain_id, address, seed), None)
        if task is not None:
            logger.debug("Engine session for %s invalidated", address.lower())
            if not task.done():
                task.cancel()

    def invalidate_all(self) -> None:
        for task in self._sessions.values():
            if not task.done():
                task.cancel()
        self._sessions.clear()
