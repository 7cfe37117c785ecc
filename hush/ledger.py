"""Position authorization ledger — hash-chained commit-reveal secrets.

Each lending position carries an on-chain authorization hash. The client
holds the matching 32-byte preimage. An action reveals the current secret
and commits ``keccak256(next_secret)`` in the same transaction, so every
secret authorizes exactly one action.

States per position::

    UNKNOWN --supply--> OPEN --withdraw/borrow/repay--> OPEN
                         |
                         +--withdraw to zero--> CLOSED
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, MutableMapping

from eth_utils import encode_hex, keccak

from .crypto.envelope import random_bytes
from .errors import UsageError
from .models import PositionState

logger = logging.getLogger(__name__)

SECRET_LENGTH_BYTES = 32


def generate_secret() -> str:
    """Fresh random 32-byte secret as 0x-prefixed hex."""
    return encode_hex(random_bytes(SECRET_LENGTH_BYTES))


def hash_secret(secret: str) -> str:
    """On-chain commitment for a secret: keccak256 over its 32 raw bytes."""
    return encode_hex(keccak(hexstr=secret))


def owner_commitment(private_address: str) -> str:
    """Public stand-in for a private address, used to enumerate positions."""
    return encode_hex(keccak(text=private_address.lower()))


def normalize_secret(text: str) -> str:
    """Validate a user-supplied secret and return it as lowercase 0x-hex."""
    value = text.strip().lower()
    if not value.startswith("0x"):
        value = "0x" + value
    body = value[2:]
    if len(body) != SECRET_LENGTH_BYTES * 2:
        raise UsageError("Authorization secret must be 32 bytes of hex")
    try:
        bytes.fromhex(body)
    except ValueError:
        raise UsageError("Authorization secret must be 32 bytes of hex") from None
    return value


@dataclass(frozen=True)
class Rotation:
    """Secrets for one rotating action, prepared before submission."""

    position_id: int
    current_secret: str
    next_secret: str

    @property
    def next_hash(self) -> str:
        return hash_secret(self.next_secret)


class PositionLedger:
    """Map of position id → current secret, persisted on every change.

    Args:
        secrets: The session's ``position_secrets`` mapping, mutated in place.
        persist: Called after each mutation; must write the session through.
    """

    def __init__(
        self,
        secrets: MutableMapping[str, str],
        persist: Callable[[], None],
    ) -> None:
        self._secrets = secrets
        self._persist = persist
        self._closed: set[str] = set()

    @staticmethod
    def _key(position_id: int) -> str:
        return str(int(position_id))

    def state_of(self, position_id: int) -> PositionState:
        key = self._key(position_id)
        if key in self._secrets:
            return PositionState.OPEN
        if key in self._closed:
            return PositionState.CLOSED
        return PositionState.UNKNOWN

    def secret_for(self, position_id: int) -> str | None:
        return self._secrets.get(self._key(position_id))

    def prepare_rotation(self, position_id: int, current_secret: str) -> Rotation:
        return Rotation(
            position_id=int(position_id),
            current_secret=current_secret,
            next_secret=generate_secret(),
        )

    def bind(self, position_id: int, secret: str) -> None:
        """UNKNOWN → OPEN after a confirmed supply."""
        key = self._key(position_id)
        self._secrets[key] = secret
        self._closed.discard(key)
        self._persist()
        logger.info("Position %s opened; authorization secret stored", key)

    def rotate(self, rotation: Rotation) -> None:
        """OPEN → OPEN after a confirmed withdraw/borrow/repay."""
        key = self._key(rotation.position_id)
        self._secrets[key] = rotation.next_secret
        self._persist()
        logger.info("Position %s authorization secret rotated", key)

    def close(self, position_id: int) -> None:
        """OPEN → CLOSED once the position is drained; the secret is discarded."""
        key = self._key(position_id)
        self._secrets.pop(key, None)
        self._closed.add(key)
        self._persist()
        logger.info("Position %s closed; local secret removed", key)

    def import_secret(self, position_id: int, secret: str) -> None:
        """Adopt a secret from an out-of-band backup."""
        key = self._key(position_id)
        self._secrets[key] = normalize_secret(secret)
        self._closed.discard(key)
        self._persist()
        logger.info("Position %s authorization secret imported", key)
