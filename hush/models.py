"""Data models — value objects are frozen; the live session is mutable."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Envelope:
    """Authenticated-encryption output: 12-byte nonce plus ciphertext+tag."""

    nonce: bytes
    ciphertext: bytes


@dataclass(frozen=True)
class SessionKey:
    chain_id: int
    key: bytes


@dataclass
class StoredSession:
    """Decrypted session payload as persisted in the store."""

    private_address: str
    seed_material: str
    position_secrets: dict[str, str] = field(default_factory=dict)
    updated_at: int = 0


@dataclass
class ActiveSession:
    """In-memory session bound to one (chain, owner) pair."""

    chain_id: int
    owner_address: str
    session_key: bytes
    private_address: str
    seed_material: str
    position_secrets: dict[str, str] = field(default_factory=dict)

    def to_stored(self) -> StoredSession:
        return StoredSession(
            private_address=self.private_address,
            seed_material=self.seed_material,
            position_secrets=dict(self.position_secrets),
        )


class PositionState(str, enum.Enum):
    UNKNOWN = "unknown"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class PositionInfo:
    """On-chain view of one adapter position."""

    position_id: int
    owner_commitment: str
    vault: str
    token: str
    amount: int
    auth_hash: str


@dataclass(frozen=True)
class Operation:
    """One call executed by the privacy engine on the user's behalf."""

    contract: str
    calldata: str
    invoke_wallet: bool = True


@dataclass(frozen=True)
class FeeQuote:
    flat_fees: tuple[int, ...] = ()
    alternate_fee_estimate: int | None = None


@dataclass(frozen=True)
class FeeReserve:
    reserve: int
    proportional_part: int
    floor_part: int
    applied_part: int


@dataclass(frozen=True)
class EngineCapabilities:
    """Optional engine features, negotiated once per engine session."""

    spendable_balance: bool = True
    fee_quotes: bool = True
    runtime_signer_address: str | None = None


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one private action, for display and manual backup."""

    action: str
    tx_hash: str
    position_id: int | None = None
    revealed_secret: str | None = None
    remaining_amount: int | None = None
    closed: bool = False
    fee_reserve: FeeReserve | None = None


@dataclass(frozen=True)
class LoginResult:
    private_address: str
    created: bool
    seed_backup: str | None = None


@dataclass(frozen=True)
class PositionSummary:
    position: PositionInfo
    has_local_secret: bool
