"""Typed errors — every failure carries a kind and a displayable message."""
from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    CONFIGURATION = "configuration"
    SIGNER_MISMATCH = "signer_mismatch"
    INTEGRITY = "integrity"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    STALE_QUOTE_RETRY = "stale_quote_retry"
    ENGINE_UNAVAILABLE = "engine_unavailable"
    SESSION_NOT_ESTABLISHED = "session_not_established"
    POSITION_NOT_ACTIONABLE = "position_not_actionable"
    ACTION_REJECTED = "action_rejected"
    CHAIN_READ = "chain_read"
    USAGE = "usage"


class RevertReason(str, enum.Enum):
    """Structured reason codes for actions rejected by the engine or adapter."""

    NOT_ENOUGH_AVAILABLE_USER_BALANCE = "not_enough_available_user_balance"
    AUTH_HASH_MISMATCH = "auth_hash_mismatch"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    CHAIN_MISMATCH = "chain_mismatch"
    UNKNOWN = "unknown"


class HushError(Exception):
    """Base class for all errors surfaced to the command layer."""

    kind: ErrorKind = ErrorKind.USAGE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigurationError(HushError):
    kind = ErrorKind.CONFIGURATION


class SignerMismatchError(HushError):
    kind = ErrorKind.SIGNER_MISMATCH

    def __init__(self, expected: str, actual: str, message: str | None = None) -> None:
        super().__init__(
            message
            or f"Active privacy session belongs to {expected}, but wallet signer is "
            f"{actual}. Run login again with the same wallet."
        )
        self.expected = expected
        self.actual = actual


class IntegrityError(HushError):
    """Decryption or format failure on a stored session."""

    kind = ErrorKind.INTEGRITY


class InsufficientBalanceError(HushError):
    kind = ErrorKind.INSUFFICIENT_BALANCE

    def __init__(self, message: str, required: int, available: int) -> None:
        super().__init__(message)
        self.required = required
        self.available = available


class StaleQuoteRetry(HushError):
    """Signal for the one-shot max-withdraw rounding retry. Never surfaced."""

    kind = ErrorKind.STALE_QUOTE_RETRY

    def __init__(self, retry_amount: int) -> None:
        super().__init__(f"Retrying max withdrawal with {retry_amount}")
        self.retry_amount = retry_amount


class EngineUnavailableError(HushError):
    kind = ErrorKind.ENGINE_UNAVAILABLE

    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__(f"{message} {hint}".strip())
        self.hint = hint


class SessionNotEstablishedError(HushError):
    kind = ErrorKind.SESSION_NOT_ESTABLISHED


class PositionNotActionableError(HushError):
    kind = ErrorKind.POSITION_NOT_ACTIONABLE


class ChainReadError(HushError):
    kind = ErrorKind.CHAIN_READ


class UsageError(HushError):
    kind = ErrorKind.USAGE


class ActionRejectedError(HushError):
    """An on-chain action was rejected; ``reason`` drives retry decisions."""

    kind = ErrorKind.ACTION_REJECTED

    def __init__(self, message: str, reason: RevertReason = RevertReason.UNKNOWN) -> None:
        super().__init__(message)
        self.reason = reason


# Known revert selectors / error names emitted by the lending pool.
_NOT_ENOUGH_AVAILABLE_MARKERS = ("47bc4b2c", "notenoughavailableuserbalance")
_AUTH_MISMATCH_MARKERS = ("invalidauthsecret", "auth hash mismatch")
_INSUFFICIENT_FUNDS_MARKERS = ("insufficient funds",)


def classify_revert(text: str) -> RevertReason:
    """Map a raw error message to a reason code.

    Compatibility shim only: used when the engine bridge returns a rejection
    without a structured ``reason``. Message formats are not stable, so an
    unrecognised message always maps to ``UNKNOWN`` and is never retried.
    """
    lowered = text.lower()
    if any(marker in lowered for marker in _NOT_ENOUGH_AVAILABLE_MARKERS):
        return RevertReason.NOT_ENOUGH_AVAILABLE_USER_BALANCE
    if any(marker in lowered for marker in _AUTH_MISMATCH_MARKERS):
        return RevertReason.AUTH_HASH_MISMATCH
    if any(marker in lowered for marker in _INSUFFICIENT_FUNDS_MARKERS):
        return RevertReason.INSUFFICIENT_FUNDS
    return RevertReason.UNKNOWN
