"""Unit tests for typed errors and revert classification."""
from __future__ import annotations

from hush.errors import (
    ActionRejectedError,
    EngineUnavailableError,
    ErrorKind,
    InsufficientBalanceError,
    RevertReason,
    SignerMismatchError,
    classify_revert,
)


class TestClassifyRevert:
    def test_selector_marker(self) -> None:
        text = "execution reverted: custom error 0x47bc4b2c"
        assert classify_revert(text) == RevertReason.NOT_ENOUGH_AVAILABLE_USER_BALANCE

    def test_error_name_marker(self) -> None:
        text = "Error: NotEnoughAvailableUserBalance()"
        assert classify_revert(text) == RevertReason.NOT_ENOUGH_AVAILABLE_USER_BALANCE

    def test_auth_mismatch(self) -> None:
        assert classify_revert("reverted: InvalidAuthSecret") == RevertReason.AUTH_HASH_MISMATCH

    def test_unknown_message(self) -> None:
        assert classify_revert("something else went wrong") == RevertReason.UNKNOWN


class TestErrorTypes:
    def test_signer_mismatch_names_both_addresses(self) -> None:
        err = SignerMismatchError("0xAAA", "0xBBB")
        assert "0xAAA" in str(err) and "0xBBB" in str(err)
        assert err.kind == ErrorKind.SIGNER_MISMATCH

    def test_insufficient_balance_carries_amounts(self) -> None:
        err = InsufficientBalanceError("need more", required=10, available=3)
        assert (err.required, err.available) == (10, 3)

    def test_engine_unavailable_appends_hint(self) -> None:
        err = EngineUnavailableError("Engine down.", hint="Start the bridge.")
        assert str(err) == "Engine down. Start the bridge."

    def test_action_rejected_default_reason(self) -> None:
        assert ActionRejectedError("nope").reason == RevertReason.UNKNOWN
