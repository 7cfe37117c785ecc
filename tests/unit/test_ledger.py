"""Unit tests for the position authorization ledger."""
from __future__ import annotations

import pytest
from eth_utils import encode_hex, keccak

from hush.errors import UsageError
from hush.ledger import (
    PositionLedger,
    generate_secret,
    hash_secret,
    normalize_secret,
    owner_commitment,
)
from hush.models import PositionState


class _Recorder:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


@pytest.fixture()
def persist() -> _Recorder:
    return _Recorder()


@pytest.fixture()
def secrets() -> dict[str, str]:
    return {}


@pytest.fixture()
def ledger(secrets: dict[str, str], persist: _Recorder) -> PositionLedger:
    return PositionLedger(secrets, persist)


class TestSecrets:
    def test_generate_secret_is_32_bytes_hex(self) -> None:
        secret = generate_secret()
        assert secret.startswith("0x")
        assert len(secret) == 66

    def test_generated_secrets_differ(self) -> None:
        assert generate_secret() != generate_secret()

    def test_hash_is_keccak_of_raw_bytes(self) -> None:
        secret = "0x" + "01" * 32
        assert hash_secret(secret) == encode_hex(keccak(b"\x01" * 32))

    def test_owner_commitment_case_insensitive(self) -> None:
        address = "0xAbCd000000000000000000000000000000000001"
        assert owner_commitment(address) == owner_commitment(address.lower())
        assert owner_commitment(address) == encode_hex(keccak(text=address.lower()))

    def test_normalize_adds_prefix_and_lowercases(self) -> None:
        assert normalize_secret("AB" * 32) == "0x" + "ab" * 32

    @pytest.mark.parametrize("bad", ["0x1234", "zz" * 32, ""])
    def test_normalize_rejects_bad_input(self, bad: str) -> None:
        with pytest.raises(UsageError):
            normalize_secret(bad)


class TestLifecycle:
    def test_unknown_by_default(self, ledger: PositionLedger) -> None:
        assert ledger.state_of(1) == PositionState.UNKNOWN
        assert ledger.secret_for(1) is None

    def test_bind_opens_and_persists(
        self, ledger: PositionLedger, secrets: dict[str, str], persist: _Recorder
    ) -> None:
        ledger.bind(5, "0x" + "aa" * 32)
        assert ledger.state_of(5) == PositionState.OPEN
        assert secrets == {"5": "0x" + "aa" * 32}
        assert persist.calls == 1

    def test_rotation_replaces_secret(self, ledger: PositionLedger, persist: _Recorder) -> None:
        ledger.bind(5, "0x" + "aa" * 32)
        rotation = ledger.prepare_rotation(5, "0x" + "aa" * 32)

        assert ledger.secret_for(5) == "0x" + "aa" * 32
        ledger.rotate(rotation)

        assert ledger.secret_for(5) == rotation.next_secret
        assert rotation.next_hash == hash_secret(rotation.next_secret)
        assert rotation.next_secret != rotation.current_secret
        assert persist.calls == 2

    def test_prepare_does_not_mutate(self, ledger: PositionLedger, persist: _Recorder) -> None:
        ledger.bind(5, "0x" + "aa" * 32)
        ledger.prepare_rotation(5, "0x" + "aa" * 32)
        assert ledger.secret_for(5) == "0x" + "aa" * 32
        assert persist.calls == 1

    def test_close_discards_secret(self, ledger: PositionLedger, secrets: dict[str, str]) -> None:
        ledger.bind(5, "0x" + "aa" * 32)
        ledger.close(5)
        assert ledger.state_of(5) == PositionState.CLOSED
        assert "5" not in secrets

    def test_import_normalizes(self, ledger: PositionLedger) -> None:
        ledger.import_secret(9, "AB" * 32)
        assert ledger.secret_for(9) == "0x" + "ab" * 32
        assert ledger.state_of(9) == PositionState.OPEN
