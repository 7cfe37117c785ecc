"""Shared test fixtures, fakes and sample data."""
from __future__ import annotations

import textwrap
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Sequence
from unittest.mock import AsyncMock

import pytest
from eth_utils import decode_hex, encode_hex, keccak

from hush.config import (
    AppConfig,
    ChainConfig,
    ContractsConfig,
    FeeBufferConfig,
    ReconcileConfig,
    TokenConfig,
    TokensConfig,
    WalletConfig,
)
from hush.errors import ActionRejectedError, RevertReason
from hush.identity import derive_identity_address
from hush.models import EngineCapabilities, FeeQuote, Operation, PositionInfo
from hush.protocols.lending import calls
from hush.services.orchestrator import ActionOrchestrator
from hush.session import SessionStore
from hush.signers import LocalAccountSigner
from hush.storage import MemoryKeyValueStore

CHAIN_ID = 42161
ADAPTER = "0x" + "aa" * 20
EXECUTOR = "0x" + "bb" * 20
USDC = "0x" + "cc" * 20
WETH = "0x" + "dd" * 20
VAULT = "0x" + "ee" * 20
TEST_PRIVATE_KEY = "0x" + "11" * 32
OTHER_PRIVATE_KEY = "0x" + "22" * 32


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_app_config() -> AppConfig:
    return AppConfig(
        chain=ChainConfig(
            chain_id=CHAIN_ID,
            rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
            rpc_timeout=10,
        ),
        contracts=ContractsConfig(adapter=ADAPTER, privacy_executor=EXECUTOR),
        tokens=TokensConfig(
            supply=TokenConfig(address=USDC, symbol="USDC", decimals=6),
            borrow=TokenConfig(address=WETH, symbol="WETH", decimals=18),
        ),
        fees=FeeBufferConfig(buffer_bps=2000, buffer_min=2000),
        reconcile=ReconcileConfig(attempts=3, delay_seconds=0),
        wallet=WalletConfig(private_key=TEST_PRIVATE_KEY),
    )


SAMPLE_YAML = textwrap.dedent("""\
    debug: false
    chain:
      name: arbitrum
      chain_id: 42161
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
    contracts:
      adapter: "0xaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"
      privacy_executor: "0xbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"
    tokens:
      supply: {address: "0xcccccccccccccccccccccccccccccccccccccccc", symbol: USDC, decimals: 6}
      borrow: {address: "0xdddddddddddddddddddddddddddddddddddddddd", symbol: WETH, decimals: 18}
    fees:
      buffer_bps: 2000
      buffer_min: "0.002"
      on_quote_unavailable: skip
    reconcile:
      attempts: 3
      delay_seconds: 1.5
    engine:
      base_url: "http://127.0.0.1:8787/"
      timeout: 60
    storage:
      backend: memory
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeChain:
    def __init__(self, chain_id: int = CHAIN_ID) -> None:
        self.chain_id = chain_id

    async def get_chain_id(self) -> int:
        return self.chain_id

    async def eth_call(self, to: str, data: str) -> str:
        raise NotImplementedError


class FakeLendingAdapter:
    """In-memory adapter that enforces the commit-reveal rule like the contract.

    A revealed secret must hash to the stored authorization hash, and each
    action atomically replaces that hash with the committed next one.
    """

    def __init__(self) -> None:
        self.positions: dict[int, PositionInfo] = {}
        self.debts: dict[int, int] = {}
        self.executor = EXECUTOR
        self.supply = USDC
        self.allowed_borrow_tokens = {WETH.lower()}
        # Units the pool cannot release on a full withdrawal (rounding dust).
        self.withdraw_shortfall = 0
        # Units accrued to a position right after each withdraw executes.
        self.withdraw_accrual = 0
        self._next_id = 1

    # -- views ---------------------------------------------------------

    async def get_owner_position_ids(
        self, owner_commitment: str, offset: int, limit: int
    ) -> tuple[list[int], int]:
        ids = [
            pid for pid, p in sorted(self.positions.items())
            if p.owner_commitment.lower() == owner_commitment.lower()
        ]
        return ids[offset:offset + limit], len(ids)

    async def get_all_owner_position_ids(self, owner_commitment: str) -> list[int]:
        ids, _ = await self.get_owner_position_ids(owner_commitment, 0, 10_000)
        return ids

    async def get_position(self, position_id: int) -> PositionInfo:
        return self.positions[position_id]

    async def privacy_executor(self) -> str:
        return self.executor

    async def supply_token(self) -> str:
        return self.supply

    async def is_borrow_token_allowed(self, token: str) -> bool:
        return token.lower() in self.allowed_borrow_tokens

    # -- execution -----------------------------------------------------

    def _reveal(self, position_id: int, secret: str, next_hash: str) -> PositionInfo:
        position = self.positions[position_id]
        if encode_hex(keccak(hexstr=secret)) != position.auth_hash.lower():
            raise ActionRejectedError("execution reverted: InvalidAuthSecret()",
                                      reason=RevertReason.AUTH_HASH_MISMATCH)
        return replace(position, auth_hash=next_hash.lower())

    def execute(self, op: Operation) -> None:
        name, args = calls.decode_call(op.calldata)
        if name == "transfer":
            return
        if name == "onPrivateDeposit":
            token, amount, request = args
            owner, auth_hash = calls.decode_deposit_request(decode_hex(request))
            position_id = self._next_id
            self._next_id += 1
            self.positions[position_id] = PositionInfo(
                position_id=position_id,
                owner_commitment=owner,
                vault=VAULT,
                token=token,
                amount=amount,
                auth_hash=auth_hash,
            )
        elif name == "withdrawToRecipient":
            position_id, amount, secret, next_hash, _recipient = args
            position = self.positions[position_id]
            if amount > position.amount - self.withdraw_shortfall:
                raise ActionRejectedError(
                    "execution reverted: 0x47bc4b2c",
                    reason=RevertReason.NOT_ENOUGH_AVAILABLE_USER_BALANCE,
                )
            rotated = self._reveal(position_id, secret, next_hash)
            self.positions[position_id] = replace(
                rotated, amount=position.amount - amount + self.withdraw_accrual
            )
        elif name == "borrowToRecipient":
            position_id, _token, amount, secret, next_hash, _recipient = args
            self.positions[position_id] = self._reveal(position_id, secret, next_hash)
            self.debts[position_id] = self.debts.get(position_id, 0) + amount
        elif name == "repayFromPrivate":
            position_id, _token, amount, secret, next_hash = args
            self.positions[position_id] = self._reveal(position_id, secret, next_hash)
            self.debts[position_id] = max(0, self.debts.get(position_id, 0) - amount)


@dataclass(frozen=True)
class FakeHandle:
    session_ref: str
    capabilities: EngineCapabilities = field(default_factory=EngineCapabilities)


class FakePrivacyEngine:
    """Engine stub that executes operations against a ``FakeLendingAdapter``."""

    def __init__(self, adapter: FakeLendingAdapter) -> None:
        self.adapter = adapter
        self.balances: dict[str, int] = {}
        self.fee_quote: FeeQuote | None = FeeQuote(flat_fees=(50,))
        self.shield_contract = EXECUTOR
        self.capabilities = EngineCapabilities()
        self.submitted: list[list[Operation]] = []
        self.init_calls = 0
        self.balance_calls: list[bool] = []
        self._tx = 0

    def derive_identity(self, seed: str) -> str:
        return derive_identity_address(seed)

    async def init_session(self, signer, seed: str) -> FakeHandle:
        self.init_calls += 1
        return FakeHandle(session_ref=f"session-{self.init_calls}", capabilities=self.capabilities)

    async def get_spendable_balance(self, handle, token: str, owner: str, force_refresh: bool) -> int:
        self.balance_calls.append(force_refresh)
        return self.balances.get(token.lower(), 0)

    async def submit_operations(
        self,
        handle,
        operations: Sequence[Operation],
        fee_token: str,
        token_changes: dict[str, int] | None = None,
    ) -> str:
        self.submitted.append(list(operations))
        for op in operations:
            self.adapter.execute(op)
        for token, amount in (token_changes or {}).items():
            self.balances[token.lower()] = self.balances.get(token.lower(), 0) - amount
        self._tx += 1
        return "0x" + f"{self._tx:064x}"

    async def get_fee_quote(self, operations, fee_token: str, token_addresses) -> FeeQuote:
        if self.fee_quote is None:
            return FeeQuote()
        return self.fee_quote

    async def get_shield_contract_address(self, handle) -> str:
        return self.shield_contract

    async def shield(self, handle, token: str, amount: int) -> str:
        self.balances[token.lower()] = self.balances.get(token.lower(), 0) + amount
        self._tx += 1
        return "0x" + f"{self._tx:064x}"

    async def unshield(self, handle, token: str, amount: int, recipient: str) -> str:
        self.balances[token.lower()] = self.balances.get(token.lower(), 0) - amount
        self._tx += 1
        return "0x" + f"{self._tx:064x}"


# ---------------------------------------------------------------------------
# Orchestrator fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def signer() -> LocalAccountSigner:
    return LocalAccountSigner(TEST_PRIVATE_KEY)


@pytest.fixture()
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture()
def fake_adapter() -> FakeLendingAdapter:
    return FakeLendingAdapter()


@pytest.fixture()
def fake_engine(fake_adapter: FakeLendingAdapter) -> FakePrivacyEngine:
    engine = FakePrivacyEngine(fake_adapter)
    engine.balances[USDC] = 5_000_000
    engine.balances[WETH] = 10**18
    return engine


@pytest.fixture()
def memory_backend() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def session_store(memory_backend: MemoryKeyValueStore) -> SessionStore:
    return SessionStore(memory_backend)


@pytest.fixture()
def fake_sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def orchestrator(
    sample_app_config: AppConfig,
    signer: LocalAccountSigner,
    fake_chain: FakeChain,
    fake_adapter: FakeLendingAdapter,
    fake_engine: FakePrivacyEngine,
    session_store: SessionStore,
    fake_sleep: AsyncMock,
) -> ActionOrchestrator:
    return ActionOrchestrator(
        config=sample_app_config,
        signer=signer,
        chain=fake_chain,
        adapter=fake_adapter,
        engine=fake_engine,
        store=session_store,
        sleep=fake_sleep,
    )
