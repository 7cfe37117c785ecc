"""Private action orchestration for the connected wallet."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from eth_utils import is_hex_address

from ..amounts import format_token_amount
from ..chains.evm import EvmClient
from ..config import AppConfig, require_address
from ..engine import EngineSessionCache, HttpPrivacyEngine
from ..errors import (
    ActionRejectedError,
    ConfigurationError,
    EngineUnavailableError,
    HushError,
    InsufficientBalanceError,
    PositionNotActionableError,
    RevertReason,
    SessionNotEstablishedError,
    SignerMismatchError,
    StaleQuoteRetry,
    UsageError,
)
from ..fees import FeeReserveCalculator, select_flat_fee
from ..identity import generate_seed, normalize_seed
from ..interfaces.chain import ChainClient
from ..interfaces.lending_adapter import LendingAdapter
from ..interfaces.privacy_engine import EngineHandle, PrivacyEngine
from ..interfaces.signer import Signer
from ..ledger import (
    PositionLedger,
    Rotation,
    generate_secret,
    hash_secret,
    normalize_secret,
    owner_commitment,
)
from ..models import (
    ActionResult,
    ActiveSession,
    FeeReserve,
    LoginResult,
    Operation,
    PositionInfo,
    PositionState,
    PositionSummary,
    StoredSession,
)
from ..protocols.lending import LendingAdapterReader, calls
from ..reconcile import reconcile_balance
from ..session import SessionKeyDeriver, SessionStore
from ..signers import LocalAccountSigner
from ..storage import build_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Contracts:
    """Addresses confirmed against the adapter for one action."""

    adapter: str
    executor: str
    supply_token: str
    borrow_token: str = ""


class ActionOrchestrator:
    """Run private lending actions for the connected wallet.

    Owns the active session and its position ledger. Every balance-mutating
    action holds the session lock from the signer check until the ledger
    has been persisted.
    """

    def __init__(
        self,
        config: AppConfig,
        signer: Signer,
        chain: ChainClient,
        adapter: LendingAdapter,
        engine: PrivacyEngine,
        store: SessionStore,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._signer = signer
        self._chain = chain
        self._adapter = adapter
        self._engine = engine
        self._store = store
        self._sleep = sleep

        self._deriver = SessionKeyDeriver(chain)
        self._engine_sessions = EngineSessionCache(engine)
        self._fees = FeeReserveCalculator(config.fees)
        self._locks: dict[tuple[int, str], asyncio.Lock] = {}
        self._initialized = False

        self._session: ActiveSession | None = None
        self._ledger: PositionLedger | None = None

    @classmethod
    def from_config(cls, config: AppConfig) -> ActionOrchestrator:
        """Wire the concrete signer, RPC client, adapter, engine and store."""
        chain = EvmClient(config.chain)
        return cls(
            config=config,
            signer=LocalAccountSigner(config.wallet.private_key),
            chain=chain,
            adapter=LendingAdapterReader(chain, config.contracts.adapter),
            engine=HttpPrivacyEngine(config.engine, config.chain.chain_id),
            store=SessionStore(
                build_store(config.storage),
                legacy_cache_dirs=config.engine.legacy_cache_dirs,
            ),
        )

    @property
    def signer_address(self) -> str:
        return self._signer.address

    @property
    def session(self) -> ActiveSession | None:
        return self._session

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        removed = self._store.purge_legacy()
        if removed:
            logger.info("Removed %d obsolete privacy storage entries", removed)
        self._initialized = True

    def _activate(self, chain_id: int, session_key: bytes, stored: StoredSession) -> ActiveSession:
        session = ActiveSession(
            chain_id=chain_id,
            owner_address=self._signer.address,
            session_key=session_key,
            private_address=stored.private_address,
            seed_material=stored.seed_material,
            position_secrets=dict(stored.position_secrets),
        )
        self._session = session
        self._ledger = PositionLedger(session.position_secrets, self._persist)
        return session

    def _persist(self) -> None:
        session = self._session
        if session is None:
            raise SessionNotEstablishedError("No active privacy session to persist.")
        self._store.save(
            session.chain_id, session.owner_address, session.session_key, session.to_stored()
        )

    async def login(self) -> LoginResult:
        """Restore the wallet's private session, or create one with a new identity."""
        key = await self._deriver.derive(self._signer)
        self._ensure_initialized()

        stored = self._store.load(key.chain_id, self._signer.address, key.key)
        created = stored is None
        seed_backup = None
        if stored is None:
            seed = generate_seed()
            stored = StoredSession(
                private_address=self._engine.derive_identity(seed),
                seed_material=seed,
            )
            seed_backup = seed
            logger.info("Created new private identity for %s", self._signer.address)

        session = self._activate(key.chain_id, key.key, stored)
        self._persist()
        logger.info(
            "Privacy session active for %s (private %s, %d positions)",
            session.owner_address,
            session.private_address,
            len(session.position_secrets),
        )
        return LoginResult(
            private_address=session.private_address,
            created=created,
            seed_backup=seed_backup,
        )

    async def import_seed(self, seed: str) -> LoginResult:
        """Replace the session identity with ``seed``; local position secrets are cleared."""
        seed = normalize_seed(seed)
        private_address = self._engine.derive_identity(seed)

        if self._session is not None and self._session.owner_address.lower() == self._signer.address.lower():
            chain_id, session_key = self._session.chain_id, self._session.session_key
            self._engine_sessions.invalidate(chain_id, self._signer.address, self._session.seed_material)
        else:
            key = await self._deriver.derive(self._signer)
            self._ensure_initialized()
            chain_id, session_key = key.chain_id, key.key

        session = self._activate(
            chain_id,
            session_key,
            StoredSession(private_address=private_address, seed_material=seed),
        )
        self._persist()
        logger.info("Imported private identity %s", session.private_address)
        return LoginResult(private_address=private_address, created=False)

    def logout(self) -> None:
        """Drop the in-memory session; the stored record is kept."""
        self._session = None
        self._ledger = None
        self._engine_sessions.invalidate_all()

    async def forget(self) -> None:
        """Delete the stored session for this wallet and chain. Idempotent."""
        if self._session is not None:
            chain_id = self._session.chain_id
        else:
            chain_id = await self._chain.get_chain_id()
        self._ensure_initialized()
        self._store.forget(chain_id, self._signer.address)
        self.logout()
        logger.info("Forgot privacy session for %s on chain %s", self._signer.address, chain_id)

    async def _active_session(self) -> ActiveSession:
        session = self._session
        if session is None:
            raise SessionNotEstablishedError("No active privacy session. Run login first.")

        if session.owner_address.lower() != self._signer.address.lower():
            raise SignerMismatchError(session.owner_address, self._signer.address)

        chain_id = await self._chain.get_chain_id()
        if chain_id != session.chain_id:
            raise SignerMismatchError(
                session.owner_address,
                self._signer.address,
                message=(
                    f"Active privacy session for {session.owner_address} is bound to "
                    f"chain {session.chain_id}, but wallet {self._signer.address} is "
                    f"connected to chain {chain_id}. Run login again."
                ),
            )
        return session

    def _require_ledger(self) -> PositionLedger:
        if self._ledger is None:
            raise SessionNotEstablishedError("No active privacy session. Run login first.")
        return self._ledger

    def _lock_for(self, session: ActiveSession) -> asyncio.Lock:
        key = (session.chain_id, session.owner_address.lower())
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    async def _validate_contracts(self, debt_token: bool = False) -> _Contracts:
        """Confirm the adapter is wired to the configured executor and tokens."""
        cfg = self._config
        connected = await self._chain.get_chain_id()
        if connected != cfg.chain.chain_id:
            raise ConfigurationError(
                f"Connected chain {connected} does not match configured chain "
                f"{cfg.chain.chain_id} ({cfg.chain.name})."
            )

        adapter = require_address("contracts.adapter", cfg.contracts.adapter)
        executor = require_address("contracts.privacy_executor", cfg.contracts.privacy_executor)
        supply_token = require_address("tokens.supply.address", cfg.tokens.supply.address)

        onchain_executor = await self._adapter.privacy_executor()
        if onchain_executor.lower() != executor.lower():
            raise ConfigurationError(
                f"Adapter privacy executor {onchain_executor} does not match configured {executor}."
            )
        onchain_supply = await self._adapter.supply_token()
        if onchain_supply.lower() != supply_token.lower():
            raise ConfigurationError(
                f"Adapter supply token {onchain_supply} does not match configured {supply_token}."
            )

        borrow_token = ""
        if debt_token:
            borrow_token = require_address("tokens.borrow.address", cfg.tokens.borrow.address)
            if not await self._adapter.is_borrow_token_allowed(borrow_token):
                raise ConfigurationError(
                    f"Borrow token {cfg.tokens.borrow.symbol} ({borrow_token}) is not allowed by the adapter."
                )

        return _Contracts(
            adapter=adapter,
            executor=executor,
            supply_token=supply_token,
            borrow_token=borrow_token,
        )

    async def _authorize(
        self,
        session: ActiveSession,
        position_id: int,
        auth_secret: str | None,
    ) -> tuple[str, PositionInfo]:
        """Return the current secret for a position after checking it on-chain."""
        ledger = self._require_ledger()
        if ledger.state_of(position_id) == PositionState.CLOSED and auth_secret is None:
            raise PositionNotActionableError(f"Position {position_id} is closed.")

        position = await self._adapter.get_position(position_id)
        if position.owner_commitment.lower() != owner_commitment(session.private_address).lower():
            raise PositionNotActionableError(
                f"Position {position_id} does not belong to private identity {session.private_address}."
            )

        secret = normalize_secret(auth_secret) if auth_secret else ledger.secret_for(position_id)
        if secret is None:
            raise PositionNotActionableError(
                f"No local authorization secret for position {position_id}. "
                f"Import a backup with: position-auth {position_id} <secret>"
            )
        if hash_secret(secret).lower() != position.auth_hash.lower():
            raise PositionNotActionableError(
                f"Authorization secret does not match the on-chain hash for position {position_id}."
            )
        return secret, position

    # ------------------------------------------------------------------
    # Engine helpers
    # ------------------------------------------------------------------

    async def _handle(self, session: ActiveSession) -> EngineHandle:
        handle = await self._engine_sessions.get(session.chain_id, self._signer, session.seed_material)
        runtime_signer = handle.capabilities.runtime_signer_address
        if runtime_signer and runtime_signer.lower() != self._signer.address.lower():
            logger.debug("Engine session signer %s is stale; reinitializing", runtime_signer)
            self._engine_sessions.invalidate(session.chain_id, self._signer.address, session.seed_material)
            handle = await self._engine_sessions.get(session.chain_id, self._signer, session.seed_material)
            runtime_signer = handle.capabilities.runtime_signer_address
            if runtime_signer and runtime_signer.lower() != self._signer.address.lower():
                raise SignerMismatchError(self._signer.address, runtime_signer)
        return handle

    def _invalidate_engine(self, session: ActiveSession) -> None:
        self._engine_sessions.invalidate(session.chain_id, self._signer.address, session.seed_material)

    async def _submit(
        self,
        handle: EngineHandle,
        session: ActiveSession,
        operations: list[Operation],
        fee_token: str,
        token_changes: dict[str, int] | None = None,
    ) -> str:
        logger.debug(
            "Submitting %s", ", ".join(calls.describe_operation(op) for op in operations)
        )
        try:
            return await self._engine.submit_operations(handle, operations, fee_token, token_changes)
        except ActionRejectedError as e:
            if e.reason == RevertReason.CHAIN_MISMATCH:
                self._invalidate_engine(session)
                raise EngineUnavailableError(
                    f"Privacy engine session does not match this chain or wallet: {e}.",
                    hint="Run the command again to reinitialize the engine session.",
                ) from e
            raise

    async def _estimate_reserve(
        self, handle: EngineHandle, operations: list[Operation], fee_token: str
    ) -> FeeReserve | None:
        flat_fee = None
        if handle.capabilities.fee_quotes:
            try:
                quote = await self._engine.get_fee_quote(operations, fee_token, [fee_token])
                flat_fee = select_flat_fee(quote)
            except HushError as e:
                logger.debug("Fee quote failed: %s", e)

        if flat_fee is None:
            if self._fees.block_when_unavailable:
                raise EngineUnavailableError(
                    "Fee quote is unavailable; action blocked by fee policy.",
                    hint="Set fees.on_quote_unavailable to 'skip' to proceed without a reserve check.",
                )
            logger.debug("Fee quote unavailable; skipping reserve check")
            return None

        reserve = self._fees.reserve_for(flat_fee)
        logger.debug(
            "Fee estimate: flatFee=%d proportional=%d floor=%d reserve=%d",
            flat_fee, reserve.proportional_part, reserve.floor_part, reserve.reserve,
        )
        return reserve

    async def _reconcile(
        self,
        handle: EngineHandle,
        session: ActiveSession,
        token: str,
        symbol: str,
        decimals: int,
        required: int,
    ) -> int:
        if not handle.capabilities.spendable_balance:
            logger.debug("Engine cannot report spendable balance; skipping check")
            return required

        async def fetch(force_refresh: bool) -> int:
            return await self._engine.get_spendable_balance(
                handle, token, session.private_address, force_refresh
            )

        available = await reconcile_balance(
            fetch,
            required,
            attempts=self._config.reconcile.attempts,
            delay=self._config.reconcile.delay_seconds,
            sleep=self._sleep,
        )
        if available < required:
            raise InsufficientBalanceError(
                f"Insufficient private {symbol} balance. Need "
                f"{format_token_amount(required, decimals)}, available "
                f"{format_token_amount(available, decimals)}.",
                required=required,
                available=available,
            )
        return available

    async def _ensure_funds(
        self,
        handle: EngineHandle,
        session: ActiveSession,
        operations: list[Operation],
        contracts: _Contracts,
        supply_amount: int = 0,
        debt_amount: int = 0,
    ) -> FeeReserve | None:
        """Check the private balance covers the action plus the fee reserve.

        Without a fee quote the whole check is skipped unless the fee policy
        blocks.
        """
        reserve = await self._estimate_reserve(handle, operations, contracts.supply_token)
        if reserve is None:
            return None

        supply = self._config.tokens.supply
        await self._reconcile(
            handle, session, contracts.supply_token, supply.symbol, supply.decimals,
            supply_amount + reserve.reserve,
        )
        if debt_amount:
            borrow = self._config.tokens.borrow
            await self._reconcile(
                handle, session, contracts.borrow_token, borrow.symbol, borrow.decimals,
                debt_amount,
            )
        return reserve

    # ------------------------------------------------------------------
    # Lending actions
    # ------------------------------------------------------------------

    async def _find_new_position(
        self, commitment: str, before: set[int], auth_hash: str
    ) -> int | None:
        """Locate the position opened by a supply, tolerating lagging reads."""
        attempts = self._config.reconcile.attempts
        for attempt in range(1, attempts + 1):
            ids = await self._adapter.get_all_owner_position_ids(commitment)
            new_ids = sorted(set(ids) - before)
            for position_id in reversed(new_ids):
                position = await self._adapter.get_position(position_id)
                if position.auth_hash.lower() == auth_hash.lower():
                    return position_id
            if attempt < attempts:
                await self._sleep(self._config.reconcile.delay_seconds)
        return None

    async def supply(self, amount: int) -> ActionResult:
        """Open a new position funded from the private balance."""
        if amount <= 0:
            raise UsageError("Supply amount must be greater than zero.")

        session = await self._active_session()
        async with self._lock_for(session):
            session = await self._active_session()
            contracts = await self._validate_contracts()
            ledger = self._require_ledger()
            handle = await self._handle(session)

            commitment = owner_commitment(session.private_address)
            secret = generate_secret()
            auth_hash = hash_secret(secret)
            ops = calls.build_supply_ops(
                contracts.adapter, contracts.supply_token, amount, commitment, auth_hash
            )
            reserve = await self._ensure_funds(
                handle, session, ops, contracts, supply_amount=amount
            )

            before = set(await self._adapter.get_all_owner_position_ids(commitment))
            tx_hash = await self._submit(
                handle, session, ops, contracts.supply_token,
                token_changes={contracts.supply_token: amount},
            )
            self._invalidate_engine(session)

            try:
                position_id = await self._find_new_position(commitment, before, auth_hash)
            except HushError as e:
                logger.warning("Could not read positions after supply %s: %s", tx_hash, e)
                position_id = None
            if position_id is None:
                logger.warning(
                    "Supply %s confirmed but the new position was not found; back up the secret",
                    tx_hash,
                )
            else:
                ledger.bind(position_id, secret)

            return ActionResult(
                action="supply",
                tx_hash=tx_hash,
                position_id=position_id,
                revealed_secret=secret,
                remaining_amount=amount,
                fee_reserve=reserve,
            )

    async def _submit_withdraw(
        self,
        handle: EngineHandle,
        session: ActiveSession,
        contracts: _Contracts,
        rotation: Rotation,
        amount: int,
        is_max: bool,
    ) -> str:
        ops = calls.build_withdraw_ops(
            contracts.adapter,
            contracts.executor,
            rotation.position_id,
            amount,
            rotation.current_secret,
            rotation.next_hash,
        )
        try:
            return await self._submit(handle, session, ops, contracts.supply_token)
        except ActionRejectedError as e:
            if (
                is_max
                and amount > 1
                and e.reason == RevertReason.NOT_ENOUGH_AVAILABLE_USER_BALANCE
            ):
                raise StaleQuoteRetry(amount - 1) from e
            raise

    async def withdraw(
        self, position_id: int, amount: int | None, auth_secret: str | None = None
    ) -> ActionResult:
        """Withdraw from a position; ``amount=None`` withdraws everything.

        A full withdrawal rejected for rounding is retried once with one unit
        less. The position closes only when its on-chain amount reads zero after
        the withdraw; otherwise the secret rotates.
        """
        is_max = amount is None
        if amount is not None and amount <= 0:
            raise UsageError("Withdraw amount must be greater than zero.")

        session = await self._active_session()
        async with self._lock_for(session):
            session = await self._active_session()
            contracts = await self._validate_contracts()
            ledger = self._require_ledger()
            secret, position = await self._authorize(session, position_id, auth_secret)

            if position.amount <= 0:
                raise PositionNotActionableError(f"Position {position_id} has nothing to withdraw.")
            if amount is None:
                amount = position.amount
            elif amount > position.amount:
                raise UsageError(
                    f"Withdraw amount exceeds position {position_id} balance of "
                    f"{format_token_amount(position.amount, self._config.tokens.supply.decimals)}."
                )

            handle = await self._handle(session)
            rotation = ledger.prepare_rotation(position_id, secret)
            estimate_ops = calls.build_withdraw_ops(
                contracts.adapter, contracts.executor, position_id, amount,
                rotation.current_secret, rotation.next_hash,
            )
            reserve = await self._ensure_funds(handle, session, estimate_ops, contracts)

            try:
                tx_hash = await self._submit_withdraw(
                    handle, session, contracts, rotation, amount, is_max
                )
            except StaleQuoteRetry as retry:
                logger.debug(
                    "Max withdraw of %d rejected for rounding; retrying with %d",
                    amount, retry.retry_amount,
                )
                amount = retry.retry_amount
                tx_hash = await self._submit_withdraw(
                    handle, session, contracts, rotation, amount, is_max=False
                )
            self._invalidate_engine(session)

            remaining = await self._remaining_after_withdraw(position_id, tx_hash)
            if remaining == 0:
                ledger.close(position_id)
                revealed = None
            else:
                ledger.rotate(rotation)
                revealed = rotation.next_secret

            return ActionResult(
                action="withdraw",
                tx_hash=tx_hash,
                position_id=position_id,
                revealed_secret=revealed,
                remaining_amount=remaining,
                closed=remaining == 0,
                fee_reserve=reserve,
            )

    async def _remaining_after_withdraw(self, position_id: int, tx_hash: str) -> int | None:
        """On-chain amount left after a confirmed withdraw, or None if unreadable."""
        try:
            position = await self._adapter.get_position(position_id)
        except HushError as e:
            logger.warning(
                "Could not read position %s after withdraw %s; keeping its secret: %s",
                position_id, tx_hash, e,
            )
            return None
        return position.amount

    async def borrow(
        self, position_id: int, amount: int, auth_secret: str | None = None
    ) -> ActionResult:
        """Borrow the debt token against a position."""
        if amount <= 0:
            raise UsageError("Borrow amount must be greater than zero.")

        session = await self._active_session()
        async with self._lock_for(session):
            session = await self._active_session()
            contracts = await self._validate_contracts(debt_token=True)
            ledger = self._require_ledger()
            secret, position = await self._authorize(session, position_id, auth_secret)

            handle = await self._handle(session)
            rotation = ledger.prepare_rotation(position_id, secret)
            ops = calls.build_borrow_ops(
                contracts.adapter,
                contracts.executor,
                contracts.borrow_token,
                position_id,
                amount,
                rotation.current_secret,
                rotation.next_hash,
            )
            reserve = await self._ensure_funds(handle, session, ops, contracts)
            tx_hash = await self._submit(handle, session, ops, contracts.supply_token)
            self._invalidate_engine(session)

            ledger.rotate(rotation)
            return ActionResult(
                action="borrow",
                tx_hash=tx_hash,
                position_id=position_id,
                revealed_secret=rotation.next_secret,
                remaining_amount=position.amount,
                fee_reserve=reserve,
            )

    async def repay(
        self, position_id: int, amount: int, auth_secret: str | None = None
    ) -> ActionResult:
        """Repay debt of a position from the private debt-token balance."""
        if amount <= 0:
            raise UsageError("Repay amount must be greater than zero.")

        session = await self._active_session()
        async with self._lock_for(session):
            session = await self._active_session()
            contracts = await self._validate_contracts(debt_token=True)
            ledger = self._require_ledger()
            secret, position = await self._authorize(session, position_id, auth_secret)

            handle = await self._handle(session)
            rotation = ledger.prepare_rotation(position_id, secret)
            ops = calls.build_repay_ops(
                contracts.adapter,
                contracts.borrow_token,
                position_id,
                amount,
                rotation.current_secret,
                rotation.next_hash,
            )
            reserve = await self._ensure_funds(
                handle, session, ops, contracts, debt_amount=amount
            )
            tx_hash = await self._submit(
                handle, session, ops, contracts.supply_token,
                token_changes={contracts.borrow_token: amount},
            )
            self._invalidate_engine(session)

            ledger.rotate(rotation)
            return ActionResult(
                action="repay",
                tx_hash=tx_hash,
                position_id=position_id,
                revealed_secret=rotation.next_secret,
                remaining_amount=position.amount,
                fee_reserve=reserve,
            )

    # ------------------------------------------------------------------
    # Private balance
    # ------------------------------------------------------------------

    async def shield(self, amount: int) -> ActionResult:
        """Move supply token from the public wallet into the private balance."""
        if amount <= 0:
            raise UsageError("Shield amount must be greater than zero.")

        session = await self._active_session()
        async with self._lock_for(session):
            session = await self._active_session()
            token = require_address("tokens.supply.address", self._config.tokens.supply.address)
            executor = require_address(
                "contracts.privacy_executor", self._config.contracts.privacy_executor
            )
            handle = await self._handle(session)
            shield_contract = await self._engine.get_shield_contract_address(handle)
            if shield_contract.lower() != executor.lower():
                raise ConfigurationError(
                    f"Privacy engine shields into {shield_contract or '(unknown)'}, "
                    f"but the configured privacy executor is {executor}."
                )
            tx_hash = await self._engine.shield(handle, token, amount)
            self._invalidate_engine(session)
            return ActionResult(action="shield", tx_hash=tx_hash)

    async def unshield(self, amount: int, recipient: str | None = None) -> ActionResult:
        """Move supply token out of the private balance to ``recipient``."""
        if amount <= 0:
            raise UsageError("Unshield amount must be greater than zero.")
        recipient = recipient or self._signer.address
        if not (recipient.startswith("0x") and is_hex_address(recipient)):
            raise UsageError(f"Invalid recipient address: {recipient}")

        session = await self._active_session()
        async with self._lock_for(session):
            session = await self._active_session()
            supply = self._config.tokens.supply
            token = require_address("tokens.supply.address", supply.address)
            handle = await self._handle(session)
            await self._reconcile(handle, session, token, supply.symbol, supply.decimals, amount)
            tx_hash = await self._engine.unshield(handle, token, amount, recipient)
            self._invalidate_engine(session)
            return ActionResult(action="unshield", tx_hash=tx_hash, remaining_amount=amount)

    async def private_balance(self, force_refresh: bool = False) -> int:
        """Spendable private balance of the supply token."""
        session = await self._active_session()
        token = require_address("tokens.supply.address", self._config.tokens.supply.address)
        handle = await self._handle(session)
        if not handle.capabilities.spendable_balance:
            raise EngineUnavailableError("Privacy engine cannot report a spendable balance.")
        return await self._engine.get_spendable_balance(
            handle, token, session.private_address, force_refresh
        )

    # ------------------------------------------------------------------
    # Position views
    # ------------------------------------------------------------------

    async def show_positions(self) -> list[PositionSummary]:
        session = await self._active_session()
        ledger = self._require_ledger()
        ids = await self._adapter.get_all_owner_position_ids(
            owner_commitment(session.private_address)
        )
        summaries = []
        for position_id in ids:
            position = await self._adapter.get_position(position_id)
            summaries.append(
                PositionSummary(
                    position=position,
                    has_local_secret=ledger.secret_for(position_id) is not None,
                )
            )
        return summaries

    async def position_auth(self, position_id: int, auth_secret: str | None = None) -> str:
        """Return the local secret for backup, or import a verified one."""
        session = await self._active_session()
        ledger = self._require_ledger()
        if auth_secret is None:
            secret = ledger.secret_for(position_id)
            if secret is None:
                raise PositionNotActionableError(
                    f"No local authorization secret for position {position_id}."
                )
            return secret

        async with self._lock_for(session):
            secret, _ = await self._authorize(session, position_id, auth_secret)
            ledger.import_secret(position_id, secret)
            return secret
