"""Privacy engine protocol — the external shielding engine, at its boundary."""
from typing import Any, Protocol, Sequence

from ..models import EngineCapabilities, FeeQuote, Operation
from .signer import Signer


class EngineHandle(Protocol):
    """An initialized engine session for one (chain, signer, identity)."""

    @property
    def capabilities(self) -> EngineCapabilities: ...

    @property
    def session_ref(self) -> Any: ...


class PrivacyEngine(Protocol):
    """Abstract interface for the external privacy engine."""

    def derive_identity(self, seed: str) -> str: ...

    async def init_session(self, signer: Signer, seed: str) -> EngineHandle: ...

    async def get_spendable_balance(
        self, handle: EngineHandle, token: str, owner: str, force_refresh: bool
    ) -> int: ...

    async def submit_operations(
        self,
        handle: EngineHandle,
        operations: Sequence[Operation],
        fee_token: str,
        token_changes: dict[str, int] | None = None,
    ) -> str: ...

    async def get_fee_quote(
        self,
        operations: Sequence[Operation],
        fee_token: str,
        token_addresses: Sequence[str],
    ) -> FeeQuote: ...

    async def get_shield_contract_address(self, handle: EngineHandle) -> str: ...

    async def shield(self, handle: EngineHandle, token: str, amount: int) -> str: ...

    async def unshield(
        self, handle: EngineHandle, token: str, amount: int, recipient: str
    ) -> str: ...
