"""Lending adapter protocol — read-only view of the private lending adapter."""
from typing import Protocol

from ..models import PositionInfo


class LendingAdapter(Protocol):
    """Abstract interface for reading adapter positions and configuration."""

    async def get_owner_position_ids(
        self, owner_commitment: str, offset: int, limit: int
    ) -> tuple[list[int], int]: ...

    async def get_all_owner_position_ids(self, owner_commitment: str) -> list[int]: ...

    async def get_position(self, position_id: int) -> PositionInfo: ...

    async def privacy_executor(self) -> str: ...

    async def supply_token(self) -> str: ...

    async def is_borrow_token_allowed(self, token: str) -> bool: ...
