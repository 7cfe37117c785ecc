"""Signer protocol."""
from typing import Protocol


class Signer(Protocol):
    """Abstract interface for the connected public wallet."""

    @property
    def address(self) -> str: ...

    async def sign_message(self, message: str) -> bytes: ...
