"""Wallet signers backed by eth-account."""
from __future__ import annotations

import logging

from eth_account import Account
from eth_account.messages import encode_defunct

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class LocalAccountSigner:
    """Sign EIP-191 personal messages with a locally held private key."""

    def __init__(self, private_key: str) -> None:
        if not private_key:
            raise ConfigurationError(
                "Missing config key: wallet.private_key (set HUSH_WALLET_PRIVATE_KEY)"
            )
        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError):
            raise ConfigurationError("wallet.private_key is not a valid private key") from None

    @property
    def address(self) -> str:
        return self._account.address

    async def sign_message(self, message: str) -> bytes:
        signed = self._account.sign_message(encode_defunct(text=message))
        return bytes(signed.signature)
