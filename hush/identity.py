"""Private identity seed handling."""
from __future__ import annotations

from eth_account import Account
from eth_utils import ValidationError

from .errors import UsageError

# Required to use mnemonic derivation in eth-account
Account.enable_unaudited_hdwallet_features()


def normalize_seed(seed: str) -> str:
    """Collapse whitespace in a mnemonic; reject an empty one."""
    words = seed.split()
    if not words:
        raise UsageError("Mnemonic is empty.")
    return " ".join(words)


def generate_seed() -> str:
    """Create a fresh BIP-39 mnemonic for a new private identity."""
    _, mnemonic = Account.create_with_mnemonic()
    return mnemonic


def derive_identity_address(seed: str) -> str:
    """Address of the first account derived from ``seed``."""
    try:
        return Account.from_mnemonic(normalize_seed(seed)).address
    except (ValueError, ValidationError) as e:
        raise UsageError(f"Invalid mnemonic: {e}") from None
