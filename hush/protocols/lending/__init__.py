"""Private lending adapter: call builders and on-chain reader."""
from .adapter import LendingAdapterReader

__all__ = ["LendingAdapterReader"]
