"""Bounded re-query of a private balance that may lag on-chain state."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from .errors import HushError

logger = logging.getLogger(__name__)

BalanceFetch = Callable[[bool], Awaitable[int]]

DEFAULT_ATTEMPTS = 3
DEFAULT_DELAY_SECONDS = 1.5


async def reconcile_balance(
    fetch: BalanceFetch,
    required: int,
    attempts: int = DEFAULT_ATTEMPTS,
    delay: float = DEFAULT_DELAY_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> int:
    """Fetch a balance until it covers ``required`` or the budget runs out.

    The first fetch does not force a refresh. Each later fetch forces one,
    after sleeping ``delay`` seconds. ``attempts`` is the total number of
    fetches. Exhaustion is not an error: the last observed balance is
    returned and the caller decides what "still insufficient" means.

    Args:
        fetch: Callable taking ``force_refresh`` and returning the balance.
        required: Minimum balance that ends the loop early.
        attempts: Total fetch budget (at least 1).
        delay: Seconds between fetches.
        sleep: Injected for tests.
    """
    attempts = max(1, attempts)
    balance = await fetch(False)
    if balance >= required:
        return balance

    for attempt in range(2, attempts + 1):
        logger.debug(
            "Balance %d below required %d; refreshing (attempt %d/%d)",
            balance, required, attempt, attempts,
        )
        await sleep(delay)
        try:
            balance = await fetch(True)
        except HushError as e:
            logger.warning("Balance refresh failed, keeping last value: %s", e)
            continue
        if balance >= required:
            return balance

    return balance
