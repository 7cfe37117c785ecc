"""Unit tests for the balance reconciliation loop."""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from hush.errors import ChainReadError
from hush.reconcile import reconcile_balance


def _fetcher(values: list):
    calls: list[bool] = []
    remaining = list(values)

    async def fetch(force_refresh: bool) -> int:
        calls.append(force_refresh)
        value = remaining.pop(0)
        if isinstance(value, Exception):
            raise value
        return value

    return fetch, calls


class TestReconcileBalance:
    @pytest.mark.asyncio
    async def test_sufficient_first_read_no_refresh(self) -> None:
        fetch, calls = _fetcher([500])
        sleep = AsyncMock()
        assert await reconcile_balance(fetch, 100, sleep=sleep) == 500
        assert calls == [False]
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refreshes_until_sufficient(self) -> None:
        fetch, calls = _fetcher([10, 50, 200])
        sleep = AsyncMock()
        assert await reconcile_balance(fetch, 100, attempts=3, delay=1.5, sleep=sleep) == 200
        assert calls == [False, True, True]
        assert sleep.await_count == 2
        sleep.assert_awaited_with(1.5)

    @pytest.mark.asyncio
    async def test_exhaustion_returns_last_value(self) -> None:
        fetch, calls = _fetcher([10, 20, 30])
        result = await reconcile_balance(fetch, 100, attempts=3, sleep=AsyncMock())
        assert result == 30
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_single_attempt_budget(self) -> None:
        fetch, calls = _fetcher([10])
        assert await reconcile_balance(fetch, 100, attempts=1, sleep=AsyncMock()) == 10
        assert calls == [False]

    @pytest.mark.asyncio
    async def test_failing_refresh_keeps_last_value(self) -> None:
        fetch, _ = _fetcher([10, ChainReadError("node down"), ChainReadError("node down")])
        assert await reconcile_balance(fetch, 100, attempts=3, sleep=AsyncMock()) == 10

    @pytest.mark.asyncio
    async def test_terminates_for_any_budget(self) -> None:
        for attempts in range(1, 6):
            fetch, calls = _fetcher([0] * attempts)
            await reconcile_balance(fetch, 1, attempts=attempts, sleep=AsyncMock())
            assert len(calls) == attempts
