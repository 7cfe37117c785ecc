"""Fee reserve calculation."""
from __future__ import annotations

from .config import FEE_BPS_DENOMINATOR, FeeBufferConfig
from .models import FeeQuote, FeeReserve


def buffered_fee_reserve(flat_fee: int, rate_bps: int, floor: int) -> FeeReserve:
    """Reserve needed on top of an action amount for a flat-fee quote.

    reserve = flat_fee + max(flat_fee * rate_bps / 10000, floor)

    Examples:
        buffered_fee_reserve(50, 2000, 2000).reserve → 2050
        buffered_fee_reserve(0, 2000, 2000).reserve → 2000
    """
    if flat_fee < 0:
        raise ValueError(f"Flat fee must not be negative: {flat_fee}")
    proportional = flat_fee * rate_bps // FEE_BPS_DENOMINATOR
    applied = max(proportional, floor)
    return FeeReserve(
        reserve=flat_fee + applied,
        proportional_part=proportional,
        floor_part=floor,
        applied_part=applied,
    )


def select_flat_fee(quote: FeeQuote) -> int | None:
    """Pick the usable flat fee from a quote, or None if it resolves to zero.

    The first positive per-token flat fee wins; otherwise the engine's
    alternate whole-transaction estimate is used.
    """
    for fee in quote.flat_fees:
        if fee > 0:
            return fee
    if quote.alternate_fee_estimate is not None and quote.alternate_fee_estimate > 0:
        return quote.alternate_fee_estimate
    return None


class FeeReserveCalculator:
    """Apply the configured buffer rate and floor to flat-fee quotes."""

    def __init__(self, config: FeeBufferConfig) -> None:
        self._rate_bps = config.buffer_bps
        self._floor = config.buffer_min
        self.block_when_unavailable = config.on_quote_unavailable == "block"

    def reserve_for(self, flat_fee: int) -> FeeReserve:
        return buffered_fee_reserve(flat_fee, self._rate_bps, self._floor)
