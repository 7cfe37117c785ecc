"""Pure token amount conversions."""
from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .errors import UsageError


def parse_token_amount(amount_text: str, decimals: int) -> int:
    """Convert a human amount ("1.5") into smallest token units.

    Examples:
        parse_token_amount("1.5", 6) → 1500000
        parse_token_amount("0.002", 6) → 2000
    """
    text = amount_text.strip()
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise UsageError(f"Invalid amount: {amount_text!r}") from None

    if not value.is_finite() or value < 0:
        raise UsageError(f"Invalid amount: {amount_text!r}")

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise UsageError(
            f"Amount {amount_text!r} has more than {decimals} decimal places"
        )
    return int(scaled)


def format_token_amount(amount: int, decimals: int) -> str:
    """Convert smallest units back to a human string, trimming zeros."""
    value = Decimal(amount).scaleb(-decimals)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
