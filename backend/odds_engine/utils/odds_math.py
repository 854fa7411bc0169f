from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

HUNDRED = Decimal("100")
PRICE_QUANT = Decimal("0.01")
RATIO_QUANT = Decimal("0.0001")


def quantize_price(value: Decimal) -> Decimal:
    """Round a price to 2 dp, half-up. 1.795 -> 1.80"""
    return value.quantize(PRICE_QUANT, rounding=ROUND_HALF_UP)


def ratio(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole at 4 dp, half-up. Zero when whole is zero."""
    if whole == 0:
        return Decimal("0.0000")
    return (part / whole).quantize(RATIO_QUANT, rounding=ROUND_HALF_UP)


def percentage_change(previous: Decimal, new: Decimal) -> Decimal:
    """Signed % change at 2 dp. 2.00 -> 1.80 gives -10.00"""
    if previous <= 0:
        raise ValueError("previous price must be positive")
    return (ratio(new - previous, previous) * HUNDRED).quantize(PRICE_QUANT, rounding=ROUND_HALF_UP)


def share_pct(part: Decimal, whole: Decimal) -> Decimal:
    """part as a percentage of whole, 2 dp. 40 of 100 -> 40.00"""
    return (ratio(part, whole) * HUNDRED).quantize(PRICE_QUANT, rounding=ROUND_HALF_UP)


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    if low > high:
        raise ValueError("low bound must not exceed high bound")
    return max(low, min(high, value))


def implied_probability(price: Decimal) -> Decimal:
    """Decimal odds to implied probability. 2.00 -> 0.5000"""
    if price <= 1:
        raise ValueError("Decimal odds must be greater than 1")
    return ratio(Decimal(1), price)
