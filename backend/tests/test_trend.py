from decimal import Decimal
from types import SimpleNamespace

from odds_engine.analytics.trend import Trend, classify_trend


def _move(previous: str, new: str) -> SimpleNamespace:
    return SimpleNamespace(previous_price=Decimal(previous), new_price=Decimal(new))


def test_trend_needs_three_records() -> None:
    assert classify_trend([]) == Trend.INSUFFICIENT_DATA
    assert classify_trend([_move("2.00", "2.10"), _move("2.10", "2.20")]) == Trend.INSUFFICIENT_DATA


def test_trend_follows_majority_direction() -> None:
    rising = [_move("2.00", "2.10"), _move("2.10", "2.20"), _move("2.20", "2.15")]
    falling = [_move("2.00", "1.90"), _move("1.90", "1.80"), _move("1.80", "1.85")]
    assert classify_trend(rising) == Trend.RISING
    assert classify_trend(falling) == Trend.FALLING


def test_trend_tie_is_stable() -> None:
    records = [_move("2.00", "2.10"), _move("2.10", "2.00"), _move("2.00", "2.00")]
    assert classify_trend(records) == Trend.STABLE
