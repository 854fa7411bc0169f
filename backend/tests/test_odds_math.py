from decimal import Decimal

import pytest

from odds_engine.utils.odds_math import (
    clamp,
    implied_probability,
    percentage_change,
    quantize_price,
    ratio,
    share_pct,
)


def test_quantize_price_rounds_half_up():
    assert quantize_price(Decimal("1.795")) == Decimal("1.80")
    assert quantize_price(Decimal("1.7949")) == Decimal("1.79")
    assert quantize_price(Decimal("2.005")) == Decimal("2.01")


def test_ratio_is_four_places_and_zero_safe():
    assert ratio(Decimal("1"), Decimal("3")) == Decimal("0.3333")
    assert ratio(Decimal("2"), Decimal("3")) == Decimal("0.6667")
    assert ratio(Decimal("5"), Decimal("0")) == Decimal("0.0000")


def test_percentage_change_signed():
    assert percentage_change(Decimal("2.00"), Decimal("1.80")) == Decimal("-10.00")
    assert percentage_change(Decimal("2.00"), Decimal("2.30")) == Decimal("15.00")
    assert percentage_change(Decimal("3.00"), Decimal("3.00")) == Decimal("0.00")


def test_percentage_change_requires_positive_previous():
    with pytest.raises(ValueError):
        percentage_change(Decimal("0"), Decimal("1.50"))


def test_share_pct():
    assert share_pct(Decimal("40"), Decimal("100")) == Decimal("40.00")
    assert share_pct(Decimal("1"), Decimal("3")) == Decimal("33.33")
    assert share_pct(Decimal("1"), Decimal("0")) == Decimal("0.00")


def test_clamp_and_bad_bounds():
    assert clamp(Decimal("60"), Decimal("1.01"), Decimal("50")) == Decimal("50")
    assert clamp(Decimal("1.00"), Decimal("1.01"), Decimal("50")) == Decimal("1.01")
    with pytest.raises(ValueError):
        clamp(Decimal("2"), Decimal("3"), Decimal("1"))


def test_implied_probability():
    assert implied_probability(Decimal("2.00")) == Decimal("0.5000")
    assert implied_probability(Decimal("4.00")) == Decimal("0.2500")
    with pytest.raises(ValueError):
        implied_probability(Decimal("1.00"))
