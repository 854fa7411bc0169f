from datetime import UTC, datetime, timedelta
from decimal import Decimal

from odds_engine.markets import MATCH_RESULT, MARKETS, MarketProfile
from odds_engine.services import pricing
from odds_engine.services.policy_store import PolicySnapshot
from odds_engine.services.pricing import RejectReason

THREE_WAY = MARKETS[MATCH_RESULT]


def _policy(**overrides) -> PolicySnapshot:
    values = dict(
        id=1,
        name="test",
        max_change_pct=Decimal("15.00"),
        min_minutes_between_changes=5,
        min_odds=Decimal("1.01"),
        max_odds=Decimal("50.00"),
        volume_weight=Decimal("0.1000"),
        probability_weight=Decimal("0.7000"),
        market_weight=Decimal("0.2000"),
        house_margin_pct=Decimal("5.00"),
        notify_threshold_pct=Decimal("10.00"),
        auto_update=True,
        refresh_interval_minutes=15,
        freeze_minutes_before_start=30,
    )
    values.update(overrides)
    return PolicySnapshot(**values)


def test_volume_factor_sign_follows_exposure():
    assert pricing.volume_factor(Decimal("40.00"), THREE_WAY) == Decimal("-0.0667")
    assert pricing.volume_factor(Decimal("10.00"), THREE_WAY) == Decimal("0.1000")
    assert pricing.volume_factor(Decimal("25.00"), THREE_WAY) == Decimal("0.0000")
    assert pricing.volume_factor(Decimal("33.33"), THREE_WAY) == Decimal("0.0000")


def test_volume_factor_is_capped():
    assert pricing.volume_factor(Decimal("100.00"), THREE_WAY) == Decimal("-0.20")
    lopsided = MarketProfile(
        "wide", "Wide", 2, underexposed_share_pct=Decimal("40.00"), volume_factor_cap=Decimal("0.05")
    )
    assert pricing.volume_factor(Decimal("0.00"), lopsided) == Decimal("0.05")


def test_probability_factor_against_even_split():
    assert pricing.probability_factor(Decimal("40"), Decimal("100"), THREE_WAY) == Decimal("-0.0667")
    assert pricing.probability_factor(Decimal("20"), Decimal("100"), THREE_WAY) == Decimal("0.1333")
    assert pricing.probability_factor(Decimal("0"), Decimal("0"), THREE_WAY) == Decimal("0.0000")


def test_overexposed_outcome_price_shortens_within_max_change():
    current = Decimal("2.00")
    candidate = pricing.candidate_price(
        current, Decimal("40.00"), Decimal("40"), Decimal("100"), THREE_WAY, _policy()
    )
    assert candidate == Decimal("1.80")
    assert Decimal("1.70") <= candidate < current
    assert pricing.validate_change(current, candidate, _policy()) is None


def test_candidate_is_clamped_to_policy_bounds():
    policy = _policy(max_odds=Decimal("3.00"), house_margin_pct=Decimal("0"))
    candidate = pricing.candidate_price(
        Decimal("2.95"), Decimal("5.00"), Decimal("5"), Decimal("100"), THREE_WAY, policy
    )
    assert candidate == Decimal("3.00")


def test_validate_change_rejects_large_moves_and_bounds():
    policy = _policy()
    assert pricing.validate_change(Decimal("2.00"), Decimal("1.60"), policy) == RejectReason.OUT_OF_BOUNDS
    assert pricing.validate_change(Decimal("2.00"), Decimal("2.30"), policy) is None
    assert pricing.validate_change(Decimal("1.02"), Decimal("1.00"), policy) == RejectReason.OUT_OF_BOUNDS


def test_external_candidate_moves_part_way_to_feed():
    policy = _policy()
    assert pricing.external_candidate_price(Decimal("2.00"), Decimal("2.50"), policy) == Decimal("2.10")
    assert pricing.external_candidate_price(Decimal("2.00"), Decimal("1.50"), policy) == Decimal("1.90")


def test_freeze_window_and_rate_limit():
    policy = _policy()
    now = datetime(2026, 3, 14, 12, 0, tzinfo=UTC)
    assert pricing.is_frozen(now + timedelta(minutes=10), now, policy)
    assert pricing.is_frozen(now + timedelta(minutes=30), now, policy)
    assert pricing.is_frozen(now - timedelta(minutes=5), now, policy)
    assert not pricing.is_frozen(now + timedelta(minutes=31), now, policy)

    assert pricing.is_too_soon(now - timedelta(minutes=2), now, policy)
    assert not pricing.is_too_soon(now - timedelta(minutes=5), now, policy)
    assert not pricing.is_too_soon(None, now, policy)
    # naive timestamps as read back from sqlite
    assert pricing.is_too_soon(datetime(2026, 3, 14, 11, 58), now, policy)
