"""Pure price computation for the recalculation pipeline.

Nothing here touches storage. Every value that is persisted is rounded
half-up at the boundary where it is produced so audit percentages can be
reproduced from the stored prices.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from odds_engine.markets import MarketProfile
from odds_engine.services.policy_store import PolicySnapshot
from odds_engine.utils.odds_math import HUNDRED, RATIO_QUANT, clamp, percentage_change, quantize_price, ratio
from odds_engine.utils.timeutil import as_utc

ONE = Decimal(1)


class RejectReason(str, Enum):
    TOO_SOON = "too_soon"
    OUT_OF_BOUNDS = "out_of_bounds"
    CONFLICT = "conflict"
    POLICY_INACTIVE = "policy_inactive"
    FROZEN_WINDOW = "frozen_window"
    QUOTE_CLOSED = "quote_closed"
    QUOTE_SUSPENDED = "quote_suspended"
    NOT_FOUND = "not_found"


def volume_factor(share: Decimal, profile: MarketProfile) -> Decimal:
    """Signed bias from this outcome's share (in %) of its market's volume.

    Over-exposed outcomes get a negative factor (shorten the price),
    under-exposed ones a positive factor. Between the two thresholds the
    factor is zero. The result is capped at +/- ``profile.volume_factor_cap``.
    """
    if share > profile.upper_share_pct:
        factor = -((share - profile.upper_share_pct) / HUNDRED).quantize(RATIO_QUANT, rounding=ROUND_HALF_UP)
    elif share < profile.lower_share_pct:
        factor = ((profile.lower_share_pct - share) / HUNDRED).quantize(RATIO_QUANT, rounding=ROUND_HALF_UP)
    else:
        return Decimal("0.0000")
    cap = profile.volume_factor_cap
    return clamp(factor, -cap, cap)


def probability_factor(outcome_amount: Decimal, market_amount: Decimal, profile: MarketProfile) -> Decimal:
    """Fair (even-split) probability minus the probability implied by money wagered."""
    if market_amount <= 0:
        return Decimal("0.0000")
    implied = ratio(outcome_amount, market_amount)
    return profile.fair_probability - implied


def margin_multiplier(policy: PolicySnapshot) -> Decimal:
    return ONE - ratio(policy.house_margin_pct, HUNDRED)


def candidate_price(
    current: Decimal,
    share: Decimal,
    outcome_amount: Decimal,
    market_amount: Decimal,
    profile: MarketProfile,
    policy: PolicySnapshot,
) -> Decimal:
    vf = volume_factor(share, profile)
    pf = probability_factor(outcome_amount, market_amount, profile)
    raw = current * (ONE + vf * policy.volume_weight) * (ONE + pf * policy.probability_weight)
    raw = raw * margin_multiplier(policy)
    return quantize_price(clamp(raw, policy.min_odds, policy.max_odds))


def external_candidate_price(current: Decimal, feed_price: Decimal, policy: PolicySnapshot) -> Decimal:
    """Move part of the way toward an externally observed price."""
    raw = current + (feed_price - current) * policy.market_weight
    return quantize_price(clamp(raw, policy.min_odds, policy.max_odds))


def validate_change(current: Decimal, candidate: Decimal, policy: PolicySnapshot) -> RejectReason | None:
    if candidate < policy.min_odds or candidate > policy.max_odds:
        return RejectReason.OUT_OF_BOUNDS
    if abs(percentage_change(current, candidate)) > policy.max_change_pct:
        return RejectReason.OUT_OF_BOUNDS
    return None


def is_frozen(kickoff_at: datetime, now: datetime, policy: PolicySnapshot) -> bool:
    """True once ``now`` is inside the pre-kickoff freeze window (or past kickoff)."""
    return as_utc(now) >= as_utc(kickoff_at) - policy.freeze_window


def is_too_soon(last_change_at: datetime | None, now: datetime, policy: PolicySnapshot) -> bool:
    if last_change_at is None:
        return False
    return as_utc(now) - as_utc(last_change_at) < policy.min_time_between_changes
