from __future__ import annotations

from enum import Enum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.markets import OutcomeType
from odds_engine.services import change_ledger

DEFAULT_LOOKBACK = 5
MIN_RECORDS = 3


class Trend(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


def classify_trend(records: list[Any]) -> Trend:
    """Majority direction of the price moves in ``records``.

    Each record carries ``previous_price`` and ``new_price``. Fewer than three
    records is not enough to call a direction; a tie is stable.
    """
    if len(records) < MIN_RECORDS:
        return Trend.INSUFFICIENT_DATA
    rising = sum(1 for r in records if r.new_price > r.previous_price)
    falling = sum(1 for r in records if r.new_price < r.previous_price)
    if rising > falling:
        return Trend.RISING
    if falling > rising:
        return Trend.FALLING
    return Trend.STABLE


async def get_trend(
    session: AsyncSession, event_id: int, outcome: OutcomeType, lookback: int = DEFAULT_LOOKBACK
) -> Trend:
    records = await change_ledger.get_history(session, event_id, outcome, limit=lookback)
    return classify_trend(records)
