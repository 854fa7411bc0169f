from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import and_, case, delete, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.errors import EventNotFound, InvalidWager
from odds_engine.markets import OutcomeType, market_for
from odds_engine.models.event import EventStatus, SportEvent
from odds_engine.models.wagering_volume import WageringVolume
from odds_engine.utils.odds_math import PRICE_QUANT, share_pct
from odds_engine.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

TREND_RISING = "rising"
TREND_FALLING = "falling"
TREND_STABLE = "stable"


def running_average(total: Decimal, count: int) -> Decimal:
    if not count:
        return Decimal("0.00")
    return (Decimal(total) / count).quantize(PRICE_QUANT, rounding=ROUND_HALF_UP)


async def get_volume(session: AsyncSession, event_id: int, outcome: OutcomeType) -> WageringVolume | None:
    return await session.scalar(
        select(WageringVolume).where(WageringVolume.event_id == event_id, WageringVolume.outcome == outcome.value)
    )


async def record_wager(
    session: AsyncSession,
    event_id: int,
    outcome: OutcomeType,
    amount: Decimal,
    now: datetime | None = None,
) -> WageringVolume:
    """Add one wager to the (event, outcome) aggregate. Flushes; the caller commits.

    Count, total, min and max are folded in by a single upsert so overlapping
    wagers on the same outcome all land. The upsert holds the row until the
    caller commits, so the average written afterwards matches that row.
    """
    amount = Decimal(amount)
    if amount <= 0:
        raise InvalidWager(f"wager amount must be positive, got {amount}")
    now = now or utcnow()

    event = await session.scalar(select(SportEvent.id).where(SportEvent.id == event_id))
    if event is None:
        raise EventNotFound(f"event {event_id} not found")

    dialect = session.bind.dialect.name if session.bind is not None else "postgresql"
    insert_stmt = (sqlite_insert(WageringVolume) if dialect == "sqlite" else pg_insert(WageringVolume)).values(
        event_id=event_id,
        outcome=outcome.value,
        market=market_for(outcome),
        wager_count=1,
        total_amount=amount,
        average_amount=amount,
        min_amount=amount,
        max_amount=amount,
        share_pct=Decimal("0.00"),
        created_at=now,
        updated_at=now,
    )
    folded = {
        "wager_count": WageringVolume.wager_count + 1,
        "total_amount": WageringVolume.total_amount + amount,
        "min_amount": case(
            (WageringVolume.min_amount.is_(None), amount),
            (WageringVolume.min_amount > amount, amount),
            else_=WageringVolume.min_amount,
        ),
        "max_amount": case(
            (WageringVolume.max_amount.is_(None), amount),
            (WageringVolume.max_amount < amount, amount),
            else_=WageringVolume.max_amount,
        ),
        "updated_at": now,
    }
    if dialect == "sqlite":
        upsert = insert_stmt.on_conflict_do_update(index_elements=["event_id", "outcome"], set_=folded)
    else:
        upsert = insert_stmt.on_conflict_do_update(constraint="uq_volume_event_outcome", set_=folded)
    await session.execute(upsert)

    volume = await session.scalar(
        select(WageringVolume)
        .where(WageringVolume.event_id == event_id, WageringVolume.outcome == outcome.value)
        .execution_options(populate_existing=True)
    )
    volume.average_amount = running_average(volume.total_amount, volume.wager_count)
    await session.flush()
    return volume


async def list_event_volumes(session: AsyncSession, event_id: int) -> list[WageringVolume]:
    return list(
        (
            await session.scalars(
                select(WageringVolume)
                .where(WageringVolume.event_id == event_id)
                .order_by(WageringVolume.total_amount.desc(), WageringVolume.id)
            )
        ).all()
    )


def _trend_tag(previous: Decimal, current: Decimal) -> str:
    if current > previous:
        return TREND_RISING
    if current < previous:
        return TREND_FALLING
    return TREND_STABLE


async def recompute_shares(session: AsyncSession, event_id: int) -> list[WageringVolume]:
    """Recompute each outcome's share of its market's wagered amount for one event.

    Shares within a market are computed together so they stay mutually
    consistent. Flushes; the caller commits.
    """
    volumes = await list_event_volumes(session, event_id)
    by_market: dict[str, list[WageringVolume]] = defaultdict(list)
    for volume in volumes:
        by_market[volume.market].append(volume)

    for market_volumes in by_market.values():
        total = sum((Decimal(v.total_amount) for v in market_volumes), Decimal("0.00"))
        if total <= 0:
            continue
        for volume in market_volumes:
            new_share = share_pct(Decimal(volume.total_amount), total)
            volume.trend = _trend_tag(Decimal(volume.share_pct or 0), new_share)
            volume.share_pct = new_share
    await session.flush()
    return volumes


async def market_total(session: AsyncSession, event_id: int, market: str) -> Decimal:
    total = await session.scalar(
        select(func.coalesce(func.sum(WageringVolume.total_amount), 0)).where(
            WageringVolume.event_id == event_id, WageringVolume.market == market
        )
    )
    return Decimal(str(total or 0))


async def market_wager_count(session: AsyncSession, event_id: int, market: str) -> int:
    count = await session.scalar(
        select(func.coalesce(func.sum(WageringVolume.wager_count), 0)).where(
            WageringVolume.event_id == event_id, WageringVolume.market == market
        )
    )
    return int(count or 0)


async def top_events_by_volume(session: AsyncSession, limit: int = 10) -> list[dict]:
    rows = (
        await session.execute(
            select(
                WageringVolume.event_id,
                func.sum(WageringVolume.wager_count),
                func.sum(WageringVolume.total_amount),
            )
            .group_by(WageringVolume.event_id)
            .order_by(func.sum(WageringVolume.total_amount).desc())
            .limit(limit)
        )
    ).all()
    return [
        {"event_id": event_id, "wager_count": int(count or 0), "total_amount": Decimal(str(total or 0))}
        for event_id, count, total in rows
    ]


async def purge_closed_event_volumes(session: AsyncSession, finished_before: datetime) -> int:
    """Drop aggregates for archived events and for finished/cancelled events older than ``finished_before``."""
    stale_events = select(SportEvent.id).where(
        or_(
            SportEvent.status == EventStatus.ARCHIVED.value,
            and_(
                SportEvent.status.in_([EventStatus.FINISHED.value, EventStatus.CANCELLED.value]),
                SportEvent.kickoff_at < finished_before,
            ),
        )
    )
    result = await session.execute(
        delete(WageringVolume).where(WageringVolume.event_id.in_(stale_events)).execution_options(
            synchronize_session=False
        )
    )
    await session.commit()
    return result.rowcount or 0
