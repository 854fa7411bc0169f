from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.markets import OutcomeType
from odds_engine.models.odds_change import ChangeReason, OddsChangeRecord
from odds_engine.models.odds_quote import OddsQuote
from odds_engine.utils.odds_math import PRICE_QUANT, percentage_change


@dataclass(slots=True)
class EventChangeStats:
    event_id: int
    total_changes: int
    mean_abs_pct_change: Decimal | None
    max_abs_pct_change: Decimal | None


async def append_change(
    session: AsyncSession,
    quote: OddsQuote,
    previous_price: Decimal,
    new_price: Decimal,
    reason: ChangeReason,
    changed_at: datetime,
    wager_count: int = 0,
    total_amount: Decimal = Decimal("0.00"),
    detail: str | None = None,
    market_wager_count: int = 0,
) -> OddsChangeRecord:
    record = OddsChangeRecord(
        quote_id=quote.id,
        event_id=quote.event_id,
        outcome=quote.outcome,
        previous_price=previous_price,
        new_price=new_price,
        pct_change=percentage_change(previous_price, new_price),
        reason=reason.value,
        wager_count=wager_count,
        market_wager_count=market_wager_count,
        total_amount=total_amount,
        detail=detail,
        revision=quote.revision,
        changed_at=changed_at,
    )
    session.add(record)
    await session.flush()
    return record


def _pair_filter(event_id: int, outcome: OutcomeType):
    return (OddsChangeRecord.event_id == event_id, OddsChangeRecord.outcome == outcome.value)


async def last_change(
    session: AsyncSession, event_id: int, outcome: OutcomeType, reasons: tuple[str, ...] | None = None
) -> OddsChangeRecord | None:
    stmt = select(OddsChangeRecord).where(*_pair_filter(event_id, outcome))
    if reasons:
        stmt = stmt.where(OddsChangeRecord.reason.in_(reasons))
    return await session.scalar(
        stmt.order_by(OddsChangeRecord.changed_at.desc(), OddsChangeRecord.id.desc()).limit(1)
    )


async def get_history(
    session: AsyncSession, event_id: int, outcome: OutcomeType, limit: int | None = None
) -> list[OddsChangeRecord]:
    stmt = (
        select(OddsChangeRecord)
        .where(*_pair_filter(event_id, outcome))
        .order_by(OddsChangeRecord.changed_at.desc(), OddsChangeRecord.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return list((await session.scalars(stmt)).all())


async def get_event_history(session: AsyncSession, event_id: int, limit: int = 200) -> list[OddsChangeRecord]:
    return list(
        (
            await session.scalars(
                select(OddsChangeRecord)
                .where(OddsChangeRecord.event_id == event_id)
                .order_by(OddsChangeRecord.changed_at.desc(), OddsChangeRecord.id.desc())
                .limit(limit)
            )
        ).all()
    )


async def significant_changes(
    session: AsyncSession, threshold_pct: Decimal, since: datetime | None = None, limit: int = 100
) -> list[OddsChangeRecord]:
    stmt = select(OddsChangeRecord).where(func.abs(OddsChangeRecord.pct_change) >= threshold_pct)
    if since is not None:
        stmt = stmt.where(OddsChangeRecord.changed_at >= since)
    return list((await session.scalars(stmt.order_by(OddsChangeRecord.changed_at.desc()).limit(limit))).all())


def _rounded_pct(value) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value)).quantize(PRICE_QUANT, rounding=ROUND_HALF_UP)


async def event_change_stats(session: AsyncSession, event_id: int) -> EventChangeStats:
    row = (
        await session.execute(
            select(
                func.count(OddsChangeRecord.id),
                func.avg(func.abs(OddsChangeRecord.pct_change)),
                func.max(func.abs(OddsChangeRecord.pct_change)),
            ).where(OddsChangeRecord.event_id == event_id)
        )
    ).one()
    total, mean_abs, max_abs = row
    return EventChangeStats(
        event_id=event_id,
        total_changes=int(total or 0),
        mean_abs_pct_change=_rounded_pct(mean_abs),
        max_abs_pct_change=_rounded_pct(max_abs),
    )


async def purge_before(session: AsyncSession, cutoff: datetime) -> int:
    result = await session.execute(delete(OddsChangeRecord).where(OddsChangeRecord.changed_at < cutoff))
    await session.commit()
    return result.rowcount or 0
