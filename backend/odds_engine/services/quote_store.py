from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.errors import ConcurrencyConflict, InvariantViolation, QuoteClosed, QuoteNotFound
from odds_engine.markets import OutcomeType
from odds_engine.models.odds_quote import OddsQuote, QuoteState
from odds_engine.utils.timeutil import utcnow

logger = logging.getLogger(__name__)


async def get_active_quote(session: AsyncSession, event_id: int, outcome: OutcomeType) -> OddsQuote | None:
    rows = (
        await session.scalars(
            select(OddsQuote).where(
                OddsQuote.event_id == event_id,
                OddsQuote.outcome == outcome.value,
                OddsQuote.state == QuoteState.ACTIVE.value,
            )
            .execution_options(populate_existing=True)
        )
    ).all()
    if len(rows) > 1:
        raise InvariantViolation(
            f"{len(rows)} active quotes for event_id={event_id} outcome={outcome.value}: ids={[q.id for q in rows]}"
        )
    return rows[0] if rows else None


async def get_current_quote(session: AsyncSession, event_id: int, outcome: OutcomeType) -> OddsQuote | None:
    """Active quote if there is one, otherwise the most recently touched quote in any state."""
    active = await get_active_quote(session, event_id, outcome)
    if active is not None:
        return active
    return await session.scalar(
        select(OddsQuote)
        .where(OddsQuote.event_id == event_id, OddsQuote.outcome == outcome.value)
        .order_by(OddsQuote.updated_at.desc(), OddsQuote.id.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )


async def list_event_quotes(session: AsyncSession, event_id: int, state: QuoteState | None = None) -> list[OddsQuote]:
    stmt = select(OddsQuote).where(OddsQuote.event_id == event_id)
    if state is not None:
        stmt = stmt.where(OddsQuote.state == state.value)
    stmt = stmt.order_by(OddsQuote.market, OddsQuote.id).execution_options(populate_existing=True)
    return list((await session.scalars(stmt)).all())


async def commit(
    session: AsyncSession,
    quote_id: int,
    expected_revision: int,
    new_price: Decimal,
    now: datetime | None = None,
) -> OddsQuote:
    """Compare-and-swap the price of an ACTIVE quote.

    Succeeds only while the stored revision still equals ``expected_revision``.
    Runs inside the caller's transaction; the caller commits.
    """
    now = now or utcnow()
    result = await session.execute(
        update(OddsQuote)
        .where(
            OddsQuote.id == quote_id,
            OddsQuote.revision == expected_revision,
            OddsQuote.state == QuoteState.ACTIVE.value,
        )
        .values(price=new_price, revision=expected_revision + 1, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        current_state = await session.scalar(select(OddsQuote.state).where(OddsQuote.id == quote_id))
        if current_state is None:
            raise QuoteNotFound(f"quote {quote_id} no longer exists")
        if current_state == QuoteState.CLOSED.value:
            raise QuoteClosed(f"quote {quote_id} is closed")
        raise ConcurrencyConflict(f"quote {quote_id} moved past revision {expected_revision}")
    return await session.get(OddsQuote, quote_id, populate_existing=True)


async def _transition(
    session: AsyncSession,
    event_id: int,
    outcome: OutcomeType | None,
    from_states: tuple[QuoteState, ...],
    to_state: QuoteState,
) -> int:
    stmt = (
        update(OddsQuote)
        .where(
            OddsQuote.event_id == event_id,
            OddsQuote.state.in_([s.value for s in from_states]),
        )
        .values(state=to_state.value, revision=OddsQuote.revision + 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if outcome is not None:
        stmt = stmt.where(OddsQuote.outcome == outcome.value)
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount


async def close(session: AsyncSession, event_id: int, outcome: OutcomeType) -> None:
    closed = await _transition(session, event_id, outcome, (QuoteState.ACTIVE, QuoteState.SUSPENDED), QuoteState.CLOSED)
    if closed == 0:
        existing = await get_current_quote(session, event_id, outcome)
        if existing is None:
            raise QuoteNotFound(f"no quote for event_id={event_id} outcome={outcome.value}")
        if existing.state == QuoteState.CLOSED.value:
            raise QuoteClosed(f"quote {existing.id} is already closed")
    logger.info("quote closed: event_id=%s outcome=%s", event_id, outcome.value)


async def close_event(session: AsyncSession, event_id: int) -> int:
    closed = await _transition(session, event_id, None, (QuoteState.ACTIVE, QuoteState.SUSPENDED), QuoteState.CLOSED)
    logger.info("event quotes closed: event_id=%s quotes_closed=%s", event_id, closed)
    return closed


async def suspend(session: AsyncSession, event_id: int, outcome: OutcomeType) -> int:
    return await _transition(session, event_id, outcome, (QuoteState.ACTIVE,), QuoteState.SUSPENDED)


async def resume(session: AsyncSession, event_id: int, outcome: OutcomeType) -> int:
    return await _transition(session, event_id, outcome, (QuoteState.SUSPENDED,), QuoteState.ACTIVE)
