from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.analytics.trend import get_trend
from odds_engine.api.v1.errors import to_http
from odds_engine.database import get_session
from odds_engine.errors import OddsEngineError
from odds_engine.markets import MARKETS, OutcomeType
from odds_engine.models.event import SportEvent
from odds_engine.models.odds_change import ChangeReason
from odds_engine.models.odds_quote import OddsQuote, QuoteState
from odds_engine.schemas.quotes import (
    ChangeRecordResponse,
    EventStatsResponse,
    OverrideRequest,
    QuoteResponse,
    RecalcResponse,
    SeedRequest,
    TrendResponse,
)
from odds_engine.services import change_ledger, quote_store, volume_service
from odds_engine.services.quote_seeding import seed_quotes
from odds_engine.services.recalc_scheduler import recalc_scheduler
from odds_engine.services.recalculation import RecalcResult
from odds_engine.utils.odds_math import implied_probability
from odds_engine.utils.timeutil import utcnow

router = APIRouter(prefix="/quotes", tags=["quotes"])


def _quote_response(quote: OddsQuote) -> QuoteResponse:
    response = QuoteResponse.model_validate(quote)
    response.implied_probability = implied_probability(Decimal(quote.price))
    return response


def recalc_response(result: RecalcResult) -> RecalcResponse:
    return RecalcResponse(
        status=result.status.value,
        reason=result.reason,
        candidate=result.candidate,
        change=ChangeRecordResponse.model_validate(result.change) if result.change is not None else None,
    )


@router.get("/events/{event_id}", response_model=list[QuoteResponse])
async def list_quotes(
    event_id: int,
    state: QuoteState | None = Query(default=None),
    session: AsyncSession = Depends(get_session),
) -> list[QuoteResponse]:
    quotes = await quote_store.list_event_quotes(session, event_id, state)
    return [_quote_response(q) for q in quotes]


@router.get("/events/{event_id}/history", response_model=list[ChangeRecordResponse])
async def event_history(
    event_id: int,
    limit: int = Query(default=200, ge=1, le=1000),
    session: AsyncSession = Depends(get_session),
) -> list[ChangeRecordResponse]:
    records = await change_ledger.get_event_history(session, event_id, limit)
    return [ChangeRecordResponse.model_validate(r) for r in records]


@router.get("/events/{event_id}/stats", response_model=EventStatsResponse)
async def event_stats(event_id: int, session: AsyncSession = Depends(get_session)) -> EventStatsResponse:
    stats = await change_ledger.event_change_stats(session, event_id)
    return EventStatsResponse(
        event_id=stats.event_id,
        total_changes=stats.total_changes,
        mean_abs_pct_change=stats.mean_abs_pct_change,
        max_abs_pct_change=stats.max_abs_pct_change,
    )


@router.get("/changes/significant", response_model=list[ChangeRecordResponse])
async def significant_changes(
    threshold_pct: Decimal = Query(default=Decimal("10"), ge=0),
    hours: int = Query(default=24, ge=1, le=24 * 30),
    session: AsyncSession = Depends(get_session),
) -> list[ChangeRecordResponse]:
    records = await change_ledger.significant_changes(session, threshold_pct, since=utcnow() - timedelta(hours=hours))
    return [ChangeRecordResponse.model_validate(r) for r in records]


@router.get("/events/{event_id}/{outcome}", response_model=QuoteResponse)
async def current_quote(
    event_id: int, outcome: OutcomeType, session: AsyncSession = Depends(get_session)
) -> QuoteResponse:
    quote = await quote_store.get_current_quote(session, event_id, outcome)
    if quote is None:
        raise HTTPException(status_code=404, detail="Quote not found")
    return _quote_response(quote)


@router.get("/events/{event_id}/{outcome}/history", response_model=list[ChangeRecordResponse])
async def outcome_history(
    event_id: int,
    outcome: OutcomeType,
    limit: int | None = Query(default=None, ge=1, le=1000),
    session: AsyncSession = Depends(get_session),
) -> list[ChangeRecordResponse]:
    records = await change_ledger.get_history(session, event_id, outcome, limit)
    return [ChangeRecordResponse.model_validate(r) for r in records]


@router.get("/events/{event_id}/{outcome}/trend", response_model=TrendResponse)
async def outcome_trend(
    event_id: int,
    outcome: OutcomeType,
    lookback: int = Query(default=5, ge=1, le=50),
    session: AsyncSession = Depends(get_session),
) -> TrendResponse:
    trend = await get_trend(session, event_id, outcome, lookback)
    return TrendResponse(event_id=event_id, outcome=outcome, trend=trend.value)


@router.post("/events/{event_id}/{outcome}/recalculate", response_model=RecalcResponse)
async def recalculate(
    event_id: int, outcome: OutcomeType, session: AsyncSession = Depends(get_session)
) -> RecalcResponse:
    await volume_service.recompute_shares(session, event_id)
    await session.commit()
    result = await recalc_scheduler.engine.recalculate(session, event_id, outcome, reason=ChangeReason.VOLUME)
    return recalc_response(result)


@router.post("/events/{event_id}/{outcome}/override", response_model=RecalcResponse)
async def override(
    event_id: int,
    outcome: OutcomeType,
    payload: OverrideRequest,
    session: AsyncSession = Depends(get_session),
) -> RecalcResponse:
    result = await recalc_scheduler.engine.override_price(session, event_id, outcome, payload.price, payload.detail)
    return recalc_response(result)


@router.post("/events/{event_id}/{outcome}/suspend")
async def suspend(event_id: int, outcome: OutcomeType, session: AsyncSession = Depends(get_session)) -> dict[str, int]:
    return {"suspended": await quote_store.suspend(session, event_id, outcome)}


@router.post("/events/{event_id}/{outcome}/resume")
async def resume(event_id: int, outcome: OutcomeType, session: AsyncSession = Depends(get_session)) -> dict[str, int]:
    return {"resumed": await quote_store.resume(session, event_id, outcome)}


@router.post("/events/{event_id}/{outcome}/close")
async def close_quote(
    event_id: int, outcome: OutcomeType, session: AsyncSession = Depends(get_session)
) -> dict[str, str]:
    try:
        await quote_store.close(session, event_id, outcome)
    except OddsEngineError as exc:
        raise to_http(exc) from exc
    return {"status": QuoteState.CLOSED.value}


@router.post("/events/{event_id}/close")
async def close_event(event_id: int, session: AsyncSession = Depends(get_session)) -> dict[str, int]:
    return {"closed": await quote_store.close_event(session, event_id)}


@router.post("/events/{event_id}/seed", response_model=list[QuoteResponse])
async def seed(
    event_id: int, payload: SeedRequest | None = None, session: AsyncSession = Depends(get_session)
) -> list[QuoteResponse]:
    event = await session.scalar(select(SportEvent).where(SportEvent.id == event_id))
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    markets = payload.markets if payload else None
    unknown = [m for m in markets or [] if m not in MARKETS]
    if unknown:
        raise HTTPException(status_code=422, detail=f"Unknown markets: {unknown}")
    policy = await recalc_scheduler.engine.store.get_active(session)
    created = await seed_quotes(session, event, markets, policy=policy)
    return [_quote_response(q) for q in created]
