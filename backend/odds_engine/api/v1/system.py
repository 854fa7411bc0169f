from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.database import get_session
from odds_engine.models.odds_change import OddsChangeRecord
from odds_engine.models.odds_quote import OddsQuote, QuoteState
from odds_engine.services.recalc_scheduler import recalc_scheduler

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/scheduler-status")
async def scheduler_status() -> dict:
    return recalc_scheduler.get_status()


@router.get("/health")
async def health(session: AsyncSession = Depends(get_session)) -> dict[str, str | int | None]:
    active_quotes = int(
        (await session.scalar(select(func.count(OddsQuote.id)).where(OddsQuote.state == QuoteState.ACTIVE.value)))
        or 0
    )
    last_change_time = await session.scalar(select(func.max(OddsChangeRecord.changed_at)))

    return {
        "status": "ok",
        "active_quotes": active_quotes,
        "last_change_time": last_change_time.isoformat() if last_change_time else None,
    }
