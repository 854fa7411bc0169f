from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.api.v1.errors import to_http
from odds_engine.api.v1.quotes import recalc_response
from odds_engine.database import get_session
from odds_engine.errors import OddsEngineError
from odds_engine.schemas.volumes import VolumeResponse
from odds_engine.schemas.wagers import WagerRequest, WagerResponse
from odds_engine.services.recalc_scheduler import recalc_scheduler
from odds_engine.services.wager_intake import register_wager

router = APIRouter(prefix="/wagers", tags=["wagers"])


@router.post("", response_model=WagerResponse, status_code=201)
async def place_wager(payload: WagerRequest, session: AsyncSession = Depends(get_session)) -> WagerResponse:
    try:
        volume, result = await register_wager(
            session, payload.event_id, payload.outcome, payload.amount, recalc_scheduler.on_wager_recorded
        )
    except OddsEngineError as exc:
        raise to_http(exc) from exc
    return WagerResponse(
        volume=VolumeResponse.model_validate(volume),
        recalculation=recalc_response(result) if result is not None else None,
    )
