from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.database import get_session
from odds_engine.schemas.volumes import TopEventResponse, VolumeResponse
from odds_engine.services import volume_service

router = APIRouter(prefix="/volumes", tags=["volumes"])


@router.get("/events/{event_id}", response_model=list[VolumeResponse])
async def event_distribution(event_id: int, session: AsyncSession = Depends(get_session)) -> list[VolumeResponse]:
    volumes = await volume_service.list_event_volumes(session, event_id)
    return [VolumeResponse.model_validate(v) for v in volumes]


@router.get("/top-events", response_model=list[TopEventResponse])
async def top_events(
    limit: int = Query(default=10, ge=1, le=100), session: AsyncSession = Depends(get_session)
) -> list[TopEventResponse]:
    rows = await volume_service.top_events_by_volume(session, limit)
    return [TopEventResponse(**row) for row in rows]
