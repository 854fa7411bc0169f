from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.config import settings
from odds_engine.services import change_ledger, volume_service
from odds_engine.utils.timeutil import utcnow

logger = logging.getLogger(__name__)


async def purge_expired(
    session: AsyncSession,
    now: datetime | None = None,
    history_days: int | None = None,
    volume_days: int | None = None,
) -> dict[str, int]:
    now = now or utcnow()
    history_days = settings.history_retention_days if history_days is None else history_days
    volume_days = settings.volume_retention_days if volume_days is None else volume_days

    changes_deleted = await change_ledger.purge_before(session, now - timedelta(days=history_days))
    volumes_deleted = await volume_service.purge_closed_event_volumes(session, now - timedelta(days=volume_days))
    logger.info(
        "retention purge complete: changes_deleted=%s volumes_deleted=%s history_days=%s volume_days=%s",
        changes_deleted,
        volumes_deleted,
        history_days,
        volume_days,
    )
    return {"changes_deleted": changes_deleted, "volumes_deleted": volumes_deleted}
