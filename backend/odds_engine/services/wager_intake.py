from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.errors import EventNotFound, InvalidWager
from odds_engine.markets import OutcomeType
from odds_engine.models.event import WAGERING_STATUSES, SportEvent
from odds_engine.models.wagering_volume import WageringVolume
from odds_engine.services import volume_service
from odds_engine.services.recalculation import FailureReason, RecalcResult

logger = logging.getLogger(__name__)

WagerHook = Callable[[int, OutcomeType], Awaitable[RecalcResult]]


async def register_wager(
    session: AsyncSession,
    event_id: int,
    outcome: OutcomeType,
    amount: Decimal,
    on_recorded: WagerHook | None = None,
) -> tuple[WageringVolume, RecalcResult | None]:
    """Record an accepted wager, then hand off to the recalculation trigger.

    The wager is committed before the hook runs; whatever the hook does, the
    wager stands.
    """
    event = await session.scalar(select(SportEvent).where(SportEvent.id == event_id))
    if event is None:
        raise EventNotFound(f"event {event_id} not found")
    if event.status not in WAGERING_STATUSES:
        raise InvalidWager(f"event {event_id} is not accepting wagers (status={event.status})")

    volume = await volume_service.record_wager(session, event_id, outcome, Decimal(amount))
    await session.commit()
    logger.info(
        "wager recorded: event_id=%s outcome=%s amount=%s wager_count=%s",
        event_id,
        outcome.value,
        amount,
        volume.wager_count,
    )

    if on_recorded is None:
        return volume, None
    try:
        result = await on_recorded(event_id, outcome)
    except Exception:
        logger.exception("odds trigger failed after wager: event_id=%s outcome=%s", event_id, outcome.value)
        result = RecalcResult.failed(FailureReason.DATA_ACCESS)
    return volume, result
