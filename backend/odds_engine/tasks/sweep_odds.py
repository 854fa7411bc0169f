from __future__ import annotations

import logging

from odds_engine.data_providers.market_feed import MarketFeedClient
from odds_engine.database import AsyncSessionLocal, release_advisory_lock, try_advisory_lock
from odds_engine.models.odds_change import ChangeReason
from odds_engine.services.recalc_scheduler import RecalcScheduler, recalc_scheduler

logger = logging.getLogger(__name__)

SWEEP_LOCK_KEY = 938120
FEED_LOCK_KEY = 938121


async def run_odds_sweep(scheduler: RecalcScheduler = recalc_scheduler) -> dict:
    async with AsyncSessionLocal() as session:
        if not await try_advisory_lock(session, SWEEP_LOCK_KEY):
            logger.info("odds sweep skipped: another worker holds the lock")
            return {"lock_acquired": 0}
        try:
            summary = await scheduler.sweep(ChangeReason.SCHEDULED_REFRESH)
            return {**summary.as_dict(), "lock_acquired": 1}
        finally:
            await release_advisory_lock(session, SWEEP_LOCK_KEY)


async def run_external_feed_sweep(
    client: MarketFeedClient | None = None, scheduler: RecalcScheduler = recalc_scheduler
) -> dict:
    client = client or MarketFeedClient()
    async with AsyncSessionLocal() as session:
        if not await try_advisory_lock(session, FEED_LOCK_KEY):
            logger.info("external feed sweep skipped: another worker holds the lock")
            return {"lock_acquired": 0}
        try:
            summary = await scheduler.external_feed_sweep(client)
            return {**summary.as_dict(), "lock_acquired": 1}
        finally:
            await release_advisory_lock(session, FEED_LOCK_KEY)
