import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import text

from odds_engine.config import get_database_identity, settings
from odds_engine.database import AsyncSessionLocal
from odds_engine.services.policy_service import ensure_default_policy
from odds_engine.services.policy_store import policy_store
from odds_engine.tasks.retention import run_retention
from odds_engine.tasks.risk_scan import run_risk_scan_task
from odds_engine.tasks.sweep_odds import run_external_feed_sweep, run_odds_sweep

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "odds_sweep"

sched = AsyncIOScheduler(timezone="UTC")
_sweep_interval_minutes: int | None = None


async def wait_for_required_tables(max_attempts: int = 30, sleep_seconds: int = 2) -> None:
    for attempt in range(1, max_attempts + 1):
        try:
            async with AsyncSessionLocal() as session:
                await session.execute(text("SELECT 1 FROM odds_policies LIMIT 1"))
                await session.execute(text("SELECT 1 FROM odds_quotes LIMIT 1"))
            if attempt > 1:
                logger.info("database schema ready after retry: attempts=%s", attempt)
            return
        except Exception:
            if attempt == max_attempts:
                logger.exception("database schema not ready after retries")
                raise
            logger.warning(
                "database schema not ready; waiting before retry: attempt=%s/%s sleep_seconds=%s",
                attempt,
                max_attempts,
                sleep_seconds,
            )
            await asyncio.sleep(sleep_seconds)


async def current_sweep_interval() -> int:
    async with AsyncSessionLocal() as session:
        policy = await policy_store.get_active(session)
    if policy is None:
        return settings.default_refresh_interval_minutes
    return policy.refresh_interval_minutes


async def sync_sweep_interval() -> None:
    global _sweep_interval_minutes

    minutes = await current_sweep_interval()
    if minutes == _sweep_interval_minutes:
        return
    if sched.get_job(SWEEP_JOB_ID) is None:
        sched.add_job(run_odds_sweep_task, "interval", minutes=minutes, id=SWEEP_JOB_ID)
    else:
        sched.reschedule_job(SWEEP_JOB_ID, trigger="interval", minutes=minutes)
    logger.info("odds sweep interval set: previous_minutes=%s minutes=%s", _sweep_interval_minutes, minutes)
    _sweep_interval_minutes = minutes


async def run_odds_sweep_task() -> None:
    summary = await run_odds_sweep()
    logger.info(
        "odds sweep job complete: applied=%s rejected=%s deferred=%s",
        summary.get("applied", 0),
        summary.get("rejected", 0),
        summary.get("events_deferred", 0),
    )


async def run_external_feed_task() -> None:
    try:
        await run_external_feed_sweep()
    except Exception:
        logger.exception("external feed sweep failed")


async def run_risk_scan_job() -> None:
    summary = await run_risk_scan_task()
    logger.info("risk scan job complete: findings=%s", summary["findings"])


async def run_retention_task() -> None:
    await run_retention()


async def main() -> None:
    db_host, db_name = get_database_identity()
    logger.info(
        "worker startup: database_host=%s database_name=%s feed_configured=%s webhook_configured=%s",
        db_host,
        db_name,
        bool(settings.external_feed_base_url and settings.external_feed_api_key),
        bool(settings.notification_webhook_url),
    )

    await wait_for_required_tables()
    async with AsyncSessionLocal() as session:
        await ensure_default_policy(session)

    await sync_sweep_interval()
    sched.add_job(sync_sweep_interval, "interval", hours=1)
    sched.add_job(run_external_feed_task, "interval", hours=1)
    sched.add_job(run_risk_scan_job, "interval", minutes=30)
    sched.add_job(run_retention_task, "cron", hour=0, minute=0)
    sched.start()

    while True:
        await asyncio.sleep(3600)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    asyncio.run(main())
