from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from odds_engine.analytics.risk import run_risk_scan
from odds_engine.config import settings
from odds_engine.database import AsyncSessionLocal, release_advisory_lock, try_advisory_lock
from odds_engine.services.notifier import Notifier, build_notifier
from odds_engine.utils.timeutil import utcnow

ADVISORY_LOCK_KEY = 938122


async def run_risk_scan_task(notifier: Notifier | None = None) -> dict[str, int]:
    notifier = notifier or build_notifier()
    async with AsyncSessionLocal() as session:
        if not await try_advisory_lock(session, ADVISORY_LOCK_KEY):
            return {"findings": 0, "lock_acquired": 0}
        try:
            findings = await run_risk_scan(
                session,
                notifier,
                concentration_pct=Decimal(str(settings.risk_concentration_pct)),
                anomalous_change_pct=Decimal(str(settings.risk_anomalous_change_pct)),
                now=utcnow(),
                window=timedelta(minutes=settings.risk_window_minutes),
            )
            return {"findings": len(findings), "lock_acquired": 1}
        finally:
            await release_advisory_lock(session, ADVISORY_LOCK_KEY)
