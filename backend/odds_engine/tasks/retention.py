from __future__ import annotations

from odds_engine.database import AsyncSessionLocal, release_advisory_lock, try_advisory_lock
from odds_engine.services.retention import purge_expired

ADVISORY_LOCK_KEY = 938123


async def run_retention() -> dict[str, int]:
    async with AsyncSessionLocal() as session:
        if not await try_advisory_lock(session, ADVISORY_LOCK_KEY):
            return {"changes_deleted": 0, "volumes_deleted": 0, "lock_acquired": 0}
        try:
            summary = await purge_expired(session)
            summary["lock_acquired"] = 1
            return summary
        finally:
            await release_advisory_lock(session, ADVISORY_LOCK_KEY)
