from __future__ import annotations

import asyncio
from datetime import timedelta
from decimal import Decimal

from db_support import NOW, add_event, add_match_quotes, make_db, place_wagers, require_aiosqlite
from odds_engine.markets import OutcomeType
from odds_engine.models.event import EventStatus
from odds_engine.models.odds_change import ChangeReason
from odds_engine.services import change_ledger, volume_service
from odds_engine.services.retention import purge_expired

WAGERS = {OutcomeType.HOME: "10", OutcomeType.AWAY: "10", OutcomeType.DRAW: "10"}


def test_purge_expired(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_purge_expired(tmp_path))


async def _run_purge_expired(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    async with session_factory() as session:
        live = await add_event(session, external_id="live")
        stale = await add_event(
            session, external_id="stale", kickoff_at=NOW - timedelta(days=40), status=EventStatus.FINISHED
        )
        recent = await add_event(
            session, external_id="recent", kickoff_at=NOW - timedelta(days=2), status=EventStatus.FINISHED
        )
        live_id, stale_id, recent_id = live.id, stale.id, recent.id
        for event_id in (live_id, stale_id, recent_id):
            await place_wagers(session, event_id, WAGERS)

        home = (await add_match_quotes(session, live_id))[OutcomeType.HOME]
        for days_ago in (120, 1):
            await change_ledger.append_change(
                session,
                home,
                Decimal("2.00"),
                Decimal("1.90"),
                ChangeReason.VOLUME,
                NOW - timedelta(days=days_ago),
            )
        await session.commit()

    async with session_factory() as session:
        deleted = await purge_expired(session, now=NOW, history_days=90, volume_days=30)
        assert deleted == {"changes_deleted": 1, "volumes_deleted": 3}

    async with session_factory() as session:
        assert len(await change_ledger.get_event_history(session, live_id)) == 1
        assert await volume_service.list_event_volumes(session, stale_id) == []
        assert len(await volume_service.list_event_volumes(session, recent_id)) == 3
        assert len(await volume_service.list_event_volumes(session, live_id)) == 3

    await db.dispose()
