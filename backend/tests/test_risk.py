from __future__ import annotations

import asyncio
from datetime import timedelta
from decimal import Decimal

from db_support import (
    MATCH_PRICES,
    NOW,
    FailingNotifier,
    RecordingNotifier,
    add_event,
    add_match_quotes,
    make_db,
    place_wagers,
    require_aiosqlite,
)
from odds_engine.analytics.risk import detect_anomalous_changes, detect_concentration, run_risk_scan
from odds_engine.markets import OutcomeType
from odds_engine.models.event import EventStatus
from odds_engine.models.odds_change import ChangeReason
from odds_engine.services import change_ledger
from odds_engine.services.notifier import KIND_ANOMALOUS_CHANGE, KIND_CONCENTRATION

LOPSIDED = {OutcomeType.HOME: "90", OutcomeType.AWAY: "5", OutcomeType.DRAW: "5"}


async def _seed(session_factory) -> int:
    async with session_factory() as session:
        open_event = await add_event(session, external_id="open")
        finished = await add_event(
            session, external_id="done", kickoff_at=NOW - timedelta(hours=4), status=EventStatus.FINISHED
        )
        quotes = await add_match_quotes(session, open_event.id)
        await place_wagers(session, open_event.id, LOPSIDED)
        await place_wagers(session, finished.id, LOPSIDED)

        home = quotes[OutcomeType.HOME]
        away = quotes[OutcomeType.AWAY]
        await change_ledger.append_change(
            session,
            home,
            MATCH_PRICES[OutcomeType.HOME],
            Decimal("1.60"),
            ChangeReason.MANUAL_ADJUSTMENT,
            NOW - timedelta(minutes=10),
        )
        await change_ledger.append_change(
            session,
            away,
            MATCH_PRICES[OutcomeType.AWAY],
            Decimal("2.40"),
            ChangeReason.MANUAL_ADJUSTMENT,
            NOW - timedelta(hours=3),
        )
        await change_ledger.append_change(
            session,
            away,
            MATCH_PRICES[OutcomeType.AWAY],
            Decimal("3.10"),
            ChangeReason.VOLUME,
            NOW - timedelta(minutes=5),
        )
        await session.commit()
        return open_event.id


def test_risk_detectors(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_risk_detectors(tmp_path))


async def _run_risk_detectors(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    event_id = await _seed(session_factory)

    async with session_factory() as session:
        concentration = await detect_concentration(session, Decimal("70"))
        assert [(f.event_id, f.outcome, f.value) for f in concentration] == [
            (event_id, OutcomeType.HOME.value, Decimal("90.00"))
        ]

        anomalies = await detect_anomalous_changes(session, Decimal("15"), NOW, timedelta(hours=1))
        assert [(f.outcome, f.value) for f in anomalies] == [(OutcomeType.HOME.value, Decimal("-20.00"))]

    await db.dispose()


def test_risk_scan_notifies_each_finding(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_risk_scan_notifies_each_finding(tmp_path))


async def _run_risk_scan_notifies_each_finding(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    await _seed(session_factory)
    notifier = RecordingNotifier()

    async with session_factory() as session:
        findings = await run_risk_scan(
            session,
            notifier,
            concentration_pct=Decimal("70"),
            anomalous_change_pct=Decimal("15"),
            now=NOW,
            window=timedelta(hours=1),
        )
        assert len(findings) == 2
        assert [a.kind for a in notifier.alerts] == [KIND_CONCENTRATION, KIND_ANOMALOUS_CHANGE]
        assert notifier.alerts[0].share_pct == Decimal("90.00")
        assert "60 minutes" in notifier.alerts[1].message

        survived = await run_risk_scan(
            session,
            FailingNotifier(),
            concentration_pct=Decimal("70"),
            anomalous_change_pct=Decimal("15"),
            now=NOW,
            window=timedelta(hours=1),
        )
        assert len(survived) == 2

    await db.dispose()


def test_event_change_stats_summarises_moves(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_event_change_stats_summarises_moves(tmp_path))


async def _run_event_change_stats_summarises_moves(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    event_id = await _seed(session_factory)

    async with session_factory() as session:
        stats = await change_ledger.event_change_stats(session, event_id)
        assert stats.total_changes == 3
        assert stats.mean_abs_pct_change == Decimal("16.04")
        assert stats.max_abs_pct_change == Decimal("25.00")

        empty = await change_ledger.event_change_stats(session, event_id + 100)
        assert empty.total_changes == 0
        assert empty.mean_abs_pct_change is None

    await db.dispose()
