from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from db_support import NOW, add_event, add_match_quotes, add_policy, make_db, require_aiosqlite
from odds_engine.errors import EventNotFound, InvalidWager
from odds_engine.markets import OutcomeType
from odds_engine.models.event import EventStatus
from odds_engine.services import volume_service
from odds_engine.services.recalculation import NoChangeReason, RecalcResult, RecalcStatus
from odds_engine.services.wager_intake import register_wager


def test_wager_stands_when_trigger_fails(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_wager_stands_when_trigger_fails(tmp_path))


async def _run_wager_stands_when_trigger_fails(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    async with session_factory() as session:
        await add_policy(session)
        event = await add_event(session)
        await add_match_quotes(session, event.id)

    async def failing_hook(event_id: int, outcome: OutcomeType) -> RecalcResult:
        raise RuntimeError("engine down")

    calls: list[tuple[int, OutcomeType]] = []

    async def recording_hook(event_id: int, outcome: OutcomeType) -> RecalcResult:
        calls.append((event_id, outcome))
        return RecalcResult.unchanged(NoChangeReason.NO_NEW_WAGERS)

    async with session_factory() as session:
        volume, result = await register_wager(session, event.id, OutcomeType.HOME, Decimal("25.00"), failing_hook)
        assert volume.wager_count == 1
        assert result.status == RecalcStatus.FAILED

        _, result = await register_wager(session, event.id, OutcomeType.HOME, Decimal("15.00"), recording_hook)
        assert result.status == RecalcStatus.UNCHANGED
        assert calls == [(event.id, OutcomeType.HOME)]

        _, result = await register_wager(session, event.id, OutcomeType.AWAY, Decimal("5.00"))
        assert result is None

    async with session_factory() as session:
        stored = await volume_service.get_volume(session, event.id, OutcomeType.HOME)
        assert stored.wager_count == 2
        assert Decimal(stored.total_amount) == Decimal("40.00")
        assert Decimal(stored.average_amount) == Decimal("20.00")

    await db.dispose()


def test_wager_validation(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_wager_validation(tmp_path))


async def _run_wager_validation(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    async with session_factory() as session:
        finished = await add_event(session, external_id="done", kickoff_at=NOW, status=EventStatus.FINISHED)
        live = await add_event(session, external_id="live", status=EventStatus.LIVE)
        live_id = live.id

        with pytest.raises(InvalidWager):
            await register_wager(session, finished.id, OutcomeType.HOME, Decimal("10"))
        with pytest.raises(EventNotFound):
            await register_wager(session, 404, OutcomeType.HOME, Decimal("10"))
        with pytest.raises(InvalidWager):
            await register_wager(session, live_id, OutcomeType.HOME, Decimal("-1"))
        await session.rollback()

        assert await volume_service.list_event_volumes(session, live_id) == []

    await db.dispose()


def test_overlapping_wagers_are_all_counted(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_overlapping_wagers_are_all_counted(tmp_path))


async def _run_overlapping_wagers_are_all_counted(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    async with session_factory() as session:
        event = await add_event(session)
        event_id = event.id
        await register_wager(session, event_id, OutcomeType.HOME, Decimal("10.00"))

    async def place(amount: str) -> None:
        async with session_factory() as session:
            await register_wager(session, event_id, OutcomeType.HOME, Decimal(amount))

    await asyncio.gather(*(place(amount) for amount in ("10.00", "20.00", "30.00", "5.00")))
    await asyncio.gather(*(place(amount) for amount in ("1.00", "2.00")), _first_wager(session_factory, event_id))

    async with session_factory() as session:
        home = await volume_service.get_volume(session, event_id, OutcomeType.HOME)
        assert home.wager_count == 7
        assert Decimal(home.total_amount) == Decimal("78.00")
        assert Decimal(home.min_amount) == Decimal("1.00")
        assert Decimal(home.max_amount) == Decimal("30.00")
        assert Decimal(home.average_amount) == Decimal("11.14")

        away = await volume_service.get_volume(session, event_id, OutcomeType.AWAY)
        assert away.wager_count == 2
        assert Decimal(away.total_amount) == Decimal("12.00")

    await db.dispose()


async def _first_wager(session_factory, event_id: int) -> None:
    async def place(amount: str) -> None:
        async with session_factory() as session:
            await register_wager(session, event_id, OutcomeType.AWAY, Decimal(amount))

    await asyncio.gather(place("4.00"), place("8.00"))
