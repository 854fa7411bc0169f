from __future__ import annotations

import asyncio
from datetime import timedelta
from decimal import Decimal

from db_support import (
    NOW,
    FakeClock,
    add_event,
    add_match_quotes,
    add_policy,
    build_engine,
    make_db,
    place_wagers,
    require_aiosqlite,
)
from odds_engine.data_providers.market_feed import MarketFeedResult
from odds_engine.markets import OutcomeType
from odds_engine.models.event import EventStatus
from odds_engine.models.odds_change import ChangeReason
from odds_engine.services import change_ledger
from odds_engine.services.policy_store import PolicyStore
from odds_engine.services.recalc_scheduler import RecalcScheduler
from odds_engine.services.recalculation import NoChangeReason, RecalcResult, RecalcStatus

WAGERS = {OutcomeType.HOME: "40", OutcomeType.AWAY: "30", OutcomeType.DRAW: "30"}


class SlowEngine:
    def __init__(self) -> None:
        self.store = PolicyStore(ttl_seconds=0)

    async def recalculate(self, session, event_id, outcome, *, reason=ChangeReason.VOLUME):
        await asyncio.sleep(5)
        return RecalcResult.unchanged(NoChangeReason.SAME_PRICE)


class BrokenEngine:
    def __init__(self, broken: OutcomeType) -> None:
        self.store = PolicyStore(ttl_seconds=0)
        self.broken = broken

    async def recalculate(self, session, event_id, outcome, *, reason=ChangeReason.VOLUME):
        if outcome == self.broken:
            raise RuntimeError("boom")
        return RecalcResult.unchanged(NoChangeReason.NO_VOLUME)


class StaticFeed:
    enabled = True

    def __init__(self, prices: dict[OutcomeType, Decimal]) -> None:
        self.prices = prices
        self.requested: list[str] = []

    async def get_event_prices(self, external_id: str) -> MarketFeedResult:
        self.requested.append(external_id)
        return MarketFeedResult(prices=dict(self.prices))


async def _seed_events(session_factory) -> tuple[int, int]:
    async with session_factory() as session:
        await add_policy(session)
        open_event = await add_event(session, external_id="open")
        frozen_event = await add_event(session, external_id="frozen", kickoff_at=NOW + timedelta(minutes=10))
        finished_event = await add_event(
            session, external_id="finished", kickoff_at=NOW - timedelta(hours=3), status=EventStatus.FINISHED
        )
        for event in (open_event, frozen_event, finished_event):
            await add_match_quotes(session, event.id)
            await place_wagers(session, event.id, WAGERS)
    return open_event.id, frozen_event.id


def test_sweep_recalculates_eligible_events(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_sweep_recalculates_eligible_events(tmp_path))


async def _run_sweep_recalculates_eligible_events(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    open_id, frozen_id = await _seed_events(session_factory)
    clock = FakeClock()
    scheduler = RecalcScheduler(build_engine(clock), session_factory, max_concurrency=1, clock=clock)

    summary = await scheduler.sweep()
    assert summary.events_considered == 1
    assert summary.events_processed == 1
    assert summary.events_deferred == 0
    assert summary.results[RecalcStatus.APPLIED.value] == 3

    async with session_factory() as session:
        records = await change_ledger.get_event_history(session, open_id)
        assert {r.reason for r in records} == {ChangeReason.SCHEDULED_REFRESH.value}
        assert await change_ledger.get_event_history(session, frozen_id) == []

    clock.advance(minutes=20)
    repeat = await scheduler.sweep()
    assert repeat.results[RecalcStatus.UNCHANGED.value] == 3
    assert scheduler.get_status()["scheduled_refresh"]["unchanged"] == 3

    await db.dispose()


def test_slow_event_is_deferred(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_slow_event_is_deferred(tmp_path))


async def _run_slow_event_is_deferred(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    await _seed_events(session_factory)
    scheduler = RecalcScheduler(
        SlowEngine(), session_factory, max_concurrency=2, event_timeout_seconds=0.5, clock=FakeClock()
    )

    summary = await scheduler.sweep()
    assert summary.events_considered == 1
    assert summary.events_deferred == 1
    assert summary.events_processed == 0

    await db.dispose()


def test_sweep_timeout_defers_remaining_events(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_sweep_timeout_defers_remaining_events(tmp_path))


async def _run_sweep_timeout_defers_remaining_events(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    await _seed_events(session_factory)
    async with session_factory() as session:
        second = await add_event(session, external_id="second")
        await add_match_quotes(session, second.id)
    scheduler = RecalcScheduler(
        SlowEngine(),
        session_factory,
        max_concurrency=2,
        event_timeout_seconds=10,
        sweep_timeout_seconds=0.5,
        clock=FakeClock(),
    )

    summary = await scheduler.sweep()
    assert summary.events_considered == 2
    assert summary.events_deferred == 2
    assert summary.finished_at is not None

    await db.dispose()


def test_failing_unit_does_not_abort_sweep(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_failing_unit_does_not_abort_sweep(tmp_path))


async def _run_failing_unit_does_not_abort_sweep(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    await _seed_events(session_factory)
    scheduler = RecalcScheduler(BrokenEngine(OutcomeType.HOME), session_factory, max_concurrency=1, clock=FakeClock())

    summary = await scheduler.sweep()
    assert summary.events_processed == 1
    assert summary.results[RecalcStatus.FAILED.value] == 1
    assert summary.results[RecalcStatus.UNCHANGED.value] == 2

    await db.dispose()


def test_wager_trigger_never_raises(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_wager_trigger_never_raises(tmp_path))


async def _run_wager_trigger_never_raises(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    open_id, _ = await _seed_events(session_factory)

    broken = RecalcScheduler(BrokenEngine(OutcomeType.HOME), session_factory, clock=FakeClock())
    result = await broken.on_wager_recorded(open_id, OutcomeType.HOME)
    assert result.status == RecalcStatus.FAILED

    clock = FakeClock()
    scheduler = RecalcScheduler(build_engine(clock), session_factory, clock=clock)
    applied = await scheduler.on_wager_recorded(open_id, OutcomeType.HOME)
    assert applied.status == RecalcStatus.APPLIED
    assert applied.change.reason == ChangeReason.VOLUME.value

    await db.dispose()


def test_external_feed_sweep(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_external_feed_sweep(tmp_path))


async def _run_external_feed_sweep(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    open_id, _ = await _seed_events(session_factory)
    clock = FakeClock()
    scheduler = RecalcScheduler(build_engine(clock), session_factory, max_concurrency=1, clock=clock)
    feed = StaticFeed({OutcomeType.HOME: Decimal("2.50"), OutcomeType.SCORE_1_0: Decimal("6.00")})

    summary = await scheduler.external_feed_sweep(feed)
    assert feed.requested == ["open"]
    assert summary.results[RecalcStatus.APPLIED.value] == 1

    async with session_factory() as session:
        records = await change_ledger.get_history(session, open_id, OutcomeType.HOME)
        assert [r.reason for r in records] == [ChangeReason.EXTERNAL_FEED.value]
        assert Decimal(records[0].new_price) == Decimal("2.10")

    disabled = StaticFeed({})
    disabled.enabled = False
    skipped = await scheduler.external_feed_sweep(disabled)
    assert skipped.events_considered == 0
    assert disabled.requested == []

    await db.dispose()
