from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from odds_engine.config import settings
from odds_engine.data_providers.market_feed import MarketFeedClient
from odds_engine.database import AsyncSessionLocal
from odds_engine.markets import OutcomeType
from odds_engine.models.event import WAGERING_STATUSES, SportEvent
from odds_engine.models.odds_change import ChangeReason
from odds_engine.models.odds_quote import QuoteState
from odds_engine.services import quote_store, volume_service
from odds_engine.services.notifier import build_notifier
from odds_engine.services.policy_store import policy_store
from odds_engine.services.recalculation import FailureReason, RecalcResult, RecalcStatus, RecalculationEngine
from odds_engine.utils.timeutil import utcnow

logger = logging.getLogger(__name__)


@dataclass
class SweepSummary:
    reason: str
    started_at: datetime
    finished_at: datetime | None = None
    events_considered: int = 0
    events_processed: int = 0
    events_deferred: int = 0
    results: Counter = field(default_factory=Counter)

    def as_dict(self) -> dict[str, str | int | None]:
        return {
            "reason": self.reason,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "events_considered": self.events_considered,
            "events_processed": self.events_processed,
            "events_deferred": self.events_deferred,
            **{status.value: self.results.get(status.value, 0) for status in RecalcStatus},
        }


class RecalcScheduler:
    """Feeds the recalculation engine from wager events and periodic sweeps.

    Sweeps run one unit per event with bounded concurrency. A unit that
    exceeds its timeout is cancelled and picked up again by the next sweep.
    """

    def __init__(
        self,
        engine: RecalculationEngine,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        max_concurrency: int | None = None,
        event_timeout_seconds: float | None = None,
        sweep_timeout_seconds: float | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.engine = engine
        self.session_factory = session_factory
        self.max_concurrency = max_concurrency or settings.sweep_max_concurrency
        self.event_timeout_seconds = event_timeout_seconds or settings.sweep_event_timeout_seconds
        self.sweep_timeout_seconds = sweep_timeout_seconds or settings.sweep_timeout_seconds
        self.clock = clock
        self.last_sweeps: dict[str, SweepSummary] = {}

    async def on_wager_recorded(self, event_id: int, outcome: OutcomeType) -> RecalcResult:
        """Event-driven trigger. Never raises: the wager is final whatever happens here."""
        try:
            async with self.session_factory() as session:
                await volume_service.recompute_shares(session, event_id)
                await session.commit()
                return await self.engine.recalculate(session, event_id, outcome, reason=ChangeReason.VOLUME)
        except Exception:
            logger.exception("wager-triggered recalculation failed: event_id=%s outcome=%s", event_id, outcome.value)
            return RecalcResult.failed(FailureReason.DATA_ACCESS)

    async def _eligible_events(self, horizon: timedelta | None = None) -> list[SportEvent]:
        now = self.clock()
        async with self.session_factory() as session:
            policy = await self.engine.store.get_active(session)
            if policy is None or not policy.auto_update:
                logger.info("sweep skipped: automatic updates disabled or no active policy")
                return []
            stmt = select(SportEvent).where(
                SportEvent.status.in_(WAGERING_STATUSES),
                SportEvent.kickoff_at > now + policy.freeze_window,
            )
            if horizon is not None:
                stmt = stmt.where(SportEvent.kickoff_at <= now + horizon)
            return list((await session.scalars(stmt.order_by(SportEvent.kickoff_at))).all())

    async def _active_outcomes(self, session: AsyncSession, event_id: int) -> list[OutcomeType]:
        quotes = await quote_store.list_event_quotes(session, event_id, QuoteState.ACTIVE)
        return [OutcomeType(q.outcome) for q in quotes]

    async def _recalculate_event(self, event_id: int, reason: ChangeReason) -> Counter:
        results: Counter = Counter()
        async with self.session_factory() as session:
            await volume_service.recompute_shares(session, event_id)
            await session.commit()
            for outcome in await self._active_outcomes(session, event_id):
                try:
                    result = await self.engine.recalculate(session, event_id, outcome, reason=reason)
                except Exception:
                    logger.exception("recalculation unit failed: event_id=%s outcome=%s", event_id, outcome.value)
                    await session.rollback()
                    result = RecalcResult.failed(FailureReason.DATA_ACCESS)
                results[result.status.value] += 1
        return results

    async def _apply_feed_for_event(self, event: SportEvent, client: MarketFeedClient) -> Counter:
        results: Counter = Counter()
        feed = await client.get_event_prices(event.external_id)
        if not feed.prices:
            return results
        async with self.session_factory() as session:
            active = set(await self._active_outcomes(session, event.id))
            for outcome, price in feed.prices.items():
                if outcome not in active:
                    continue
                try:
                    result = await self.engine.apply_external_price(session, event.id, outcome, price)
                except Exception:
                    logger.exception("feed adjustment failed: event_id=%s outcome=%s", event.id, outcome.value)
                    await session.rollback()
                    result = RecalcResult.failed(FailureReason.DATA_ACCESS)
                results[result.status.value] += 1
        return results

    async def _run_units(
        self, summary: SweepSummary, units: dict[int, Callable[[], Awaitable[Counter]]]
    ) -> SweepSummary:
        summary.events_considered = len(units)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def guarded(event_id: int, unit: Callable[[], Awaitable[Counter]]) -> Counter | None:
            async with semaphore:
                try:
                    return await asyncio.wait_for(unit(), timeout=self.event_timeout_seconds)
                except TimeoutError:
                    logger.warning("sweep unit timed out; deferring event: event_id=%s", event_id)
                    return None
                except Exception:
                    logger.exception("sweep unit failed: event_id=%s", event_id)
                    return Counter({RecalcStatus.FAILED.value: 1})

        tasks = [asyncio.create_task(guarded(event_id, unit)) for event_id, unit in units.items()]
        if tasks:
            done, pending = await asyncio.wait(tasks, timeout=self.sweep_timeout_seconds)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
                logger.warning("sweep timed out: deferred_events=%s", len(pending))
            summary.events_deferred += len(pending)
            for task in done:
                counts = task.result()
                if counts is None:
                    summary.events_deferred += 1
                    continue
                summary.events_processed += 1
                summary.results.update(counts)

        summary.finished_at = self.clock()
        self.last_sweeps[summary.reason] = summary
        logger.info(
            "sweep complete: reason=%s events=%s processed=%s deferred=%s results=%s",
            summary.reason,
            summary.events_considered,
            summary.events_processed,
            summary.events_deferred,
            dict(summary.results),
        )
        return summary

    async def sweep(self, reason: ChangeReason = ChangeReason.SCHEDULED_REFRESH) -> SweepSummary:
        summary = SweepSummary(reason=reason.value, started_at=self.clock())
        events = await self._eligible_events()
        units = {event.id: (lambda event_id=event.id: self._recalculate_event(event_id, reason)) for event in events}
        return await self._run_units(summary, units)

    async def external_feed_sweep(self, client: MarketFeedClient, horizon: timedelta | None = None) -> SweepSummary:
        summary = SweepSummary(reason=ChangeReason.EXTERNAL_FEED.value, started_at=self.clock())
        if not client.enabled:
            logger.info("external feed sweep skipped: feed not configured")
            summary.finished_at = summary.started_at
            return summary
        horizon = horizon or timedelta(hours=settings.external_feed_horizon_hours)
        events = await self._eligible_events(horizon)
        units = {event.id: (lambda event=event: self._apply_feed_for_event(event, client)) for event in events}
        return await self._run_units(summary, units)

    def get_status(self) -> dict[str, dict]:
        return {reason: summary.as_dict() for reason, summary in self.last_sweeps.items()}


def build_default_scheduler() -> RecalcScheduler:
    return RecalcScheduler(RecalculationEngine(policy_store, build_notifier()), AsyncSessionLocal)


recalc_scheduler = build_default_scheduler()

