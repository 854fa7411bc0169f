from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.errors import ConcurrencyConflict, InvariantViolation, QuoteClosed, QuoteNotFound
from odds_engine.markets import OutcomeType, profile_for
from odds_engine.models.event import SportEvent
from odds_engine.models.odds_change import VOLUME_DRIVEN_REASONS, ChangeReason, OddsChangeRecord
from odds_engine.models.odds_quote import OddsQuote, QuoteState
from odds_engine.services import change_ledger, pricing, quote_store, volume_service
from odds_engine.services.notifier import KIND_ODDS_CHANGE, LoggingNotifier, Notifier, OddsAlert, notify_safely
from odds_engine.services.policy_store import PolicySnapshot, PolicyStore, policy_store
from odds_engine.services.pricing import RejectReason
from odds_engine.utils.odds_math import percentage_change, quantize_price, share_pct
from odds_engine.utils.timeutil import utcnow

logger = logging.getLogger(__name__)


class RecalcStatus(str, Enum):
    UNCHANGED = "unchanged"
    APPLIED = "applied"
    REJECTED = "rejected"
    FAILED = "failed"


class NoChangeReason(str, Enum):
    AUTO_UPDATE_DISABLED = "auto_update_disabled"
    FROZEN_WINDOW = "frozen_window"
    NO_VOLUME = "no_volume"
    NO_NEW_WAGERS = "no_new_wagers"
    SAME_PRICE = "same_price"
    NO_MARKET_WEIGHT = "no_market_weight"


class FailureReason(str, Enum):
    DATA_ACCESS = "data_access"
    INVARIANT_VIOLATION = "invariant_violation"


@dataclass(frozen=True, slots=True)
class RecalcResult:
    status: RecalcStatus
    reason: str | None = None
    change: OddsChangeRecord | None = None
    candidate: Decimal | None = None

    @classmethod
    def unchanged(cls, reason: NoChangeReason, candidate: Decimal | None = None) -> RecalcResult:
        return cls(RecalcStatus.UNCHANGED, reason.value, candidate=candidate)

    @classmethod
    def rejected(cls, reason: RejectReason, candidate: Decimal | None = None) -> RecalcResult:
        return cls(RecalcStatus.REJECTED, reason.value, candidate=candidate)

    @classmethod
    def failed(cls, reason: FailureReason) -> RecalcResult:
        return cls(RecalcStatus.FAILED, reason.value)

    @classmethod
    def applied(cls, change: OddsChangeRecord) -> RecalcResult:
        return cls(RecalcStatus.APPLIED, change.reason, change=change, candidate=change.new_price)


@dataclass(frozen=True, slots=True)
class PriceProposal:
    """A validated price change waiting for its compare-and-swap commit."""

    event_id: int
    outcome: OutcomeType
    quote_id: int
    expected_revision: int
    previous_price: Decimal
    new_price: Decimal
    pct_change: Decimal
    reason: ChangeReason
    policy: PolicySnapshot
    wager_count: int = 0
    market_wager_count: int = 0
    total_amount: Decimal = Decimal("0.00")
    detail: str | None = None


@dataclass(slots=True)
class _Context:
    policy: PolicySnapshot
    event: SportEvent
    quote: OddsQuote
    now: datetime


Plan = PriceProposal | RecalcResult


class RecalculationEngine:
    """Computes, validates and commits price changes for one (event, outcome) at a time.

    Every path returns a :class:`RecalcResult`; routine outcomes such as rate
    limiting or a lost compare-and-swap are values, not exceptions. Storage
    failures and invariant breaches are reported as ``FAILED`` results.
    """

    def __init__(
        self,
        store: PolicyStore = policy_store,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock

    async def recalculate(
        self,
        session: AsyncSession,
        event_id: int,
        outcome: OutcomeType,
        *,
        reason: ChangeReason = ChangeReason.VOLUME,
    ) -> RecalcResult:
        return await self._run(session, event_id, outcome, lambda: self.plan(session, event_id, outcome, reason=reason))

    async def apply_external_price(
        self, session: AsyncSession, event_id: int, outcome: OutcomeType, feed_price: Decimal
    ) -> RecalcResult:
        return await self._run(
            session, event_id, outcome, lambda: self.plan_external(session, event_id, outcome, feed_price)
        )

    async def override_price(
        self,
        session: AsyncSession,
        event_id: int,
        outcome: OutcomeType,
        price: Decimal,
        detail: str | None = None,
    ) -> RecalcResult:
        return await self._run(
            session, event_id, outcome, lambda: self.plan_override(session, event_id, outcome, price, detail)
        )

    async def _run(
        self,
        session: AsyncSession,
        event_id: int,
        outcome: OutcomeType,
        planner: Callable[[], Awaitable[Plan]],
    ) -> RecalcResult:
        try:
            planned = await planner()
            if isinstance(planned, RecalcResult):
                logger.debug(
                    "recalculation skipped: event_id=%s outcome=%s status=%s reason=%s",
                    event_id,
                    outcome.value,
                    planned.status.value,
                    planned.reason,
                )
                return planned
            return await self.apply(session, planned)
        except InvariantViolation:
            await session.rollback()
            logger.critical(
                "odds invariant violated; operator attention required: event_id=%s outcome=%s",
                event_id,
                outcome.value,
                exc_info=True,
            )
            return RecalcResult.failed(FailureReason.INVARIANT_VIOLATION)
        except SQLAlchemyError:
            await session.rollback()
            logger.exception("recalculation data access failure: event_id=%s outcome=%s", event_id, outcome.value)
            return RecalcResult.failed(FailureReason.DATA_ACCESS)

    async def _load_context(
        self, session: AsyncSession, event_id: int, outcome: OutcomeType, *, automatic: bool
    ) -> _Context | RecalcResult:
        now = self.clock()
        policy = await self.store.get_active(session)
        if policy is None:
            return RecalcResult.rejected(RejectReason.POLICY_INACTIVE)
        if automatic and not policy.auto_update:
            return RecalcResult.unchanged(NoChangeReason.AUTO_UPDATE_DISABLED)

        event = await session.scalar(select(SportEvent).where(SportEvent.id == event_id))
        if event is None:
            return RecalcResult.rejected(RejectReason.NOT_FOUND)
        if automatic and pricing.is_frozen(event.kickoff_at, now, policy):
            return RecalcResult.unchanged(NoChangeReason.FROZEN_WINDOW)

        quote = await quote_store.get_current_quote(session, event_id, outcome)
        if quote is None:
            return RecalcResult.rejected(RejectReason.NOT_FOUND)
        if quote.state == QuoteState.CLOSED.value:
            return RecalcResult.rejected(RejectReason.QUOTE_CLOSED)
        if quote.state == QuoteState.SUSPENDED.value:
            return RecalcResult.rejected(RejectReason.QUOTE_SUSPENDED)
        return _Context(policy=policy, event=event, quote=quote, now=now)

    async def plan(
        self,
        session: AsyncSession,
        event_id: int,
        outcome: OutcomeType,
        *,
        reason: ChangeReason = ChangeReason.VOLUME,
    ) -> Plan:
        ctx = await self._load_context(session, event_id, outcome, automatic=True)
        if isinstance(ctx, RecalcResult):
            return ctx

        volume = await volume_service.get_volume(session, event_id, outcome)
        if volume is None or not volume.wager_count:
            return RecalcResult.unchanged(NoChangeReason.NO_VOLUME)

        profile = profile_for(outcome)
        market_count = await volume_service.market_wager_count(session, event_id, profile.key)
        last_volume_change = await change_ledger.last_change(session, event_id, outcome, VOLUME_DRIVEN_REASONS)
        if last_volume_change is not None and last_volume_change.market_wager_count == market_count:
            return RecalcResult.unchanged(NoChangeReason.NO_NEW_WAGERS)

        outcome_amount = Decimal(volume.total_amount)
        market_amount = await volume_service.market_total(session, event_id, profile.key)
        share = share_pct(outcome_amount, market_amount)
        vf = pricing.volume_factor(share, profile)
        pf = pricing.probability_factor(outcome_amount, market_amount, profile)
        candidate = pricing.candidate_price(
            Decimal(ctx.quote.price), share, outcome_amount, market_amount, profile, ctx.policy
        )
        detail = f"share={share}% volume_factor={vf} probability_factor={pf}"
        return await self._finalize(
            session,
            ctx,
            outcome,
            candidate,
            reason,
            wager_count=volume.wager_count,
            market_wager_count=market_count,
            total_amount=outcome_amount,
            detail=detail,
        )

    async def plan_external(
        self, session: AsyncSession, event_id: int, outcome: OutcomeType, feed_price: Decimal
    ) -> Plan:
        ctx = await self._load_context(session, event_id, outcome, automatic=True)
        if isinstance(ctx, RecalcResult):
            return ctx
        if ctx.policy.market_weight == 0:
            return RecalcResult.unchanged(NoChangeReason.NO_MARKET_WEIGHT)

        candidate = pricing.external_candidate_price(Decimal(ctx.quote.price), Decimal(feed_price), ctx.policy)
        wager_count, total_amount = await self._volume_snapshot(session, event_id, outcome)
        return await self._finalize(
            session,
            ctx,
            outcome,
            candidate,
            ChangeReason.EXTERNAL_FEED,
            wager_count=wager_count,
            total_amount=total_amount,
            detail=f"feed_price={feed_price}",
        )

    async def plan_override(
        self,
        session: AsyncSession,
        event_id: int,
        outcome: OutcomeType,
        price: Decimal,
        detail: str | None = None,
    ) -> Plan:
        ctx = await self._load_context(session, event_id, outcome, automatic=False)
        if isinstance(ctx, RecalcResult):
            return ctx
        wager_count, total_amount = await self._volume_snapshot(session, event_id, outcome)
        return await self._finalize(
            session,
            ctx,
            outcome,
            quantize_price(Decimal(price)),
            ChangeReason.MANUAL_ADJUSTMENT,
            wager_count=wager_count,
            total_amount=total_amount,
            detail=detail,
        )

    async def _volume_snapshot(self, session: AsyncSession, event_id: int, outcome: OutcomeType) -> tuple[int, Decimal]:
        volume = await volume_service.get_volume(session, event_id, outcome)
        if volume is None:
            return 0, Decimal("0.00")
        return volume.wager_count, Decimal(volume.total_amount)

    async def _finalize(
        self,
        session: AsyncSession,
        ctx: _Context,
        outcome: OutcomeType,
        candidate: Decimal,
        reason: ChangeReason,
        *,
        wager_count: int,
        total_amount: Decimal,
        detail: str | None,
        market_wager_count: int = 0,
    ) -> Plan:
        current = Decimal(ctx.quote.price)
        if candidate == current:
            return RecalcResult.unchanged(NoChangeReason.SAME_PRICE, candidate)

        rejection = pricing.validate_change(current, candidate, ctx.policy)
        if rejection is not None:
            logger.info(
                "price change rejected by policy: event_id=%s outcome=%s current=%s candidate=%s",
                ctx.event.id,
                outcome.value,
                current,
                candidate,
            )
            return RecalcResult.rejected(rejection, candidate)

        last = await change_ledger.last_change(session, ctx.event.id, outcome)
        if pricing.is_too_soon(last.changed_at if last else None, ctx.now, ctx.policy):
            return RecalcResult.rejected(RejectReason.TOO_SOON, candidate)

        return PriceProposal(
            event_id=ctx.event.id,
            outcome=outcome,
            quote_id=ctx.quote.id,
            expected_revision=ctx.quote.revision,
            previous_price=current,
            new_price=candidate,
            pct_change=percentage_change(current, candidate),
            reason=reason,
            policy=ctx.policy,
            wager_count=wager_count,
            market_wager_count=market_wager_count,
            total_amount=total_amount,
            detail=detail,
        )

    async def apply(self, session: AsyncSession, proposal: PriceProposal) -> RecalcResult:
        now = self.clock()
        try:
            quote = await quote_store.commit(
                session, proposal.quote_id, proposal.expected_revision, proposal.new_price, now
            )
        except ConcurrencyConflict:
            await session.rollback()
            logger.debug(
                "price commit lost the race: event_id=%s outcome=%s revision=%s",
                proposal.event_id,
                proposal.outcome.value,
                proposal.expected_revision,
            )
            return RecalcResult.rejected(RejectReason.CONFLICT, proposal.new_price)
        except QuoteClosed:
            await session.rollback()
            return RecalcResult.rejected(RejectReason.QUOTE_CLOSED, proposal.new_price)
        except QuoteNotFound:
            await session.rollback()
            return RecalcResult.rejected(RejectReason.NOT_FOUND, proposal.new_price)

        record = await change_ledger.append_change(
            session,
            quote,
            proposal.previous_price,
            proposal.new_price,
            proposal.reason,
            changed_at=now,
            wager_count=proposal.wager_count,
            total_amount=proposal.total_amount,
            detail=proposal.detail,
            market_wager_count=proposal.market_wager_count,
        )
        await session.commit()
        logger.info(
            "odds updated: event_id=%s outcome=%s %s -> %s (%s%%) reason=%s revision=%s",
            proposal.event_id,
            proposal.outcome.value,
            proposal.previous_price,
            proposal.new_price,
            proposal.pct_change,
            proposal.reason.value,
            quote.revision,
        )

        if abs(proposal.pct_change) >= proposal.policy.notify_threshold_pct:
            await notify_safely(
                self.notifier,
                OddsAlert(
                    kind=KIND_ODDS_CHANGE,
                    event_id=proposal.event_id,
                    outcome=proposal.outcome.value,
                    message=f"odds moved {proposal.pct_change}% ({proposal.previous_price} -> {proposal.new_price})",
                    previous_price=proposal.previous_price,
                    new_price=proposal.new_price,
                    pct_change=proposal.pct_change,
                    reason=proposal.reason.value,
                    created_at=now,
                ),
            )
        return RecalcResult.applied(record)
