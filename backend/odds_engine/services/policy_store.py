from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.config import settings
from odds_engine.errors import InvariantViolation
from odds_engine.models.odds_policy import OddsPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PolicySnapshot:
    """Immutable copy of the active policy, loaded once per recalculation unit."""

    id: int
    name: str
    max_change_pct: Decimal
    min_minutes_between_changes: int
    min_odds: Decimal
    max_odds: Decimal
    volume_weight: Decimal
    probability_weight: Decimal
    market_weight: Decimal
    house_margin_pct: Decimal
    notify_threshold_pct: Decimal
    auto_update: bool
    refresh_interval_minutes: int
    freeze_minutes_before_start: int

    @property
    def min_time_between_changes(self) -> timedelta:
        return timedelta(minutes=self.min_minutes_between_changes)

    @property
    def freeze_window(self) -> timedelta:
        return timedelta(minutes=self.freeze_minutes_before_start)

    @classmethod
    def from_model(cls, policy: OddsPolicy) -> PolicySnapshot:
        return cls(
            id=policy.id,
            name=policy.name,
            max_change_pct=Decimal(policy.max_change_pct),
            min_minutes_between_changes=policy.min_minutes_between_changes,
            min_odds=Decimal(policy.min_odds),
            max_odds=Decimal(policy.max_odds),
            volume_weight=Decimal(policy.volume_weight),
            probability_weight=Decimal(policy.probability_weight),
            market_weight=Decimal(policy.market_weight),
            house_margin_pct=Decimal(policy.house_margin_pct),
            notify_threshold_pct=Decimal(policy.notify_threshold_pct),
            auto_update=policy.auto_update,
            refresh_interval_minutes=policy.refresh_interval_minutes,
            freeze_minutes_before_start=policy.freeze_minutes_before_start,
        )


async def load_active_policy(session: AsyncSession) -> PolicySnapshot | None:
    rows = (await session.scalars(select(OddsPolicy).where(OddsPolicy.active.is_(True)).limit(2))).all()
    if len(rows) > 1:
        raise InvariantViolation(f"more than one active odds policy: ids={[p.id for p in rows]}")
    if not rows:
        return None
    return PolicySnapshot.from_model(rows[0])


class PolicyStore:
    """Read-mostly cache of the active policy.

    A snapshot may be up to ``ttl_seconds`` stale; the recalculation pipeline
    re-checks hard bounds on every change so a briefly stale read is harmless.
    Administrative writes call :meth:`invalidate`.
    """

    def __init__(self, ttl_seconds: float | None = None, monotonic: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = settings.policy_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._monotonic = monotonic
        self._snapshot: PolicySnapshot | None = None
        self._loaded_at: float | None = None

    def _is_fresh(self) -> bool:
        if self._loaded_at is None:
            return False
        return (self._monotonic() - self._loaded_at) < self.ttl_seconds

    async def get_active(self, session: AsyncSession) -> PolicySnapshot | None:
        if self._is_fresh():
            return self._snapshot
        snapshot = await load_active_policy(session)
        self._snapshot = snapshot
        self._loaded_at = self._monotonic()
        if snapshot is None:
            logger.warning("no active odds policy configured")
        return snapshot

    def invalidate(self) -> None:
        self._snapshot = None
        self._loaded_at = None


policy_store = PolicyStore()
