from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.models.event import WAGERING_STATUSES, SportEvent
from odds_engine.models.wagering_volume import WageringVolume
from odds_engine.services import change_ledger
from odds_engine.services.notifier import (
    KIND_ANOMALOUS_CHANGE,
    KIND_CONCENTRATION,
    Notifier,
    OddsAlert,
    notify_safely,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RiskFinding:
    kind: str
    event_id: int
    outcome: str
    value: Decimal


async def detect_concentration(session: AsyncSession, threshold_pct: Decimal) -> list[RiskFinding]:
    rows = (
        await session.scalars(
            select(WageringVolume)
            .join(SportEvent, SportEvent.id == WageringVolume.event_id)
            .where(SportEvent.status.in_(WAGERING_STATUSES), WageringVolume.share_pct >= threshold_pct)
            .order_by(WageringVolume.share_pct.desc())
        )
    ).all()
    return [RiskFinding(KIND_CONCENTRATION, v.event_id, v.outcome, Decimal(v.share_pct)) for v in rows]


async def detect_anomalous_changes(
    session: AsyncSession, threshold_pct: Decimal, now: datetime, window: timedelta
) -> list[RiskFinding]:
    records = await change_ledger.significant_changes(session, threshold_pct, since=now - window)
    return [RiskFinding(KIND_ANOMALOUS_CHANGE, r.event_id, r.outcome, Decimal(r.pct_change)) for r in records]


async def run_risk_scan(
    session: AsyncSession,
    notifier: Notifier,
    *,
    concentration_pct: Decimal,
    anomalous_change_pct: Decimal,
    now: datetime,
    window: timedelta,
) -> list[RiskFinding]:
    findings = await detect_concentration(session, concentration_pct)
    findings += await detect_anomalous_changes(session, anomalous_change_pct, now, window)
    for finding in findings:
        if finding.kind == KIND_CONCENTRATION:
            message = f"{finding.value}% of market volume on one outcome"
            alert = OddsAlert(finding.kind, finding.event_id, finding.outcome, message, share_pct=finding.value)
        else:
            message = f"odds moved {finding.value}% within {int(window.total_seconds() // 60)} minutes"
            alert = OddsAlert(finding.kind, finding.event_id, finding.outcome, message, pct_change=finding.value)
        logger.warning(
            "risk finding: kind=%s event_id=%s outcome=%s value=%s",
            finding.kind,
            finding.event_id,
            finding.outcome,
            finding.value,
        )
        await notify_safely(notifier, alert)
    return findings
