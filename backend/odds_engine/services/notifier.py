from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol

import httpx

from odds_engine.config import settings
from odds_engine.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

KIND_ODDS_CHANGE = "odds_change"
KIND_CONCENTRATION = "concentration"
KIND_ANOMALOUS_CHANGE = "anomalous_change"


@dataclass(slots=True)
class OddsAlert:
    kind: str
    event_id: int
    outcome: str
    message: str
    previous_price: Decimal | None = None
    new_price: Decimal | None = None
    pct_change: Decimal | None = None
    share_pct: Decimal | None = None
    reason: str | None = None
    created_at: datetime = field(default_factory=utcnow)

    def to_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        for key, value in payload.items():
            if isinstance(value, Decimal):
                payload[key] = str(value)
            elif isinstance(value, datetime):
                payload[key] = value.isoformat()
        return payload


class Notifier(Protocol):
    async def send(self, alert: OddsAlert) -> None: ...


class LoggingNotifier:
    async def send(self, alert: OddsAlert) -> None:
        logger.info(
            "odds alert: kind=%s event_id=%s outcome=%s message=%s",
            alert.kind,
            alert.event_id,
            alert.outcome,
            alert.message,
        )


class WebhookNotifier:
    def __init__(self, url: str, timeout: float = 5.0) -> None:
        self.url = url
        self.timeout = timeout

    async def send(self, alert: OddsAlert) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.url, json=alert.to_payload())
            response.raise_for_status()


def build_notifier() -> Notifier:
    if settings.notification_webhook_url:
        return WebhookNotifier(settings.notification_webhook_url)
    return LoggingNotifier()


async def notify_safely(notifier: Notifier, alert: OddsAlert) -> bool:
    """Best-effort delivery; a failed send is logged and otherwise ignored."""
    try:
        await notifier.send(alert)
    except Exception:
        logger.exception(
            "notification delivery failed: kind=%s event_id=%s outcome=%s",
            alert.kind,
            alert.event_id,
            alert.outcome,
        )
        return False
    return True
