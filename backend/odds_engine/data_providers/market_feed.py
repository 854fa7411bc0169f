from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from odds_engine.config import settings
from odds_engine.markets import OutcomeType

logger = logging.getLogger(__name__)


@dataclass
class MarketFeedResult:
    prices: dict[OutcomeType, Decimal] = field(default_factory=dict)
    skipped: int = 0


class MarketFeedClient:
    """Reads reference prices for an event from a third-party market feed.

    Expected payload: ``{"prices": [{"outcome": "home", "price": "2.10"}, ...]}``.
    """

    def __init__(self, base_url: str | None = None, api_key: str | None = None, timeout: float = 20) -> None:
        self.base_url = (settings.external_feed_base_url if base_url is None else base_url).rstrip("/")
        self.api_key = settings.external_feed_api_key if api_key is None else api_key
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.base_url and self.api_key)

    async def _get(self, path: str) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                f"{self.base_url}/{path.lstrip('/')}", headers={"Authorization": f"Bearer {self.api_key}"}
            )
            response.raise_for_status()
            return response.json()

    async def get_event_prices(self, external_id: str) -> MarketFeedResult:
        if not self.enabled:
            return MarketFeedResult()
        payload = await self._get(f"events/{external_id}/prices")
        return parse_prices(payload)


def parse_prices(payload: dict[str, Any]) -> MarketFeedResult:
    result = MarketFeedResult()
    for item in payload.get("prices", []):
        try:
            outcome = OutcomeType(item["outcome"])
            price = Decimal(str(item["price"]))
        except (KeyError, ValueError, InvalidOperation):
            result.skipped += 1
            continue
        if price <= 1:
            result.skipped += 1
            continue
        result.prices[outcome] = price
    if result.skipped:
        logger.warning("market feed entries skipped: count=%s", result.skipped)
    return result
