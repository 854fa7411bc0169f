from __future__ import annotations

import logging
import random
from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from odds_engine.markets import MARKETS, MATCH_RESULT, OUTCOMES, OutcomeType, outcomes_in_market
from odds_engine.models.event import SportEvent
from odds_engine.models.odds_quote import OddsQuote, QuoteState
from odds_engine.services.policy_store import PolicySnapshot
from odds_engine.utils.odds_math import clamp, quantize_price
from odds_engine.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

BASIC_MARKETS = (MATCH_RESULT,)


def seed_price(outcome: OutcomeType, rng: random.Random, policy: PolicySnapshot | None = None) -> Decimal:
    spec = OUTCOMES[outcome]
    spread = spec.seed_high - spec.seed_low
    price = quantize_price(spec.seed_low + spread * Decimal(str(rng.random())))
    if policy is not None:
        price = clamp(price, policy.min_odds, policy.max_odds)
    return price


async def seed_quotes(
    session: AsyncSession,
    event: SportEvent,
    markets: Iterable[str] | None = None,
    rng: random.Random | None = None,
    policy: PolicySnapshot | None = None,
) -> list[OddsQuote]:
    """Create one ACTIVE quote per outcome of ``markets`` (all markets when omitted).

    Outcomes that already have an ACTIVE quote are left untouched.
    """
    rng = rng or random.Random()
    market_keys = list(markets) if markets is not None else list(MARKETS)
    existing = set(
        (
            await session.scalars(
                select(OddsQuote.outcome).where(
                    OddsQuote.event_id == event.id, OddsQuote.state == QuoteState.ACTIVE.value
                )
            )
        ).all()
    )

    now = utcnow()
    created: list[OddsQuote] = []
    for market in market_keys:
        for outcome in outcomes_in_market(market):
            if outcome.value in existing:
                continue
            quote = OddsQuote(
                event_id=event.id,
                outcome=outcome.value,
                market=market,
                price=seed_price(outcome, rng, policy),
                state=QuoteState.ACTIVE.value,
                revision=0,
                created_at=now,
                updated_at=now,
            )
            session.add(quote)
            created.append(quote)
    await session.commit()
    logger.info("quotes seeded: event_id=%s markets=%s created=%s", event.id, market_keys, len(created))
    return created
