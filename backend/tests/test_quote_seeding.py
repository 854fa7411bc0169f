from __future__ import annotations

import asyncio
import random
from decimal import Decimal

from db_support import add_event, add_policy, make_db, require_aiosqlite
from odds_engine.markets import OUTCOMES, OutcomeType
from odds_engine.services.policy_store import PolicySnapshot
from odds_engine.services.quote_seeding import BASIC_MARKETS, seed_price, seed_quotes


def test_seed_price_stays_in_outcome_range() -> None:
    rng = random.Random(3)
    for outcome in (OutcomeType.HOME, OutcomeType.DRAW, OutcomeType.OVER_2_5):
        spec = OUTCOMES[outcome]
        for _ in range(50):
            price = seed_price(outcome, rng)
            assert spec.seed_low <= price <= spec.seed_high
            assert price == price.quantize(Decimal("0.01"))


def test_seed_quotes_covers_every_market_once(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_seed_quotes_covers_every_market_once(tmp_path))


async def _run_seed_quotes_covers_every_market_once(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    async with session_factory() as session:
        event = await add_event(session)
        created = await seed_quotes(session, event, rng=random.Random(11))
        assert len(created) == len(OUTCOMES)
        assert {q.outcome for q in created} == {o.value for o in OUTCOMES}
        assert all(q.revision == 0 for q in created)

        assert await seed_quotes(session, event, rng=random.Random(11)) == []

    await db.dispose()


def test_seed_quotes_respects_policy_bounds(tmp_path) -> None:
    require_aiosqlite()
    asyncio.run(_run_seed_quotes_respects_policy_bounds(tmp_path))


async def _run_seed_quotes_respects_policy_bounds(tmp_path) -> None:
    db, session_factory = await make_db(tmp_path)
    async with session_factory() as session:
        policy = PolicySnapshot.from_model(await add_policy(session, max_odds=Decimal("2.50")))
        event = await add_event(session)
        created = await seed_quotes(session, event, BASIC_MARKETS, random.Random(5), policy)
        assert sorted(q.outcome for q in created) == ["away", "draw", "home"]
        assert all(Decimal("1.01") <= q.price <= Decimal("2.50") for q in created)

    await db.dispose()
