import asyncio
from decimal import Decimal

from odds_engine.data_providers.market_feed import MarketFeedClient, parse_prices
from odds_engine.markets import OutcomeType


def test_parse_prices_skips_bad_entries() -> None:
    payload = {
        "prices": [
            {"outcome": "home", "price": "2.10"},
            {"outcome": "away", "price": 3.4},
            {"outcome": "nope", "price": "2.00"},
            {"outcome": "draw"},
            {"outcome": "draw", "price": "abc"},
            {"outcome": "draw", "price": "1.00"},
        ]
    }
    result = parse_prices(payload)
    assert result.prices == {OutcomeType.HOME: Decimal("2.10"), OutcomeType.AWAY: Decimal("3.4")}
    assert result.skipped == 4


def test_parse_prices_tolerates_missing_list() -> None:
    result = parse_prices({})
    assert result.prices == {}
    assert result.skipped == 0


def test_disabled_client_makes_no_request(monkeypatch) -> None:
    client = MarketFeedClient(base_url="", api_key="")
    assert client.enabled is False

    async def fail(path):
        raise AssertionError(f"unexpected request to {path}")

    monkeypatch.setattr(client, "_get", fail)
    result = asyncio.run(client.get_event_prices("evt-1"))
    assert result.prices == {}


def test_enabled_client_parses_feed_payload(monkeypatch) -> None:
    client = MarketFeedClient(base_url="https://feed.test/", api_key="secret")
    requested = []

    async def fake_get(path):
        requested.append(path)
        return {"prices": [{"outcome": "over_2_5", "price": "1.95"}]}

    monkeypatch.setattr(client, "_get", fake_get)
    result = asyncio.run(client.get_event_prices("evt-9"))
    assert client.base_url == "https://feed.test"
    assert requested == ["events/evt-9/prices"]
    assert result.prices == {OutcomeType.OVER_2_5: Decimal("1.95")}
