"""
Tests for market price lookup and profitability evaluation.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from automarket.core.config import AutomationConfig
from automarket.core.retry import RunToken
from automarket.pricing.profitability import evaluate_profitability, expected_sale_price
from automarket.pricing.universalis import MarketPriceClient, parse_market_data

from conftest import make_item


class FakeResponse:
    """Async context manager standing in for an aiohttp response."""

    def __init__(self, status=200, payload=None, text=""):
        self.status = status
        self._payload = payload or {}
        self._text = text
        self.request_info = MagicMock()
        self.history = ()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def json(self):
        return self._payload

    async def text(self):
        return self._text


def priced(market, vendor, recent=0, quantity=1, **kwargs):
    return make_item(market_price=market, vendor_price=vendor, recent_sale_price=recent,
                     quantity=quantity, listing_price=0, **kwargs)


@pytest.mark.pricing
class TestParseMarketData:

    def test_lowest_listing_and_newest_sale(self):
        data = {
            "listings": [{"pricePerUnit": 500}, {"pricePerUnit": 320}, {"pricePerUnit": 999}],
            "recentHistory": [
                {"pricePerUnit": 280, "timestamp": 1700000000},
                {"pricePerUnit": 410, "timestamp": 1700000500},
            ],
        }
        assert parse_market_data(data, vendor_price=10) == (320, 410)

    def test_no_listings_uses_vendor_multiple(self):
        data = {"listings": [], "recentHistory": [{"pricePerUnit": 9000, "timestamp": 1}]}
        assert parse_market_data(data, vendor_price=40) == (60, 0)

    def test_missing_history(self):
        assert parse_market_data({"listings": [{"pricePerUnit": 75}]}, 5) == (75, 0)


@pytest.mark.pricing
class TestMarketPriceClient:

    def test_item_url(self):
        client = MarketPriceClient(base_url="https://universalis.app/api/v2/", world="Balmung")
        assert client.item_url(5111) == "https://universalis.app/api/v2/Balmung/5111"
        assert client.item_url(5111, is_hq=True) == "https://universalis.app/api/v2/Balmung/5111?hq=1"

    def test_from_config(self):
        client = MarketPriceClient.from_config(AutomationConfig(world="Gilgamesh"))
        assert client.world == "Gilgamesh"

    @pytest.mark.asyncio
    async def test_fetch_market_data(self):
        session = MagicMock()
        session.get.return_value = FakeResponse(payload={"listings": [{"pricePerUnit": 10}]})
        client = MarketPriceClient(world="Excalibur")

        data = await client.fetch_market_data(session, 5111, True)

        assert data == {"listings": [{"pricePerUnit": 10}]}
        assert session.get.call_args[0][0].endswith("/Excalibur/5111?hq=1")

    @pytest.mark.asyncio
    async def test_fetch_raises_on_http_error(self):
        session = MagicMock()
        session.get.return_value = FakeResponse(status=404, text="Not Found")

        with pytest.raises(aiohttp.ClientResponseError):
            await MarketPriceClient().fetch_market_data(session, 1)

    @pytest.mark.asyncio
    async def test_price_items_applies_prices_and_paces_requests(self, sleeper):
        client = MarketPriceClient(sleep=sleeper)
        items = [make_item(item_id=1, vendor_price=10), make_item(item_id=2, vendor_price=20)]
        responses = {
            1: {"listings": [{"pricePerUnit": 300}], "recentHistory": [{"pricePerUnit": 280, "timestamp": 5}]},
            2: {"listings": []},
        }

        async def fake_fetch(session, item_id, is_hq=False):
            return responses[item_id]

        with patch.object(MarketPriceClient, "fetch_market_data", new=AsyncMock(side_effect=fake_fetch)):
            assert await client.price_items(items) == 2

        assert (items[0].market_price, items[0].recent_sale_price) == (300, 280)
        assert items[1].market_price == 30
        assert sleeper.calls == [0.12, 0.12]

    @pytest.mark.asyncio
    async def test_lookup_error_falls_back_to_vendor_price(self, sleeper):
        client = MarketPriceClient(sleep=sleeper)
        item = make_item(item_id=1, vendor_price=42)

        with patch.object(MarketPriceClient, "fetch_market_data",
                          new=AsyncMock(side_effect=aiohttp.ClientError("boom"))):
            await client.price_items([item])

        assert item.market_price == 42

    @pytest.mark.asyncio
    async def test_cancelled_token_stops_lookups(self, sleeper):
        client = MarketPriceClient(sleep=sleeper)
        token = RunToken()
        token.cancel()

        with patch.object(MarketPriceClient, "fetch_market_data", new=AsyncMock()) as fetch:
            assert await client.price_items([make_item()], token) == 0
        fetch.assert_not_called()


@pytest.mark.pricing
class TestProfitability:

    def test_undercut_listing_price_and_profit(self):
        config = AutomationConfig(undercut_amount=5, min_profit_threshold=100)
        item = priced(market=200, vendor=50, quantity=3)

        evaluate_profitability([item], config)

        assert item.listing_price == 195
        assert item.profit_per_item == 145
        assert item.total_profit == 435
        assert item.is_profitable

    def test_no_undercut(self):
        item = priced(market=200, vendor=50)
        evaluate_profitability([item], AutomationConfig(auto_undercut=False))
        assert item.listing_price == 200

    def test_listing_price_floor(self):
        item = priced(market=3, vendor=1)
        evaluate_profitability([item], AutomationConfig(undercut_amount=10))
        assert item.listing_price == 1

    def test_threshold_is_exclusive(self):
        config = AutomationConfig(undercut_amount=0, min_profit_threshold=100)
        item = priced(market=150, vendor=50)
        evaluate_profitability([item], config)
        assert item.total_profit == 100
        assert not item.is_profitable

    def test_recent_sale_far_above_market_wins(self):
        config = AutomationConfig(undercut_amount=1, min_profit_threshold=100)
        item = priced(market=100, vendor=10, recent=250)
        assert expected_sale_price(item, config) == (250, True)

    def test_recent_sale_used_when_market_near_vendor(self):
        config = AutomationConfig(min_profit_threshold=100)
        item = priced(market=150, vendor=100, recent=260)
        evaluate_profitability([item], config)
        assert item.profit_per_item == 160

    def test_recent_sale_ignored_otherwise(self):
        config = AutomationConfig(undercut_amount=1, min_profit_threshold=100)
        item = priced(market=500, vendor=10, recent=600)
        evaluate_profitability([item], config)
        assert item.profit_per_item == 499 - 10

    def test_sorted_by_total_profit(self):
        items = [
            priced(market=100, vendor=50, item_id=1),
            priced(market=1000, vendor=50, item_id=2),
            priced(market=10, vendor=50, item_id=3),
        ]
        ranked = evaluate_profitability(items, AutomationConfig())
        assert [i.item_id for i in ranked] == [2, 1, 3]
        assert ranked[-1].total_profit < 0
