"""
Universalis market price lookup.

Fetches current listings and recent sales for each scanned item from a
Universalis-compatible API and writes market_price / recent_sale_price back
onto the items. A failed lookup never aborts the scan; the item just falls
back to its vendor price.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple

import aiohttp

from automarket.core.config import AutomationConfig
from automarket.core.models import StockItem
from automarket.core.retry import RunToken

logger = logging.getLogger(__name__)

USER_AGENT = "AutoMarket/1.0"
REQUEST_TIMEOUT_SECONDS = 10
REQUEST_DELAY_MS = 120
# Market price assumed when nobody is selling the item
NO_LISTINGS_MULTIPLIER = 1.5


def parse_market_data(data: Dict[str, Any], vendor_price: int) -> Tuple[int, int]:
    """
    Returns (market_price, recent_sale_price) from a market board response.

    Market price is the cheapest current listing. Recent sale price is the
    newest sale and is only read when there are listings.
    """
    listings = data.get("listings") or []
    if not listings:
        return int(vendor_price * NO_LISTINGS_MULTIPLIER), 0

    market_price = min(int(l.get("pricePerUnit", 0)) for l in listings)

    recent_sale_price = 0
    history = data.get("recentHistory") or []
    if history:
        newest = max(history, key=lambda h: h.get("timestamp", 0))
        recent_sale_price = int(newest.get("pricePerUnit", 0))

    return market_price, recent_sale_price


class MarketPriceClient:
    """
    Market board client.

    Usage:
        client = MarketPriceClient.from_config(config)
        await client.price_items(catalog.items)
    """

    def __init__(
        self,
        base_url: str = "https://universalis.app/api/v2",
        world: str = "Excalibur",
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        request_delay_ms: int = REQUEST_DELAY_MS,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.world = world
        self.timeout = timeout
        self.request_delay_ms = request_delay_ms
        self._sleep = sleep or asyncio.sleep

    @classmethod
    def from_config(cls, config: AutomationConfig) -> "MarketPriceClient":
        return cls(base_url=config.price_api_url, world=config.world)

    def item_url(self, item_id: int, is_hq: bool = False) -> str:
        url = f"{self.base_url}/{self.world}/{item_id}"
        if is_hq:
            url += "?hq=1"
        return url

    async def fetch_market_data(
        self, session: aiohttp.ClientSession, item_id: int, is_hq: bool = False
    ) -> Dict[str, Any]:
        """GET the raw market board payload for one item."""
        async with session.get(
            self.item_url(item_id, is_hq),
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as response:
            if response.status != 200:
                error = await response.text()
                raise aiohttp.ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=error[:200],
                )
            return await response.json()

    async def price_item(self, session: aiohttp.ClientSession, item: StockItem) -> StockItem:
        try:
            data = await self.fetch_market_data(session, item.item_id, item.is_hq)
            item.market_price, item.recent_sale_price = parse_market_data(data, item.vendor_price)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Failed to fetch price for item {item.item_id}: {e}")
            item.market_price = item.vendor_price
        return item

    async def price_items(self, items: Iterable[StockItem], token: Optional[RunToken] = None) -> int:
        """Price every item in place. Returns the number of items looked up."""
        items = list(items)
        logger.info(f"Fetching market prices for {len(items)} items on {self.world}")

        priced = 0
        async with aiohttp.ClientSession(headers={"User-Agent": USER_AGENT}) as session:
            for item in items:
                if token and token.cancelled:
                    logger.info("Price lookup cancelled")
                    break
                await self.price_item(session, item)
                priced += 1
                await self._sleep(self.request_delay_ms / 1000)

        logger.info(f"Fetched market prices for {priced}/{len(items)} items")
        return priced
