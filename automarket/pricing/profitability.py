"""
Profitability evaluation for priced stock.
"""

import logging
from typing import List, Optional, Tuple

from automarket.core.config import AutomationConfig
from automarket.core.models import StockItem

logger = logging.getLogger(__name__)


def expected_sale_price(item: StockItem, config: AutomationConfig) -> Tuple[int, bool]:
    """
    Price the item is expected to sell at, and whether it came from the
    most recent sale rather than the current listings.

    A recent sale wins when it is far above the current market (a dumped
    listing) or when the market sits close to vendor value while the last
    sale cleared the threshold.
    """
    recent = item.recent_sale_price
    if recent > 0:
        far_above_market = recent > item.market_price * 2
        market_near_vendor = (
            item.market_price < item.vendor_price * 2
            and recent > item.vendor_price + config.min_profit_threshold
        )
        if far_above_market or market_near_vendor:
            return recent, True
    return item.listing_price, False


def evaluate_item(item: StockItem, config: AutomationConfig) -> StockItem:
    if config.auto_undercut and item.market_price > 0:
        item.listing_price = max(1, item.market_price - config.undercut_amount)
    else:
        item.listing_price = item.market_price

    expected, from_recent = expected_sale_price(item, config)
    if from_recent:
        logger.debug(f"{item.label}: using recent sale {expected:,} over market {item.market_price:,}")

    item.profit_per_item = expected - item.vendor_price
    item.total_profit = item.profit_per_item * item.quantity
    item.is_profitable = item.total_profit > config.min_profit_threshold
    return item


def evaluate_profitability(items: List[StockItem], config: Optional[AutomationConfig] = None) -> List[StockItem]:
    """Fill in listing price and profit fields, sorted by total profit descending."""
    config = config or AutomationConfig()
    for item in items:
        evaluate_item(item, config)

    ranked = sorted(items, key=lambda i: i.total_profit, reverse=True)
    profitable = sum(1 for i in ranked if i.is_profitable)
    logger.info(f"Evaluated {len(ranked)} items: {profitable} profitable, {len(ranked) - profitable} to vendor")
    return ranked
