"""Market price lookup and profitability evaluation."""

from .universalis import MarketPriceClient, parse_market_data
from .profitability import evaluate_profitability

__all__ = ["MarketPriceClient", "parse_market_data", "evaluate_profitability"]
