"""
Automation controller: the entry point for a full sell cycle.

Owns the run token, so start / stop / pause all go through here. One cycle at
a time.
"""

import logging
from typing import Optional

from automarket.core.catalog import StockCatalog
from automarket.core.config import AutomationConfig
from automarket.core.models import RunSummary
from automarket.core.retry import RetryPolicy, RunToken
from automarket.pricing.profitability import evaluate_profitability
from automarket.pricing.universalis import MarketPriceClient
from .context import AutomationContext, StatusListener
from .scheduler import SellScheduler
from .target import TargetSystem

logger = logging.getLogger(__name__)


class AutomationController:
    """
    Runs price -> evaluate -> queue -> sell for a catalog.

    Usage:
        controller = AutomationController(target, config)
        controller.add_status_listener(print)
        summary = await controller.start_full_cycle(catalog, MarketPriceClient.from_config(config))
    """

    def __init__(
        self,
        target: TargetSystem,
        config: Optional[AutomationConfig] = None,
        retry: Optional[RetryPolicy] = None,
    ):
        self.ctx = AutomationContext(
            target=target,
            config=config or AutomationConfig(),
            retry=retry or RetryPolicy(),
        )
        self._token: Optional[RunToken] = None
        self._running = False
        self.last_summary: Optional[RunSummary] = None

    @property
    def config(self) -> AutomationConfig:
        return self.ctx.config

    @property
    def running(self) -> bool:
        return self._running

    @property
    def paused(self) -> bool:
        return self._token is not None and self._token.paused

    def add_status_listener(self, listener: StatusListener):
        self.ctx.add_listener(listener)

    def remove_status_listener(self, listener: StatusListener):
        self.ctx.remove_listener(listener)

    async def start_full_cycle(
        self,
        catalog: StockCatalog,
        price_client: Optional[MarketPriceClient] = None,
    ) -> Optional[RunSummary]:
        """
        Price, evaluate and sell everything in the catalog.

        Returns None when refused (already running), when there is nothing to
        sell, or when the cycle failed before the scheduler produced a summary.
        """
        if self._running:
            logger.warning("Automation already running")
            self.ctx.status("Automation already running")
            return None

        self._running = True
        self._token = RunToken()
        token = self._token

        try:
            self.config.validate()

            if price_client is not None:
                self.ctx.status("Fetching market prices...")
                await price_client.price_items(catalog.items, token)
                token.raise_if_cancelled()

            evaluate_profitability(catalog.items, self.config)
            catalog.sort_by_profit()

            queue = catalog.build_queues(self.config)
            logger.info(f"Built sell queue: {queue!r}")
            if queue.empty:
                self.ctx.status("No items to process")
                return None

            self.ctx.status(
                f"Starting automation: {len(queue.to_list)} to list, {len(queue.to_vendor)} to vendor"
            )
            scheduler = SellScheduler(self.ctx)
            summary = await scheduler.run_queue(queue, token)
            self.last_summary = summary
            self._log_summary(summary)

            if summary.cancelled:
                self.ctx.status("Automation cancelled")
            else:
                self.ctx.status(
                    f"Automation complete! Listed {summary.items_listed}, vendored {summary.items_vendored}, "
                    f"estimated revenue {summary.estimated_revenue:,} gil"
                )
            return summary

        except Exception as e:
            logger.error(f"Automation cycle failed: {e}", exc_info=True)
            self.ctx.status(f"Automation error: {e}")
            return None

        finally:
            self._running = False
            self._token = None

    def stop(self):
        if self._token is None:
            return
        logger.info("Stop requested")
        self._token.cancel()

    def toggle_pause(self) -> bool:
        """Flip pause. Returns the new paused state."""
        if self._token is None:
            return False
        if self._token.paused:
            self._token.resume()
            self.ctx.status("Automation resumed")
        else:
            self._token.pause()
            self.ctx.status("Automation paused")
        return self._token.paused

    def _log_summary(self, summary: RunSummary):
        logger.info("=" * 60)
        logger.info("SELL RUN SUMMARY")
        logger.info("=" * 60)
        logger.info(f"Duration: {summary.duration_seconds:.1f} seconds")
        logger.info(f"Items Listed: {summary.items_listed}")
        logger.info(f"Items Vendored: {summary.items_vendored}")
        logger.info(f"Items Dropped: {summary.items_dropped}")
        logger.info(f"Listings Repriced: {summary.listings_repriced}")
        logger.info(f"Estimated Revenue: {summary.estimated_revenue:,} gil")
        if summary.cancelled:
            logger.info("Run was cancelled before finishing")
        logger.info("=" * 60)
