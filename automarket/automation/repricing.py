"""
Repricing workflow: re-undercut an agent's existing listings.
"""

import logging

from automarket.core.errors import RunCancelled
from automarket.core.models import ListedItem
from automarket.core.retry import RunToken
from .actions import Surface, SurfaceAction, invoke_labeled_action
from .context import AutomationContext
from .listing import PRICE_COMPARE_ATTEMPTS, compute_listing_price

logger = logging.getLogger(__name__)


class RepricingWorkflow:
    """Walks the sell list and lowers prices that are no longer the cheapest."""

    def __init__(self, ctx: AutomationContext):
        self.ctx = ctx

    async def reprice_listings(self, agent_index: int, token: RunToken) -> int:
        """Returns the number of listings whose price was changed."""
        target = self.ctx.target
        retry = self.ctx.retry

        if not await retry.poll_until_ready(
            lambda: target.is_surface_ready(Surface.SELL_LIST), 30, 100, token
        ):
            logger.warning(f"Sell list for agent {agent_index} not ready, skipping repricing")
            return 0

        listed = await target.query_listed_items(agent_index)
        if not listed:
            logger.info(f"Agent {agent_index} has no listings to manage")
            return 0

        logger.info(f"Managing {len(listed)} listings on agent {agent_index}")
        repriced = 0
        for listing in listed:
            await token.checkpoint()
            try:
                if await self._reprice_one(listing, token):
                    repriced += 1
            except RunCancelled:
                raise
            except Exception as e:
                logger.error(f"Error repricing {listing.display_name}: {e}", exc_info=True)
                await target.close_surface(Surface.SELL_DIALOG)
            await retry.delay(self.ctx.config.action_delay_ms, token)

        return repriced

    async def _reprice_one(self, listing: ListedItem, token: RunToken) -> bool:
        target = self.ctx.target
        retry = self.ctx.retry

        if not await target.open_listing(listing.slot_index):
            logger.warning(f"Could not open listing {listing.slot_index + 1}")
            return False
        if not await retry.poll_until_ready(
            lambda: target.is_surface_ready(Surface.CONTEXT_MENU), 20, 50, token
        ):
            return False
        if not await invoke_labeled_action(target, SurfaceAction.ADJUST_PRICE):
            await target.close_surface(Surface.CONTEXT_MENU)
            return False
        if not await retry.poll_until_ready(
            lambda: target.is_surface_ready(Surface.SELL_DIALOG), 30, 60, token
        ):
            return False

        await retry.delay(200, token)
        lowest = 0
        for attempt in range(PRICE_COMPARE_ATTEMPTS):
            if attempt > 0:
                await retry.delay(180, token)
            if not await target.open_price_comparison():
                continue
            if not await retry.poll_until_ready(
                lambda: target.is_surface_ready(Surface.PRICE_COMPARISON), 20, 60, token
            ):
                continue
            try:
                lowest = await target.query_lowest_competing_price(listing.item_id, listing.is_hq)
            finally:
                await target.close_surface(Surface.PRICE_COMPARISON)
            if lowest > 0:
                break

        if lowest <= 0:
            logger.info(f"No competing price for {listing.display_name}, leaving at {listing.unit_price:,}")
            await target.close_surface(Surface.SELL_DIALOG)
            return False

        new_price = compute_listing_price(lowest, self.ctx.config.undercut_amount)
        if new_price >= listing.unit_price:
            logger.debug(f"{listing.display_name} already cheapest at {listing.unit_price:,}")
            await target.close_surface(Surface.SELL_DIALOG)
            return False

        if not await target.submit_price(new_price):
            await target.close_surface(Surface.SELL_DIALOG)
            return False

        self.ctx.status(f"Repriced {listing.display_name}: {listing.unit_price:,} -> {new_price:,} gil")
        listing.unit_price = new_price
        return True
