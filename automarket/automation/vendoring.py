"""
Vendoring workflow: liquidate an item through the agent in one action.
"""

import logging

from automarket.core.errors import AutomationError, LocationLost, RunCancelled, SurfaceNotReady
from automarket.core.models import StockItem
from automarket.core.retry import RunToken
from .actions import Surface, SurfaceAction, invoke_labeled_action
from .context import AutomationContext

logger = logging.getLogger(__name__)


class VendoringWorkflow:
    """
    Sells a whole item to the vendor via the agent.

    The target disposes of the entire stack atomically, so there is no batching.
    Not every vendor action asks for confirmation; a missing dialog is fine.
    """

    def __init__(self, ctx: AutomationContext):
        self.ctx = ctx

    async def vendor_item(self, item: StockItem, token: RunToken) -> bool:
        target = self.ctx.target
        retry = self.ctx.retry

        logger.info(f"Attempting to vendor item: {item.label} (ID: {item.item_id})")
        try:
            await token.checkpoint()
            await self._locate(item)

            if await target.close_surface(Surface.CONTEXT_MENU):
                await retry.delay(100, token)

            if not await target.open_interaction_surface(item.location):
                raise SurfaceNotReady(f"{Surface.CONTEXT_MENU.value} for {item.location}", 1)
            await retry.require(
                lambda: target.is_surface_ready(Surface.CONTEXT_MENU), 20, 50,
                Surface.CONTEXT_MENU.value, token,
            )

            if not await invoke_labeled_action(target, SurfaceAction.SELL_TO_VENDOR):
                await target.close_surface(Surface.CONTEXT_MENU)
                raise SurfaceNotReady("'Have Retainer Sell Items' option", 1)

            await retry.delay(300, token)
            if await retry.poll_until_ready(
                lambda: target.is_surface_ready(Surface.CONFIRM_DIALOG), 20, 100, token
            ):
                if await target.confirm_dialog_if_present():
                    logger.info("Found confirmation dialog, clicked Yes")
                    await retry.delay(180, token)

            item.quantity = 0
            return True

        except RunCancelled:
            logger.info(f"Cancelled while vendoring {item.label}")
            return False
        except AutomationError as e:
            logger.error(f"Failed to vendor {item.label}: {e.message}")
            return False
        except Exception as e:
            logger.error(f"Error vendoring item {item.label}: {e}", exc_info=True)
            return False

    async def _locate(self, item: StockItem):
        """Make sure item.location points at a stack of the item."""
        target = self.ctx.target
        if await target.query_quantity_at(item.location, item.item_id) > 0:
            return

        found = await target.find_next_location_of_item(item.item_id, None)
        if found is None:
            raise LocationLost(f"{item.label} is no longer in the inventory")
        logger.info(f"{item.label} moved from {item.location} to {found}")
        item.location = found
