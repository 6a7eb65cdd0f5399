"""
Listing workflow: put a queued item up for sale in batches.

One item may need several listings (the marketplace caps a listing at
max_batch_size units) and may span several stacks. Progress is written back to
the item as it happens, so a partially listed item can be resumed by the next
agent or abandoned cleanly.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Union

from automarket.core.errors import (
    AutomationError, CapacityExceeded, FailureReason, LocationLost,
    RunCancelled, SubmitFailed, SurfaceNotReady,
)
from automarket.core.models import StockItem
from automarket.core.retry import RunToken
from .actions import Surface, SurfaceAction, invoke_labeled_action
from .context import AutomationContext

logger = logging.getLogger(__name__)

CapacityProbe = Callable[[], Union[int, Awaitable[int]]]

PRICE_COMPARE_ATTEMPTS = 2


def compute_listing_price(lowest_competing_price: int, undercut_amount: int) -> int:
    """Undercut the lowest competitor, never going below 1."""
    return max(1, lowest_competing_price - undercut_amount)


@dataclass
class ListingResult:
    """Outcome of one list_item call. Truthy when at least one batch listed."""
    item_id: int
    batches: List[int] = field(default_factory=list)
    listing_price: int = 0
    stop_reason: FailureReason = FailureReason.COMPLETED
    message: str = ""

    @property
    def success(self) -> bool:
        return bool(self.batches)

    @property
    def total_listed(self) -> int:
        return sum(self.batches)

    def __bool__(self) -> bool:
        return self.success


class ListingWorkflow:
    """
    Lists one item on the marketplace through the current agent.

    Per batch:
    1. Capacity check (fresh read through the probe)
    2. Location validation, relocating to the next stack if needed
    3. Batch size = min(max_batch_size, remaining, quantity at location)
    4. Open the slot's context menu and pick "Put Up for Sale"
    5. First batch only: compare prices and undercut
    6. Submit price and quantity
    7. Inter-batch delay
    """

    def __init__(self, ctx: AutomationContext):
        self.ctx = ctx

    async def list_item(
        self,
        item: StockItem,
        token: RunToken,
        capacity_probe: CapacityProbe,
        max_listings: Optional[int] = None,
        on_batch: Optional[Callable[[int], None]] = None,
    ) -> ListingResult:
        """
        List as much of the item as the agent will take.

        on_batch is called with the batch size after every accepted submission,
        so callers can account for listings the target has not reported yet.
        """
        config = self.ctx.config
        retry = self.ctx.retry
        max_listings = max_listings or config.max_listings_per_agent

        result = ListingResult(item_id=item.item_id)
        starting_quantity = item.quantity
        price = item.listing_price
        price_known = config.precomputed_price_mode

        try:
            while item.quantity > 0:
                await token.checkpoint()

                current = await self._probe(capacity_probe)
                if current >= max_listings:
                    raise CapacityExceeded(
                        f"Agent at max listings ({current}/{max_listings}); "
                        f"{item.quantity} of {item.label} left for the next agent"
                    )

                available = await self._validate_location(item)

                batch = min(config.max_batch_size, item.quantity, available)
                if batch <= 0:
                    result.stop_reason = FailureReason.INVALID_BATCH
                    result.message = (
                        f"Cannot list batch: batch={batch}, remaining={item.quantity}, "
                        f"at_location={available}"
                    )
                    logger.error(result.message)
                    break

                if result.batches:
                    logger.info(f"Listing remaining {item.quantity} of {item.label} "
                                f"(batch: {batch} from stack of {available})")

                await retry.delay(100, token)
                await self._open_sell_dialog(item, token)

                if not price_known:
                    price = await self._determine_price(item, price, token)
                    price_known = True

                if price <= 0:
                    await self.ctx.target.close_surface(Surface.SELL_DIALOG)
                    result.stop_reason = FailureReason.NO_PRICE
                    result.message = f"No price to set for {item.label}"
                    logger.error(result.message)
                    break

                await self._submit(price, batch, token)

                item.quantity -= batch
                result.batches.append(batch)
                result.listing_price = price
                if on_batch is not None:
                    on_batch(batch)
                self.ctx.status(f"Listed {batch}x {item.label} for {price:,} gil")

                if item.quantity > 0:
                    await retry.delay(config.action_delay_ms, token)

        except CapacityExceeded as e:
            result.stop_reason = e.reason
            result.message = e.message
            logger.info(e.message)
        except RunCancelled as e:
            result.stop_reason = e.reason
            result.message = e.message
            logger.info(f"Cancelled while listing {item.label}; {item.quantity} left")
        except AutomationError as e:
            result.stop_reason = e.reason
            result.message = e.message
            logger.error(f"Failed to list {item.label} at {item.location}: {e.message}")
        except Exception as e:
            result.stop_reason = FailureReason.UNEXPECTED_FAULT
            result.message = str(e)
            logger.error(f"Error listing item {item.label}: {e}", exc_info=True)

        if result.success:
            logger.info(
                f"Listed {result.total_listed}/{starting_quantity} of {item.label} "
                f"in {len(result.batches)} batch(es) {result.batches}"
            )
        return result

    async def _probe(self, capacity_probe: CapacityProbe) -> int:
        current = capacity_probe()
        if inspect.isawaitable(current):
            current = await current
        return current

    async def _validate_location(self, item: StockItem) -> int:
        """
        Re-read the quantity at the item's location, moving to the next stack
        if it is empty. Returns the quantity available there.
        """
        target = self.ctx.target

        quantity = await target.query_quantity_at(item.location, item.item_id)
        if quantity > 0:
            return quantity

        logger.info(f"Current slot ({item.location}) is empty. Finding next stack of {item.label}...")
        next_location = await target.find_next_location_of_item(item.item_id, item.location)
        if next_location is None:
            raise LocationLost(
                f"No more stacks found for {item.label}. "
                f"Expected {item.quantity} remaining but no stacks available."
            )

        logger.info(f"Found next stack at {next_location}")
        item.location = next_location
        return await target.query_quantity_at(next_location, item.item_id)

    async def _open_sell_dialog(self, item: StockItem, token: RunToken):
        target = self.ctx.target
        retry = self.ctx.retry

        # A leftover context menu would swallow the next open request
        if await target.close_surface(Surface.CONTEXT_MENU):
            await retry.delay(100, token)

        if not await target.open_interaction_surface(item.location):
            raise SurfaceNotReady(f"{Surface.CONTEXT_MENU.value} for {item.location}", 1)
        await retry.require(
            lambda: target.is_surface_ready(Surface.CONTEXT_MENU), 20, 50,
            Surface.CONTEXT_MENU.value, token,
        )
        await retry.delay(100, token)

        if not await invoke_labeled_action(target, SurfaceAction.PUT_UP_FOR_SALE):
            await target.close_surface(Surface.CONTEXT_MENU)
            raise SurfaceNotReady("'Put Up for Sale' option", 1)

        await retry.require(
            lambda: target.is_surface_ready(Surface.SELL_DIALOG), 30, 60,
            Surface.SELL_DIALOG.value, token,
        )

    async def _determine_price(self, item: StockItem, fallback: int, token: RunToken) -> int:
        """Undercut the lowest competing price, or fall back to the supplied price."""
        target = self.ctx.target
        retry = self.ctx.retry
        undercut = self.ctx.config.undercut_amount

        for attempt in range(PRICE_COMPARE_ATTEMPTS):
            if attempt > 0:
                await retry.delay(180, token)

            if not await target.is_surface_ready(Surface.SELL_DIALOG):
                continue
            if not await target.open_price_comparison():
                continue

            if not await retry.poll_until_ready(
                lambda: target.is_surface_ready(Surface.PRICE_COMPARISON), 20, 60, token
            ):
                continue

            try:
                lowest = await target.query_lowest_competing_price(item.item_id, item.is_hq)
            finally:
                await target.close_surface(Surface.PRICE_COMPARISON)

            if lowest > 0:
                price = compute_listing_price(lowest, undercut)
                logger.info(f"Lowest competing price for {item.label} is {lowest:,}, listing at {price:,}")
                return price

        logger.warning(f"No competing price found for {item.label}, using pre-computed {fallback:,}")
        return fallback

    async def _submit(self, price: int, quantity: int, token: RunToken):
        target = self.ctx.target

        # Dialog is re-acquired by name after the comparison round-trip
        await self.ctx.retry.require(
            lambda: target.is_surface_ready(Surface.SELL_DIALOG), 30, 60,
            Surface.SELL_DIALOG.value, token,
        )
        if not await target.submit_price_and_quantity(price, quantity):
            await target.close_surface(Surface.SELL_DIALOG)
            raise SubmitFailed(f"Sell dialog rejected {quantity} @ {price:,}")
