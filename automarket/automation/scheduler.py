"""
Sell scheduler: drains the list and vendor queues across agents.

Agents are visited in index order. Each one gets as many listings as it has
room for, then takes every pending vendor item, then is closed unless it was
left with nothing to do. A cancelled run stops at the next checkpoint and
returns the partial summary.
"""

import logging
from datetime import datetime
from typing import Deque, Set

from automarket.core.catalog import SellQueue
from automarket.core.errors import FailureReason, RunCancelled
from automarket.core.models import Agent, RunSummary, StockItem
from automarket.core.retry import RunToken
from .agent_session import AgentSession
from .context import AutomationContext
from .listing import ListingResult, ListingWorkflow
from .repricing import RepricingWorkflow
from .vendoring import VendoringWorkflow

logger = logging.getLogger(__name__)


class CapacityTracker:
    """
    Listing occupancy of one open agent.

    Occupancy is the larger of what the target reports and what this session
    has added on top of the count seen at open. Each accepted batch is one
    listing.
    """

    def __init__(self, ctx: AutomationContext, agent_index: int, baseline: int, cap: int):
        self.ctx = ctx
        self.agent_index = agent_index
        self.baseline = baseline
        self.cap = cap
        self.added = 0

    async def __call__(self) -> int:
        fresh = await self.ctx.target.query_agent_listing_count(self.agent_index)
        return max(fresh, self.baseline + self.added)

    def record_batch(self, quantity: int):
        """on_batch callback. A batch is one listing whatever its quantity."""
        self.added += 1

    async def at_capacity(self) -> bool:
        return await self() >= self.cap


class SellScheduler:
    """
    Runs one sell pass over every agent.

    Usage:
        scheduler = SellScheduler(ctx)
        summary = await scheduler.run(queue.to_list, queue.to_vendor, token)
    """

    def __init__(self, ctx: AutomationContext):
        self.ctx = ctx
        self.listing = ListingWorkflow(ctx)
        self.vendoring = VendoringWorkflow(ctx)
        self.repricing = RepricingWorkflow(ctx)
        self.summary = RunSummary()
        # Keys (item_id, is_hq) of items that listed a batch on an earlier agent
        self._progressed: Set[tuple] = set()

    async def run_queue(self, queue: SellQueue, token: RunToken) -> RunSummary:
        return await self.run(queue.to_list, queue.to_vendor, token)

    async def run(
        self,
        list_queue: Deque[StockItem],
        vendor_queue: Deque[StockItem],
        token: RunToken,
    ) -> RunSummary:
        """Process both queues until they are empty, agents run out, or the run is cancelled."""
        target = self.ctx.target
        self.summary = RunSummary()
        self._progressed = set()

        logger.info(f"Starting sell run: {len(list_queue)} to list, {len(vendor_queue)} to vendor")
        try:
            try:
                agent_count = await target.query_agent_count()
            except RunCancelled:
                raise
            except Exception as e:
                logger.error(f"Could not read agent count: {e}", exc_info=True)
                agent_count = 0

            if agent_count <= 0:
                logger.error("No agents available")
                self.ctx.status("No agents available")
                return self.summary

            logger.info(f"Found {agent_count} agents to process")

            for agent_index in range(agent_count):
                if not list_queue and not vendor_queue:
                    break
                await token.checkpoint()

                self.ctx.status(f"Processing agent {agent_index + 1}/{agent_count}...")
                try:
                    await self._process_agent(agent_index, list_queue, vendor_queue, token)
                except RunCancelled:
                    raise
                except Exception as e:
                    logger.error(f"Error on agent {agent_index}, moving on: {e}", exc_info=True)

                if list_queue or vendor_queue:
                    await self.ctx.retry.delay(self.ctx.config.agent_delay_ms, token)

            if list_queue or vendor_queue:
                logger.warning(
                    f"Ran out of agents with {len(list_queue)} to list and "
                    f"{len(vendor_queue)} to vendor still queued"
                )

        except RunCancelled:
            self.summary.cancelled = True
            logger.warning("Sell run cancelled")
            self.ctx.status("Automation stopped")
        finally:
            self.summary.finished_at = datetime.now()

        return self.summary

    async def _process_agent(
        self,
        agent_index: int,
        list_queue: Deque[StockItem],
        vendor_queue: Deque[StockItem],
        token: RunToken,
    ):
        target = self.ctx.target
        config = self.ctx.config
        retry = self.ctx.retry

        session = AgentSession(self.ctx)
        if not await session.open(agent_index, token):
            logger.error(f"Failed to open agent {agent_index}, moving on")
            return

        if config.manage_listed_items:
            try:
                self.summary.listings_repriced += await self.repricing.reprice_listings(agent_index, token)
            except RunCancelled:
                raise
            except Exception as e:
                logger.error(f"Repricing failed on agent {agent_index}: {e}", exc_info=True)

        did_vendor = False
        try:
            cap = config.max_listings_per_agent
            baseline = await target.query_agent_listing_count(agent_index)
            tracker = CapacityTracker(self.ctx, agent_index, baseline, cap)
            agent = Agent(agent_index, capacity_cap=cap, current_count=baseline)
            available = agent.available_slots
            items_to_attempt = min(len(list_queue), available)
            logger.info(
                f"Agent {agent_index} has {baseline}/{cap} listings, "
                f"{available} slots available, will attempt {items_to_attempt} items"
            )

            if list_queue and available > 0:
                await retry.delay(600, token)
                await self._drain_list_queue(list_queue, tracker, items_to_attempt, token)

            did_vendor = await self._drain_vendor_queue(vendor_queue, token)

            if list_queue or vendor_queue or await tracker.at_capacity():
                await session.close(did_vendor, token)
            else:
                logger.info(f"All items processed, leaving agent {agent_index} open")

        except RunCancelled:
            raise
        except Exception as e:
            # Queue heads are untouched; the next agent picks them up
            logger.error(f"Error on agent {agent_index}, closing it: {e}", exc_info=True)
            self.ctx.status(f"Agent {agent_index + 1} failed: {e}")
            await session.close(did_vendor, token)

    async def _drain_list_queue(
        self,
        list_queue: Deque[StockItem],
        tracker: CapacityTracker,
        items_to_attempt: int,
        token: RunToken,
    ):
        config = self.ctx.config
        retry = self.ctx.retry
        completed_here = 0

        while list_queue and completed_here < items_to_attempt:
            await token.checkpoint()

            current = await tracker()
            if current >= tracker.cap:
                logger.info(f"Agent {tracker.agent_index} reached max listings ({current}/{tracker.cap})")
                break

            item = list_queue[0]
            result = await self.listing.list_item(
                item, token, tracker, tracker.cap, on_batch=tracker.record_batch
            )
            if result.success:
                self.summary.record_listed(result.listing_price, result.total_listed, completed=False)

            if result.stop_reason == FailureReason.CANCELLED:
                if result.success:
                    self._progressed.add(item.key)
                raise RunCancelled()

            if item.quantity <= 0:
                list_queue.popleft()
                self._progressed.discard(item.key)
                self.summary.mark_listed()
                completed_here += 1
                self.ctx.status(f"Listed {item.label}")
            elif self._handle_unfinished(list_queue, item, result):
                break

            await retry.delay(300, token)
            await retry.delay(config.action_delay_ms, token)

    def _handle_unfinished(self, list_queue: Deque[StockItem], item: StockItem, result: ListingResult) -> bool:
        """
        Decide what happens to an item that still has quantity left.

        Returns True when the current agent should stop taking listings.
        """
        if result.stop_reason == FailureReason.CAPACITY_REACHED:
            if result.success:
                self._progressed.add(item.key)
            return True

        if result.stop_reason != FailureReason.LOCATION_LOST and result.success:
            # Partial progress: keep it at the head for the next agent
            self._progressed.add(item.key)
            logger.info(f"{item.label} partially listed, {item.quantity} left for the next agent")
            return True

        list_queue.popleft()
        if result.success or item.key in self._progressed:
            self._progressed.discard(item.key)
            self.summary.mark_listed()
            logger.warning(f"{item.label} stopped with {item.quantity} unlisted: {result.message}")
        else:
            self.summary.items_dropped += 1
            logger.error(f"Dropping {item.label}: {result.stop_reason.value} ({result.message})")
            self.ctx.status(f"Failed to list {item.label}")
        return False

    async def _drain_vendor_queue(self, vendor_queue: Deque[StockItem], token: RunToken) -> bool:
        """Vendor everything queued. Returns True if anything was vendored."""
        retry = self.ctx.retry
        did_vendor = False

        if vendor_queue:
            logger.info(f"Vendoring {len(vendor_queue)} items")

        while vendor_queue:
            await token.checkpoint()

            item = vendor_queue[0]
            quantity = item.quantity
            vendored = await self.vendoring.vendor_item(item, token)
            if not vendored and token.cancelled:
                raise RunCancelled()

            vendor_queue.popleft()
            if vendored:
                did_vendor = True
                self.summary.record_vendored(item.vendor_price, quantity)
                self.ctx.status(f"Vendored {quantity}x {item.label} for {item.vendor_price * quantity:,} gil")
            else:
                self.summary.items_dropped += 1
                self.ctx.status(f"Failed to vendor {item.label}")

            await retry.delay(self.ctx.config.action_delay_ms, token)

        return did_vendor
