"""
Pytest fixtures and configuration for the AutoMarket test suite.
"""

import asyncio
from typing import Callable, Dict, List, Optional, Set, Tuple

import pytest

from automarket.automation.actions import Surface, match_label
from automarket.automation.context import AutomationContext
from automarket.automation.target import TargetSystem
from automarket.core.config import AutomationConfig
from automarket.core.models import Container, ListedItem, Location, StockItem
from automarket.core.retry import RetryPolicy, RunToken


SELECTION_ENTRIES = [
    "Entrust or withdraw items.",
    "Sell items in your inventory on the market.",
    "Sell items in your retainer's inventory on the market.",
    "View venture report.",
    "Quit.",
]
INVENTORY_CONTEXT_ENTRIES = ["Put Up for Sale", "Have Retainer Sell Items", "Discard", "Cancel"]
LISTING_CONTEXT_ENTRIES = ["Adjust Price", "Return Items to Inventory", "Cancel"]


def loc(slot: int, container: Container = Container.INVENTORY_1) -> Location:
    return Location(container, slot)


def make_item(
    item_id: int = 5111,
    quantity: int = 10,
    slot: int = 0,
    name: str = "",
    vendor_price: int = 10,
    listing_price: int = 500,
    **kwargs,
) -> StockItem:
    return StockItem(
        item_id=item_id,
        display_name=name or f"Item {item_id}",
        quantity=quantity,
        location=loc(slot),
        vendor_price=vendor_price,
        listing_price=listing_price,
        **kwargs,
    )


class FakeTarget(TargetSystem):
    """
    In-memory stand-in for the target application.

    Surfaces are a set of names, inventory is a map of Location ->
    (item_id, quantity) and every accepted submission becomes a listing on
    the open agent.
    """

    def __init__(self, agent_count: int = 2, listing_counts: Optional[List[int]] = None):
        self.agent_count = agent_count
        self.listing_counts = list(listing_counts or [0] * agent_count)
        self.max_seen = list(self.listing_counts)
        self.listed: Dict[int, List[ListedItem]] = {i: [] for i in range(agent_count)}
        self.inventory: Dict[Location, Tuple[int, int]] = {}
        self.competing_prices: Dict[int, int] = {}

        self.surfaces: Set[str] = {Surface.AGENT_LIST}
        self.current_agent: Optional[int] = None
        self.context_location: Optional[Location] = None
        self.current_listing: Optional[ListedItem] = None
        self.vendored_since_open = False
        self.leave_pending = False

        self.fail_open_agents: Set[int] = set()
        self.fail_submit = False
        self.vendor_confirm = True
        self.menu_entries_override: Optional[List[str]] = None
        self.on_submit: Optional[Callable[["FakeTarget"], None]] = None

        self.submissions: List[Tuple[int, int, int, int]] = []
        self.vendored: List[Tuple[int, int, int]] = []
        self.repriced: List[Tuple[int, int]] = []
        self.opened_agents: List[int] = []
        self.closed_agents: List[int] = []
        self.leave_confirmations = 0

    # === Test setup helpers ===

    def add_stack(self, location: Location, item_id: int, quantity: int):
        self.inventory[location] = (item_id, quantity)

    def quantity_of(self, item_id: int) -> int:
        return sum(q for i, q in self.inventory.values() if i == item_id)

    def open_directly(self, agent_index: int = 0):
        """Put the fake into the agent-open, sell-list-visible state."""
        self.current_agent = agent_index
        self.surfaces = {Surface.SELL_LIST}

    # === Agents ===

    async def query_agent_count(self) -> int:
        return self.agent_count

    async def query_agent_listing_count(self, index: int) -> int:
        return self.listing_counts[index]

    async def open_agent(self, index: int) -> bool:
        if index in self.fail_open_agents:
            return False
        self.current_agent = index
        self.vendored_since_open = False
        self.opened_agents.append(index)
        self.surfaces.discard(Surface.AGENT_LIST)
        self.surfaces.add(Surface.SELECTION_MENU)
        return True

    async def close_agent(self):
        if self.current_agent is not None:
            self.closed_agents.append(self.current_agent)
        self.current_agent = None
        self.surfaces.clear()
        if self.vendored_since_open:
            self.leave_pending = True
            self.surfaces.add(Surface.CONFIRM_DIALOG)
        else:
            self.surfaces.add(Surface.AGENT_LIST)

    # === Surfaces and menus ===

    async def is_surface_ready(self, surface: Surface) -> bool:
        return surface in self.surfaces

    async def close_surface(self, surface: Surface) -> bool:
        if surface in self.surfaces:
            self.surfaces.discard(surface)
            return True
        return False

    def _menu_entries(self) -> List[str]:
        if self.menu_entries_override is not None:
            return self.menu_entries_override
        if Surface.CONTEXT_MENU in self.surfaces:
            if self.current_listing is not None:
                return LISTING_CONTEXT_ENTRIES
            return INVENTORY_CONTEXT_ENTRIES
        if Surface.SELECTION_MENU in self.surfaces:
            return SELECTION_ENTRIES
        return []

    async def find_action_by_label(
        self, candidate_labels: List[str], exclude_labels: Optional[List[str]] = None
    ) -> Optional[int]:
        return match_label(self._menu_entries(), candidate_labels, exclude_labels)

    async def invoke_action(self, index: int):
        entry = self._menu_entries()[index]
        if Surface.CONTEXT_MENU in self.surfaces:
            self.surfaces.discard(Surface.CONTEXT_MENU)
            if entry == "Put Up for Sale" or entry == "Adjust Price":
                self.surfaces.add(Surface.SELL_DIALOG)
            elif entry == "Have Retainer Sell Items":
                self._vendor_stack()
        elif Surface.SELECTION_MENU in self.surfaces and "inventory on the market" in entry:
            self.surfaces.discard(Surface.SELECTION_MENU)
            self.surfaces.add(Surface.SELL_LIST)

    def _vendor_stack(self):
        item_id, quantity = self.inventory.pop(self.context_location)
        self.vendored.append((self.current_agent, item_id, quantity))
        self.vendored_since_open = True
        if self.vendor_confirm:
            self.surfaces.add(Surface.CONFIRM_DIALOG)

    async def confirm_dialog_if_present(self) -> bool:
        if Surface.CONFIRM_DIALOG not in self.surfaces:
            return False
        self.surfaces.discard(Surface.CONFIRM_DIALOG)
        if self.leave_pending:
            self.leave_pending = False
            self.leave_confirmations += 1
            self.surfaces.add(Surface.AGENT_LIST)
        return True

    async def open_interaction_surface(self, location: Location) -> bool:
        if self.current_agent is None:
            return False
        self.context_location = location
        self.current_listing = None
        self.surfaces.add(Surface.CONTEXT_MENU)
        return True

    # === Pricing and submission ===

    async def open_price_comparison(self) -> bool:
        if Surface.SELL_DIALOG not in self.surfaces:
            return False
        self.surfaces.add(Surface.PRICE_COMPARISON)
        return True

    async def query_lowest_competing_price(self, item_id: int, is_hq: bool) -> int:
        return self.competing_prices.get(item_id, 0)

    async def submit_price_and_quantity(self, price: int, quantity: int) -> bool:
        if self.fail_submit:
            return False
        item_id, stack = self.inventory[self.context_location]
        if quantity > stack:
            return False
        if stack - quantity:
            self.inventory[self.context_location] = (item_id, stack - quantity)
        else:
            del self.inventory[self.context_location]

        agent = self.current_agent
        self.listed[agent].append(ListedItem(
            slot_index=len(self.listed[agent]), item_id=item_id,
            display_name=f"Item {item_id}", quantity=quantity, unit_price=price,
        ))
        self.listing_counts[agent] += 1
        self.max_seen[agent] = max(self.max_seen[agent], self.listing_counts[agent])
        self.submissions.append((agent, item_id, price, quantity))
        self.surfaces.discard(Surface.SELL_DIALOG)
        if self.on_submit:
            self.on_submit(self)
        return True

    async def submit_price(self, price: int) -> bool:
        if self.fail_submit or self.current_listing is None:
            return False
        self.repriced.append((self.current_listing.slot_index, price))
        self.current_listing.unit_price = price
        self.surfaces.discard(Surface.SELL_DIALOG)
        return True

    # === Inventory ===

    async def query_quantity_at(self, location: Location, item_id: int) -> int:
        stack = self.inventory.get(location)
        if stack is None or stack[0] != item_id:
            return 0
        return stack[1]

    async def find_next_location_of_item(
        self, item_id: int, after: Optional[Location] = None
    ) -> Optional[Location]:
        for location in sorted(self.inventory):
            found_id, quantity = self.inventory[location]
            if found_id != item_id or quantity <= 0:
                continue
            if after is None or location > after:
                return location
        return None

    # === Existing listings ===

    async def query_listed_items(self, agent_index: int) -> List[ListedItem]:
        return list(self.listed[agent_index])

    async def open_listing(self, slot_index: int) -> bool:
        listings = self.listed.get(self.current_agent, [])
        if slot_index >= len(listings):
            return False
        self.current_listing = listings[slot_index]
        self.surfaces.add(Surface.CONTEXT_MENU)
        return True


class RecordingSleep:
    """Zero-delay sleep that remembers what it was asked to wait."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)
        await asyncio.sleep(0)


# === Fixtures ===

@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def retry(sleeper):
    return RetryPolicy(sleep=sleeper)


@pytest.fixture
def config():
    return AutomationConfig(
        undercut_amount=1,
        min_profit_threshold=100,
        action_delay_ms=300,
        agent_delay_ms=1200,
        debug_logs=False,
    )


@pytest.fixture
def fake_target():
    return FakeTarget(agent_count=2)


@pytest.fixture
def ctx(fake_target, config, retry):
    return AutomationContext(target=fake_target, config=config, retry=retry)


@pytest.fixture
def token():
    return RunToken()


@pytest.fixture
def status_events(ctx):
    events: List[str] = []
    ctx.add_listener(events.append)
    return events


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "workflow: Listing, vendoring and repricing workflow tests")
    config.addinivalue_line("markers", "scheduler: Multi-agent scheduling tests")
    config.addinivalue_line("markers", "pricing: Market price and profitability tests")
    config.addinivalue_line("markers", "resilience: Failure, cancellation and recovery tests")
