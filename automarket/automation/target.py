"""
TargetSystem: the contract the sell engine needs from the driven application.

Every method is keyed by something stable (agent index, location, item id,
surface name). Implementations must re-acquire whatever live handle they need
on each call and never hand one back to the engine.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from automarket.core.models import ListedItem, Location
from .actions import Surface, SurfaceAction, invoke_labeled_action


class TargetSystem(ABC):
    """
    Abstract base class for target application bindings.

    All calls may be slow; the engine wraps the ones that depend on a surface
    appearing in RetryPolicy polls.
    """

    # ========================================================================
    # Agents
    # ========================================================================

    @abstractmethod
    async def query_agent_count(self) -> int:
        """Number of usable agents."""
        pass

    @abstractmethod
    async def query_agent_listing_count(self, index: int) -> int:
        """Current number of marketplace listings held by an agent."""
        pass

    @abstractmethod
    async def open_agent(self, index: int) -> bool:
        """Send the open/select request for an agent from the agent list."""
        pass

    @abstractmethod
    async def close_agent(self):
        """Dismiss the agent, returning to the agent list."""
        pass

    async def select_sell_action(self) -> bool:
        """Pick "sell items from inventory" on the agent's selection menu."""
        return await invoke_labeled_action(self, SurfaceAction.SELL_FROM_INVENTORY)

    # ========================================================================
    # Surfaces and actions
    # ========================================================================

    @abstractmethod
    async def is_surface_ready(self, surface: Surface) -> bool:
        """True when the named surface is open and accepting input."""
        pass

    @abstractmethod
    async def close_surface(self, surface: Surface) -> bool:
        """Close the named surface. False if it was not open."""
        pass

    @abstractmethod
    async def open_interaction_surface(self, location: Location) -> bool:
        """Open the context menu for the stack at a location."""
        pass

    @abstractmethod
    async def find_action_by_label(
        self,
        candidate_labels: List[str],
        exclude_labels: Optional[List[str]] = None,
    ) -> Optional[int]:
        """
        Index of the first menu entry matching a candidate label.

        Entries that match one of exclude_labels belong to another action and
        are skipped unless they equal a candidate. actions.match_label does this.
        """
        pass

    @abstractmethod
    async def invoke_action(self, index: int):
        """Invoke the menu entry at index."""
        pass

    @abstractmethod
    async def confirm_dialog_if_present(self) -> bool:
        """Accept a yes/no dialog if one is showing."""
        pass

    # ========================================================================
    # Selling
    # ========================================================================

    @abstractmethod
    async def open_price_comparison(self) -> bool:
        """Open the competing-price view from the sell dialog."""
        pass

    @abstractmethod
    async def query_lowest_competing_price(self, item_id: int, is_hq: bool) -> int:
        """Lowest competing unit price on the comparison view, 0 if none."""
        pass

    @abstractmethod
    async def submit_price_and_quantity(self, price: int, quantity: int) -> bool:
        """Fill the sell dialog and confirm it."""
        pass

    @abstractmethod
    async def submit_price(self, price: int) -> bool:
        """Set a new price on an existing listing and confirm it."""
        pass

    # ========================================================================
    # Stock
    # ========================================================================

    @abstractmethod
    async def query_quantity_at(self, location: Location, item_id: int) -> int:
        """Quantity of item_id at location, 0 if empty or holding another item."""
        pass

    @abstractmethod
    async def find_next_location_of_item(
        self, item_id: int, after: Optional[Location] = None
    ) -> Optional[Location]:
        """Next non-empty stack of item_id strictly after `after` (or from the start)."""
        pass

    # ========================================================================
    # Existing listings
    # ========================================================================

    @abstractmethod
    async def query_listed_items(self, agent_index: int) -> List[ListedItem]:
        """Listings currently held by an agent."""
        pass

    @abstractmethod
    async def open_listing(self, slot_index: int) -> bool:
        """Open the context menu for an existing listing."""
        pass
