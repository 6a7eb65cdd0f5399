"""
Shared Data Models for AutoMarket

All data models passed between the catalog, the workflows and the scheduler are
defined here so every component agrees on their shape.
"""

from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime


# ============== Enums ==============

class Container(int, Enum):
    """Stock containers, in the order they are searched for item stacks."""
    INVENTORY_1 = 0
    INVENTORY_2 = 1
    INVENTORY_3 = 2
    INVENTORY_4 = 3


# ============== Data Models ==============

@dataclass(frozen=True, order=True)
class Location:
    """
    Where a stack of an item sits: container plus slot.

    Locations are keys, not handles. They can go stale (the stack moved or was
    emptied) and must be re-read from the target before use.
    """
    container: Container
    slot: int

    def __str__(self) -> str:
        return f"{self.container.name} slot {self.slot}"


@dataclass
class StockItem:
    """A scanned item stack (or merged stacks) awaiting listing or vendoring."""
    item_id: int
    display_name: str
    quantity: int
    location: Location
    is_hq: bool = False
    vendor_price: int = 0
    listing_price: int = 0
    can_be_listed_on_market: bool = True

    # Pricing fields filled in by the profitability pass
    market_price: int = 0
    recent_sale_price: int = 0
    is_profitable: bool = False
    profit_per_item: int = 0
    total_profit: int = 0

    @property
    def key(self) -> tuple:
        return (self.item_id, self.is_hq)

    @property
    def label(self) -> str:
        name = self.display_name or f"Item#{self.item_id}"
        return f"{name} (HQ)" if self.is_hq else name

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "item_id": self.item_id,
            "display_name": self.display_name,
            "is_hq": self.is_hq,
            "quantity": self.quantity,
            "location": {"container": self.location.container.name, "slot": self.location.slot},
            "vendor_price": self.vendor_price,
            "listing_price": self.listing_price,
            "market_price": self.market_price,
            "recent_sale_price": self.recent_sale_price,
            "can_be_listed_on_market": self.can_be_listed_on_market,
            "is_profitable": self.is_profitable,
            "profit_per_item": self.profit_per_item,
            "total_profit": self.total_profit,
        }


@dataclass
class Agent:
    """A selling agent. `current_count` is a snapshot, re-query before deciding."""
    index: int
    capacity_cap: int = 20
    current_count: int = 0

    @property
    def available_slots(self) -> int:
        return max(0, self.capacity_cap - self.current_count)


@dataclass
class ListedItem:
    """An existing marketplace listing held by an agent."""
    slot_index: int
    item_id: int
    display_name: str
    quantity: int
    unit_price: int
    is_hq: bool = False


@dataclass
class RunSummary:
    """Aggregate outcome of one sell run."""
    total_items: int = 0
    items_listed: int = 0
    items_vendored: int = 0
    estimated_revenue: int = 0
    listings_repriced: int = 0
    items_dropped: int = 0
    cancelled: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    def record_listed(self, unit_price: int, quantity: int, completed: bool = True):
        self.estimated_revenue += unit_price * quantity
        if completed:
            self.items_listed += 1
        self.total_items = self.items_listed + self.items_vendored

    def mark_listed(self):
        """Count an item that has left the list queue after listing."""
        self.items_listed += 1
        self.total_items = self.items_listed + self.items_vendored

    def record_vendored(self, unit_price: int, quantity: int):
        self.items_vendored += 1
        self.estimated_revenue += unit_price * quantity
        self.total_items = self.items_listed + self.items_vendored

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at or datetime.now()
        return (end - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_items": self.total_items,
            "items_listed": self.items_listed,
            "items_vendored": self.items_vendored,
            "estimated_revenue": self.estimated_revenue,
            "listings_repriced": self.listings_repriced,
            "items_dropped": self.items_dropped,
            "cancelled": self.cancelled,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
        }
