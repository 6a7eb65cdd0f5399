"""
Stock catalog and sell queues.

The catalog holds the scanned items; the queue is the per-run backlog split
into items to list and items to vendor.
"""

import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Tuple

from .config import AutomationConfig
from .models import StockItem

logger = logging.getLogger(__name__)


class StockCatalog:
    """
    Scanned stock, merged by (item_id, is_hq).

    Merged entries keep the location of the first stack seen; the listing
    workflow finds later stacks on its own.
    """

    def __init__(self, items: Optional[Iterable[StockItem]] = None, config: Optional[AutomationConfig] = None):
        self.config = config or AutomationConfig()
        self._items: List[StockItem] = []
        self._by_key: Dict[Tuple[int, bool], StockItem] = {}
        for item in items or []:
            self.add_stack(item)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    @property
    def items(self) -> List[StockItem]:
        return list(self._items)

    def add_stack(self, item: StockItem) -> bool:
        """Add a scanned stack. Returns False if it was filtered out."""
        if item.quantity <= 0:
            return False
        if item.item_id in self.config.ignored_item_ids:
            logger.debug(f"Skipping ignored item {item.label}")
            return False
        if item.is_hq and self.config.skip_hq_items:
            logger.debug(f"Skipping HQ item {item.label}")
            return False

        existing = self._by_key.get(item.key)
        if existing:
            existing.quantity += item.quantity
            return True

        self._by_key[item.key] = item
        self._items.append(item)
        return True

    def sort_by_profit(self):
        self._items.sort(key=lambda i: i.total_profit, reverse=True)

    def profitable(self) -> List[StockItem]:
        return [i for i in self._items if i.is_profitable]

    def unprofitable(self) -> List[StockItem]:
        return [i for i in self._items if not i.is_profitable]

    def build_queues(self, config: Optional[AutomationConfig] = None) -> "SellQueue":
        """Partition the catalog into a SellQueue according to the run mode."""
        config = config or self.config
        to_list: List[StockItem] = []
        to_vendor: List[StockItem] = []

        if config.list_only_mode:
            to_list = self.items
            logger.info(f"List Only Mode enabled - will list all {len(to_list)} items")
        elif config.vendor_only_mode:
            to_vendor = self.items
            logger.info(f"Vendor Only Mode enabled - will vendor all {len(to_vendor)} items")
        else:
            to_list = self.profitable()
            to_vendor = self.unprofitable()

        # Unlistable items can only be vendored
        forced = [i for i in to_list if not i.can_be_listed_on_market]
        if forced:
            logger.info(f"{len(forced)} items cannot be listed, routing to vendor")
            to_list = [i for i in to_list if i.can_be_listed_on_market]
            to_vendor = to_vendor + forced

        return SellQueue(to_list, to_vendor)


class SellQueue:
    """Two FIFO backlogs, consumed destructively by the scheduler."""

    def __init__(self, to_list: Iterable[StockItem] = (), to_vendor: Iterable[StockItem] = ()):
        self.to_list: Deque[StockItem] = deque(to_list)
        self.to_vendor: Deque[StockItem] = deque(to_vendor)

    def __len__(self) -> int:
        return len(self.to_list) + len(self.to_vendor)

    @property
    def empty(self) -> bool:
        return not self.to_list and not self.to_vendor

    def __repr__(self) -> str:
        return f"SellQueue(to_list={len(self.to_list)}, to_vendor={len(self.to_vendor)})"
