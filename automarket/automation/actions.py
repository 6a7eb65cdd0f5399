"""
Surface names and labelled actions.

Menu entries in the target application are matched by text, which varies by
client language and version. Each action kind has an ordered list of candidate
labels; resolve_action is the only place that does text matching.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class Surface(str, Enum):
    """Well-known surfaces of the target application."""
    AGENT_LIST = "RetainerList"
    SELECTION_MENU = "SelectString"
    SELL_LIST = "RetainerSellList"
    CONTEXT_MENU = "ContextMenu"
    SELL_DIALOG = "RetainerSell"
    PRICE_COMPARISON = "ItemSearchResult"
    CONFIRM_DIALOG = "SelectYesno"


class SurfaceAction(str, Enum):
    """Actions invoked by label."""
    SELL_FROM_INVENTORY = "sell_from_inventory"
    PUT_UP_FOR_SALE = "put_up_for_sale"
    SELL_TO_VENDOR = "sell_to_vendor"
    ADJUST_PRICE = "adjust_price"


# Candidates in priority order; the first matching label wins
ACTION_LABELS: Dict[SurfaceAction, List[str]] = {
    SurfaceAction.SELL_FROM_INVENTORY: [
        "Sell items in your inventory on the market",
        "Sell items in your inventory",
        "Sell items",
        "inventory on the market",
    ],
    SurfaceAction.PUT_UP_FOR_SALE: [
        "Put Up for Sale",
        "Put up for sale",
        "Sell items",
    ],
    SurfaceAction.SELL_TO_VENDOR: [
        "Have Retainer Sell Items",
        "Have retainer sell items",
        "Sell to vendor",
    ],
    SurfaceAction.ADJUST_PRICE: [
        "Adjust Price",
        "Adjust price",
    ],
}


# Actions that share a menu; a loose label of one must not land on the other
CONFLICTING_ACTIONS: Dict[SurfaceAction, List[SurfaceAction]] = {
    SurfaceAction.PUT_UP_FOR_SALE: [SurfaceAction.SELL_TO_VENDOR],
    SurfaceAction.SELL_TO_VENDOR: [SurfaceAction.PUT_UP_FOR_SALE],
}


def conflicting_labels(action: SurfaceAction) -> List[str]:
    labels: List[str] = []
    for other in CONFLICTING_ACTIONS.get(action, []):
        labels.extend(ACTION_LABELS.get(other, []))
    return labels


def register_labels(action: SurfaceAction, labels: List[str], prepend: bool = True):
    """Add client-specific labels, e.g. ones read from localized game data."""
    current = ACTION_LABELS.setdefault(action, [])
    new = [label for label in labels if label and label not in current]
    ACTION_LABELS[action] = new + current if prepend else current + new


def _matches(entry: str, needle: str) -> bool:
    return entry == needle or needle in entry


def match_label(
    entries: List[str],
    candidates: List[str],
    exclude: Optional[List[str]] = None,
) -> Optional[int]:
    """
    Index of the first entry matching a candidate.

    Candidates are tried in order; an entry matches on case-insensitive
    equality or containment. Entries matching an `exclude` label are skipped
    unless they equal one of the candidates exactly.
    """
    lowered = [(entry or "").lower() for entry in entries]
    own = {candidate.lower() for candidate in candidates}
    excluded = [label.lower() for label in exclude or [] if label]

    for candidate in candidates:
        needle = candidate.lower()
        for index, entry in enumerate(lowered):
            if not entry or not _matches(entry, needle):
                continue
            if entry not in own and any(_matches(entry, other) for other in excluded):
                continue
            return index
    return None


async def resolve_action(target, action: SurfaceAction) -> Optional[int]:
    """Find the index of an action on the currently open menu."""
    index = await target.find_action_by_label(
        ACTION_LABELS[action], exclude_labels=conflicting_labels(action)
    )
    if index is None:
        logger.warning(f"Could not find '{action.value}' option (tried {ACTION_LABELS[action]})")
    return index


async def invoke_labeled_action(target, action: SurfaceAction) -> bool:
    """Resolve and invoke an action. False if no label matched."""
    index = await resolve_action(target, action)
    if index is None:
        return False
    await target.invoke_action(index)
    logger.debug(f"Invoked '{action.value}' at index {index}")
    return True
