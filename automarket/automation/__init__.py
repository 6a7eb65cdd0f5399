"""
Automation against the target application.

Modules:
- target: TargetSystem binding interface
- actions: surface names and label-resolved actions
- context: AutomationContext passed to every component
- agent_session: open/close one agent
- listing: batched listing with undercut pricing
- vendoring: one-shot vendor liquidation
- repricing: re-undercut existing listings
- scheduler: drains the sell queues across agents
- controller: start/stop/pause for a full cycle
"""

from .target import TargetSystem
from .actions import ACTION_LABELS, Surface, SurfaceAction, register_labels
from .context import AutomationContext
from .agent_session import AgentSession, SessionState
from .listing import ListingResult, ListingWorkflow, compute_listing_price
from .vendoring import VendoringWorkflow
from .repricing import RepricingWorkflow
from .scheduler import SellScheduler
from .controller import AutomationController

__all__ = [
    "TargetSystem",
    "ACTION_LABELS",
    "Surface",
    "SurfaceAction",
    "register_labels",
    "AutomationContext",
    "AgentSession",
    "SessionState",
    "ListingResult",
    "ListingWorkflow",
    "compute_listing_price",
    "VendoringWorkflow",
    "RepricingWorkflow",
    "SellScheduler",
    "AutomationController",
]
