"""
Core components shared by every part of the sell engine.

Modules:
- models: StockItem, Location, Agent, ListedItem, RunSummary
- config: AutomationConfig with env/YAML loading
- errors: FailureReason and the exception taxonomy
- retry: RunToken and RetryPolicy
- catalog: StockCatalog and SellQueue
- logging_config: console/file logging setup
"""

from .models import Agent, Container, ListedItem, Location, RunSummary, StockItem
from .config import AutomationConfig, load_config, save_config
from .errors import (
    AutomationError, CapacityExceeded, ConfigError, FailureReason,
    LocationLost, RunCancelled, SubmitFailed, SurfaceNotReady,
)
from .retry import RetryPolicy, RunToken
from .catalog import SellQueue, StockCatalog
from .logging_config import setup_logging

__all__ = [
    "Agent",
    "Container",
    "ListedItem",
    "Location",
    "RunSummary",
    "StockItem",
    "AutomationConfig",
    "load_config",
    "save_config",
    "AutomationError",
    "CapacityExceeded",
    "ConfigError",
    "FailureReason",
    "LocationLost",
    "RunCancelled",
    "SubmitFailed",
    "SurfaceNotReady",
    "RetryPolicy",
    "RunToken",
    "SellQueue",
    "StockCatalog",
    "setup_logging",
]
