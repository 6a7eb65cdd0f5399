"""
Explicit context handed to every engine component.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from automarket.core.config import AutomationConfig
from automarket.core.logging_config import log_status
from automarket.core.retry import RetryPolicy
from .target import TargetSystem

logger = logging.getLogger(__name__)

StatusListener = Callable[[str], None]


@dataclass
class AutomationContext:
    """Target binding, configuration, retry policy and status sink for a run."""
    target: TargetSystem
    config: AutomationConfig = field(default_factory=AutomationConfig)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    listeners: List[StatusListener] = field(default_factory=list)

    def status(self, message: str):
        """Publish a status event to listeners and the status log."""
        log_status(message)
        for listener in list(self.listeners):
            try:
                listener(message)
            except Exception as e:
                logger.error(f"Status listener failed: {e}")

    def add_listener(self, listener: StatusListener):
        self.listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> Optional[StatusListener]:
        if listener in self.listeners:
            self.listeners.remove(listener)
            return listener
        return None
