"""
Automation Configuration

All tunables for a sell run live on AutomationConfig. Defaults can be
overridden from the environment (AUTOMARKET_*) and persisted as YAML.

Usage:
    from automarket.core.config import load_config
    config = load_config(Path("automarket.yaml"))
"""

import os
import logging
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Set

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() == "true"


@dataclass
class AutomationConfig:
    """Sell run configuration."""

    # === Market Settings ===
    undercut_amount: int = int(os.getenv("AUTOMARKET_UNDERCUT_AMOUNT", "1"))
    min_profit_threshold: int = int(os.getenv("AUTOMARKET_MIN_PROFIT_THRESHOLD", "100"))
    auto_undercut: bool = _env_bool("AUTOMARKET_AUTO_UNDERCUT", True)
    # Reuse the pre-computed listing price instead of comparing prices in-app
    precomputed_price_mode: bool = _env_bool("AUTOMARKET_PRECOMPUTED_PRICE_MODE", False)

    # === Automation Settings (milliseconds) ===
    action_delay_ms: int = int(os.getenv("AUTOMARKET_ACTION_DELAY_MS", "300"))
    agent_delay_ms: int = int(os.getenv("AUTOMARKET_AGENT_DELAY_MS", "1200"))
    max_listings_per_agent: int = 20
    max_batch_size: int = 99
    list_only_mode: bool = False
    vendor_only_mode: bool = False
    manage_listed_items: bool = False

    # === Filters ===
    skip_hq_items: bool = False
    ignored_item_ids: Set[int] = field(default_factory=set)

    # === Price Lookup ===
    world: str = os.getenv("AUTOMARKET_WORLD", "Excalibur")
    price_api_url: str = os.getenv("AUTOMARKET_PRICE_API_URL", "https://universalis.app/api/v2")

    # === Debug ===
    debug_logs: bool = _env_bool("AUTOMARKET_DEBUG", False)

    def validate(self) -> "AutomationConfig":
        if self.list_only_mode and self.vendor_only_mode:
            raise ConfigError("list_only_mode and vendor_only_mode are mutually exclusive")
        for name in ("undercut_amount", "min_profit_threshold", "action_delay_ms", "agent_delay_ms"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")
        if self.max_listings_per_agent < 1:
            raise ConfigError("max_listings_per_agent must be at least 1")
        if self.max_batch_size < 1:
            raise ConfigError("max_batch_size must be at least 1")
        return self

    def reset_to_defaults(self):
        defaults = AutomationConfig()
        for f in fields(self):
            setattr(self, f.name, getattr(defaults, f.name))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["ignored_item_ids"] = sorted(self.ignored_item_ids)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AutomationConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
        values = {k: v for k, v in data.items() if k in known}
        if "ignored_item_ids" in values:
            values["ignored_item_ids"] = {int(i) for i in values["ignored_item_ids"] or []}
        return cls(**values).validate()


def load_config(path: Optional[Path] = None) -> AutomationConfig:
    """Load configuration from YAML. A missing file yields defaults."""
    if path is None or not Path(path).exists():
        if path is not None:
            logger.info(f"Config file {path} not found, using defaults")
        return AutomationConfig().validate()

    data = yaml.safe_load(Path(path).read_text()) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return AutomationConfig.from_dict(data)


def save_config(config: AutomationConfig, path: Path):
    """Persist configuration as YAML."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(config.to_dict(), sort_keys=False))
    logger.info(f"Config saved to {path}")


EXAMPLE_CONFIG_YAML = """
undercut_amount: 1
min_profit_threshold: 100
auto_undercut: true
precomputed_price_mode: false

action_delay_ms: 300
agent_delay_ms: 1200
list_only_mode: false
vendor_only_mode: false
manage_listed_items: false

skip_hq_items: false
ignored_item_ids: []

world: "Excalibur"
debug_logs: false
"""
