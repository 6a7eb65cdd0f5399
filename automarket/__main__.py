#!/usr/bin/env python3
"""
AutoMarket CLI.

Usage:
    python -m automarket init-config --config automarket.yaml
    python -m automarket check-config --config automarket.yaml
    python -m automarket prices --stock stock.yaml --config automarket.yaml
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List

import yaml

from automarket.core.catalog import StockCatalog
from automarket.core.config import EXAMPLE_CONFIG_YAML, AutomationConfig, load_config
from automarket.core.errors import ConfigError
from automarket.core.logging_config import setup_logging
from automarket.core.models import Container, Location, StockItem
from automarket.pricing.profitability import evaluate_profitability
from automarket.pricing.universalis import MarketPriceClient


def stock_item_from_record(record: Dict[str, Any]) -> StockItem:
    """Build a StockItem from one entry of a stock YAML file."""
    container = record.get("container", Container.INVENTORY_1.name)
    return StockItem(
        item_id=int(record["item_id"]),
        display_name=record.get("name", ""),
        quantity=int(record.get("quantity", 1)),
        location=Location(Container[container], int(record.get("slot", 0))),
        is_hq=bool(record.get("hq", False)),
        vendor_price=int(record.get("vendor_price", 0)),
        can_be_listed_on_market=bool(record.get("marketable", True)),
    )


def load_stock(path: Path, config: AutomationConfig) -> StockCatalog:
    data = yaml.safe_load(Path(path).read_text()) or []
    if isinstance(data, dict):
        data = data.get("items", [])
    if not isinstance(data, list):
        raise ConfigError(f"Stock file {path} must contain a list of items")
    return StockCatalog((stock_item_from_record(r) for r in data), config)


def print_report(items: List[StockItem]):
    print(f"{'Item':<32} {'Qty':>5} {'Vendor':>8} {'Market':>8} {'List':>8} {'Profit':>10}  Action")
    print("-" * 86)
    for item in items:
        action = "list" if item.is_profitable and item.can_be_listed_on_market else "vendor"
        print(
            f"{item.label[:32]:<32} {item.quantity:>5} {item.vendor_price:>8,} {item.market_price:>8,} "
            f"{item.listing_price:>8,} {item.total_profit:>10,}  {action}"
        )


async def cmd_prices(args, config: AutomationConfig):
    catalog = load_stock(args.stock, config)
    if not len(catalog):
        print("No items in stock file")
        return

    client = MarketPriceClient.from_config(config)
    await client.price_items(catalog.items)
    ranked = evaluate_profitability(catalog.items, config)
    print_report(ranked)

    queue = catalog.build_queues(config)
    print(f"\n{len(queue.to_list)} to list, {len(queue.to_vendor)} to vendor")


def cmd_init_config(args):
    path = Path(args.config)
    if path.exists() and not args.force:
        print(f"{path} already exists (use --force to overwrite)")
        return 1
    path.write_text(EXAMPLE_CONFIG_YAML.lstrip())
    print(f"Wrote example config to {path}")
    return 0


def cmd_check_config(config: AutomationConfig):
    for key, value in config.to_dict().items():
        print(f"  {key}: {value}")
    print("Config OK")
    return 0


def main(argv=None):
    from dotenv import load_dotenv
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="AutoMarket sell engine tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Write an example config
  python -m automarket init-config --config automarket.yaml

  # Price a stock file and show what would be listed or vendored
  python -m automarket prices --stock stock.yaml --config automarket.yaml
        """
    )
    parser.add_argument("--config", default="automarket.yaml", help="Path to config YAML (default: automarket.yaml)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    init_parser = subparsers.add_parser("init-config", help="Write an example config file")
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing file")

    subparsers.add_parser("check-config", help="Load and validate the config file")

    prices_parser = subparsers.add_parser("prices", help="Fetch market prices for a stock file")
    prices_parser.add_argument("--stock", required=True, help="Path to stock YAML file")
    prices_parser.add_argument("--world", help="Override the configured world")

    args = parser.parse_args(argv)

    if args.command == "init-config":
        return cmd_init_config(args)
    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = load_config(Path(args.config))
    except ConfigError as e:
        print(f"Invalid config: {e}")
        return 1

    setup_logging(debug=args.debug or config.debug_logs)

    if args.command == "check-config":
        return cmd_check_config(config)
    if args.command == "prices":
        if args.world:
            config.world = args.world
        try:
            asyncio.run(cmd_prices(args, config))
        except ConfigError as e:
            print(f"Invalid stock file: {e}")
            return 1
        return 0

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
