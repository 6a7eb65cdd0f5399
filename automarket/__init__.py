"""
AutoMarket: sell-side automation for agent-run marketplace listings.

Packages:
- core: models, configuration, errors, retry/cancellation, catalog, logging
- automation: target binding, agent sessions, listing/vendoring/repricing
  workflows, the scheduler and the controller
- pricing: market price lookup and profitability evaluation
"""

__version__ = "1.0.0"
