# inventory/__init__.py
"""
inventory - Multi-account cloud resource inventory

Collects resources from many cloud accounts concurrently, normalizes them
into one schema, keeps them in a store that tolerates partial failures, and
serves filtered, paginated queries and summaries.

Architecture:
    inventory/
    ├── auth/           # accounts and credential providers
    ├── parallel/       # fan-out executor, retries, rate limiting
    ├── collector/      # fetchers, normalizer, per-account snapshots
    ├── store/          # partitioned resource set, merge, JSON persistence
    ├── query/          # filters, pagination, summaries
    ├── service.py      # InventoryService facade
    ├── config.py       # settings and environment helpers
    └── exceptions.py   # exception hierarchy

Usage:
    from inventory import InventoryService, ResourceFilter
    from inventory.auth import ChainCredentialProvider, YamlAccountSource
    from inventory.collector import Collector

    service = InventoryService(
        YamlAccountSource("accounts.yaml"),
        Collector(ChainCredentialProvider()),
    )
    report = service.refresh()
    page = service.query(ResourceFilter(search="prod", limit=20))
"""

from .config import __version__
from .query import QueryResult, ResourceFilter, Summary
from .service import ALL_ACCOUNTS, InventoryService
from .store import ResourceStore

__all__ = [
    "__version__",
    "InventoryService",
    "ALL_ACCOUNTS",
    "ResourceStore",
    "ResourceFilter",
    "QueryResult",
    "Summary",
]
