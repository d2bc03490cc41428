"""
inventory/collector - Resource collection and normalization

Classes:
    - Collector: fans out fetchers per account and builds snapshots
    - CollectorConfig: timeouts, concurrency, deadline, retries
    - Fetcher: one resource type's provider call

Usage:
    from inventory.collector import Collector

    collector = Collector(credential_provider)
    snapshot = collector.collect(account)
    results = collector.collect_all(accounts)
"""

from .collector import Collector, CollectorConfig
from .fetchers import Fetcher, default_fetchers
from .normalizer import FIELD_MAPS, FieldMap, extract_tags, normalize, register_field_map
from .types import (
    AccountRefresh,
    CollectionError,
    CollectionSnapshot,
    DroppedRecord,
    RefreshReport,
    Resource,
    ResourceType,
)

__all__ = [
    # Collector
    "Collector",
    "CollectorConfig",
    "Fetcher",
    "default_fetchers",
    # Normalizer
    "normalize",
    "extract_tags",
    "FieldMap",
    "FIELD_MAPS",
    "register_field_map",
    # Types
    "Resource",
    "ResourceType",
    "CollectionError",
    "CollectionSnapshot",
    "DroppedRecord",
    "AccountRefresh",
    "RefreshReport",
]
