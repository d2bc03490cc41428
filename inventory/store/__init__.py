"""
inventory/store - Persisted resource set

Usage:
    from inventory.store import ResourceStore

    store = ResourceStore.load(path)
    result = store.merge(snapshot)
    store.save(path)
"""

from .locks import KeyedLock
from .store import MergeResult, PartitionKey, ResourceStore

__all__ = [
    "ResourceStore",
    "MergeResult",
    "PartitionKey",
    "KeyedLock",
]
