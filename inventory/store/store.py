"""
inventory/store/store.py - Persisted resource set

Resources live in partitions keyed by (account_id, resource_type). A merge
builds a complete replacement partition and swaps it in with one assignment,
so readers see either the old or the new partition, never a mix.

Merge rules:
- types fetched successfully in the snapshot: partition replaced (upsert by
  identifier, absent identifiers removed)
- types that failed in the snapshot: partition left untouched
- merges of the same partition are serialized by a per-key lock; merges of
  different partitions run concurrently

The set can be saved to / loaded from a JSON file.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any

from inventory.collector.types import CollectionSnapshot, Resource
from inventory.exceptions import MergeConflict, StoreError

from .locks import KeyedLock

logger = logging.getLogger(__name__)

PartitionKey = tuple[str, str]

STORE_FORMAT_VERSION = 1


@dataclass(frozen=True)
class MergeResult:
    """What a merge changed for one account"""

    account_id: str
    upserted: int = 0
    removed: int = 0
    replaced_types: tuple[str, ...] = ()
    retained_types: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "upserted": self.upserted,
            "removed": self.removed,
            "replaced_types": list(self.replaced_types),
            "retained_types": list(self.retained_types),
        }


class ResourceStore:
    """Thread-safe resource set keyed by identifier

    Example:
        store = ResourceStore()
        store.merge(snapshot)
        compute = store.resources(account_ids={"111111111111"}, resource_types={"compute"})
        store.save(Path("inventory.json"))
    """

    def __init__(self):
        self._partitions: dict[PartitionKey, Mapping[str, Resource]] = {}
        self._owners: dict[str, PartitionKey] = {}
        self._last_sync: dict[str, datetime] = {}
        self._merge_locks = KeyedLock()
        # owner index and partition swaps; partitions are built outside it
        self._index_lock = threading.Lock()

    # =========================================================================
    # Merge
    # =========================================================================

    def merge(self, snapshot: CollectionSnapshot) -> MergeResult:
        """Merge a snapshot into the set

        Raises:
            MergeConflict: An identifier repeats inside the snapshot or is
                owned by another partition. Nothing is modified.
        """
        account_id = snapshot.account_id
        replaced_types = sorted(snapshot.succeeded_types)
        retained_types = tuple(sorted(snapshot.failed_types))
        keys: list[PartitionKey] = [(account_id, t) for t in replaced_types]

        with self._merge_locks.hold_many(keys):
            staged = {key: self._build_partition(key, snapshot) for key in keys}

            with self._index_lock:
                for key, partition in staged.items():
                    for identifier in partition:
                        owner = self._owners.get(identifier)
                        if owner is not None and owner != key:
                            raise MergeConflict(identifier, owner, key)

                upserted = removed = 0
                for key, partition in staged.items():
                    previous = self._partitions.get(key, {})
                    stale = [i for i in previous if i not in partition]
                    for identifier in stale:
                        self._owners.pop(identifier, None)
                    for identifier in partition:
                        self._owners[identifier] = key

                    if partition:
                        self._partitions[key] = MappingProxyType(partition)
                    else:
                        self._partitions.pop(key, None)

                    upserted += len(partition)
                    removed += len(stale)

                self._last_sync[account_id] = snapshot.collected_at

        result = MergeResult(
            account_id=account_id,
            upserted=upserted,
            removed=removed,
            replaced_types=tuple(replaced_types),
            retained_types=retained_types,
        )
        logger.info(
            f"[{account_id}] merged: {upserted} upserted, {removed} removed"
            + (f", kept previous data for {', '.join(retained_types)}" if retained_types else "")
        )
        return result

    def _build_partition(self, key: PartitionKey, snapshot: CollectionSnapshot) -> dict[str, Resource]:
        """Replacement partition for one key, stamped with the snapshot time"""
        partition: dict[str, Resource] = {}
        for resource in snapshot.resources.get(key[1], ()):
            if resource.partition_key != key:
                raise MergeConflict(resource.identifier, resource.partition_key, key)
            if resource.identifier in partition:
                raise MergeConflict(resource.identifier, None, key)
            partition[resource.identifier] = replace(resource, last_updated=snapshot.collected_at)
        return partition

    # =========================================================================
    # Read
    # =========================================================================

    def resources(
        self,
        account_ids: Iterable[str] | None = None,
        resource_types: Iterable[str] | None = None,
    ) -> list[Resource]:
        """Resources of the matching partitions (all when both are None)

        Partition keys act as the account / type index: only matching
        partitions are visited.
        """
        accounts = set(account_ids) if account_ids is not None else None
        types = set(resource_types) if resource_types is not None else None

        with self._index_lock:
            partitions = list(self._partitions.items())

        result: list[Resource] = []
        for (account_id, resource_type), partition in partitions:
            if accounts is not None and account_id not in accounts:
                continue
            if types is not None and resource_type not in types:
                continue
            result.extend(partition.values())
        return result

    def get(self, identifier: str) -> Resource | None:
        with self._index_lock:
            key = self._owners.get(identifier)
            if key is None:
                return None
            return self._partitions.get(key, {}).get(identifier)

    def last_sync(self, account_id: str) -> datetime | None:
        """Collection time of the account's last merged snapshot"""
        with self._index_lock:
            return self._last_sync.get(account_id)

    def partition_keys(self) -> list[PartitionKey]:
        with self._index_lock:
            return sorted(self._partitions)

    def __len__(self) -> int:
        with self._index_lock:
            return len(self._owners)

    def clear(self) -> None:
        with self._index_lock:
            self._partitions.clear()
            self._owners.clear()
            self._last_sync.clear()

    # =========================================================================
    # Persistence
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        with self._index_lock:
            partitions = list(self._partitions.values())
            last_sync = dict(self._last_sync)

        return {
            "version": STORE_FORMAT_VERSION,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "last_sync": {k: v.isoformat() for k, v in sorted(last_sync.items())},
            "resources": [r.to_dict() for partition in partitions for r in partition.values()],
        }

    def save(self, path: str | Path) -> None:
        """Write the set to a JSON file (atomic replace)"""
        path = Path(path)
        os.makedirs(path.parent, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False, default=str)
        os.replace(tmp_path, path)
        logger.debug(f"Saved {len(self)} resource(s) to {path}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ResourceStore:
        """Rebuild a store from to_dict() output

        Raises:
            MergeConflict: The data repeats an identifier
        """
        store = cls()
        for raw in data.get("resources", []):
            resource = Resource.from_dict(raw)
            key = resource.partition_key
            owner = store._owners.get(resource.identifier)
            if owner is not None:
                raise MergeConflict(resource.identifier, owner, key)

            partition = dict(store._partitions.get(key, {}))
            partition[resource.identifier] = resource
            store._partitions[key] = partition
            store._owners[resource.identifier] = key

        store._partitions = {k: MappingProxyType(dict(v)) for k, v in store._partitions.items()}
        store._last_sync = {k: datetime.fromisoformat(v) for k, v in data.get("last_sync", {}).items()}
        return store

    @classmethod
    def load(cls, path: str | Path) -> ResourceStore:
        """Load a store saved with save(); a missing file yields an empty store

        Raises:
            StoreError: The file is not a valid store document
        """
        path = Path(path)
        if not path.exists():
            return cls()
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise StoreError(str(path), "expected a JSON object")
            store = cls.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StoreError(str(path), "unreadable store file", cause=e) from e
        logger.debug(f"Loaded {len(store)} resource(s) from {path}")
        return store
