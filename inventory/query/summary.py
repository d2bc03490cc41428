"""
inventory/query/summary.py - Aggregate counts

Groups by the literal attribute value: "running" and "Running" are two
groups. Groups are ordered by count descending, then key ascending.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from inventory.collector.types import Resource


@dataclass(frozen=True)
class GroupCount:
    key: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "count": self.count}


@dataclass(frozen=True)
class Summary:
    """Counts over a filtered resource set"""

    total: int
    by_type: tuple[GroupCount, ...] = ()
    by_status: tuple[GroupCount, ...] = ()
    by_region: tuple[GroupCount, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_type": [g.to_dict() for g in self.by_type],
            "by_status": [g.to_dict() for g in self.by_status],
            "by_region": [g.to_dict() for g in self.by_region],
        }


def group_counts(resources: Iterable[Resource], key: Callable[[Resource], str]) -> tuple[GroupCount, ...]:
    counts = Counter(key(r) for r in resources)
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return tuple(GroupCount(k, c) for k, c in ordered)


def summarize(resources: Iterable[Resource]) -> Summary:
    items = list(resources)
    return Summary(
        total=len(items),
        by_type=group_counts(items, lambda r: r.resource_type),
        by_status=group_counts(items, lambda r: r.status),
        by_region=group_counts(items, lambda r: r.region),
    )
