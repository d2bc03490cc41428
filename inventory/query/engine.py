"""
inventory/query/engine.py - Filtered, paginated reads over the store
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from inventory.collector.types import Resource
from inventory.store import ResourceStore

from .filter import ResourceFilter
from .summary import Summary, summarize

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class QueryResult:
    """One page of matching resources

    Attributes:
        resources: The page, most recently updated first
        total: Matching resources before pagination
        limit: Page size used
        offset: Offset used
        has_more: More matches exist past this page
    """

    resources: tuple[Resource, ...]
    total: int
    limit: int
    offset: int
    has_more: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "resources": [r.to_dict() for r in self.resources],
            "pagination": {
                "total": self.total,
                "limit": self.limit,
                "offset": self.offset,
                "has_more": self.has_more,
            },
        }


def sort_resources(resources: list[Resource]) -> list[Resource]:
    """last_updated descending, ties broken by identifier ascending"""
    ordered = sorted(resources, key=lambda r: r.identifier)
    ordered.sort(key=lambda r: r.last_updated or _NEVER, reverse=True)
    return ordered


class QueryEngine:
    """Read-only query interface over a ResourceStore

    Example:
        engine = QueryEngine(store)
        page = engine.query(ResourceFilter(search="prod", limit=20))
    """

    def __init__(self, store: ResourceStore):
        self._store = store

    def matching(self, resource_filter: ResourceFilter) -> list[Resource]:
        """All matches, unordered and unpaginated"""
        candidates = self._store.resources(
            account_ids=resource_filter.account_ids or None,
            resource_types=resource_filter.resource_types or None,
        )
        return [r for r in candidates if resource_filter.matches(r)]

    def query(self, resource_filter: ResourceFilter | None = None) -> QueryResult:
        resource_filter = resource_filter or ResourceFilter()
        matches = sort_resources(self.matching(resource_filter))

        start = resource_filter.offset
        page = matches[start : start + resource_filter.limit]
        return QueryResult(
            resources=tuple(page),
            total=len(matches),
            limit=resource_filter.limit,
            offset=resource_filter.offset,
            has_more=start + len(page) < len(matches),
        )

    def summarize(self, resource_filter: ResourceFilter | None = None) -> Summary:
        """Counts over every match; limit / offset are ignored"""
        return summarize(self.matching(resource_filter or ResourceFilter()))
