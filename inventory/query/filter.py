"""
inventory/query/filter.py - Resource filter

Matching rules:
- account_ids / regions / resource_types / statuses: OR within a field
- search: case-insensitive substring of name, native id or identifier
- populated fields are AND-ed; an empty filter matches everything
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from inventory.collector.types import Resource
from inventory.config import settings
from inventory.exceptions import ValidationError

# field name -> accepted parameter spellings
_LIST_PARAMS: dict[str, tuple[str, ...]] = {
    "account_ids": ("account_ids", "accountIds"),
    "regions": ("regions",),
    "resource_types": ("resource_types", "resourceTypes"),
    "statuses": ("statuses",),
}
_SCALAR_PARAMS = ("search", "limit", "offset")


def _as_frozenset(values: Iterable[str] | str | None) -> frozenset[str]:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        return frozenset({values})
    return frozenset(values)


@dataclass(frozen=True)
class ResourceFilter:
    """Filter and page over the resource set

    Attributes:
        account_ids: Owning accounts (any of)
        regions: Regions (any of)
        resource_types: Resource types (any of)
        statuses: Provider status strings (any of, exact match)
        search: Substring matched against name / native id / identifier
        limit: Page size
        offset: Items skipped before the page
    """

    account_ids: frozenset[str] = field(default_factory=frozenset)
    regions: frozenset[str] = field(default_factory=frozenset)
    resource_types: frozenset[str] = field(default_factory=frozenset)
    statuses: frozenset[str] = field(default_factory=frozenset)
    search: str | None = None
    limit: int = settings.DEFAULT_QUERY_LIMIT
    offset: int = 0

    def __post_init__(self):
        for name in _LIST_PARAMS:
            object.__setattr__(self, name, _as_frozenset(getattr(self, name)))
        if self.search == "":
            object.__setattr__(self, "search", None)

        _check_bound("limit", self.limit, settings.MAX_QUERY_LIMIT)
        _check_bound("offset", self.offset, None)

    @property
    def is_empty(self) -> bool:
        """True when no matching criteria are set (pagination aside)"""
        return not (self.account_ids or self.regions or self.resource_types or self.statuses or self.search)

    def matches(self, resource: Resource) -> bool:
        if self.account_ids and resource.account_id not in self.account_ids:
            return False
        if self.regions and resource.region not in self.regions:
            return False
        if self.resource_types and resource.resource_type not in self.resource_types:
            return False
        if self.statuses and resource.status not in self.statuses:
            return False
        if self.search:
            needle = self.search.casefold()
            haystacks = (resource.name, resource.native_id, resource.identifier)
            if not any(needle in (value or "").casefold() for value in haystacks):
                return False
        return True

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> ResourceFilter:
        """Build a filter from raw request-style parameters

        List fields accept a string or a list of strings. limit / offset
        accept integers or numeric strings.

        Raises:
            ValidationError: Unknown key, non-string value, or a
                non-numeric / negative / oversized limit or offset
        """
        aliases = {alias: name for name, spellings in _LIST_PARAMS.items() for alias in spellings}
        kwargs: dict[str, Any] = {}

        for key, value in params.items():
            if key in aliases:
                kwargs[aliases[key]] = _parse_strings(aliases[key], value)
            elif key == "search":
                if value is not None and not isinstance(value, str):
                    raise ValidationError("search", value, "a string")
                kwargs["search"] = value
            elif key in ("limit", "offset"):
                kwargs[key] = _parse_int(key, value)
            else:
                raise ValidationError(
                    str(key), value, f"one of {', '.join(sorted([*aliases, *_SCALAR_PARAMS]))}"
                )

        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_ids": sorted(self.account_ids),
            "regions": sorted(self.regions),
            "resource_types": sorted(self.resource_types),
            "statuses": sorted(self.statuses),
            "search": self.search,
            "limit": self.limit,
            "offset": self.offset,
        }


def _parse_strings(name: str, value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset({value})
    if isinstance(value, (list, tuple, set, frozenset)):
        for item in value:
            if not isinstance(item, str):
                raise ValidationError(name, item, "a string")
        return frozenset(value)
    raise ValidationError(name, value, "a string or a list of strings")


def _parse_int(name: str, value: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise ValidationError(name, value, "a non-negative integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as e:
            raise ValidationError(name, value, "a non-negative integer", cause=e) from e
    raise ValidationError(name, value, "a non-negative integer")


def _check_bound(name: str, value: Any, maximum: int | None) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(name, value, "a non-negative integer")
    if maximum is not None and value > maximum:
        raise ValidationError(name, value, f"at most {maximum}")
