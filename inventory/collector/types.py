"""
inventory/collector/types.py - Normalized resource and snapshot types

Standardized dataclasses shared by the collector, store and query layers.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any

from inventory.parallel.types import ErrorCategory


class ResourceType(str, Enum):
    """Built-in resource types

    Resource.resource_type is a plain string, so fetchers may register types
    beyond these.
    """

    COMPUTE = "compute"
    DATABASE = "database"
    OBJECT_STORE = "object-store"
    CONTAINER_SERVICE = "container-service"
    CONTAINER_CLUSTER = "container-cluster"
    NETWORK = "network"

    def __str__(self) -> str:
        return self.value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class Resource:
    """One normalized inventory record

    Attributes:
        identifier: Globally unique, stable id (provider ARN or constructed)
        native_id: Provider-native id (instance id, bucket name, ...)
        account_id: Owning account
        region: Region the resource lives in
        resource_type: ResourceType value or a custom type string
        name: Name tag, falling back to native_id
        tags: Tag mapping (possibly empty)
        status: Provider status string
        attributes: Type-specific fields
        created_at: Provider creation time, if known
        last_updated: Time of the merge that last wrote this record
    """

    identifier: str
    native_id: str
    account_id: str
    region: str
    resource_type: str
    name: str
    tags: Mapping[str, str] = field(default_factory=dict)
    status: str = "unknown"
    attributes: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    last_updated: datetime | None = None

    @property
    def partition_key(self) -> tuple[str, str]:
        """(account_id, resource_type) - the unit of merge and stale removal"""
        return (self.account_id, self.resource_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "native_id": self.native_id,
            "account_id": self.account_id,
            "region": self.region,
            "resource_type": self.resource_type,
            "name": self.name,
            "tags": dict(self.tags),
            "status": self.status,
            "attributes": dict(self.attributes),
            "created_at": _isoformat(self.created_at),
            "last_updated": _isoformat(self.last_updated),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Resource:
        """Inverse of to_dict()"""

        def parse(value: str | None) -> datetime | None:
            return datetime.fromisoformat(value) if value else None

        return cls(
            identifier=data["identifier"],
            native_id=data.get("native_id", ""),
            account_id=data["account_id"],
            region=data.get("region", ""),
            resource_type=data["resource_type"],
            name=data.get("name", ""),
            tags=dict(data.get("tags") or {}),
            status=data.get("status", "unknown"),
            attributes=dict(data.get("attributes") or {}),
            created_at=parse(data.get("created_at")),
            last_updated=parse(data.get("last_updated")),
        )


@dataclass(frozen=True)
class CollectionError:
    """One failed fetcher invocation

    Attributes:
        service: Resource type whose fetch failed
        region: Region of the fetch
        message: Error message
        timestamp: When the failure was recorded
        category: Error category
        error_code: Provider error code or exception class name
    """

    service: str
    region: str
    message: str
    timestamp: datetime = field(default_factory=_utcnow)
    category: ErrorCategory = ErrorCategory.UNKNOWN
    error_code: str = ""

    def __str__(self) -> str:
        return f"{self.service}/{self.region} [{self.category.value}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "service": self.service,
            "region": self.region,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "category": self.category.value,
            "error_code": self.error_code,
        }


@dataclass(frozen=True)
class DroppedRecord:
    """A provider record the normalizer rejected"""

    resource_type: str
    region: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"resource_type": self.resource_type, "region": self.region, "reason": self.reason}


@dataclass(frozen=True)
class CollectionSnapshot:
    """Everything one refresh attempt learned about one account

    Every attempted type has a ``resources`` entry; a failed type maps to an
    empty tuple and is listed in ``errors``. Never mutated after construction.
    """

    account_id: str
    collected_at: datetime
    resources: Mapping[str, tuple[Resource, ...]]
    errors: tuple[CollectionError, ...] = ()
    anomalies: tuple[DroppedRecord, ...] = ()

    def __post_init__(self):
        frozen = MappingProxyType({k: tuple(v) for k, v in self.resources.items()})
        object.__setattr__(self, "resources", frozen)

    @property
    def failed_types(self) -> set[str]:
        return {e.service for e in self.errors}

    @property
    def succeeded_types(self) -> set[str]:
        return set(self.resources) - self.failed_types

    @property
    def resource_count(self) -> int:
        return sum(len(items) for items in self.resources.values())

    def all_resources(self) -> list[Resource]:
        return [r for items in self.resources.values() for r in items]


@dataclass(frozen=True)
class AccountRefresh:
    """Refresh outcome for one account

    ``success`` is False only when the whole account failed (credentials,
    deadline, merge conflict); per-service failures are listed in ``errors``.
    """

    account_id: str
    success: bool
    resource_count: int = 0
    errors: tuple[CollectionError, ...] = ()
    anomalies: tuple[DroppedRecord, ...] = ()
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "account_id": self.account_id,
            "success": self.success,
            "resource_count": self.resource_count,
            "errors": [e.to_dict() for e in self.errors],
        }
        if self.anomalies:
            data["anomalies"] = [a.to_dict() for a in self.anomalies]
        if self.error:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class RefreshReport:
    """Outcome of a refresh over one or more accounts"""

    accounts: tuple[AccountRefresh, ...] = ()

    @property
    def failed_accounts(self) -> list[AccountRefresh]:
        return [a for a in self.accounts if not a.success]

    @property
    def total_resources(self) -> int:
        return sum(a.resource_count for a in self.accounts)

    @property
    def error_count(self) -> int:
        return sum(len(a.errors) for a in self.accounts) + len(self.failed_accounts)

    def get(self, account_id: str) -> AccountRefresh | None:
        for account in self.accounts:
            if account.account_id == account_id:
                return account
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"accounts": [a.to_dict() for a in self.accounts]}
