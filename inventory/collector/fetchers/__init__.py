"""
inventory/collector/fetchers - Service fetchers

A Fetcher pairs a resource type with a callable that lists the
provider-native records of that type in one region:

    func(session, region) -> list[dict]

Fetchers raise on failure; the collector turns the exception into a
CollectionError for that type.

Usage:
    from inventory.collector.fetchers import Fetcher, default_fetchers

    fetchers = default_fetchers() + [Fetcher("queue", "sqs", fetch_queues)]
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from inventory.collector.types import ResourceType

from . import ec2, ecs, eks, rds, s3

if TYPE_CHECKING:
    from boto3 import Session

FetchFunc = Callable[["Session", str], list[dict[str, Any]]]


@dataclass(frozen=True)
class Fetcher:
    """One registered fetcher

    Attributes:
        resource_type: Type of the records it returns
        service: Provider service name (rate limiting, logs)
        func: (session, region) -> list of provider-native records
    """

    resource_type: str
    service: str
    func: FetchFunc

    def __call__(self, session: "Session", region: str) -> list[dict[str, Any]]:
        return self.func(session, region)


def default_fetchers() -> list[Fetcher]:
    """The built-in AWS fetchers, one per ResourceType"""
    return [
        Fetcher(ResourceType.COMPUTE.value, "ec2", ec2.fetch_instances),
        Fetcher(ResourceType.DATABASE.value, "rds", rds.fetch_db_instances),
        Fetcher(ResourceType.OBJECT_STORE.value, "s3", s3.fetch_buckets),
        Fetcher(ResourceType.CONTAINER_SERVICE.value, "ecs", ecs.fetch_clusters),
        Fetcher(ResourceType.CONTAINER_CLUSTER.value, "eks", eks.fetch_clusters),
        Fetcher(ResourceType.NETWORK.value, "ec2", ec2.fetch_vpcs),
    ]


__all__ = ["Fetcher", "FetchFunc", "default_fetchers"]
