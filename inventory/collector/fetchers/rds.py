"""
inventory/collector/fetchers/rds.py - RDS DB instances
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from inventory.parallel import get_client

if TYPE_CHECKING:
    from boto3 import Session


def fetch_db_instances(session: "Session", region: str) -> list[dict[str, Any]]:
    """DescribeDBInstances (TagList is part of the response)"""
    rds = get_client(session, "rds", region_name=region)
    paginator = rds.get_paginator("describe_db_instances")

    instances = []
    for page in paginator.paginate():
        instances.extend(page.get("DBInstances", []))
    return instances
