"""
inventory/collector/fetchers/ecs.py - ECS clusters
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from inventory.parallel import get_client

if TYPE_CHECKING:
    from boto3 import Session

# DescribeClusters accepts at most 100 clusters per call
DESCRIBE_BATCH_SIZE = 100


def fetch_clusters(session: "Session", region: str) -> list[dict[str, Any]]:
    """ListClusters + DescribeClusters (with tags)"""
    ecs = get_client(session, "ecs", region_name=region)

    arns: list[str] = []
    for page in ecs.get_paginator("list_clusters").paginate():
        arns.extend(page.get("clusterArns", []))

    clusters = []
    for i in range(0, len(arns), DESCRIBE_BATCH_SIZE):
        response = ecs.describe_clusters(clusters=arns[i : i + DESCRIBE_BATCH_SIZE], include=["TAGS"])
        clusters.extend(response.get("clusters", []))
    return clusters
