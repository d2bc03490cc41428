"""
inventory/collector/fetchers/eks.py - EKS clusters
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from inventory.parallel import get_client

if TYPE_CHECKING:
    from boto3 import Session


def fetch_clusters(session: "Session", region: str) -> list[dict[str, Any]]:
    """ListClusters + DescribeCluster, each annotated with "nodegroups" """
    eks = get_client(session, "eks", region_name=region)

    clusters = []
    for page in eks.get_paginator("list_clusters").paginate():
        for name in page.get("clusters", []):
            cluster = eks.describe_cluster(name=name).get("cluster", {})

            nodegroups: list[str] = []
            for ng_page in eks.get_paginator("list_nodegroups").paginate(clusterName=name):
                nodegroups.extend(ng_page.get("nodegroups", []))

            clusters.append({**cluster, "nodegroups": nodegroups})
    return clusters
