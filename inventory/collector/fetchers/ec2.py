"""
inventory/collector/fetchers/ec2.py - EC2 instances and VPCs

Fetchers return provider-native records; errors propagate to the collector.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from inventory.parallel import get_client

if TYPE_CHECKING:
    from boto3 import Session


def fetch_instances(session: "Session", region: str) -> list[dict[str, Any]]:
    """DescribeInstances, flattened across reservations"""
    ec2 = get_client(session, "ec2", region_name=region)
    paginator = ec2.get_paginator("describe_instances")

    instances = []
    for page in paginator.paginate():
        for reservation in page.get("Reservations", []):
            instances.extend(reservation.get("Instances", []))
    return instances


def fetch_vpcs(session: "Session", region: str) -> list[dict[str, Any]]:
    """DescribeVpcs, each VPC annotated with its subnet ids under "Subnets"

    Args:
        session: boto3 Session
        region: Region to describe

    Returns:
        VPC records
    """
    ec2 = get_client(session, "ec2", region_name=region)

    subnets: dict[str, list[str]] = {}
    for page in ec2.get_paginator("describe_subnets").paginate():
        for subnet in page.get("Subnets", []):
            subnets.setdefault(subnet.get("VpcId", ""), []).append(subnet.get("SubnetId", ""))

    vpcs = []
    for page in ec2.get_paginator("describe_vpcs").paginate():
        for vpc in page.get("Vpcs", []):
            vpcs.append({**vpc, "Subnets": sorted(subnets.get(vpc.get("VpcId", ""), []))})
    return vpcs
