"""
inventory/collector/fetchers/s3.py - S3 buckets

ListBuckets is global; each bucket's region comes from GetBucketLocation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from botocore.exceptions import ClientError

from inventory.parallel import get_client

if TYPE_CHECKING:
    from boto3 import Session

logger = logging.getLogger(__name__)

# LocationConstraint values that do not name the region directly
_LEGACY_LOCATIONS = {None: "us-east-1", "": "us-east-1", "EU": "eu-west-1"}


def fetch_buckets(session: "Session", region: str) -> list[dict[str, Any]]:
    """ListBuckets, each bucket annotated with "Region"

    A bucket whose location cannot be read keeps the fetch region instead of
    being dropped, so one unreadable bucket never looks like a deleted one.
    """
    s3 = get_client(session, "s3", region_name=region)
    response = s3.list_buckets()

    buckets = []
    for bucket in response.get("Buckets", []):
        name = bucket.get("Name")
        if not name:
            buckets.append(bucket)
            continue

        try:
            location = s3.get_bucket_location(Bucket=name).get("LocationConstraint")
            bucket_region = _LEGACY_LOCATIONS.get(location, location)
        except ClientError as e:
            logger.warning(f"Bucket location unavailable for {name}: {e}")
            bucket_region = region

        buckets.append({**bucket, "Region": bucket_region})
    return buckets
