"""
inventory/collector/normalizer.py - Provider record -> Resource

Each resource type has a FieldMap describing where its id, ARN, tags, status
and type-specific attributes live in the provider-native record. Normalizing
never fails on partial data: missing optional fields get neutral defaults.
Only a record without its native id (or one that is not a mapping) is
rejected, with NormalizationAnomaly.

Usage:
    resource = normalize(instance_dict, "111111111111", "us-east-1", ResourceType.COMPUTE)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from inventory.config import settings
from inventory.exceptions import NormalizationAnomaly

from .types import Resource, ResourceType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldMap:
    """Where a resource type keeps its fields

    Paths are dotted ("State.Name"). ``arn_template`` builds the identifier
    when the record carries no ARN; it may use {region}, {account_id} and
    {native_id}.

    Attributes:
        id_key: Path of the required native id
        arn_template: Identifier template used when no ARN is present
        arn_key: Path of the provider ARN, if the provider supplies one
        tags_key: Path of the tag collection
        status_key: Path of the status string
        default_status: Status when the record has none
        created_key: Path of the creation time
        region_key: Path of a record-level region overriding the fetch region
        attributes: Attribute name -> (path, neutral default)
    """

    id_key: str
    arn_template: str
    arn_key: str | None = None
    tags_key: str | None = None
    status_key: str | None = None
    default_status: str = "unknown"
    created_key: str | None = None
    region_key: str | None = None
    attributes: Mapping[str, tuple[str, Any]] = field(default_factory=dict)


FIELD_MAPS: dict[str, FieldMap] = {
    ResourceType.COMPUTE.value: FieldMap(
        id_key="InstanceId",
        arn_template="arn:aws:ec2:{region}:{account_id}:instance/{native_id}",
        tags_key="Tags",
        status_key="State.Name",
        created_key="LaunchTime",
        attributes={
            "instance_type": ("InstanceType", ""),
            "state": ("State.Name", ""),
            "public_ip": ("PublicIpAddress", ""),
            "private_ip": ("PrivateIpAddress", ""),
            "vpc_id": ("VpcId", ""),
            "subnet_id": ("SubnetId", ""),
            "availability_zone": ("Placement.AvailabilityZone", ""),
            "platform": ("PlatformDetails", ""),
        },
    ),
    ResourceType.DATABASE.value: FieldMap(
        id_key="DBInstanceIdentifier",
        arn_key="DBInstanceArn",
        arn_template="arn:aws:rds:{region}:{account_id}:db:{native_id}",
        tags_key="TagList",
        status_key="DBInstanceStatus",
        created_key="InstanceCreateTime",
        attributes={
            "engine": ("Engine", ""),
            "engine_version": ("EngineVersion", ""),
            "db_instance_class": ("DBInstanceClass", ""),
            "allocated_storage": ("AllocatedStorage", 0),
            "endpoint": ("Endpoint.Address", ""),
            "port": ("Endpoint.Port", 0),
            "multi_az": ("MultiAZ", False),
        },
    ),
    ResourceType.OBJECT_STORE.value: FieldMap(
        id_key="Name",
        # bucket names are globally unique
        arn_template="arn:aws:s3:::{native_id}",
        tags_key="Tags",
        default_status="active",
        created_key="CreationDate",
        region_key="Region",
        attributes={
            "bucket_name": ("Name", ""),
            "versioning": ("Versioning", False),
            "encryption": ("Encryption", False),
        },
    ),
    ResourceType.CONTAINER_SERVICE.value: FieldMap(
        id_key="clusterName",
        arn_key="clusterArn",
        arn_template="arn:aws:ecs:{region}:{account_id}:cluster/{native_id}",
        tags_key="tags",
        status_key="status",
        attributes={
            "cluster_name": ("clusterName", ""),
            "running_count": ("runningTasksCount", 0),
            "pending_count": ("pendingTasksCount", 0),
            "active_services_count": ("activeServicesCount", 0),
            "registered_instances": ("registeredContainerInstancesCount", 0),
        },
    ),
    ResourceType.CONTAINER_CLUSTER.value: FieldMap(
        id_key="name",
        arn_key="arn",
        arn_template="arn:aws:eks:{region}:{account_id}:cluster/{native_id}",
        tags_key="tags",
        status_key="status",
        created_key="createdAt",
        attributes={
            "cluster_name": ("name", ""),
            "version": ("version", ""),
            "endpoint": ("endpoint", ""),
            "platform_version": ("platformVersion", ""),
            "node_groups": ("nodegroups", []),
        },
    ),
    ResourceType.NETWORK.value: FieldMap(
        id_key="VpcId",
        arn_template="arn:aws:ec2:{region}:{account_id}:vpc/{native_id}",
        tags_key="Tags",
        status_key="State",
        attributes={
            "cidr_block": ("CidrBlock", ""),
            "state": ("State", ""),
            "is_default": ("IsDefault", False),
            "subnets": ("Subnets", []),
        },
    ),
}


def register_field_map(resource_type: str, field_map: FieldMap) -> None:
    """Register (or replace) the field map of a resource type"""
    FIELD_MAPS[str(resource_type)] = field_map


# =============================================================================
# Field helpers
# =============================================================================


def _dig(record: Mapping[str, Any], path: str | None) -> Any:
    if not path:
        return None
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def _coerce(value: Any, default: Any) -> Any:
    """Coerce a provider value to the type of its neutral default"""
    if value is None:
        return list(default) if isinstance(default, list) else default
    if isinstance(default, bool):
        return value if isinstance(value, bool) else default
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            return default
    if isinstance(default, list):
        return [str(v) for v in value] if isinstance(value, (list, tuple)) else default
    if isinstance(default, str):
        return value if isinstance(value, str) else str(value)
    return value


def _parse_time(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def extract_tags(raw: Any) -> dict[str, str]:
    """Convert provider tag representations to a flat mapping

    Accepts [{"Key": k, "Value": v}], [{"key": k, "value": v}] and plain
    mappings. Anything else yields {}. Tags without a key or value are skipped.
    """
    if not raw:
        return {}

    pairs: list[tuple[Any, Any]] = []
    if isinstance(raw, Mapping):
        pairs = list(raw.items())
    elif isinstance(raw, (list, tuple)):
        for tag in raw:
            if not isinstance(tag, Mapping):
                continue
            key = tag.get("Key", tag.get("key"))
            value = tag.get("Value", tag.get("value"))
            pairs.append((key, value))
    else:
        return {}

    return {str(k): str(v) for k, v in pairs if k and v is not None and v != ""}


def build_identifier(field_map: FieldMap, native_id: str, account_id: str, region: str) -> str:
    """Deterministic global identifier for a record without an ARN"""
    return field_map.arn_template.format(region=region, account_id=account_id, native_id=native_id)


# =============================================================================
# Normalize
# =============================================================================


def normalize(
    record: Any,
    account_id: str,
    region: str,
    resource_type: str,
) -> Resource:
    """Map one provider-native record to a Resource

    Args:
        record: Provider-native record (dict)
        account_id: Owning account
        region: Region the record was fetched from
        resource_type: Resource type the record belongs to

    Returns:
        Resource (last_updated is left unset; the store stamps it on merge)

    Raises:
        NormalizationAnomaly: Record is not a mapping or lacks its native id
        KeyError: No field map is registered for the resource type
    """
    resource_type = str(resource_type)
    field_map = FIELD_MAPS[resource_type]

    if not isinstance(record, Mapping):
        raise NormalizationAnomaly(resource_type, f"record is {type(record).__name__}, not a mapping", record)

    native_id = _dig(record, field_map.id_key)
    if not isinstance(native_id, str) or not native_id:
        raise NormalizationAnomaly(resource_type, f"missing {field_map.id_key}", record)

    record_region = _dig(record, field_map.region_key)
    if isinstance(record_region, str) and record_region:
        region = record_region

    arn = _dig(record, field_map.arn_key)
    if isinstance(arn, str) and arn:
        identifier = arn
    else:
        identifier = build_identifier(field_map, native_id, account_id, region)

    tags = extract_tags(_dig(record, field_map.tags_key))
    status = _dig(record, field_map.status_key)

    return Resource(
        identifier=identifier,
        native_id=native_id,
        account_id=account_id,
        region=region,
        resource_type=resource_type,
        name=tags.get(settings.NAME_TAG) or native_id,
        tags=tags,
        status=str(status) if status not in (None, "") else field_map.default_status,
        attributes={name: _coerce(_dig(record, path), default) for name, (path, default) in field_map.attributes.items()},
        created_at=_parse_time(_dig(record, field_map.created_key)),
    )
