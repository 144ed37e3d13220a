"""Fleet node references and the network profile used for scope inference."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from .endpoint import ServiceAdvertisement
from .type_aliases import (
    AttributeMap,
    AttributeValue,
    CloudProviderId,
    CloudRegionId,
    ClusterId,
    DataCenterId,
    EnvironmentId,
    JsonDict,
    NodeId,
    ServiceName,
)

EC2_PROVIDER: CloudProviderId = "ec2"

_ZONE_SUFFIX_RE = re.compile(r"(\d+).+")


def region_from_zone(zone: str | None) -> CloudRegionId | None:
    """Strip the availability-zone suffix: ``us-east-1b`` -> ``us-east-1``."""
    if not zone:
        return None
    return _ZONE_SUFFIX_RE.sub(r"\1", zone, count=1)


def nested_attribute(payload: AttributeMap, *path: str) -> AttributeValue:
    current: AttributeValue = payload
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _text(value: AttributeValue) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _index_value(value: AttributeValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten_attributes(payload: AttributeMap) -> dict[str, set[str]]:
    """Flatten nested attributes into an underscore-joined search index.

    Mapping keys are indexed as values of their parent path, so
    ``{"announced_services": {"db": {...}}}`` matches
    ``announced_services:db`` as well as ``announced_services_db_cluster:x``.
    """
    index: dict[str, set[str]] = {}

    def _walk(prefix: str, value: AttributeValue) -> None:
        if isinstance(value, Mapping):
            for key, item in value.items():
                key_text = str(key)
                if prefix:
                    index.setdefault(prefix, set()).add(key_text)
                _walk(f"{prefix}_{key_text}" if prefix else key_text, item)
        elif isinstance(value, (list, tuple, set, frozenset)):
            for item in value:
                _walk(prefix, item)
        elif value is not None and prefix:
            index.setdefault(prefix, set()).add(_index_value(value))

    _walk("", payload)
    return index


@dataclass(frozen=True, slots=True)
class NodeNetworkProfile:
    """Read-only view of the node attributes that matter for matching."""

    node_id: NodeId
    cluster: ClusterId | None = None
    environment: EnvironmentId | None = None
    data_center: DataCenterId | None = None
    cloud_provider: CloudProviderId | None = None
    cloud_region: CloudRegionId | None = None

    @classmethod
    def from_attributes(cls, payload: AttributeMap) -> NodeNetworkProfile:
        zone = _text(nested_attribute(payload, "ec2", "placement_availability_zone"))
        region = region_from_zone(zone) or _text(
            nested_attribute(payload, "cloud", "region")
        )
        return cls(
            node_id=str(payload.get("name", "")),
            cluster=_text(payload.get("cluster")),
            environment=_text(
                payload.get("chef_environment", payload.get("environment"))
            ),
            data_center=_text(payload.get("data_center")),
            cloud_provider=_text(nested_attribute(payload, "cloud", "provider")),
            cloud_region=region,
        )


@dataclass(eq=False, slots=True)
class FleetNode:
    """A machine in the fleet as returned by search.

    Nodes compare equal by name; the attribute map is whatever the
    inventory holds for the node and is kept verbatim.
    """

    name: NodeId
    attributes: dict[str, AttributeValue] = field(default_factory=dict)
    announced_services: dict[ServiceName, ServiceAdvertisement] = field(
        default_factory=dict
    )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FleetNode):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    @property
    def profile(self) -> NodeNetworkProfile:
        return NodeNetworkProfile.from_attributes({**self.attributes, "name": self.name})

    def advertisement(self, service: ServiceName) -> ServiceAdvertisement | None:
        return self.announced_services.get(str(service))

    def to_attributes(self) -> JsonDict:
        payload: JsonDict = {"name": self.name}
        payload.update(self.attributes)
        payload["announced_services"] = {
            name: advertisement.to_dict()
            for name, advertisement in self.announced_services.items()
        }
        return payload

    def flattened_attributes(self) -> dict[str, set[str]]:
        return flatten_attributes(self.to_attributes())

    @classmethod
    def from_attributes(cls, payload: AttributeMap) -> FleetNode:
        name = _text(payload.get("name"))
        if name is None:
            raise ValueError("Node attributes must include a name")
        services = payload.get("announced_services") or {}
        if not isinstance(services, Mapping):
            raise ValueError(f"announced_services for {name} must be a mapping")
        return cls(
            name=name,
            attributes={
                str(key): value
                for key, value in payload.items()
                if key not in ("name", "announced_services")
            },
            announced_services={
                str(service): ServiceAdvertisement.from_dict(data)
                for service, data in services.items()
                if isinstance(data, Mapping)
            },
        )
