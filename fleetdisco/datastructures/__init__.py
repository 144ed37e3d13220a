"""
Typed records shared by every fleetdisco component.

- ListenSpec / Endpoint / ServiceAdvertisement: what a node publishes
- NodeNetworkProfile / FleetNode: what the matcher knows about a node
"""

from __future__ import annotations

from .endpoint import (
    BIND_ALL_ADDRESS,
    BIND_ALL_ADDRESSES,
    DEFAULT_TRANSPORT,
    MISSING,
    SCOPE_NODE,
    SCOPE_PRIVATE,
    SCOPE_PUBLIC,
    TRANSPORT_TCP,
    TRANSPORT_UDP,
    TRANSPORT_UNIX,
    WELL_KNOWN_SCOPES,
    Endpoint,
    ListenSpec,
    ListenSpecLike,
    ServiceAdvertisement,
    coerce_listen_specs,
)
from .node import (
    EC2_PROVIDER,
    FleetNode,
    NodeNetworkProfile,
    flatten_attributes,
    nested_attribute,
    region_from_zone,
)

__all__ = [
    "BIND_ALL_ADDRESS",
    "BIND_ALL_ADDRESSES",
    "DEFAULT_TRANSPORT",
    "EC2_PROVIDER",
    "MISSING",
    "SCOPE_NODE",
    "SCOPE_PRIVATE",
    "SCOPE_PUBLIC",
    "TRANSPORT_TCP",
    "TRANSPORT_UDP",
    "TRANSPORT_UNIX",
    "WELL_KNOWN_SCOPES",
    "Endpoint",
    "FleetNode",
    "ListenSpec",
    "ListenSpecLike",
    "NodeNetworkProfile",
    "ServiceAdvertisement",
    "coerce_listen_specs",
    "flatten_attributes",
    "nested_attribute",
    "region_from_zone",
]
