"""
Semantic type aliases for fleetdisco datastructures.

These aliases keep signatures self-documenting: a ``Scope`` and a
``NodeId`` are both strings on the wire but mean very different things.
"""

from collections.abc import Mapping
from typing import Any

# Identifier types
type NodeId = str
type ClusterId = str
type EnvironmentId = str
type DataCenterId = str
type CloudProviderId = str
type CloudRegionId = str
type ServiceName = str

# Network types
type HostAddress = str
type PortNumber = int
type UrlString = str
type ProtocolName = str
type TransportKind = str
type Scope = str
type SymbolicAddress = str

# Query types
type QueryString = str
type EntityKind = str
type FilterValue = str | int | float | bool

# Attribute maps read from an inventory
type AttributeValue = Any
type AttributeMap = Mapping[str, AttributeValue]
type JsonValue = (
    str | int | float | bool | None | list["JsonValue"] | dict[str, "JsonValue"]
)
type JsonDict = dict[str, JsonValue]
