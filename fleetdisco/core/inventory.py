"""Inventory-backed collaborators.

A fleet inventory is a JSON list of node attribute maps. These classes let
the discovery core run against such a file (or an in-memory list) without
an external configuration-management server:

- ``InventoryStore``: advertisement storage, optionally written back to disk
- ``InventorySearchEngine``: evaluates ``field:value AND ...`` queries
- ``InventoryIpResolver``: answers address questions from node attributes
"""

from __future__ import annotations

import ipaddress
import json
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from fleetdisco.datastructures.endpoint import (
    SCOPE_NODE,
    SCOPE_PRIVATE,
    SCOPE_PUBLIC,
    ServiceAdvertisement,
)
from fleetdisco.datastructures.node import FleetNode, nested_attribute
from fleetdisco.datastructures.type_aliases import (
    EntityKind,
    HostAddress,
    NodeId,
    QueryString,
    Scope,
    ServiceName,
    SymbolicAddress,
)

from .errors import IpResolutionError, SearchError, StorageError
from .query_builder import CLAUSE_SEPARATOR

NODE_ENTITY_KIND: EntityKind = "node"
WILDCARD_VALUE = "*"
LOOPBACK_ADDRESS: HostAddress = "127.0.0.1"


@dataclass(slots=True)
class InventoryStore:
    """In-memory advertisement storage keyed by node name."""

    nodes: dict[NodeId, FleetNode] = field(default_factory=dict)
    persist_count: int = 0

    @classmethod
    def from_nodes(cls, nodes: Iterable[FleetNode]) -> InventoryStore:
        store = cls()
        for node in nodes:
            store.add(node)
        return store

    def add(self, node: FleetNode) -> None:
        self.nodes[node.name] = node

    def node(self, name: NodeId) -> FleetNode | None:
        return self.nodes.get(name)

    def get_advertisement(
        self, node: FleetNode, service: ServiceName
    ) -> ServiceAdvertisement | None:
        stored = self.nodes.get(node.name, node)
        return stored.advertisement(service)

    def set_advertisement(
        self,
        node: FleetNode,
        service: ServiceName,
        advertisement: ServiceAdvertisement,
    ) -> None:
        stored = self.nodes.setdefault(node.name, node)
        stored.announced_services[service] = advertisement
        if stored is not node:
            node.announced_services[service] = advertisement

    def persist(self, node: FleetNode) -> None:
        self.persist_count += 1

    def to_payload(self) -> list[dict[str, object]]:
        return [node.to_attributes() for node in self.nodes.values()]


@dataclass(slots=True)
class JsonInventoryStore(InventoryStore):
    """Inventory store that rewrites its JSON file on every persist."""

    path: Path | None = None

    def persist(self, node: FleetNode) -> None:
        if self.path is None:
            raise StorageError("JsonInventoryStore has no path to persist to")
        try:
            self.path.write_text(json.dumps(self.to_payload(), indent=2) + "\n")
        except OSError as exc:
            raise StorageError(f"Cannot write inventory {self.path}: {exc}") from exc
        self.persist_count += 1
        logger.debug("Persisted inventory after update to {}", node.name)


def load_inventory(path: Path | str) -> JsonInventoryStore:
    """Read an inventory file: a JSON list of node attribute maps."""
    inventory_path = Path(path)
    try:
        payload = json.loads(inventory_path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        raise StorageError(f"Cannot read inventory {inventory_path}: {exc}") from exc
    if isinstance(payload, Mapping):
        payload = payload.get("nodes", [])
    if not isinstance(payload, list):
        raise StorageError(f"Inventory {inventory_path} must hold a list of nodes")
    store = JsonInventoryStore(path=inventory_path)
    for entry in payload:
        if not isinstance(entry, Mapping):
            raise StorageError(f"Inventory entry is not a mapping: {entry!r}")
        try:
            store.add(FleetNode.from_attributes(entry))
        except ValueError as exc:
            raise StorageError(f"Invalid node in {inventory_path}: {exc}") from exc
    return store


def parse_query(query: QueryString) -> list[tuple[str, str]]:
    clauses: list[tuple[str, str]] = []
    for clause in query.split(CLAUSE_SEPARATOR):
        field_name, separator, value = clause.strip().partition(":")
        if not separator or not field_name:
            raise SearchError(f"Malformed query clause: {clause!r}")
        clauses.append((field_name, value))
    return clauses


def _clause_matches(index: Mapping[str, set[str]], field_name: str, value: str) -> bool:
    values = index.get(field_name)
    if value == WILDCARD_VALUE:
        return bool(values)
    if value == "":
        return not values or "" in values
    return values is not None and value in values


@dataclass(slots=True)
class InventorySearchEngine:
    store: InventoryStore

    def search(self, kind: EntityKind, query: QueryString) -> Iterator[FleetNode]:
        if kind != NODE_ENTITY_KIND:
            raise SearchError(f"Unsupported entity kind: {kind}")
        clauses = parse_query(query)
        for node in list(self.store.nodes.values()):
            index = node.flattened_attributes()
            if all(_clause_matches(index, name, value) for name, value in clauses):
                yield node


def _addresses(value: object) -> list[HostAddress]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item]
    return [str(value)] if value else []


@dataclass(frozen=True, slots=True)
class InventoryIpResolver:
    """Resolve addresses from ``network_scopes`` or ``cloud`` node attributes."""

    def find_all(self, node: FleetNode) -> dict[Scope, list[HostAddress]]:
        declared = node.attributes.get("network_scopes")
        if isinstance(declared, Mapping):
            return {str(scope): _addresses(value) for scope, value in declared.items()}

        scopes: dict[Scope, list[HostAddress]] = {SCOPE_NODE: [LOOPBACK_ADDRESS]}
        private = _addresses(nested_attribute(node.attributes, "cloud", "local_ipv4"))
        public = _addresses(nested_attribute(node.attributes, "cloud", "public_ipv4"))
        if private:
            scopes[SCOPE_PRIVATE] = private
        if public:
            scopes[SCOPE_PUBLIC] = public
        return scopes

    def find_one(self, node: FleetNode, token: SymbolicAddress) -> HostAddress:
        scope = SCOPE_NODE if token == "local" else token
        if scope in (SCOPE_NODE, SCOPE_PRIVATE, SCOPE_PUBLIC):
            addresses = self.find_all(node).get(scope, [])
        else:
            addresses = _addresses(
                nested_attribute(node.attributes, "cloud", token)
                or node.attributes.get(token)
            )
        if not addresses:
            raise IpResolutionError(f"No address for {token!r} on node {node.name}")
        return addresses[0]

    def classify(self, address: HostAddress) -> list[Scope]:
        try:
            ip = ipaddress.ip_address(address)
        except ValueError as exc:
            raise IpResolutionError(f"Not an IP address: {address!r}") from exc
        if ip.is_loopback:
            return [SCOPE_NODE]
        if ip.is_private or ip.is_link_local:
            return [SCOPE_PRIVATE]
        return [SCOPE_PUBLIC]
