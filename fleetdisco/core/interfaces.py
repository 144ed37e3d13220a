"""Interfaces for the external collaborators the discovery core consumes."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Protocol

from fleetdisco.datastructures.endpoint import ServiceAdvertisement
from fleetdisco.datastructures.node import FleetNode
from fleetdisco.datastructures.type_aliases import (
    EntityKind,
    HostAddress,
    QueryString,
    Scope,
    ServiceName,
    SymbolicAddress,
)


class AdvertisementStore(Protocol):
    """Reads and writes the advertisements a node owns."""

    def get_advertisement(
        self, node: FleetNode, service: ServiceName
    ) -> ServiceAdvertisement | None: ...

    def set_advertisement(
        self,
        node: FleetNode,
        service: ServiceName,
        advertisement: ServiceAdvertisement,
    ) -> None: ...

    def persist(self, node: FleetNode) -> None: ...


class SearchEngine(Protocol):
    """Finds nodes matching a query string."""

    def search(self, kind: EntityKind, query: QueryString) -> Iterable[FleetNode]: ...


class IpResolver(Protocol):
    """Resolves symbolic addresses and classifies literal ones into scopes."""

    def find_all(self, node: FleetNode) -> Mapping[Scope, Sequence[HostAddress]]: ...

    def find_one(self, node: FleetNode, token: SymbolicAddress) -> HostAddress: ...

    def classify(self, address: HostAddress) -> Sequence[Scope]: ...
