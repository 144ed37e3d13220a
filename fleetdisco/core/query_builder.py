"""Compose discovery queries and stream their results.

A query is a conjunction of ``field:value`` clauses in a fixed order::

    announced_services:<service>
    AND chef_environment:<environment>          (environment_aware)
    AND announced_services_<service>_cluster:<cluster>   (cluster_aware)
    AND data_center:<data_center>               (data_center_aware)

Clause order never depends on the input so the same parameters always
produce the same bytes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace

from loguru import logger

from fleetdisco.datastructures.node import FleetNode, NodeNetworkProfile
from fleetdisco.datastructures.type_aliases import EntityKind, QueryString, ServiceName

from .config import DiscoveryQueryParams, DiscoverySettings
from .errors import SearchError, call_collaborator
from .interfaces import SearchEngine

CLAUSE_SEPARATOR = " AND "

type NodeCallback = Callable[[FleetNode], None]


@dataclass(frozen=True, slots=True)
class QueryVocabulary:
    """Field names understood by the search collaborator."""

    service_field: str = "announced_services"
    environment_field: str = "chef_environment"
    data_center_field: str = "data_center"

    def cluster_field(self, service: ServiceName) -> str:
        return f"{self.service_field}_{service}_cluster"

    @classmethod
    def from_settings(cls, settings: DiscoverySettings) -> QueryVocabulary:
        return cls(
            service_field=settings.service_field,
            environment_field=settings.environment_field,
            data_center_field=settings.data_center_field,
        )


def _clause(field_name: str, value: object) -> str:
    return f"{field_name}:{'' if value is None else value}"


def resolve_params(
    params: DiscoveryQueryParams, local: NodeNetworkProfile
) -> DiscoveryQueryParams:
    """Fill unset environment/cluster/data center values from the local node."""
    return replace(
        params,
        environment=params.environment
        if params.environment is not None
        else local.environment,
        cluster=params.cluster if params.cluster is not None else local.cluster,
        data_center=params.data_center
        if params.data_center is not None
        else local.data_center,
    )


def build_query(
    service: ServiceName,
    params: DiscoveryQueryParams,
    local: NodeNetworkProfile,
    vocabulary: QueryVocabulary | None = None,
) -> QueryString:
    vocabulary = vocabulary or QueryVocabulary()
    params = resolve_params(params, local)
    clauses = [_clause(vocabulary.service_field, service)]
    if params.environment_aware:
        clauses.append(_clause(vocabulary.environment_field, params.environment))
    if params.cluster_aware:
        clauses.append(_clause(vocabulary.cluster_field(service), params.cluster))
    if params.data_center_aware:
        clauses.append(_clause(vocabulary.data_center_field, params.data_center))
    return CLAUSE_SEPARATOR.join(clauses)


@dataclass(slots=True)
class DiscoveryQuery:
    search_engine: SearchEngine
    vocabulary: QueryVocabulary = field(default_factory=QueryVocabulary)
    entity_kind: EntityKind = "node"

    def build(
        self,
        service: ServiceName,
        params: DiscoveryQueryParams,
        local: NodeNetworkProfile,
    ) -> QueryString:
        return build_query(service, params, local, self.vocabulary)

    def run(self, query: QueryString) -> Iterator[FleetNode]:
        """Lazily yield matching nodes; single pass."""
        results = call_collaborator(
            lambda: iter(self.search_engine.search(self.entity_kind, query)),
            SearchError,
            f"start search {query!r}",
        )
        while True:
            node = call_collaborator(
                lambda: next(results, None), SearchError, f"search {query!r}"
            )
            if node is None:
                return
            yield node

    def discover(
        self,
        service: ServiceName,
        params: DiscoveryQueryParams,
        local_node: FleetNode,
        on_node: NodeCallback | None = None,
    ) -> list[FleetNode]:
        query = self.build(service, params, local_node.profile)
        logger.debug("[{}] Discovery query: {}", local_node.name, query)
        results: list[FleetNode] = []
        for node in self.run(query):
            if params.exclude_self and node == local_node:
                logger.debug("[{}] Excluding self from results", local_node.name)
                continue
            if on_node is not None:
                on_node(node)
            results.append(node)
        return results
