"""Service discovery facade: announce local services, find remote ones.

``ServiceDiscovery`` wires the normalizer, query builder and matcher to
injected collaborators. It holds no process-wide state; build one per
local node.

Example::

    disco = ServiceDiscovery(
        node=local_node,
        store=store,
        search_engine=search_engine,
        ip_resolver=ip_resolver,
    )
    disco.announce_service("mysql", {"url": "mysql://0.0.0.0:3306"})
    endpoints = disco.discover_connection_endpoints_for(
        "mysql", require={"protocol": "mysql"}
    )
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from loguru import logger

from fleetdisco.datastructures.endpoint import (
    Endpoint,
    ListenSpecLike,
    ServiceAdvertisement,
)
from fleetdisco.datastructures.node import FleetNode
from fleetdisco.datastructures.type_aliases import (
    AttributeValue,
    ClusterId,
    QueryString,
    ServiceName,
)

from .config import DiscoveryQueryParams, DiscoverySettings
from .errors import StorageError, call_collaborator
from .interfaces import AdvertisementStore, IpResolver, SearchEngine
from .matcher import EndpointMatcher, Filter
from .normalizer import EndpointNormalizer
from .query_builder import DiscoveryQuery, NodeCallback, QueryVocabulary
from .scope_classifier import ScopeClassifier

type QueryParamsLike = DiscoveryQueryParams | Mapping[str, object] | None


def _coerce_params(params: QueryParamsLike) -> DiscoveryQueryParams:
    if isinstance(params, DiscoveryQueryParams):
        return params
    return DiscoveryQueryParams.from_mapping(params)


@dataclass(slots=True)
class ServiceDiscovery:
    node: FleetNode
    store: AdvertisementStore
    search_engine: SearchEngine
    ip_resolver: IpResolver
    settings: DiscoverySettings = field(default_factory=DiscoverySettings)
    classifier: ScopeClassifier = field(default_factory=ScopeClassifier)

    @property
    def normalizer(self) -> EndpointNormalizer:
        return EndpointNormalizer(self.ip_resolver)

    @property
    def query(self) -> DiscoveryQuery:
        return DiscoveryQuery(
            search_engine=self.search_engine,
            vocabulary=QueryVocabulary.from_settings(self.settings),
            entity_kind=self.settings.search_entity_kind,
        )

    @property
    def matcher(self) -> EndpointMatcher:
        return EndpointMatcher(self.classifier)

    def build_advertisement(
        self,
        listening_on: ListenSpecLike | Iterable[ListenSpecLike] | None = None,
        *,
        cluster: ClusterId | None = None,
        metadata: Mapping[str, AttributeValue] | None = None,
    ) -> ServiceAdvertisement:
        endpoints = self.normalizer.normalize_all(listening_on, self.node)
        return ServiceAdvertisement(
            cluster=cluster or self.node.profile.cluster,
            endpoints=tuple(endpoints),
            metadata=dict(metadata or {}),
        )

    def announce_service(
        self,
        service: ServiceName,
        listening_on: ListenSpecLike | Iterable[ListenSpecLike] | None = None,
        *,
        cluster: ClusterId | None = None,
        metadata: Mapping[str, AttributeValue] | None = None,
    ) -> bool:
        """Publish ``service`` for the local node.

        The stored advertisement is replaced wholesale. Returns False, without
        touching storage, when the new advertisement equals the stored one.
        """
        service = str(service)
        advertisement = self.build_advertisement(
            listening_on, cluster=cluster, metadata=metadata
        )
        current = call_collaborator(
            lambda: self.store.get_advertisement(self.node, service),
            StorageError,
            f"read {service} advertisement for {self.node.name}",
        )
        if current == advertisement:
            logger.debug("[{}] {} advertisement unchanged", self.node.name, service)
            return False

        call_collaborator(
            lambda: self.store.set_advertisement(self.node, service, advertisement),
            StorageError,
            f"write {service} advertisement for {self.node.name}",
        )
        if self.settings.persist_announcements:
            call_collaborator(
                lambda: self.store.persist(self.node),
                StorageError,
                f"persist {self.node.name}",
            )
        logger.info(
            "[{}] Announced {} with {} endpoint(s) in cluster {}",
            self.node.name,
            service,
            len(advertisement.endpoints),
            advertisement.cluster,
        )
        return True

    def build_query(
        self, service: ServiceName, params: QueryParamsLike = None
    ) -> QueryString:
        params = _coerce_params(params)
        return self.query.build(str(service), params, self.node.profile)

    def discover_nodes_for(
        self,
        service: ServiceName,
        params: QueryParamsLike = None,
        on_node: NodeCallback | None = None,
    ) -> list[FleetNode]:
        return self.query.discover(
            str(service), _coerce_params(params), self.node, on_node
        )

    def discover_connection_endpoints_for(
        self,
        service: ServiceName,
        params: QueryParamsLike = None,
        *,
        require: Filter | None = None,
        prefer: Filter | None = None,
        node: FleetNode | None = None,
        nodes: Iterable[FleetNode] | None = None,
    ) -> list[Endpoint]:
        """Best endpoint per target node; nodes without one are dropped.

        Targets are ``node``, else ``nodes``, else the result of
        ``discover_nodes_for(service, params)``.
        """
        service = str(service)
        if node is not None:
            targets = [node]
        elif nodes is not None:
            targets = list(nodes)
        else:
            targets = self.discover_nodes_for(service, params)

        matcher = self.matcher

        def _select(target: FleetNode) -> Endpoint | None:
            return matcher.select(self.node, target, service, require, prefer)

        workers = min(self.settings.match_workers, len(targets))
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                picks = list(executor.map(_select, targets))
        else:
            picks = [_select(target) for target in targets]

        return [endpoint for endpoint in picks if endpoint is not None]
