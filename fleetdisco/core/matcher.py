"""Filter and rank a remote node's endpoints down to one connection target."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from loguru import logger

from fleetdisco.datastructures.endpoint import Endpoint
from fleetdisco.datastructures.node import FleetNode
from fleetdisco.datastructures.type_aliases import FilterValue, Scope, ServiceName

from .scope_classifier import ScopeClassifier

type Filter = Mapping[str, FilterValue]

SCOPE_KEY = "scope"


def match_elements(
    endpoints: Sequence[Endpoint],
    required: Filter,
    preferred: Filter | None = None,
) -> list[Endpoint]:
    """Apply the hard filter, then the soft one unless it empties the set."""
    results = [endpoint for endpoint in endpoints if endpoint.matches(required)]
    if preferred:
        preferred_results = [
            endpoint for endpoint in results if endpoint.matches(preferred)
        ]
        if preferred_results:
            results = preferred_results
    return results


def best_endpoint(
    endpoints: Sequence[Endpoint],
    required: Filter | None,
    preferred: Filter | None,
    scope_guess: Scope,
) -> Endpoint | None:
    """Return the first acceptable endpoint in advertisement order.

    Unless ``required`` pins a scope, only endpoints in ``scope_guess`` are
    acceptable, so callers never get an address they cannot reach.
    """
    if not endpoints:
        return None
    required = required or {}
    results = match_elements(endpoints, required, preferred)
    if SCOPE_KEY not in required:
        results = [endpoint for endpoint in results if endpoint.scope == scope_guess]
    return results[0] if results else None


@dataclass(frozen=True, slots=True)
class EndpointMatcher:
    classifier: ScopeClassifier = field(default_factory=ScopeClassifier)

    def select(
        self,
        local: FleetNode,
        remote: FleetNode,
        service: ServiceName,
        required: Filter | None = None,
        preferred: Filter | None = None,
    ) -> Endpoint | None:
        advertisement = remote.advertisement(service)
        if advertisement is None or not advertisement.endpoints:
            logger.debug("[{}] No {} endpoints advertised", remote.name, service)
            return None

        scope = self.classifier.classify(
            local.profile, remote.profile, same_node=local == remote
        )
        endpoint = best_endpoint(advertisement.endpoints, required, preferred, scope)
        logger.debug(
            "[{}] Picked {} for {} (inferred scope {})",
            remote.name,
            endpoint.url if endpoint else None,
            service,
            scope,
        )
        return endpoint
