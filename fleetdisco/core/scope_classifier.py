"""Infer the network scope shared by the local node and a remote node.

Precedence, first match wins:

1. same node                          -> ``node``
2. same non-empty data center         -> ``private``
3. same non-empty cloud provider      -> the provider's policy
4. anything else                      -> ``public``

Provider policies are pluggable. Only EC2 knows how to compare regions;
every other provider falls back to "same provider means private", which is
an approximation and not true for every provider topology.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Protocol

from loguru import logger

from fleetdisco.datastructures.endpoint import SCOPE_NODE, SCOPE_PRIVATE, SCOPE_PUBLIC
from fleetdisco.datastructures.node import EC2_PROVIDER, NodeNetworkProfile
from fleetdisco.datastructures.type_aliases import CloudProviderId, Scope


class ProviderScopePolicy(Protocol):
    def __call__(
        self, local: NodeNetworkProfile, remote: NodeNetworkProfile
    ) -> Scope: ...


def same_region_policy(local: NodeNetworkProfile, remote: NodeNetworkProfile) -> Scope:
    if local.cloud_region == remote.cloud_region:
        return SCOPE_PRIVATE
    return SCOPE_PUBLIC


def same_provider_policy(
    local: NodeNetworkProfile, remote: NodeNetworkProfile
) -> Scope:
    logger.debug(
        "Approximating scope for provider {} as private (no provider policy)",
        remote.cloud_provider,
    )
    return SCOPE_PRIVATE


DEFAULT_PROVIDER_POLICIES: Mapping[CloudProviderId, ProviderScopePolicy] = (
    MappingProxyType({EC2_PROVIDER: same_region_policy})
)


@dataclass(frozen=True, slots=True)
class ScopeClassifier:
    provider_policies: Mapping[CloudProviderId, ProviderScopePolicy] = field(
        default_factory=lambda: dict(DEFAULT_PROVIDER_POLICIES)
    )
    fallback_policy: ProviderScopePolicy = same_provider_policy

    def with_policy(
        self, provider: CloudProviderId, policy: ProviderScopePolicy
    ) -> ScopeClassifier:
        policies = dict(self.provider_policies)
        policies[provider] = policy
        return ScopeClassifier(
            provider_policies=policies, fallback_policy=self.fallback_policy
        )

    def classify(
        self,
        local: NodeNetworkProfile,
        remote: NodeNetworkProfile,
        *,
        same_node: bool | None = None,
    ) -> Scope:
        if same_node is None:
            same_node = local.node_id == remote.node_id
        if same_node:
            return SCOPE_NODE

        if local.data_center and local.data_center == remote.data_center:
            return SCOPE_PRIVATE

        provider = local.cloud_provider
        if provider and provider == remote.cloud_provider:
            policy = self.provider_policies.get(provider, self.fallback_policy)
            return policy(local, remote)

        return SCOPE_PUBLIC


DEFAULT_CLASSIFIER = ScopeClassifier()


def classify_scope(
    local: NodeNetworkProfile,
    remote: NodeNetworkProfile,
    local_is_remote: bool | None = None,
) -> Scope:
    """Classify with the default provider policies."""
    return DEFAULT_CLASSIFIER.classify(local, remote, same_node=local_is_remote)
