"""
Discovery core: scope inference, endpoint normalization and matching,
query composition and the ServiceDiscovery facade.
"""

from .config import DiscoveryQueryParams, DiscoverySettings
from .errors import (
    CollaboratorError,
    DiscoveryError,
    IpResolutionError,
    SearchError,
    StorageError,
)
from .interfaces import AdvertisementStore, IpResolver, SearchEngine
from .inventory import (
    InventoryIpResolver,
    InventorySearchEngine,
    InventoryStore,
    JsonInventoryStore,
    load_inventory,
)
from .logging import configure_logging, configure_logging_from_settings
from .matcher import EndpointMatcher, Filter, best_endpoint, match_elements
from .normalizer import EndpointNormalizer, normalize_listen_spec, parse_listen_url
from .query_builder import DiscoveryQuery, QueryVocabulary, build_query
from .scope_classifier import (
    DEFAULT_PROVIDER_POLICIES,
    ProviderScopePolicy,
    ScopeClassifier,
    classify_scope,
    same_provider_policy,
    same_region_policy,
)
from .service_discovery import ServiceDiscovery

__all__ = [
    "DEFAULT_PROVIDER_POLICIES",
    "AdvertisementStore",
    "CollaboratorError",
    "DiscoveryError",
    "DiscoveryQuery",
    "DiscoveryQueryParams",
    "DiscoverySettings",
    "EndpointMatcher",
    "EndpointNormalizer",
    "Filter",
    "InventoryIpResolver",
    "InventorySearchEngine",
    "InventoryStore",
    "IpResolutionError",
    "IpResolver",
    "JsonInventoryStore",
    "ProviderScopePolicy",
    "QueryVocabulary",
    "ScopeClassifier",
    "SearchEngine",
    "SearchError",
    "ServiceDiscovery",
    "StorageError",
    "best_endpoint",
    "build_query",
    "classify_scope",
    "configure_logging",
    "configure_logging_from_settings",
    "load_inventory",
    "match_elements",
    "normalize_listen_spec",
    "parse_listen_url",
    "same_provider_policy",
    "same_region_policy",
]
