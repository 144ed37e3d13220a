"""
fleetdisco - peer matching for fleet service discovery

Nodes announce the services they run and where they listen; any node can
then find peers running a service and pick the single best address to
connect to, given where the peer sits (same host, same private network,
public internet) and the caller's required/preferred endpoint attributes.

## Architecture

- **datastructures**: typed records (ListenSpec, Endpoint,
  ServiceAdvertisement, NodeNetworkProfile, FleetNode)
- **core**: scope classifier, endpoint normalizer and matcher, discovery
  query builder and the ServiceDiscovery facade
- **cli**: inventory-driven command line interface

## Quick Start

```python
from fleetdisco import (
    InventoryIpResolver,
    InventorySearchEngine,
    ServiceDiscovery,
    load_inventory,
)

store = load_inventory("fleet.json")
disco = ServiceDiscovery(
    node=store.node("app-1"),
    store=store,
    search_engine=InventorySearchEngine(store),
    ip_resolver=InventoryIpResolver(),
)
disco.announce_service("mysql", {"url": "mysql://0.0.0.0:3306"})
endpoints = disco.discover_connection_endpoints_for(
    "mysql", require={"transport": "tcp", "protocol": "mysql"}
)
```
"""

from .core import (
    DiscoveryError,
    DiscoveryQueryParams,
    DiscoverySettings,
    InventoryIpResolver,
    InventorySearchEngine,
    InventoryStore,
    JsonInventoryStore,
    ScopeClassifier,
    ServiceDiscovery,
    best_endpoint,
    build_query,
    classify_scope,
    configure_logging,
    load_inventory,
    normalize_listen_spec,
)
from .datastructures import (
    Endpoint,
    FleetNode,
    ListenSpec,
    NodeNetworkProfile,
    ServiceAdvertisement,
)

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = [
    # Records
    "Endpoint",
    "FleetNode",
    "ListenSpec",
    "NodeNetworkProfile",
    "ServiceAdvertisement",
    # Core
    "DiscoveryError",
    "DiscoveryQueryParams",
    "DiscoverySettings",
    "ScopeClassifier",
    "ServiceDiscovery",
    "best_endpoint",
    "build_query",
    "classify_scope",
    "configure_logging",
    "normalize_listen_spec",
    # Inventory collaborators
    "InventoryIpResolver",
    "InventorySearchEngine",
    "InventoryStore",
    "JsonInventoryStore",
    "load_inventory",
]
