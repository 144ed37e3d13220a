"""Pytest fixtures for fleetdisco tests.

Collaborators are replaced by small recording fakes so tests can assert on
exactly which external calls the discovery core made. The fleet fixtures
mirror a mixed deployment: a colocated node, a Linode node and three EC2
nodes across two regions.
"""

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field

import pytest

from fleetdisco.core.config import DiscoverySettings
from fleetdisco.core.service_discovery import ServiceDiscovery
from fleetdisco.datastructures.endpoint import ServiceAdvertisement
from fleetdisco.datastructures.node import FleetNode


@dataclass
class RecordingIpResolver:
    """IP resolver fake with canned answers and a call log."""

    scopes: dict[str, list[str]] = field(default_factory=dict)
    symbols: dict[str, str] = field(default_factory=dict)
    classifications: dict[str, list[str]] = field(default_factory=dict)
    calls: list[tuple[str, object]] = field(default_factory=list)

    def find_all(self, node: FleetNode) -> Mapping[str, Sequence[str]]:
        self.calls.append(("find_all", node.name))
        return self.scopes

    def find_one(self, node: FleetNode, token: str) -> str:
        self.calls.append(("find_one", token))
        return self.symbols.get(token, "")

    def classify(self, address: str) -> Sequence[str]:
        self.calls.append(("classify", address))
        return self.classifications.get(address, [])


@dataclass
class RecordingStore:
    """Advertisement store fake that counts writes and persists."""

    writes: int = 0
    persists: int = 0

    def get_advertisement(
        self, node: FleetNode, service: str
    ) -> ServiceAdvertisement | None:
        return node.advertisement(service)

    def set_advertisement(
        self, node: FleetNode, service: str, advertisement: ServiceAdvertisement
    ) -> None:
        self.writes += 1
        node.announced_services[service] = advertisement

    def persist(self, node: FleetNode) -> None:
        self.persists += 1


@dataclass
class StaticSearchEngine:
    """Search fake returning fixed nodes and remembering the queries."""

    results: list[FleetNode] = field(default_factory=list)
    queries: list[tuple[str, str]] = field(default_factory=list)

    def search(self, kind: str, query: str) -> Iterator[FleetNode]:
        self.queries.append((kind, query))
        yield from self.results


def mysql_node(name: str, attributes: dict, listening_on: Iterable[dict]) -> FleetNode:
    return FleetNode.from_attributes(
        {
            "name": name,
            **attributes,
            "announced_services": {
                "mysql_server": {"cluster": "core-db", "listening_on": list(listening_on)}
            },
        }
    )


def _listeners(public: str, private: str, memcached: dict) -> list[dict]:
    return [
        {"protocol": "mysql", "address": public, "port": 3306, "scope": "public", "socket_type": "tcp"},
        {"protocol": "mysql", "address": private, "port": 3306, "scope": "private", "socket_type": "tcp"},
        {"protocol": "mysql", "address": "127.0.0.1", "port": 3306, "scope": "node", "socket_type": "tcp"},
        {"protocol": "mysql", "address": "/var/lib/mysql.sock", "scope": "node", "socket_type": "unix"},
        {"protocol": "memcached", "socket_type": "tcp", **memcached},
    ]


LOCAL_MEMCACHED = {"address": "127.0.0.1", "port": 4444, "scope": "node"}


@pytest.fixture
def local_node() -> FleetNode:
    return FleetNode.from_attributes(
        {
            "name": "test-node",
            "cluster": "test-cluster",
            "chef_environment": "test",
        }
    )


@pytest.fixture
def ip_resolver() -> RecordingIpResolver:
    return RecordingIpResolver()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def search_engine() -> StaticSearchEngine:
    return StaticSearchEngine()


@pytest.fixture
def disco(
    local_node: FleetNode,
    store: RecordingStore,
    search_engine: StaticSearchEngine,
    ip_resolver: RecordingIpResolver,
) -> ServiceDiscovery:
    return ServiceDiscovery(
        node=local_node,
        store=store,
        search_engine=search_engine,
        ip_resolver=ip_resolver,
        settings=DiscoverySettings(),
    )


@pytest.fixture
def colo_node() -> FleetNode:
    return mysql_node(
        "colo-node",
        {"data_center": "dallas-col01"},
        _listeners("200.123.43.32", "192.168.13.112", LOCAL_MEMCACHED),
    )


@pytest.fixture
def linode_node() -> FleetNode:
    return mysql_node(
        "linode-node",
        {
            "data_center": "linode-newark",
            "cloud": {
                "provider": "linode",
                "public_ipv4": "50.116.32.219",
                "local_ipv4": "192.168.124.149",
            },
        },
        _listeners("50.116.32.219", "192.168.124.149", LOCAL_MEMCACHED),
    )


def _ec2_attributes(local_ipv4: str, public_ipv4: str, zone: str) -> dict:
    return {
        "cloud": {
            "provider": "ec2",
            "local_ipv4": local_ipv4,
            "public_ipv4": public_ipv4,
        },
        "ec2": {
            "local_ipv4": local_ipv4,
            "public_ipv4": public_ipv4,
            "placement_availability_zone": zone,
        },
    }


@pytest.fixture
def ec2_node1() -> FleetNode:
    return mysql_node(
        "ec2-node1",
        _ec2_attributes("10.76.185.175", "50.19.73.95", "us-east-1b"),
        _listeners("50.19.73.95", "10.76.185.175", LOCAL_MEMCACHED),
    )


@pytest.fixture
def ec2_node2() -> FleetNode:
    return mysql_node(
        "ec2-node2",
        _ec2_attributes("10.243.38.46", "54.242.1.22", "us-east-1b"),
        _listeners(
            "54.242.1.22",
            "10.243.38.46",
            {"address": "10.243.38.46", "port": 4450, "scope": "private"},
        ),
    )


@pytest.fixture
def ec2_node3() -> FleetNode:
    return mysql_node(
        "ec2-node3",
        _ec2_attributes("10.204.39.241", "67.202.59.238", "us-west-1a"),
        _listeners("67.202.59.238", "10.204.39.241", LOCAL_MEMCACHED),
    )
