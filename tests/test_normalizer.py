import pytest

from fleetdisco.core.errors import IpResolutionError
from fleetdisco.core.normalizer import (
    EndpointNormalizer,
    is_symbolic_address,
    parse_listen_url,
)
from fleetdisco.datastructures.endpoint import Endpoint, ListenSpec
from fleetdisco.datastructures.node import FleetNode


def test_parse_listen_url_uses_scheme_default_ports() -> None:
    assert parse_listen_url("mysql://h:3306") == ("mysql", "h", 3306)
    assert parse_listen_url("https://example.com") == ("https", "example.com", 443)
    assert parse_listen_url("mysql://h") == ("mysql", "h", None)
    assert parse_listen_url("tcp://[::1]:9000") == ("tcp", "::1", 9000)
    with pytest.raises(ValueError):
        parse_listen_url("mysql://h:notaport")


def test_symbolic_address_detection() -> None:
    assert is_symbolic_address("private_ipv4")
    assert is_symbolic_address("public")
    assert is_symbolic_address("local")
    assert is_symbolic_address("pubic")
    assert not is_symbolic_address("some.host")
    assert not is_symbolic_address("/var/run/a_b.sock")
    assert is_symbolic_address("_leading")
    assert not is_symbolic_address("trailing_")


def test_bind_all_fans_out_per_scope(local_node: FleetNode, ip_resolver) -> None:
    ip_resolver.scopes = {"node": ["127.0.0.1"], "private": ["10.0.0.1", "10.0.0.2"]}
    normalizer = EndpointNormalizer(ip_resolver)

    endpoints = normalizer.normalize({"address": "0.0.0.0", "port": 3306}, local_node)

    assert endpoints == [
        Endpoint(address="127.0.0.1", port=3306, transport="tcp", scope="node"),
        Endpoint(address="10.0.0.1", port=3306, transport="tcp", scope="private"),
    ]


def test_missing_address_defaults_to_bind_all(local_node: FleetNode, ip_resolver) -> None:
    ip_resolver.scopes = {"private": ["10.0.0.1"], "public": []}
    endpoints = EndpointNormalizer(ip_resolver).normalize(ListenSpec(port=80), local_node)
    assert endpoints == [Endpoint(address="10.0.0.1", port=80, scope="private")]
    assert ip_resolver.calls == [("find_all", "test-node")]


def test_filesystem_path_forces_unix_node_scope(local_node: FleetNode, ip_resolver) -> None:
    endpoints = EndpointNormalizer(ip_resolver).normalize(
        {"address": "/var/lib/x.sock", "protocol": "mysql", "scope": "public"},
        local_node,
    )
    assert endpoints == [
        Endpoint(
            address="/var/lib/x.sock", protocol="mysql", transport="unix", scope="node"
        )
    ]
    assert ip_resolver.calls == []


def test_url_with_hostname_leaves_scope_unset(local_node: FleetNode, ip_resolver) -> None:
    endpoints = EndpointNormalizer(ip_resolver).normalize(
        {"url": "mysql://h:3306"}, local_node
    )
    assert endpoints == [
        Endpoint(address="h", port=3306, protocol="mysql", transport="tcp", scope=None)
    ]
    assert ip_resolver.calls == []


def test_url_keeps_explicit_scope(local_node: FleetNode, ip_resolver) -> None:
    endpoints = EndpointNormalizer(ip_resolver).normalize(
        {"url": "mysql://127.0.0.1:3306", "scope": "private"}, local_node
    )
    assert endpoints[0].scope == "private"
    assert endpoints[0].address == "127.0.0.1"
    assert ip_resolver.calls == []


def test_literal_ip_is_classified(local_node: FleetNode, ip_resolver) -> None:
    ip_resolver.classifications = {"10.11.12.13": ["private", "public"]}
    endpoints = EndpointNormalizer(ip_resolver).normalize(
        {"address": "10.11.12.13", "port": 3322, "transport": "udp"}, local_node
    )
    assert endpoints == [
        Endpoint(address="10.11.12.13", port=3322, transport="udp", scope="private")
    ]


def test_symbolic_token_is_resolved_then_classified(
    local_node: FleetNode, ip_resolver
) -> None:
    ip_resolver.symbols = {"private_ipv4": "10.12.11.13"}
    ip_resolver.classifications = {"10.12.11.13": ["private"]}
    endpoints = EndpointNormalizer(ip_resolver).normalize(
        {"address": "private_ipv4", "port": 3306, "protocol": "mysql"}, local_node
    )
    assert endpoints == [
        Endpoint(
            address="10.12.11.13",
            port=3306,
            protocol="mysql",
            transport="tcp",
            scope="private",
        )
    ]
    assert ip_resolver.calls == [
        ("find_one", "private_ipv4"),
        ("classify", "10.12.11.13"),
    ]


def test_misspelled_public_token_is_corrected(local_node: FleetNode, ip_resolver) -> None:
    ip_resolver.symbols = {"public": "54.1.2.3"}
    ip_resolver.classifications = {"54.1.2.3": ["public"]}
    endpoints = EndpointNormalizer(ip_resolver).normalize(
        {"address": "pubic"}, local_node
    )
    assert endpoints[0].address == "54.1.2.3"
    assert ("find_one", "public") in ip_resolver.calls


def test_unresolvable_token_raises(local_node: FleetNode, ip_resolver) -> None:
    with pytest.raises(IpResolutionError):
        EndpointNormalizer(ip_resolver).normalize({"address": "public_ipv6"}, local_node)


def test_unclassifiable_address_raises(local_node: FleetNode, ip_resolver) -> None:
    with pytest.raises(IpResolutionError):
        EndpointNormalizer(ip_resolver).normalize({"address": "10.0.0.9"}, local_node)


def test_resolver_failures_are_wrapped(local_node: FleetNode) -> None:
    class BrokenResolver:
        def find_all(self, node):
            raise ConnectionError("resolver unreachable")

        def find_one(self, node, token):
            raise ConnectionError("resolver unreachable")

        def classify(self, address):
            raise ConnectionError("resolver unreachable")

    with pytest.raises(IpResolutionError) as excinfo:
        EndpointNormalizer(BrokenResolver()).normalize({"port": 80}, local_node)
    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_normalize_all_preserves_order(local_node: FleetNode, ip_resolver) -> None:
    ip_resolver.classifications = {
        "10.11.12.13": ["private"],
        "127.0.0.1": ["node"],
    }
    endpoints = EndpointNormalizer(ip_resolver).normalize_all(
        [
            {"address": "10.11.12.13", "port": 3322, "socket_type": "udp"},
            {"address": "127.0.0.1", "port": 4444, "protocol": "memcached"},
        ],
        local_node,
    )
    assert [endpoint.address for endpoint in endpoints] == ["10.11.12.13", "127.0.0.1"]
    assert [endpoint.scope for endpoint in endpoints] == ["private", "node"]
    assert endpoints[0].transport == "udp"
    assert endpoints[1].transport == "tcp"
