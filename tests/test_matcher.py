from fleetdisco.core.matcher import EndpointMatcher, best_endpoint, match_elements
from fleetdisco.datastructures.endpoint import Endpoint
from fleetdisco.datastructures.node import FleetNode

ENDPOINTS = (
    Endpoint(address="200.123.43.32", port=3306, protocol="mysql", scope="public"),
    Endpoint(address="192.168.13.112", port=3306, protocol="mysql", scope="private"),
    Endpoint(address="127.0.0.1", port=3306, protocol="mysql", scope="node"),
    Endpoint(
        address="/var/lib/mysql.sock", protocol="mysql", transport="unix", scope="node"
    ),
    Endpoint(address="127.0.0.1", port=4444, protocol="memcached", scope="node"),
)

REQUIRED = {"transport": "tcp", "protocol": "mysql"}
PREFERRED = {"port": 3306}


def test_match_elements_applies_required_filter() -> None:
    results = match_elements(ENDPOINTS, REQUIRED)
    assert results == list(ENDPOINTS[:3])


def test_preference_never_narrows_to_nothing() -> None:
    results = match_elements(ENDPOINTS, REQUIRED, {"port": 9999})
    assert results == list(ENDPOINTS[:3])

    results = match_elements(ENDPOINTS, {}, {"transport": "unix"})
    assert results == [ENDPOINTS[3]]


def test_best_endpoint_uses_inferred_scope() -> None:
    assert best_endpoint(ENDPOINTS, REQUIRED, PREFERRED, "public") == ENDPOINTS[0]
    assert best_endpoint(ENDPOINTS, REQUIRED, PREFERRED, "private") == ENDPOINTS[1]
    assert best_endpoint(ENDPOINTS, REQUIRED, PREFERRED, "node") == ENDPOINTS[2]


def test_best_endpoint_none_when_scope_excludes_everything() -> None:
    assert best_endpoint(ENDPOINTS, REQUIRED, PREFERRED, "other") is None
    assert best_endpoint(ENDPOINTS, {"protocol": "memcached"}, {}, "public") is None


def test_pinned_scope_skips_inference() -> None:
    pinned = {"scope": "public", "protocol": "mysql"}
    assert best_endpoint(ENDPOINTS, pinned, None, "node") == ENDPOINTS[0]


def test_empty_filters_return_first_in_scope() -> None:
    assert best_endpoint(ENDPOINTS, None, None, "node") == ENDPOINTS[2]


def test_no_endpoints_returns_none() -> None:
    assert best_endpoint((), REQUIRED, PREFERRED, "node") is None


def test_missing_filter_key_never_matches() -> None:
    unix_with_port = {"port": 3306, "transport": "unix"}
    assert best_endpoint(ENDPOINTS, unix_with_port, None, "node") is None
    assert best_endpoint(ENDPOINTS, {"weight": 1}, None, "node") is None


def test_ties_break_by_advertisement_order() -> None:
    first = Endpoint(address="10.0.0.1", port=1, scope="private")
    second = Endpoint(address="10.0.0.2", port=1, scope="private")
    assert best_endpoint((first, second), {"port": 1}, None, "private") == first
    assert best_endpoint((second, first), {"port": 1}, None, "private") == second


def test_matcher_selects_per_remote_node(
    ec2_node1: FleetNode, ec2_node2: FleetNode, ec2_node3: FleetNode
) -> None:
    matcher = EndpointMatcher()
    picks = [
        matcher.select(ec2_node1, remote, "mysql_server", REQUIRED, PREFERRED)
        for remote in (ec2_node1, ec2_node2, ec2_node3)
    ]
    assert [pick.scope for pick in picks] == ["node", "private", "public"]
    assert [pick.address for pick in picks] == [
        "127.0.0.1",
        "10.243.38.46",
        "67.202.59.238",
    ]


def test_matcher_returns_none_for_unknown_service(
    ec2_node1: FleetNode, ec2_node2: FleetNode
) -> None:
    assert EndpointMatcher().select(ec2_node1, ec2_node2, "redis") is None
