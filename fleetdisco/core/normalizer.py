"""Expand caller-declared listen specs into concrete, scope-tagged endpoints."""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import urlsplit

from loguru import logger

from fleetdisco.datastructures.endpoint import (
    BIND_ALL_ADDRESS,
    BIND_ALL_ADDRESSES,
    DEFAULT_TRANSPORT,
    SCOPE_NODE,
    SCOPE_PRIVATE,
    SCOPE_PUBLIC,
    TRANSPORT_UNIX,
    Endpoint,
    ListenSpec,
    ListenSpecLike,
    coerce_listen_specs,
)
from fleetdisco.datastructures.node import FleetNode
from fleetdisco.datastructures.type_aliases import (
    HostAddress,
    PortNumber,
    ProtocolName,
    UrlString,
)

from .errors import IpResolutionError, call_collaborator
from .interfaces import IpResolver

DEFAULT_SCHEME_PORTS: dict[str, PortNumber] = {
    "ftp": 21,
    "http": 80,
    "https": 443,
    "ldap": 389,
    "ldaps": 636,
    "ws": 80,
    "wss": 443,
}

SYMBOLIC_SCOPE_TOKENS = frozenset({"local", SCOPE_PRIVATE, SCOPE_PUBLIC})
LEGACY_SCOPE_TOKEN_FIXES = {"pubic": SCOPE_PUBLIC}

PATH_SEPARATOR = "/"
SYMBOLIC_SEPARATOR = "_"


def parse_listen_url(
    url: UrlString,
) -> tuple[ProtocolName | None, HostAddress | None, PortNumber | None]:
    parsed = urlsplit(url)
    try:
        port = parsed.port
    except ValueError as exc:
        raise ValueError(f"Invalid port in listen URL {url!r}") from exc
    scheme = parsed.scheme.lower() or None
    if port is None and scheme is not None:
        port = DEFAULT_SCHEME_PORTS.get(scheme)
    return scheme, parsed.hostname or None, port


def is_ip_address(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def is_filesystem_path(value: str) -> bool:
    return PATH_SEPARATOR in value


def is_symbolic_address(value: str) -> bool:
    if is_filesystem_path(value):
        return False
    # Trailing separators do not make a token symbolic; leading ones do.
    return (
        SYMBOLIC_SEPARATOR in value.rstrip(SYMBOLIC_SEPARATOR)
        or value in SYMBOLIC_SCOPE_TOKENS
        or value in LEGACY_SCOPE_TOKEN_FIXES
    )


@dataclass(frozen=True, slots=True)
class EndpointNormalizer:
    resolver: IpResolver

    def normalize(
        self, spec: ListenSpecLike, node: FleetNode
    ) -> list[Endpoint]:
        spec = ListenSpec.coerce(spec)
        protocol = spec.protocol
        address = spec.address
        port = spec.port

        if spec.url:
            url_protocol, url_address, url_port = parse_listen_url(spec.url)
            protocol = url_protocol or protocol
            address = url_address or address
            port = url_port if url_port is not None else port

        address = address or BIND_ALL_ADDRESS
        transport = spec.transport or DEFAULT_TRANSPORT
        scope = spec.scope

        if address in BIND_ALL_ADDRESSES:
            return self._expand_bind_all(node, port, protocol, transport)

        if is_filesystem_path(address):
            transport = TRANSPORT_UNIX
            scope = SCOPE_NODE
        elif is_symbolic_address(address):
            address = self._resolve_symbolic(node, address)

        if scope is None and is_ip_address(address):
            scope = self._classify(address)

        endpoint = Endpoint(
            address=address,
            port=port,
            protocol=protocol,
            transport=transport,
            scope=scope,
        )
        logger.debug("[{}] Normalized listen spec to {}", node.name, endpoint.url)
        return [endpoint]

    def normalize_all(
        self,
        specs: ListenSpecLike | Iterable[ListenSpecLike] | None,
        node: FleetNode,
    ) -> list[Endpoint]:
        endpoints: list[Endpoint] = []
        for spec in coerce_listen_specs(specs):
            endpoints.extend(self.normalize(spec, node))
        return endpoints

    def _expand_bind_all(
        self,
        node: FleetNode,
        port: PortNumber | None,
        protocol: ProtocolName | None,
        transport: str,
    ) -> list[Endpoint]:
        scoped = call_collaborator(
            lambda: self.resolver.find_all(node),
            IpResolutionError,
            f"list addresses of {node.name}",
        )
        endpoints: list[Endpoint] = []
        for scope, addresses in scoped.items():
            concrete = list(addresses or ())
            if not concrete:
                logger.warning(
                    "[{}] No addresses for scope {}; skipping bind-all endpoint",
                    node.name,
                    scope,
                )
                continue
            endpoints.append(
                Endpoint(
                    address=str(concrete[0]),
                    port=port,
                    protocol=protocol,
                    transport=transport,
                    scope=str(scope),
                )
            )
        logger.debug(
            "[{}] Expanded bind-all listener into {} endpoint(s)",
            node.name,
            len(endpoints),
        )
        return endpoints

    def _resolve_symbolic(self, node: FleetNode, token: str) -> HostAddress:
        corrected = LEGACY_SCOPE_TOKEN_FIXES.get(token)
        if corrected is not None:
            logger.warning(
                "[{}] Correcting misspelled scope token {!r} to {!r}",
                node.name,
                token,
                corrected,
            )
            token = corrected
        address = call_collaborator(
            lambda: self.resolver.find_one(node, token),
            IpResolutionError,
            f"resolve {token!r}",
        )
        if not address:
            raise IpResolutionError(f"Cannot resolve {token!r} for node {node.name}")
        logger.debug("[{}] Resolved {} to {}", node.name, token, address)
        return str(address)

    def _classify(self, address: HostAddress) -> str:
        scopes = call_collaborator(
            lambda: self.resolver.classify(address),
            IpResolutionError,
            f"classify {address}",
        )
        if not scopes:
            raise IpResolutionError(f"Cannot classify address {address}")
        return str(scopes[0])


def normalize_listen_spec(
    spec: ListenSpecLike, node: FleetNode, resolver: IpResolver
) -> list[Endpoint]:
    return EndpointNormalizer(resolver).normalize(spec, node)
