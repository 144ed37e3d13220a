"""Listen specifications, normalized endpoints and service advertisements."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Final

from loguru import logger

from .type_aliases import (
    AttributeMap,
    AttributeValue,
    ClusterId,
    HostAddress,
    JsonDict,
    PortNumber,
    ProtocolName,
    Scope,
    TransportKind,
    UrlString,
)

SCOPE_NODE: Scope = "node"
SCOPE_PRIVATE: Scope = "private"
SCOPE_PUBLIC: Scope = "public"
WELL_KNOWN_SCOPES = (SCOPE_NODE, SCOPE_PRIVATE, SCOPE_PUBLIC)

TRANSPORT_TCP: TransportKind = "tcp"
TRANSPORT_UDP: TransportKind = "udp"
TRANSPORT_UNIX: TransportKind = "unix"
DEFAULT_TRANSPORT: TransportKind = TRANSPORT_TCP

BIND_ALL_ADDRESS: HostAddress = "0.0.0.0"
BIND_ALL_ADDRESSES = frozenset({BIND_ALL_ADDRESS, "::"})

# Stored data written by older announcers uses "socket_type".
LEGACY_TRANSPORT_KEY = "socket_type"
ENDPOINT_FIELDS = ("address", "port", "protocol", "transport", "scope")


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Final = _Missing()


def _coerce_port(value: object) -> PortNumber | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid port: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    text = str(value).strip()
    if not text.isdigit():
        raise ValueError(f"Invalid port: {value!r}")
    return int(text)


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def _canonical_key(key: object) -> str:
    name = str(key)
    return "transport" if name == LEGACY_TRANSPORT_KEY else name


@dataclass(frozen=True, slots=True)
class ListenSpec:
    """Caller-declared listen specification prior to normalization."""

    url: UrlString | None = None
    address: HostAddress | None = None
    port: PortNumber | None = None
    protocol: ProtocolName | None = None
    transport: TransportKind | None = None
    scope: Scope | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "port", _coerce_port(self.port))

    @classmethod
    def from_dict(cls, payload: AttributeMap) -> ListenSpec:
        data = {_canonical_key(key): value for key, value in payload.items()}
        unknown = set(data) - {"url", *ENDPOINT_FIELDS}
        if unknown:
            raise ValueError(f"Unknown listen spec keys: {sorted(unknown)}")
        return cls(
            url=_optional_str(data.get("url")),
            address=_optional_str(data.get("address")),
            port=data.get("port"),
            protocol=_optional_str(data.get("protocol")),
            transport=_optional_str(data.get("transport")),
            scope=_optional_str(data.get("scope")),
        )

    @classmethod
    def coerce(cls, value: ListenSpec | AttributeMap | str) -> ListenSpec:
        if isinstance(value, ListenSpec):
            return value
        if isinstance(value, str):
            if "://" in value:
                return cls(url=value)
            return cls(address=value)
        if isinstance(value, Mapping):
            return cls.from_dict(value)
        raise TypeError(f"Unsupported listen spec: {type(value).__name__}")


type ListenSpecLike = ListenSpec | AttributeMap | str


def coerce_listen_specs(
    value: ListenSpecLike | Iterable[ListenSpecLike] | None,
) -> tuple[ListenSpec, ...]:
    """Accept a single spec, a sequence of specs, or nothing."""
    if value is None:
        return ()
    if isinstance(value, (ListenSpec, str, Mapping)):
        return (ListenSpec.coerce(value),)
    return tuple(ListenSpec.coerce(item) for item in value if item is not None)


@dataclass(frozen=True, slots=True)
class Endpoint:
    """One concrete address a service can be reached on."""

    address: HostAddress
    port: PortNumber | None = None
    protocol: ProtocolName | None = None
    transport: TransportKind = DEFAULT_TRANSPORT
    scope: Scope | None = None
    extra: dict[str, AttributeValue] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if not self.address:
            raise ValueError("Endpoint address is required")
        object.__setattr__(self, "port", _coerce_port(self.port))
        object.__setattr__(self, "transport", self.transport or DEFAULT_TRANSPORT)

    def attribute(self, name: str) -> AttributeValue:
        """Return a named attribute, or ``MISSING`` when unset."""
        key = _canonical_key(name)
        if key in ENDPOINT_FIELDS:
            value = getattr(self, key)
        else:
            value = self.extra.get(key)
        return MISSING if value is None else value

    def matches(self, constraints: Mapping[str, AttributeValue]) -> bool:
        for key, expected in constraints.items():
            actual = self.attribute(key)
            if actual is MISSING or actual != expected:
                return False
        return True

    def with_changes(self, **changes: AttributeValue) -> Endpoint:
        return replace(self, **changes)

    @property
    def url(self) -> str:
        if self.transport == TRANSPORT_UNIX:
            return f"unix://{self.address}"
        scheme = self.protocol or self.transport
        host = f"[{self.address}]" if ":" in self.address else self.address
        if self.port is None:
            return f"{scheme}://{host}"
        return f"{scheme}://{host}:{self.port}"

    def to_dict(self) -> JsonDict:
        payload: JsonDict = {"address": self.address}
        if self.port is not None:
            payload["port"] = int(self.port)
        if self.protocol is not None:
            payload["protocol"] = self.protocol
        payload["transport"] = self.transport
        if self.scope is not None:
            payload["scope"] = self.scope
        for key, value in self.extra.items():
            payload.setdefault(key, value)
        return payload

    @classmethod
    def from_dict(cls, payload: AttributeMap) -> Endpoint:
        data = {_canonical_key(key): value for key, value in payload.items()}
        extra = {
            key: value
            for key, value in data.items()
            if key not in ENDPOINT_FIELDS and value is not None
        }
        return cls(
            address=str(data.get("address", "") or ""),
            port=data.get("port"),
            protocol=_optional_str(data.get("protocol")),
            transport=_optional_str(data.get("transport")) or DEFAULT_TRANSPORT,
            scope=_optional_str(data.get("scope")),
            extra=extra,
        )


@dataclass(frozen=True, slots=True)
class ServiceAdvertisement:
    """Everything one node publishes about one named service."""

    cluster: ClusterId | None = None
    endpoints: tuple[Endpoint, ...] = field(default_factory=tuple)
    metadata: dict[str, AttributeValue] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "endpoints", tuple(self.endpoints))

    def to_dict(self) -> JsonDict:
        payload: JsonDict = dict(self.metadata)
        payload["cluster"] = self.cluster
        payload["listening_on"] = [endpoint.to_dict() for endpoint in self.endpoints]
        return payload

    @classmethod
    def from_dict(cls, payload: AttributeMap) -> ServiceAdvertisement:
        raw = payload.get("listening_on")
        if raw is None:
            entries: list[AttributeMap] = []
        elif isinstance(raw, Mapping):
            entries = [raw]
        else:
            entries = [entry for entry in raw if isinstance(entry, Mapping)]
        endpoints: list[Endpoint] = []
        for entry in entries:
            if not entry.get("address"):
                continue
            try:
                endpoints.append(Endpoint.from_dict(entry))
            except ValueError as exc:
                logger.warning("Skipping unreadable endpoint {!r}: {}", dict(entry), exc)
        metadata = {
            str(key): value
            for key, value in payload.items()
            if key not in ("cluster", "listening_on")
        }
        return cls(
            cluster=_optional_str(payload.get("cluster")),
            endpoints=tuple(endpoints),
            metadata=metadata,
        )
