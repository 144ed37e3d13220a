from collections.abc import Mapping
from dataclasses import dataclass, fields

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fleetdisco.datastructures.type_aliases import (
    ClusterId,
    DataCenterId,
    EnvironmentId,
)


class DiscoverySettings(BaseSettings):
    """Service discovery configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="FLEETDISCO_", env_file=".env", extra="ignore"
    )

    persist_announcements: bool = Field(
        True,
        description="Persist the local node after a changed announce. Disable for standalone runs.",
    )
    match_workers: int = Field(
        1,
        ge=1,
        description="Threads used to pick endpoints across candidate nodes (1 = sequential).",
    )
    search_entity_kind: str = Field(
        "node", description="Entity kind passed to the search collaborator."
    )
    service_field: str = Field(
        "announced_services",
        description="Search field holding announced service names.",
    )
    environment_field: str = Field(
        "chef_environment", description="Search field holding the node environment."
    )
    data_center_field: str = Field(
        "data_center", description="Search field holding the node data center."
    )
    log_level: str = Field("WARNING", description="Log level for configure_logging.")
    debug_scopes: tuple[str, ...] = Field(
        (), description="Module scopes that log at DEBUG regardless of log_level."
    )


@dataclass(frozen=True, slots=True)
class DiscoveryQueryParams:
    """Per-call discovery parameters; unset values default from the local node."""

    environment: EnvironmentId | None = None
    environment_aware: bool = True
    cluster: ClusterId | None = None
    cluster_aware: bool = True
    data_center: DataCenterId | None = None
    data_center_aware: bool = False
    exclude_self: bool = False

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object] | None) -> "DiscoveryQueryParams":
        if not payload:
            return cls()
        known = {item.name for item in fields(cls)}
        unknown = set(payload) - known
        if unknown:
            raise ValueError(f"Unknown discovery parameters: {sorted(unknown)}")
        return cls(**payload)  # type: ignore[arg-type]
