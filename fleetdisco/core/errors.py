"""Failure kinds raised by the discovery core."""

from collections.abc import Callable


class DiscoveryError(Exception):
    """Base exception for service discovery errors."""

    pass


class CollaboratorError(DiscoveryError):
    """Raised when an external collaborator fails or cannot answer."""

    pass


class IpResolutionError(CollaboratorError):
    """Raised when an address cannot be resolved or classified."""

    pass


class SearchError(CollaboratorError):
    """Raised when the node search collaborator fails."""

    pass


class StorageError(CollaboratorError):
    """Raised when reading, writing or persisting an advertisement fails."""

    pass


def call_collaborator[T](
    call: Callable[[], T], error: type[CollaboratorError], action: str
) -> T:
    """Run a collaborator call, surfacing foreign failures as ``error``."""
    try:
        return call()
    except DiscoveryError:
        raise
    except Exception as exc:
        raise error(f"Failed to {action}: {exc}") from exc
