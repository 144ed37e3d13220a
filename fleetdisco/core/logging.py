"""Loguru setup for fleetdisco.

One sink carries everything at or above the configured level, plus DEBUG
records from the modules named in ``debug_scopes``. Scopes are module
paths relative to the package (``core.normalizer``) or absolute
(``fleetdisco.core.normalizer``).
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable
from typing import TextIO

from loguru import logger

from .config import DiscoverySettings

PACKAGE_PREFIX = "fleetdisco."

type LogSink = TextIO | Callable[[str], object]


def _component(module_name: str) -> str:
    return module_name.removeprefix(PACKAGE_PREFIX)


def _format_record(record) -> str:
    # Module names never contain braces, so the component is safe to inline.
    return (
        "{time:HH:mm:ss.SSS} | {level: <8} | "
        + _component(record["name"] or "")
        + ":{line} | {message}\n{exception}"
    )


def _scope_matcher(debug_scopes: Iterable[str]) -> Callable[[str], bool]:
    scopes = tuple(
        _component(scope.strip()) for scope in debug_scopes if scope.strip()
    )

    def _matches(module_name: str) -> bool:
        component = _component(module_name)
        return any(
            component == scope or component.startswith(f"{scope}.")
            for scope in scopes
        )

    return _matches


def configure_logging(
    level: str,
    *,
    debug_scopes: Iterable[str] = (),
    colorize: bool = False,
    sink: LogSink | None = None,
) -> int:
    """Replace loguru's sinks with a single fleetdisco sink; returns its id."""
    logger.remove()
    threshold = logger.level(level.upper()).no
    in_debug_scope = _scope_matcher(debug_scopes)

    def _filter(record) -> bool:
        if record["level"].no >= threshold:
            return True
        return record["level"].name == "DEBUG" and in_debug_scope(
            record["name"] or ""
        )

    return logger.add(
        sink if sink is not None else sys.stderr,
        level="DEBUG",
        format=_format_record,
        colorize=colorize,
        filter=_filter,
    )


def configure_logging_from_settings(
    settings: DiscoverySettings,
    *,
    verbose: bool = False,
    colorize: bool = False,
) -> int:
    """Apply ``log_level``/``debug_scopes``; ``verbose`` forces DEBUG."""
    return configure_logging(
        "DEBUG" if verbose else settings.log_level,
        debug_scopes=settings.debug_scopes,
        colorize=colorize,
    )
