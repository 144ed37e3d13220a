"""
fleetdisco command line interface.

Inspect and update a fleet inventory with the discovery core.
"""

from .main import cli, main

__all__ = ["main", "cli"]
