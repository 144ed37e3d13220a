#!/usr/bin/env python3
"""
Main CLI entry point for fleetdisco.

Runs the discovery core against a JSON fleet inventory:
- Show the search query a discovery call would issue
- List nodes announcing a service
- Pick the best endpoint per node under require/prefer filters
- Classify the scope between two nodes
- Announce a service for a node and write the inventory back
"""

import json
import sys
from collections.abc import Iterable

import click
from loguru import logger
from rich.console import Console
from rich.table import Table

from fleetdisco.core.config import DiscoveryQueryParams, DiscoverySettings
from fleetdisco.core.errors import DiscoveryError
from fleetdisco.core.inventory import (
    InventoryIpResolver,
    InventorySearchEngine,
    JsonInventoryStore,
    load_inventory,
)
from fleetdisco.core.logging import configure_logging_from_settings
from fleetdisco.core.service_discovery import ServiceDiscovery
from fleetdisco.datastructures.endpoint import Endpoint
from fleetdisco.datastructures.node import FleetNode
from fleetdisco.datastructures.type_aliases import FilterValue

console = Console()


def parse_filter(pairs: Iterable[str]) -> dict[str, FilterValue]:
    """Turn ``key=value`` pairs into a filter; digit-only values become ints."""
    result: dict[str, FilterValue] = {}
    for pair in pairs:
        key, separator, value = pair.partition("=")
        if not separator or not key:
            raise click.BadParameter(f"Expected key=value, got {pair!r}")
        result[key.strip()] = int(value) if value.strip().isdigit() else value
    return result


def _require_node(store: JsonInventoryStore, name: str) -> FleetNode:
    node = store.node(name)
    if node is None:
        raise click.BadParameter(f"Node {name!r} is not in the inventory")
    return node


def _build_discovery(ctx: click.Context, *, persist: bool = True) -> ServiceDiscovery:
    store: JsonInventoryStore = ctx.obj["store"]
    settings = ctx.obj["settings"].model_copy(
        update={"persist_announcements": persist}
    )
    return ServiceDiscovery(
        node=_require_node(store, ctx.obj["local"]),
        store=store,
        search_engine=InventorySearchEngine(store),
        ip_resolver=InventoryIpResolver(),
        settings=settings,
    )


def _query_params(
    environment: str | None,
    cluster: str | None,
    data_center: str | None,
    no_environment: bool,
    no_cluster: bool,
    data_center_aware: bool,
    exclude_self: bool,
) -> DiscoveryQueryParams:
    return DiscoveryQueryParams(
        environment=environment,
        environment_aware=not no_environment,
        cluster=cluster,
        cluster_aware=not no_cluster,
        data_center=data_center,
        data_center_aware=data_center_aware or data_center is not None,
        exclude_self=exclude_self,
    )


def query_options(command):
    """Shared discovery toggles for query/nodes/endpoints."""
    options = [
        click.option("--environment", help="Environment to search (default: local)"),
        click.option("--cluster", help="Service cluster to search (default: local)"),
        click.option("--data-center", help="Restrict to a data center"),
        click.option("--no-environment", is_flag=True, help="Ignore environment"),
        click.option("--no-cluster", is_flag=True, help="Ignore cluster"),
        click.option(
            "--data-center-aware", is_flag=True, help="Restrict to local data center"
        ),
        click.option("--exclude-self", is_flag=True, help="Drop the local node"),
    ]
    for option in reversed(options):
        command = option(command)
    return command


def display_endpoints(rows: list[tuple[str, Endpoint]]) -> None:
    table = Table(title="🔌 Connection Endpoints")
    table.add_column("Node", style="cyan", no_wrap=True)
    table.add_column("Scope", style="magenta")
    table.add_column("Transport", style="green")
    table.add_column("Protocol", style="yellow")
    table.add_column("Address", style="blue")
    table.add_column("Port", justify="right")
    for node_name, endpoint in rows:
        table.add_row(
            node_name,
            endpoint.scope or "-",
            endpoint.transport,
            endpoint.protocol or "-",
            endpoint.address,
            str(endpoint.port) if endpoint.port is not None else "-",
        )
    console.print(table)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--inventory",
    "-i",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Fleet inventory JSON file",
)
@click.option("--local", "-l", "local", required=True, help="Name of the local node")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, inventory: str, local: str):
    """
    fleetdisco service discovery CLI.

    Announce services and find the best reachable endpoint of peers in a
    fleet inventory, as seen from the --local node.
    """
    settings = DiscoverySettings()
    configure_logging_from_settings(settings, verbose=verbose, colorize=True)
    ctx.ensure_object(dict)
    ctx.obj["store"] = load_inventory(inventory)
    ctx.obj["local"] = local
    ctx.obj["settings"] = settings


@cli.command()
@click.argument("service")
@query_options
@click.pass_context
def query(ctx: click.Context, service: str, **toggles):
    """Print the search query for SERVICE."""
    disco = _build_discovery(ctx)
    click.echo(disco.build_query(service, _query_params(**toggles)))


@cli.command()
@click.argument("service")
@query_options
@click.pass_context
def nodes(ctx: click.Context, service: str, **toggles):
    """List nodes announcing SERVICE."""
    disco = _build_discovery(ctx)
    found = disco.discover_nodes_for(service, _query_params(**toggles))
    if not found:
        console.print(f"[yellow]No nodes announce {service}[/yellow]")
        return
    for node in found:
        click.echo(node.name)


@cli.command()
@click.argument("service")
@query_options
@click.option("--require", "-r", multiple=True, help="Required key=value")
@click.option("--prefer", "-p", multiple=True, help="Preferred key=value")
@click.option("--node", "-n", "node_names", multiple=True, help="Target node(s)")
@click.option(
    "--output",
    "-o",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.pass_context
def endpoints(
    ctx: click.Context,
    service: str,
    require: tuple[str, ...],
    prefer: tuple[str, ...],
    node_names: tuple[str, ...],
    output: str,
    **toggles,
):
    """Pick the best endpoint of SERVICE on each discovered node."""
    disco = _build_discovery(ctx)
    store: JsonInventoryStore = ctx.obj["store"]
    if node_names:
        targets = [_require_node(store, name) for name in node_names]
    else:
        targets = disco.discover_nodes_for(service, _query_params(**toggles))

    required = parse_filter(require)
    preferred = parse_filter(prefer)
    rows: list[tuple[str, Endpoint]] = []
    for target in targets:
        picked = disco.discover_connection_endpoints_for(
            service, require=required, prefer=preferred, node=target
        )
        rows.extend((target.name, endpoint) for endpoint in picked)

    if output == "json":
        payload = [
            {"node": name, **endpoint.to_dict(), "url": endpoint.url}
            for name, endpoint in rows
        ]
        click.echo(json.dumps(payload, indent=2))
    else:
        display_endpoints(rows)


@cli.command()
@click.argument("remote")
@click.pass_context
def classify(ctx: click.Context, remote: str):
    """Print the scope the local node shares with REMOTE."""
    disco = _build_discovery(ctx)
    remote_node = _require_node(ctx.obj["store"], remote)
    scope = disco.classifier.classify(
        disco.node.profile, remote_node.profile, same_node=disco.node == remote_node
    )
    click.echo(scope)


@cli.command()
@click.argument("service")
@click.argument("listen", nargs=-1)
@click.option("--cluster", "-c", help="Cluster to announce in (default: local)")
@click.option("--dry-run", is_flag=True, help="Do not write the inventory")
@click.pass_context
def announce(
    ctx: click.Context,
    service: str,
    listen: tuple[str, ...],
    cluster: str | None,
    dry_run: bool,
):
    """Announce SERVICE listening on each LISTEN (URL or address)."""
    disco = _build_discovery(ctx, persist=not dry_run)
    changed = disco.announce_service(service, list(listen), cluster=cluster)
    advertisement = disco.node.advertisement(service)
    if advertisement is not None:
        click.echo(json.dumps(advertisement.to_dict(), indent=2))
    if not changed:
        console.print("[dim]Advertisement unchanged[/dim]")
    elif dry_run:
        console.print("[yellow]Dry run: inventory not written[/yellow]")
    else:
        console.print(f"[green]✅ Announced {service}[/green]")


def main():
    """Main CLI entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠️ Operation cancelled by user[/yellow]")
        sys.exit(1)
    except DiscoveryError as e:
        logger.debug("Discovery failed: {}", e)
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
