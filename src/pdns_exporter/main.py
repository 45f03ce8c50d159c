"""
pdns-exporter entry point.

Usage:
    pdns-exporter --api-url http://localhost:8001/ --api-key KEY   Serve /metrics
    pdns-exporter --mock                                           Serve simulated stats
    pdns-exporter info --api-url ...                               Print server identity
    pdns-exporter scrape --api-url ...                             One collection, printed
"""

from __future__ import annotations

import logging

import click
from prometheus_client import CollectorRegistry, generate_latest

from pdns_exporter import __version__
from pdns_exporter.collector.base import StatsSource
from pdns_exporter.collector.client import DEFAULT_TIMEOUT_SECONDS, PowerDNSClient
from pdns_exporter.collector.exporter import PowerDNSExporter
from pdns_exporter.collector.mock_collector import MockStatsSource
from pdns_exporter.errors import FetchError
from pdns_exporter.metrics import ServerInfo
from pdns_exporter.registry import SUPPORTED_FLAVORS, select_registry
from pdns_exporter.server import serve


log = logging.getLogger("pdns_exporter")


def _make_source(ctx) -> StatsSource:
    if ctx.obj["mock"]:
        return MockStatsSource(daemon_type=ctx.obj["flavor"])
    return PowerDNSClient(
        base_url=ctx.obj["api_url"],
        api_key=ctx.obj["api_key"],
        timeout_seconds=ctx.obj["timeout"],
    )


def _probe(source: StatsSource) -> ServerInfo:
    """Startup identity check. Without it we can't pick the metric tables."""
    try:
        return source.fetch_server_info()
    except FetchError as exc:
        raise click.ClickException(f"Could not fetch PowerDNS server info: {exc}") from exc


def _build_exporter(source: StatsSource, info: ServerInfo) -> PowerDNSExporter:
    if info.daemon_type not in SUPPORTED_FLAVORS:
        log.warning("Unknown PowerDNS daemon type %r, exporting health metrics only", info.daemon_type)
    return PowerDNSExporter(source, select_registry(info.daemon_type))


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="pdns-exporter")
@click.option("--api-url", default="http://localhost:8001/", envvar="PDNS_API_URL", show_default=True,
              help="Base URL of the PowerDNS authoritative server/recursor API")
@click.option("--api-key", default="", envvar="PDNS_API_KEY", help="PowerDNS API key")
@click.option("--listen-address", default=":9130", show_default=True,
              help="Address to listen on for the web interface and telemetry")
@click.option("--metric-path", default="/metrics", show_default=True,
              help="Path under which to expose metrics")
@click.option("--timeout", default=DEFAULT_TIMEOUT_SECONDS, show_default=True,
              help="PowerDNS API timeout in seconds")
@click.option("--mock", is_flag=True, default=False, help="Use simulated PowerDNS statistics")
@click.option("--flavor", type=click.Choice(list(SUPPORTED_FLAVORS)), default="recursor",
              help="Simulated daemon type (with --mock)")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx, api_url: str, api_key: str, listen_address: str, metric_path: str,
        timeout: float, mock: bool, flavor: str, verbose: bool):
    """Prometheus exporter for PowerDNS statistics."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    ctx.ensure_object(dict)
    ctx.obj["api_url"] = api_url
    ctx.obj["api_key"] = api_key
    ctx.obj["timeout"] = timeout
    ctx.obj["mock"] = mock
    ctx.obj["flavor"] = flavor

    if ctx.invoked_subcommand is not None:
        return

    source = _make_source(ctx)
    try:
        server = _probe(source)
        exporter = _build_exporter(source, server)
        log.info("Exporting PowerDNS %s %s from %s", server.daemon_type, server.version, source.name())

        registry = CollectorRegistry()
        registry.register(exporter)
        serve(registry, listen_address=listen_address, metrics_path=metric_path)
    finally:
        source.close()


@cli.command()
@click.pass_context
def info(ctx):
    """Print the identity of the PowerDNS server behind the API."""
    from rich.console import Console
    from rich.table import Table

    source = _make_source(ctx)
    try:
        server = _probe(source)
    finally:
        source.close()

    table = Table(title=source.name(), show_header=True, header_style="bold")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field_name, value in server.summary().items():
        table.add_row(field_name, value)
    table.add_row("exported metrics", _describe_tables(server.daemon_type))

    Console().print(table)


def _describe_tables(daemon_type: str) -> str:
    registry = select_registry(daemon_type)
    parts = [f"{len(registry.gauges)} gauges", f"{len(registry.counter_groups)} counter groups"]
    if registry.response_time_histogram:
        parts.append("response time histogram")
    return ", ".join(parts)


@cli.command()
@click.pass_context
def scrape(ctx):
    """Run a single collection and print it in Prometheus text format."""
    source = _make_source(ctx)
    try:
        exporter = _build_exporter(source, _probe(source))
        registry = CollectorRegistry()
        registry.register(exporter)
        click.echo(generate_latest(registry).decode(), nl=False)
    finally:
        source.close()


if __name__ == "__main__":
    cli()
