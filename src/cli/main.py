"""kaasctl command line.

The commands here are thin: they collect input, call the core services and
print. All failures go through `cli.errors.reporting_errors`.
"""

from __future__ import annotations

from typing import Any, Optional

import typer
from rich.console import Console

from adapters.api_client import ApiClient, AuxiliaryParams
from cli import doctor
from cli.errors import reporting_errors
from cli.ui_components import build_capabilities_table, build_clusters_table
from core.config import AppSettings, load_settings
from core.domain.models import ReleaseVersion
from core.log import configure_logging
from core.services.capabilities import CapabilityResolver
from core.services.cluster_resolver import ClusterResolver

app = typer.Typer(no_args_is_help=True, help="Client for the managed Kubernetes control-plane API.")
app.add_typer(doctor.app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)


def _settings(ctx: typer.Context) -> AppSettings:
    settings = ctx.obj
    if not isinstance(settings, AppSettings):
        with reporting_errors(_err_console):
            settings = load_settings()
        ctx.obj = settings
    return settings


def _client(settings: AppSettings, activity: str) -> ApiClient:
    return ApiClient(settings, aux=AuxiliaryParams.default(activity))


@app.callback()
def main(
    ctx: typer.Context,
    endpoint: Optional[str] = typer.Option(None, "--endpoint", "-e", help="API endpoint URL."),
    auth_token: Optional[str] = typer.Option(None, "--auth-token", help="Token for the Authorization header."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr."),
) -> None:
    overrides: dict[str, Any] = {}
    if endpoint:
        overrides["api_endpoint"] = endpoint
    if auth_token:
        overrides["auth_token"] = auth_token
    if verbose:
        overrides["log_level"] = "DEBUG"

    with reporting_errors(_err_console):
        settings = load_settings(**overrides)
    configure_logging(settings.log_level, console=_err_console)
    ctx.obj = settings


@app.command()
def ping(ctx: typer.Context) -> None:
    """Check the API connection."""

    settings = _settings(ctx)
    with reporting_errors(_err_console):
        with _client(settings, "ping") as client:
            elapsed = client.ping()
    _console.print("[green]API connection is fine[/green]")
    _console.print(f"Ping took {elapsed * 1000:.0f} milliseconds")


@app.command()
def info(ctx: typer.Context) -> None:
    """Show the installation's provider."""

    settings = _settings(ctx)
    with reporting_errors(_err_console):
        with _client(settings, "info") as client:
            installation = client.get_info()
    _console.print(f"API endpoint: {settings.api_endpoint}")
    _console.print(f"Installation: {installation.name or 'n/a'}")
    _console.print(f"Provider:     {installation.provider}")


@app.command()
def clusters(ctx: typer.Context) -> None:
    """List the clusters visible to the current credentials."""

    settings = _settings(ctx)
    with reporting_errors(_err_console):
        with _client(settings, "list-clusters") as client:
            items = ClusterResolver(client, client.endpoint).clusters()
    if not items:
        _console.print("No clusters")
        return
    _console.print(build_clusters_table(items))


@app.command()
def resolve(
    ctx: typer.Context,
    name_or_id: str = typer.Argument("", help="Cluster name or ID."),
) -> None:
    """Print the ID of the cluster with the given name or ID.

    Without an argument, the only visible cluster is used if there is exactly one.
    """

    settings = _settings(ctx)
    with reporting_errors(_err_console):
        with _client(settings, "resolve-cluster") as client:
            cluster_id = ClusterResolver(client, client.endpoint).resolve_or_default(name_or_id)
    _console.print(cluster_id)


@app.command()
def capabilities(
    ctx: typer.Context,
    release: Optional[str] = typer.Option(None, "--release", "-r", help="Release version, e.g. 9.0.0."),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Provider; read from the API if omitted."),
    cluster: Optional[str] = typer.Option(None, "--cluster", "-c", help="Cluster name or ID to read the release from."),
) -> None:
    """List the optional features available for a release."""

    resolver = CapabilityResolver()

    if provider and release and not cluster:
        with reporting_errors(_err_console):
            active = resolver.resolve(provider, release)
        _console.print(build_capabilities_table(active, provider=provider, release_version=release))
        return

    settings = _settings(ctx)
    with reporting_errors(_err_console):
        if release:
            ReleaseVersion.parse(release)
        with _client(settings, "show-capabilities") as client:
            if cluster or not release:
                # Without --cluster or --release, the only visible cluster is used.
                record = ClusterResolver(client, client.endpoint).cluster(cluster)
                release = record.release_version
                if not release:
                    raise typer.BadParameter(f"cluster '{record.name or record.id}' reports no release version")
            provider = provider or client.get_info().provider
        active = resolver.resolve(provider, release)
    _console.print(build_capabilities_table(active, provider=provider, release_version=release))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
