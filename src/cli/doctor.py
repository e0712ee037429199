"""Doctor command for environment diagnostics."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from adapters.api_client import ApiClient, AuxiliaryParams
from core.config import AppSettings, get_user_env_file
from core.domain.errors import ClassifiedError, KaasctlError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _check_connection(settings: AppSettings) -> tuple[bool, str]:
    try:
        with ApiClient(settings, aux=AuxiliaryParams.default("doctor")) as client:
            elapsed = client.ping()
        return True, f"{elapsed * 1000:.0f} ms"
    except ClassifiedError as exc:
        return False, f"{exc.kind.value}: {exc.message}"
    except KaasctlError as exc:
        return False, str(exc)


def _check_ca_file(settings: AppSettings) -> tuple[str, str]:
    if settings.ca_file is None:
        return "OK", "System trust store"
    if settings.ca_file.is_file():
        return "OK", str(settings.ca_file)
    return "FAIL", f"{settings.ca_file} does not exist"


@app.command()
def run(ctx: typer.Context) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = ctx.obj if isinstance(ctx.obj, AppSettings) else AppSettings()

    table = Table(title="kaasctl Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("User config", "OK", str(get_user_env_file()))
    if settings.api_endpoint:
        table.add_row("API endpoint", "OK", settings.api_endpoint)
    else:
        table.add_row("API endpoint", "FAIL", "Set KAASCTL_API_ENDPOINT or pass --endpoint")
    if settings.auth_token:
        table.add_row("Auth token", "OK", f"scheme '{settings.auth_scheme}'")
    else:
        table.add_row("Auth token", "MISSING", "Most commands need KAASCTL_AUTH_TOKEN")
    ca_status, ca_detail = _check_ca_file(settings)
    table.add_row("CA bundle", ca_status, escape(ca_detail))

    # Connectivity (best-effort)
    ok_http = False
    if settings.api_endpoint:
        ok_http, detail_http = _check_connection(settings)
        table.add_row("API connectivity", "OK" if ok_http else "FAIL", escape(detail_http))

    _console.print(table)

    if settings.api_endpoint and not ok_http:
        _console.print("\n[yellow]Note:[/yellow] run `kaasctl -v ping` for the full error details.")
