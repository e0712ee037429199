"""Common error handling for commands.

Why here:
- The core only classifies; deciding the text a user sees and the process
  exit code is the command layer's job.
- Every command shares the same mapping, so a 401 reads the same everywhere.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import typer
from rich.console import Console
from rich.markup import escape

from core.domain.errors import (
    AmbiguousClusterNameError,
    CertificateFailure,
    ClassifiedError,
    ClusterNameOrIDMissingError,
    ClusterNotFoundError,
    ConfigurationError,
    EndpointMissingError,
    ErrorKind,
    HTTPStatusFailure,
    InvalidVersionError,
    KaasctlError,
    MalformedResponseFailure,
    TimeoutFailure,
    TransportFailure,
    error_summary,
)

logger = logging.getLogger(__name__)

EXIT_GENERIC = 1
EXIT_USAGE = 2
EXIT_AUTH = 3
EXIT_NOT_FOUND = 4
EXIT_NETWORK = 5
EXIT_CERTIFICATE = 6


def _describe(err: KaasctlError) -> tuple[str, str | None, int]:
    """Headline, optional hint and exit code for an error."""

    if isinstance(err, EndpointMissingError):
        return "No API endpoint configured.", "Pass --endpoint or set KAASCTL_API_ENDPOINT.", EXIT_USAGE
    if isinstance(err, ConfigurationError):
        return "The configuration is invalid: " + "; ".join(err.problems), "Check the KAASCTL_* settings.", EXIT_USAGE
    if isinstance(err, ClusterNameOrIDMissingError):
        return "Please name the cluster (name or ID).", None, EXIT_USAGE
    if isinstance(err, InvalidVersionError):
        return (
            f"'{err.version}' is not a valid release version.",
            "Release versions have the form MAJOR.MINOR.PATCH, e.g. 9.0.0.",
            EXIT_USAGE,
        )
    if isinstance(err, AmbiguousClusterNameError):
        return (
            f"The name '{err.name}' matches {len(err.cluster_ids)} clusters: {', '.join(err.cluster_ids)}.",
            "Use the cluster ID instead.",
            EXIT_USAGE,
        )
    if isinstance(err, ClusterNotFoundError):
        return (
            f"Cluster '{err.name_or_id}' could not be found.",
            "List your clusters with `kaasctl clusters`.",
            EXIT_NOT_FOUND,
        )
    if isinstance(err, TimeoutFailure):
        return "The API did not answer in time.", "Try again, possibly with a longer KAASCTL_HTTP_TIMEOUT_SECONDS.", EXIT_NETWORK
    if isinstance(err, CertificateFailure) and err.ca_file:
        return (
            f"The CA bundle '{err.ca_file}' could not be loaded.",
            "Point KAASCTL_CA_FILE at a readable PEM file, or unset it to use the system trust store.",
            EXIT_CERTIFICATE,
        )
    if isinstance(err, CertificateFailure):
        return (
            "The API's certificate is signed by an unknown authority.",
            "Set KAASCTL_CA_FILE to a PEM bundle that includes the issuing CA.",
            EXIT_CERTIFICATE,
        )
    if isinstance(err, TransportFailure):
        if err.kind is ErrorKind.HOST_UNRESOLVABLE:
            return "The API host name could not be resolved.", "Check the endpoint URL.", EXIT_NETWORK
        if err.kind is ErrorKind.CONNECTION_REFUSED:
            return "The API refused the connection.", "Check the endpoint URL and your network.", EXIT_NETWORK
        return "Could not reach the API.", None, EXIT_NETWORK
    if isinstance(err, HTTPStatusFailure):
        if err.is_unauthorized:
            return "You are not logged in or your token has expired.", "Set KAASCTL_AUTH_TOKEN.", EXIT_AUTH
        if err.is_forbidden:
            return "Access to this resource is forbidden.", None, EXIT_AUTH
        if err.is_not_found:
            return "The requested resource does not exist.", None, EXIT_NOT_FOUND
        if err.is_conflict:
            return "The request conflicts with the current state of the resource.", None, EXIT_GENERIC
        if err.is_server_error:
            return "The API reported an internal error.", "Please try again later.", EXIT_NETWORK
        return f"The API rejected the request ({err.http_status_code}).", None, EXIT_GENERIC
    if isinstance(err, MalformedResponseFailure):
        return "The API sent a response that could not be understood.", None, EXIT_GENERIC
    return "An unexpected error occurred.", None, EXIT_GENERIC


def handle_common_errors(err: KaasctlError, console: Console) -> int:
    """Print a user-facing explanation of `err`; return the exit code to use."""

    headline, hint, code = _describe(err)
    logger.debug("command failed: %s", error_summary(err))

    console.print(f"[red]{escape(headline)}[/red]")
    if isinstance(err, ClassifiedError):
        console.print(f"[dim]{escape(err.details)}[/dim]")
    if hint:
        console.print(f"[yellow]Hint:[/yellow] {escape(hint)}")
    return code


@contextmanager
def reporting_errors(console: Console) -> Iterator[None]:
    """Turn core errors raised inside the block into a clean `typer.Exit`."""

    try:
        yield
    except KaasctlError as err:
        raise typer.Exit(code=handle_common_errors(err, console)) from err
