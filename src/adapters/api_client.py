"""httpx-based client for the control-plane API.

Why a wrapper:
- Standardizes timeouts, headers, auth and TLS trust for every command.
- Funnels every failure through the error classifier: callers only ever see
  `ClassifiedError` subclasses, never raw httpx exceptions.
- Easy to test: pass an `httpx.MockTransport` instead of the network.
"""

from __future__ import annotations

import logging
import ssl
import sys
import time
import uuid
from dataclasses import dataclass
from typing import Any, Sequence

import httpx
from pydantic import ValidationError

from core.config import AppSettings
from core.domain.errors import CertificateFailure, EndpointMissingError
from core.domain.models import Cluster, InstallationInfo
from core.services.error_classifier import classify_exception, classify_response, decode_response

logger = logging.getLogger(__name__)

REDACTED = "REDACTED"

# Flags whose value never leaves the machine. `-p` is only a password after `login`.
_SECRET_FLAGS = ("--password", "--auth-token")
_LOGIN_SECRET_FLAGS = ("-p",)


def redact_args(args: Sequence[str]) -> list[str]:
    """Return a copy of a command line with secret flag values replaced."""

    out: list[str] = []
    secret_next = False
    is_login = False
    for arg in args:
        if secret_next:
            out.append(REDACTED)
            secret_next = False
            continue
        if arg == "login":
            is_login = True
        flags = _SECRET_FLAGS + (_LOGIN_SECRET_FLAGS if is_login else ())
        name, sep, _ = arg.partition("=")
        if name in flags:
            if sep:
                out.append(f"{name}={REDACTED}")
            else:
                out.append(arg)
                secret_next = True
            continue
        out.append(arg)
    return out


@dataclass(frozen=True)
class AuxiliaryParams:
    """Request metadata sent along with every API call, for server-side tracing."""

    request_id: str = ""
    command_line: str = ""
    activity_name: str = ""

    @classmethod
    def default(cls, activity_name: str = "", argv: Sequence[str] | None = None) -> "AuxiliaryParams":
        command_line = " ".join(redact_args(sys.argv if argv is None else argv))
        return cls(
            request_id=uuid.uuid4().hex,
            # Header values must be ASCII.
            command_line=command_line.encode("ascii", "backslashreplace").decode("ascii"),
            activity_name=activity_name,
        )

    def headers(self) -> dict[str, str]:
        pairs = {
            "X-Request-ID": self.request_id,
            "X-Giant-Swarm-CmdLine": self.command_line,
            "X-Giant-Swarm-Activity": self.activity_name,
        }
        return {name: value for name, value in pairs.items() if value}


def _load_ca_bundle(ca_file: Any) -> ssl.SSLContext:
    try:
        return ssl.create_default_context(cafile=str(ca_file))
    except (OSError, ssl.SSLError) as exc:
        raise CertificateFailure(
            "CA bundle could not be loaded",
            f"{ca_file}: {exc}",
            original_error=exc,
            ca_file=str(ca_file),
        ) from exc


def build_client(
    settings: AppSettings | None = None,
    *,
    timeout: float | None = None,
    transport: httpx.BaseTransport | None = None,
    aux: AuxiliaryParams | None = None,
) -> httpx.Client:
    """Create an `httpx.Client` bound to the configured endpoint.

    Why a builder:
    - Centralizes timeouts/headers so every call behaves the same.
    - The CA bundle, when configured, replaces the system trust store.
    """

    settings = settings or AppSettings()
    if not settings.api_endpoint:
        raise EndpointMissingError()

    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if settings.auth_token:
        headers["Authorization"] = f"{settings.auth_scheme} {settings.auth_token}"
    if aux is not None:
        headers.update(aux.headers())

    verify: ssl.SSLContext | bool = True
    if settings.ca_file is not None:
        verify = _load_ca_bundle(settings.ca_file)

    kwargs: dict[str, Any] = {}
    if transport is not None:
        kwargs["transport"] = transport
    return httpx.Client(
        base_url=settings.api_endpoint,
        timeout=httpx.Timeout(timeout or settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        verify=verify,
        **kwargs,
    )


class ApiClient:
    """Typed access to the few endpoints the core needs.

    Implements `ClusterSource` and `InstallationSource`.
    """

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        aux: AuxiliaryParams | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._transport = transport
        self._aux = aux if aux is not None else AuxiliaryParams.default()
        self._client = build_client(self._settings, transport=transport, aux=self._aux)

    @property
    def aux(self) -> AuxiliaryParams:
        return self._aux

    @property
    def endpoint(self) -> str:
        return str(self._settings.api_endpoint)

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _send(self, client: httpx.Client, method: str, path: str) -> httpx.Response:
        logger.debug("%s %s%s", method, self.endpoint, path)
        try:
            return client.request(method, path)
        except httpx.HTTPError as exc:
            raise classify_exception(exc) from exc

    def _get_json(self, path: str, expected: Any) -> Any:
        response = self._send(self._client, "GET", path)
        return decode_response(response, expected)

    def list_clusters(self) -> list[Cluster]:
        return self._get_json("/v4/clusters/", list[Cluster])

    def get_cluster(self, cluster_id: str) -> Cluster:
        return self._get_json(f"/v4/clusters/{cluster_id}/", Cluster)

    def get_info(self) -> InstallationInfo:
        response = self._send(self._client, "GET", "/v4/info/")
        payload = decode_response(response, dict[str, Any])
        try:
            return InstallationInfo.from_payload(payload)
        except ValidationError as exc:
            raise classify_response(response, error=exc) from exc

    def ping(self) -> float:
        """Check the API root answers with success; returns the round trip in seconds."""

        with build_client(
            self._settings,
            timeout=self._settings.ping_timeout_seconds,
            transport=self._transport,
            aux=self._aux,
        ) as client:
            start = time.perf_counter()
            response = self._send(client, "GET", "/")
            elapsed = time.perf_counter() - start
        if not response.is_success:
            raise classify_response(response)
        return elapsed
