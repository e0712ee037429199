"""Error taxonomy for the core.

Why here:
- Commands branch on *what kind* of failure happened (network, timeout,
  certificate, HTTP status, malformed body), never on raw httpx exceptions.
- Each classification branch has its own exception class, so a value can only
  carry the flags of the branch that built it.

Note:
- `ClassifiedError` values are built by `core.services.error_classifier`.
- Resolution errors (cluster not found, ambiguous name, invalid version) are
  not classified errors: they never involve a transport.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable


class ErrorKind(str, Enum):
    """Dominant cause recorded by a `ClassifiedError`."""

    HOST_UNRESOLVABLE = "host_unresolvable"
    CONNECTION_REFUSED = "connection_refused"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    CERTIFICATE = "certificate"
    HTTP_STATUS = "http_status"
    MALFORMED_RESPONSE = "malformed_response"


class KaasctlError(Exception):
    """Base class of every error raised by the core."""


class ClassifiedError(KaasctlError):
    """Normalized failure of one API call attempt.

    Do not instantiate directly; use one of the subclasses (one per branch).
    """

    kind: ErrorKind = ErrorKind.TRANSPORT
    retryable: bool = False

    def __init__(
        self,
        message: str,
        details: str,
        *,
        original_error: BaseException | None = None,
        http_status_code: int = 0,
    ) -> None:
        self.message = message or "Unknown error"
        self.details = details or self.message
        self.original_error = original_error
        self.http_status_code = http_status_code
        super().__init__(self.message)

    @property
    def is_timeout(self) -> bool:
        return False

    @property
    def is_certificate_error(self) -> bool:
        return False

    @property
    def is_malformed_response(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"{self.message} ({self.details})" if self.details != self.message else self.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"http_status_code={self.http_status_code}, message={self.message!r})"
        )


class TransportFailure(ClassifiedError):
    """No response was obtained (DNS, refused connection, other network error)."""

    retryable = True

    def __init__(
        self,
        message: str,
        details: str,
        *,
        kind: ErrorKind = ErrorKind.TRANSPORT,
        original_error: BaseException | None = None,
    ) -> None:
        if kind not in (ErrorKind.HOST_UNRESOLVABLE, ErrorKind.CONNECTION_REFUSED, ErrorKind.TRANSPORT):
            raise ValueError(f"not a transport kind: {kind}")
        self.kind = kind
        super().__init__(message, details, original_error=original_error)

    @property
    def is_host_unresolvable(self) -> bool:
        return self.kind is ErrorKind.HOST_UNRESOLVABLE

    @property
    def is_connection_refused(self) -> bool:
        return self.kind is ErrorKind.CONNECTION_REFUSED


class TimeoutFailure(ClassifiedError):
    """The client-side deadline expired before a complete response arrived."""

    kind = ErrorKind.TIMEOUT
    retryable = True

    def __init__(self, message: str, details: str, *, original_error: BaseException | None = None) -> None:
        super().__init__(message, details, original_error=original_error)

    @property
    def is_timeout(self) -> bool:
        return True


class CertificateFailure(ClassifiedError):
    """The server certificate chain could not be verified.

    `ca_file` is set when the configured CA bundle itself could not be loaded,
    so no request was sent.
    """

    kind = ErrorKind.CERTIFICATE

    def __init__(
        self,
        message: str,
        details: str,
        *,
        original_error: BaseException | None = None,
        ca_file: str | None = None,
    ) -> None:
        self.ca_file = ca_file
        super().__init__(message, details, original_error=original_error)

    @property
    def is_certificate_error(self) -> bool:
        return True


class HTTPStatusFailure(ClassifiedError):
    """A response arrived with a non-success status code.

    The classifier does not interpret the code; the predicates below are for
    callers that want to.
    """

    kind = ErrorKind.HTTP_STATUS

    def __init__(
        self,
        message: str,
        details: str,
        *,
        http_status_code: int,
        api_code: str | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        if not 100 <= http_status_code <= 599 or 200 <= http_status_code < 300:
            raise ValueError(f"not a failure status code: {http_status_code}")
        self.api_code = api_code
        super().__init__(message, details, original_error=original_error, http_status_code=http_status_code)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.is_server_error

    @property
    def is_unauthorized(self) -> bool:
        return self.http_status_code == 401

    @property
    def is_forbidden(self) -> bool:
        return self.http_status_code == 403

    @property
    def is_not_found(self) -> bool:
        return self.http_status_code == 404

    @property
    def is_conflict(self) -> bool:
        return self.http_status_code == 409

    @property
    def is_server_error(self) -> bool:
        return self.http_status_code >= 500


class MalformedResponseFailure(ClassifiedError):
    """A success response arrived but its body could not be decoded."""

    kind = ErrorKind.MALFORMED_RESPONSE

    def __init__(
        self,
        message: str,
        details: str,
        *,
        http_status_code: int,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message, details, original_error=original_error, http_status_code=http_status_code)

    @property
    def is_malformed_response(self) -> bool:
        return True


class InvalidVersionError(KaasctlError, ValueError):
    """A release version is not exactly `major.minor.patch` (numeric)."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__("Invalid Semantic Version")


class ClusterNameOrIDMissingError(KaasctlError):
    """No cluster name or ID was given."""

    def __init__(self) -> None:
        super().__init__("No cluster name or ID given")


class ClusterNotFoundError(KaasctlError):
    def __init__(self, name_or_id: str) -> None:
        self.name_or_id = name_or_id
        super().__init__(f"Cluster '{name_or_id}' not found")


class AmbiguousClusterNameError(KaasctlError):
    """More than one cluster carries the requested name."""

    def __init__(self, name: str, cluster_ids: Iterable[str]) -> None:
        self.name = name
        self.cluster_ids: tuple[str, ...] = tuple(sorted(cluster_ids))
        super().__init__(
            f"Cluster name '{name}' matches {len(self.cluster_ids)} clusters "
            f"({', '.join(self.cluster_ids)}), use the cluster ID instead"
        )


class EndpointMissingError(KaasctlError):
    def __init__(self) -> None:
        super().__init__("No API endpoint configured")


class ConfigurationError(KaasctlError):
    """A setting from the environment, a .env file or the command line is invalid."""

    def __init__(self, problems: Iterable[str]) -> None:
        self.problems: tuple[str, ...] = tuple(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))


def error_summary(err: BaseException) -> dict[str, Any]:
    """Flatten an error into a dict (used for `--output json` and debug logs)."""

    out: dict[str, Any] = {"error": type(err).__name__, "message": str(err)}
    if isinstance(err, ClassifiedError):
        out.update(
            {
                "kind": err.kind.value,
                "http_status_code": err.http_status_code,
                "details": err.details,
                "retryable": err.retryable,
            }
        )
    return out
