"""Error classification for API call attempts.

This module turns the outcome of one failed call (a transport exception, or a
received response that was not usable) into exactly one `ClassifiedError`.

Priority order:
1. host name unresolvable (no response)
2. connection refused / unreachable (no response)
3. timeout (wins over any partial response)
4. TLS certificate from an unknown authority
5. response received: malformed success body, or non-success status

The classification is:
- total: every input maps to some `ClassifiedError`, it never raises
- deterministic: exception types first, then message signatures
- silent about semantics: status codes are exposed, not interpreted
"""

from __future__ import annotations

import errno
import json
import logging
import socket
import ssl
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Iterator

import httpx
from pydantic import TypeAdapter, ValidationError

from core.domain.errors import (
    CertificateFailure,
    ClassifiedError,
    ErrorKind,
    HTTPStatusFailure,
    MalformedResponseFailure,
    TimeoutFailure,
    TransportFailure,
)

logger = logging.getLogger(__name__)

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
)
_REFUSED_MARKERS = (
    "connection refused",
    "actively refused",
    "no route to host",
    "network is unreachable",
)
_REFUSED_ERRNOS = {errno.ECONNREFUSED, errno.EHOSTUNREACH, errno.ENETUNREACH}

# OpenSSL verify codes meaning "issuer not trusted".
_UNKNOWN_AUTHORITY_CODES = {18, 19, 20, 21}
_UNKNOWN_AUTHORITY_MARKERS = (
    "self signed certificate",
    "self-signed certificate",
    "unable to get local issuer certificate",
    "unable to verify the first certificate",
)

_DETAILS_SNIPPET = 200


@dataclass(frozen=True)
class CallOutcome:
    """What the transport knows about one failed call.

    `expected` is the type the success body should decode into (anything
    pydantic's `TypeAdapter` accepts); None means "any JSON".
    """

    error: BaseException | None = None
    status_code: int | None = None
    body: bytes = b""
    content_type: str | None = None
    expected: Any = None


def _iter_causes(exc: BaseException | None) -> Iterator[BaseException]:
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        exc = exc.__cause__ or exc.__context__


def _cause_text(exc: BaseException | None) -> str:
    for cause in _iter_causes(exc):
        text = str(cause).strip()
        if text:
            return text
    return ""


def _chain_mentions(exc: BaseException | None, markers: tuple[str, ...]) -> bool:
    return any(marker in str(cause).lower() for cause in _iter_causes(exc) for marker in markers)


def _is_dns_failure(exc: BaseException | None) -> bool:
    if any(isinstance(cause, socket.gaierror) for cause in _iter_causes(exc)):
        return True
    return _chain_mentions(exc, _DNS_MARKERS)


def _is_connection_refused(exc: BaseException | None) -> bool:
    for cause in _iter_causes(exc):
        if isinstance(cause, ConnectionRefusedError):
            return True
        if isinstance(cause, OSError) and cause.errno in _REFUSED_ERRNOS:
            return True
    return _chain_mentions(exc, _REFUSED_MARKERS)


def _is_timeout(exc: BaseException | None) -> bool:
    return any(isinstance(cause, (httpx.TimeoutException, TimeoutError)) for cause in _iter_causes(exc))


def _is_unknown_authority(exc: BaseException | None) -> bool:
    for cause in _iter_causes(exc):
        if isinstance(cause, ssl.SSLCertVerificationError):
            if getattr(cause, "verify_code", None) in _UNKNOWN_AUTHORITY_CODES:
                return True
            verify_message = getattr(cause, "verify_message", None) or ""
            if any(m in verify_message.lower() for m in _UNKNOWN_AUTHORITY_MARKERS):
                return True
    return _chain_mentions(exc, _UNKNOWN_AUTHORITY_MARKERS)


def _is_decode_error(exc: BaseException | None) -> bool:
    return isinstance(exc, (json.JSONDecodeError, ValidationError, UnicodeDecodeError))


def _with_cause(text: str, exc: BaseException | None) -> str:
    cause = _cause_text(exc)
    return f"{text} Cause: {cause}" if cause else text


def _is_json_content_type(content_type: str | None) -> bool:
    if not content_type:
        return False
    media = content_type.split(";", 1)[0].strip().lower()
    return media == "application/json" or media.endswith("+json")


def _snippet(body: bytes) -> str:
    text = body.decode("utf-8", errors="replace").strip()
    if len(text) > _DETAILS_SNIPPET:
        text = text[:_DETAILS_SNIPPET] + "..."
    return text


def _status_phrase(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Unknown Status"


def _classify_cause(outcome: CallOutcome) -> ClassifiedError:
    exc = outcome.error
    no_response = outcome.status_code is None

    if no_response and _is_dns_failure(exc):
        return TransportFailure(
            "Host name could not be resolved",
            _with_cause(
                "The API endpoint's host name could not be resolved. "
                "Please check the endpoint URL and your DNS settings.",
                exc,
            ),
            kind=ErrorKind.HOST_UNRESOLVABLE,
            original_error=exc,
        )
    if no_response and _is_connection_refused(exc):
        return TransportFailure(
            "Connection refused",
            _with_cause(
                "No connection could be made to the API endpoint. "
                "The server may be down or unreachable from this network.",
                exc,
            ),
            kind=ErrorKind.CONNECTION_REFUSED,
            original_error=exc,
        )
    if _is_timeout(exc):
        return TimeoutFailure(
            "Request timed out",
            "The API did not respond within the configured timeout. "
            "Try again, or raise KAASCTL_HTTP_TIMEOUT_SECONDS.",
            original_error=exc,
        )
    if _is_unknown_authority(exc):
        return CertificateFailure(
            "Certificate signed by unknown authority",
            _with_cause(
                "The API's TLS certificate could not be verified against the trusted "
                "certificate authorities. Set KAASCTL_CA_FILE or fix the system trust store.",
                exc,
            ),
            original_error=exc,
        )
    if not no_response:
        # A status was received; the error only says the caller rejected it.
        return _classify_status(outcome)
    if any(isinstance(cause, ssl.SSLError) for cause in _iter_causes(exc)):
        return TransportFailure(
            "TLS handshake failed",
            _with_cause("A secure connection to the API could not be established.", exc),
            original_error=exc,
        )
    return TransportFailure(
        "Connection to the API failed",
        _with_cause("The request could not be completed.", exc),
        original_error=exc,
    )


def _decode_problem(outcome: CallOutcome) -> tuple[str, BaseException | None]:
    """Describe why a success body is unusable."""

    if _is_decode_error(outcome.error):
        return _with_cause("The response body did not match the expected structure.", outcome.error), outcome.error
    if not _is_json_content_type(outcome.content_type):
        return f"Expected a JSON response, got content type '{outcome.content_type or 'none'}'.", None
    try:
        data = json.loads(outcome.body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        return f"The response body is not valid JSON: {exc}", exc
    if outcome.expected is not None:
        try:
            TypeAdapter(outcome.expected).validate_python(data)
        except ValidationError as exc:
            return f"The response body did not match the expected structure: {exc.error_count()} error(s).", exc
    return "The response body was rejected by the caller.", None


def _api_error_fields(outcome: CallOutcome) -> tuple[str | None, str | None]:
    if not _is_json_content_type(outcome.content_type):
        return None, None
    try:
        data = json.loads(outcome.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None, None
    if not isinstance(data, dict):
        return None, None
    code = data.get("code")
    message = data.get("message")
    return (
        code if isinstance(code, str) and code else None,
        message if isinstance(message, str) and message else None,
    )


def _classify_status(outcome: CallOutcome) -> ClassifiedError:
    code = int(outcome.status_code or 0)

    if 200 <= code < 300:
        details, cause = _decode_problem(outcome)
        return MalformedResponseFailure(
            "Malformed response",
            details,
            http_status_code=code,
            original_error=cause or outcome.error,
        )

    if not 100 <= code <= 599:
        return TransportFailure(
            "Unexpected response",
            f"The API answered with an invalid status code {code}.",
            original_error=outcome.error,
        )

    api_code, api_message = _api_error_fields(outcome)
    if api_message:
        details = f"{api_message} (code {api_code})" if api_code else api_message
    else:
        details = _snippet(outcome.body) or _status_phrase(code)
    return HTTPStatusFailure(
        f"HTTP {code} {_status_phrase(code)}",
        details,
        http_status_code=code,
        api_code=api_code,
        original_error=outcome.error,
    )


def classify(outcome: CallOutcome) -> ClassifiedError:
    """Classify the outcome of one failed API call. Never raises."""

    if isinstance(outcome.error, ClassifiedError):
        return outcome.error

    if outcome.error is not None and not _is_decode_error(outcome.error):
        result = _classify_cause(outcome)
    elif outcome.status_code is not None:
        result = _classify_status(outcome)
    elif outcome.error is not None:
        result = TransportFailure(
            "Unreadable response",
            _with_cause("The response could not be read.", outcome.error),
            original_error=outcome.error,
        )
    else:
        result = TransportFailure(
            "Unknown error",
            "The API call failed without any information about the cause.",
        )

    logger.debug(
        "classified %s (status=%s) as %s",
        type(outcome.error).__name__ if outcome.error else "no error",
        outcome.status_code,
        result.kind.value,
    )
    return result


def _response_body(response: httpx.Response) -> bytes:
    try:
        return response.content
    except httpx.ResponseNotRead:
        return b""


def classify_exception(exc: BaseException, response: httpx.Response | None = None) -> ClassifiedError:
    """Classify a transport exception, with the response if one (partially) arrived."""

    if response is None and isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
    return classify(
        CallOutcome(
            error=exc,
            status_code=response.status_code if response is not None else None,
            body=_response_body(response) if response is not None else b"",
            content_type=response.headers.get("content-type") if response is not None else None,
        )
    )


def classify_response(
    response: httpx.Response,
    *,
    expected: Any = None,
    error: BaseException | None = None,
) -> ClassifiedError:
    """Classify a received response that the caller could not use."""

    return classify(
        CallOutcome(
            error=error,
            status_code=response.status_code,
            body=_response_body(response),
            content_type=response.headers.get("content-type"),
            expected=expected,
        )
    )


def decode_response(response: httpx.Response, expected: Any) -> Any:
    """Validate a response into `expected`, raising a `ClassifiedError` otherwise."""

    if not response.is_success:
        raise classify_response(response, expected=expected)
    if not _is_json_content_type(response.headers.get("content-type")):
        raise classify_response(response, expected=expected)
    try:
        return TypeAdapter(expected).validate_json(response.content)
    except ValidationError as exc:
        raise classify_response(response, expected=expected, error=exc) from exc
