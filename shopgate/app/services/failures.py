"""Failure classification for calls to the hosted database and other upstreams.

Errors reach the retry engine from several sources: our own ``UpstreamError``
types, httpx exceptions, builtin timeouts, and loosely shaped error payloads
from the hosted database client. ``classify_error`` reduces all of them to a
``Failure`` with a closed ``FailureKind``, and the retry predicates decide on
that kind.
"""

import enum
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

from shopgate.app.exceptions import (
    HttpStatusError,
    NetworkError,
    QueryError,
    UpstreamTimeoutError,
)

# PostgREST codes the hosted database returns while a replica or the
# connection pool is briefly unavailable.
TRANSIENT_QUERY_CODES = frozenset({"PGRST116", "PGRST301"})


class FailureKind(enum.Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    OTHER = "other"


@dataclass(frozen=True)
class Failure:
    """Normalized view of an upstream error."""
    kind: FailureKind
    message: str = ""
    status: Optional[int] = None
    code: Optional[str] = None


def error_field(error: Any, name: str) -> Any:
    if isinstance(error, Mapping):
        return error.get(name)
    return getattr(error, name, None)


def _status_of(error: Any) -> Optional[int]:
    status = error_field(error, "status")
    if isinstance(status, bool) or not isinstance(status, int):
        return None
    return status


def _message_of(error: Any) -> str:
    message = error_field(error, "message")
    if message is None and isinstance(error, BaseException):
        message = str(error)
    return str(message or "")


def _classify_loose(error: Any) -> Failure:
    message = _message_of(error)
    status = _status_of(error)
    code = error_field(error, "code")
    code = str(code) if code is not None else None

    name = error_field(error, "name")
    if name is None and isinstance(error, BaseException):
        name = type(error).__name__

    lowered = message.lower()
    if "network" in lowered or "fetch" in lowered:
        kind = FailureKind.NETWORK
    elif "timeout" in lowered or name == "TimeoutError":
        kind = FailureKind.TIMEOUT
    elif status is not None:
        kind = FailureKind.HTTP_STATUS
    else:
        kind = FailureKind.OTHER

    return Failure(kind=kind, message=message, status=status, code=code)


def classify_error(error: Any) -> Failure:
    """Map any upstream error to a Failure.

    Args:
        error: Exception, or an error payload with optional ``message``,
            ``status``, ``code`` and ``name`` fields

    Returns:
        Failure describing the error
    """
    if error is None:
        return Failure(kind=FailureKind.OTHER)

    if isinstance(error, NetworkError):
        return Failure(FailureKind.NETWORK, error.message)
    if isinstance(error, UpstreamTimeoutError):
        return Failure(FailureKind.TIMEOUT, error.message)
    if isinstance(error, HttpStatusError):
        return Failure(FailureKind.HTTP_STATUS, error.message, status=error.status)
    if isinstance(error, QueryError):
        return _classify_loose(error)

    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return Failure(FailureKind.TIMEOUT, str(error))
    if isinstance(error, httpx.HTTPStatusError):
        return Failure(
            FailureKind.HTTP_STATUS,
            str(error),
            status=error.response.status_code,
        )
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return Failure(FailureKind.NETWORK, str(error))

    return _classify_loose(error)


def is_retryable_failure(failure: Failure) -> bool:
    if failure.kind in (FailureKind.NETWORK, FailureKind.TIMEOUT):
        return True
    if failure.kind is FailureKind.HTTP_STATUS and failure.status is not None:
        return 500 <= failure.status < 600 or failure.status == 429
    return False


def is_retryable_error(error: Any) -> bool:
    """Default retry predicate.

    Network failures, timeouts, 5xx responses and 429 are transient;
    everything else is treated as fatal.
    """
    if error is None:
        return False
    return is_retryable_failure(classify_error(error))


def is_retryable_query_error(error: Any) -> bool:
    """Retry predicate for hosted database queries."""
    failure = classify_error(error)
    return failure.kind is FailureKind.NETWORK or failure.code in TRANSIENT_QUERY_CODES
