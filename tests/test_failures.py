"""Tests for upstream failure classification."""

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest

from shopgate.app.exceptions import (
    HttpStatusError,
    NetworkError,
    QueryError,
    UpstreamTimeoutError,
)
from shopgate.app.services.failures import (
    Failure,
    FailureKind,
    classify_error,
    is_retryable_error,
    is_retryable_query_error,
)


def _httpx_status_error(status: int) -> httpx.HTTPStatusError:
    response = MagicMock()
    response.status_code = status
    return httpx.HTTPStatusError("error", request=MagicMock(), response=response)


class TestClassifyError:
    """Mapping of error sources to failure kinds."""

    def test_own_upstream_errors(self):
        assert classify_error(NetworkError()).kind is FailureKind.NETWORK
        assert classify_error(UpstreamTimeoutError()).kind is FailureKind.TIMEOUT
        assert classify_error(HttpStatusError(502)) == Failure(
            FailureKind.HTTP_STATUS, "Upstream responded with HTTP 502", status=502
        )

    def test_httpx_errors(self):
        request = httpx.Request("GET", "https://db.example.com/rest/v1/orders")

        assert classify_error(httpx.ReadTimeout("slow", request=request)).kind is FailureKind.TIMEOUT
        assert classify_error(httpx.ConnectError("refused", request=request)).kind is FailureKind.NETWORK
        failure = classify_error(_httpx_status_error(503))
        assert failure.kind is FailureKind.HTTP_STATUS
        assert failure.status == 503

    def test_builtin_errors(self):
        assert classify_error(asyncio.TimeoutError()).kind is FailureKind.TIMEOUT
        assert classify_error(ConnectionResetError()).kind is FailureKind.NETWORK

    @pytest.mark.parametrize(
        ("payload", "kind"),
        [
            ({"message": "Network request failed"}, FailureKind.NETWORK),
            ({"message": "TypeError: fetch failed"}, FailureKind.NETWORK),
            ({"message": "statement timeout"}, FailureKind.TIMEOUT),
            ({"message": "aborted", "name": "TimeoutError"}, FailureKind.TIMEOUT),
            ({"message": "Bad gateway", "status": 502}, FailureKind.HTTP_STATUS),
            ({"message": "permission denied", "code": "42501"}, FailureKind.OTHER),
        ],
    )
    def test_loose_payloads(self, payload, kind):
        assert classify_error(payload).kind is kind
        assert classify_error(SimpleNamespace(**payload)).kind is kind

    def test_query_error_keeps_code_and_status(self):
        failure = classify_error(QueryError("No rows", code="PGRST116", status=406))

        assert failure.kind is FailureKind.HTTP_STATUS
        assert failure.code == "PGRST116"
        assert failure.status == 406

    def test_non_integer_status_is_ignored(self):
        assert classify_error({"message": "odd", "status": "500"}).kind is FailureKind.OTHER
        assert classify_error({"message": "odd", "status": True}).kind is FailureKind.OTHER

    def test_none(self):
        assert classify_error(None).kind is FailureKind.OTHER


class TestIsRetryableError:
    """Default retry predicate."""

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 599])
    def test_retryable_statuses(self, status):
        assert is_retryable_error(HttpStatusError(status)) is True
        assert is_retryable_error({"status": status}) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 409, 600])
    def test_fatal_statuses(self, status):
        assert is_retryable_error(HttpStatusError(status)) is False

    def test_network_and_timeout_are_retryable(self):
        assert is_retryable_error(NetworkError()) is True
        assert is_retryable_error(TimeoutError()) is True

    def test_other_errors_are_fatal(self):
        assert is_retryable_error(ValueError("invalid vehicle number")) is False
        assert is_retryable_error(None) is False


class TestIsRetryableQueryError:
    """Retry predicate for hosted database queries."""

    @pytest.mark.parametrize("code", ["PGRST116", "PGRST301"])
    def test_transient_codes(self, code):
        assert is_retryable_query_error(QueryError(code=code)) is True

    def test_network_failure(self):
        assert is_retryable_query_error(QueryError("fetch failed")) is True

    def test_other_codes(self):
        assert is_retryable_query_error(QueryError(code="23505")) is False
        assert is_retryable_query_error(QueryError(status=503)) is False
