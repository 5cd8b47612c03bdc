"""Services for calling the hosted database reliably."""

from shopgate.app.services.failures import (
    Failure,
    FailureKind,
    classify_error,
    is_retryable_error,
    is_retryable_query_error,
)
from shopgate.app.services.retry import (
    QueryResult,
    RetryOptions,
    retry,
    retry_with_handler,
    retryable_query,
    with_retry,
)

__all__ = [
    "Failure",
    "FailureKind",
    "classify_error",
    "is_retryable_error",
    "is_retryable_query_error",
    "QueryResult",
    "RetryOptions",
    "retry",
    "retry_with_handler",
    "retryable_query",
    "with_retry",
]
