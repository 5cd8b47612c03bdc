"""Retry mechanism with exponential backoff for hosted database calls.

This module provides retry helpers that re-run an async operation after
transient failures, waiting an exponentially growing delay between attempts.

Every call runs its own attempt loop; concurrent calls share no budget.
The wait is an ``asyncio.sleep``, so cancelling the calling task (for
example from an ``asyncio.timeout`` around a request) aborts the sequence
without leaving a pending timer.
"""

import asyncio
import functools
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from shopgate.app.core.logging import get_log_context, get_logger
from shopgate.app.exceptions import QueryError
from shopgate.app.services.failures import (
    error_field,
    is_retryable_error,
    is_retryable_query_error,
)

logger = get_logger(__name__)

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])

Sleep = Callable[[float], Awaitable[Any]]
RetryPredicate = Callable[[BaseException], bool]
RetryObserver = Callable[[BaseException, int], None]


@dataclass
class RetryOptions:
    """Configuration for retry behavior with exponential backoff.

    Attributes:
        max_retries: Maximum number of retries after the first attempt (default: 3)
        initial_delay: Delay before the first retry in seconds (default: 1.0)
        max_delay: Upper bound for any single delay in seconds (default: 30.0)
        backoff_multiplier: Growth factor between delays (default: 2.0)
        retryable_errors: Predicate deciding whether an error is transient.
            None means ``is_retryable_error``.

    Example:
        >>> options = RetryOptions(max_retries=5, initial_delay=0.5)
        >>> options.calculate_delay(attempt=2)
        2.0
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    retryable_errors: Optional[RetryPredicate] = None

    def calculate_delay(self, attempt: int) -> float:
        """Calculate the delay before retrying after a failed attempt.

        delay = min(initial_delay * (backoff_multiplier ^ attempt), max_delay)

        Args:
            attempt: Zero-based number of the attempt that just failed

        Returns:
            Delay in seconds
        """
        delay = self.initial_delay * (self.backoff_multiplier**attempt)
        return min(delay, self.max_delay)

    def is_retryable(self, error: BaseException) -> bool:
        predicate = self.retryable_errors or is_retryable_error
        return bool(predicate(error))


@dataclass
class QueryResult(Generic[T]):
    """Result pair returned by the hosted database client."""
    data: Optional[T] = None
    error: Any = None


async def _run_with_retry(
    operation: Callable[[], Awaitable[T]],
    options: RetryOptions,
    on_retry: Optional[RetryObserver],
    sleep: Sleep,
) -> T:
    name = getattr(operation, "__name__", repr(operation))

    for attempt in range(options.max_retries + 1):
        try:
            return await operation()
        except Exception as e:
            if not options.is_retryable(e):
                logger.debug(f"Non-retryable error in {name}: {type(e).__name__}: {e}")
                raise

            if attempt >= options.max_retries:
                logger.warning(
                    f"Max retries ({options.max_retries}) exceeded for {name}: "
                    f"{type(e).__name__}: {e}"
                )
                raise

            if on_retry is not None:
                on_retry(e, attempt + 1)

            delay = options.calculate_delay(attempt)
            logger.warning(
                f"Retry {attempt + 1}/{options.max_retries} for {name} "
                f"after {type(e).__name__}: {e}. Waiting {delay:.2f}s...",
                extra=get_log_context(attempt=attempt + 1),
            )
            await sleep(delay)

    # max_retries < 0 leaves no attempts at all
    raise ValueError("max_retries must not be negative")


async def retry(
    operation: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run ``operation`` and retry transient failures with exponential backoff.

    Args:
        operation: Zero-argument coroutine function to run
        options: Retry configuration, defaults to RetryOptions()
        sleep: Awaitable used to wait between attempts

    Returns:
        The first successful result

    Raises:
        The first non-retryable error, or the last error once the retry
        budget is exhausted
    """
    return await _run_with_retry(operation, options or RetryOptions(), None, sleep)


async def retry_with_handler(
    operation: Callable[[], Awaitable[T]],
    on_retry: RetryObserver,
    options: Optional[RetryOptions] = None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Same as ``retry`` but calls ``on_retry(error, attempt)`` before each wait.

    ``attempt`` is the 1-based number of the retry about to happen. The
    observer is for logging and metrics only.
    """
    return await _run_with_retry(operation, options or RetryOptions(), on_retry, sleep)


def _as_exception(error: Any) -> BaseException:
    if isinstance(error, BaseException):
        return error
    if isinstance(error, str):
        return QueryError(message=error, original=error)
    return QueryError(
        message=str(error_field(error, "message") or "Database query failed"),
        code=error_field(error, "code"),
        status=error_field(error, "status"),
        original=error,
    )


def _original_error(error: BaseException) -> Any:
    if isinstance(error, QueryError) and error.original is not None:
        return error.original
    return error


async def retryable_query(
    query: Callable[[], Awaitable[QueryResult[T]]],
    options: Optional[RetryOptions] = None,
    *,
    sleep: Sleep = asyncio.sleep,
) -> QueryResult[T]:
    """Retry a hosted database query that reports errors as a result pair.

    A non-null ``error`` in the result is treated as a raised error while
    retrying. Network failures and the transient PostgREST codes are retried,
    plus whatever the caller's ``retryable_errors`` accepts. The final failure
    is returned as ``QueryResult(data=None, error=...)`` instead of raised,
    carrying the error object exactly as the query reported it.
    """
    options = options or RetryOptions()
    caller_predicate = options.retryable_errors

    def is_retryable(error: BaseException) -> bool:
        if is_retryable_query_error(error):
            return True
        return bool(caller_predicate and caller_predicate(error))

    async def run_query() -> QueryResult[T]:
        result = await query()
        if result.error is not None:
            raise _as_exception(result.error)
        return result

    run_query.__name__ = getattr(query, "__name__", "query")

    try:
        return await _run_with_retry(
            run_query,
            replace(options, retryable_errors=is_retryable),
            None,
            sleep,
        )
    except Exception as e:
        return QueryResult(data=None, error=_original_error(e))


def with_retry(options: Optional[RetryOptions] = None) -> Callable[[F], F]:
    """Decorator that adds retry logic with exponential backoff.

    Example:
        >>> @with_retry(RetryOptions(max_retries=2))
        ... async def load_billing_stats(tenant_id):
        ...     return await client.fetch_stats(tenant_id)
    """
    retry_options = options or RetryOptions()

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            async def call() -> Any:
                return await func(*args, **kwargs)

            call.__name__ = func.__name__
            return await _run_with_retry(call, retry_options, None, asyncio.sleep)

        return wrapper  # type: ignore

    return decorator
