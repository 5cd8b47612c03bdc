"""Custom exceptions for the shop backend."""


class ShopGateException(Exception):
    """Base class for application exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Internal server error"):
        self.message = message
        super().__init__(message)


class RateLimitExceededError(ShopGateException):
    """Raised when a client has no tokens left for a policy class.

    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429

    def __init__(
        self,
        policy: str,
        reset_time: float,
        retry_after: int,
        message: str = "Rate limit exceeded. Please try again later.",
    ):
        self.policy = policy
        self.reset_time = reset_time
        self.retry_after = retry_after
        self.detail = f"Rate limit exceeded. Reset in {retry_after} seconds."
        super().__init__(message)


class UpstreamError(ShopGateException):
    """Failure reported by the hosted database or another upstream service.

    Raised by the adapters at the I/O boundary so that retry decisions can be
    made on the failure kind rather than on the message text.
    Maps to HTTP 502 Bad Gateway.
    """
    status_code = 502


class NetworkError(UpstreamError):
    """The upstream could not be reached."""

    def __init__(self, message: str = "Network error while contacting upstream"):
        super().__init__(message)


class UpstreamTimeoutError(UpstreamError):
    """The upstream did not answer in time.

    Maps to HTTP 504 Gateway Timeout.
    """
    status_code = 504

    def __init__(self, message: str = "Upstream request timed out"):
        super().__init__(message)


class HttpStatusError(UpstreamError):
    """The upstream answered with an error HTTP status."""

    def __init__(self, status: int, message: str | None = None):
        self.status = status
        super().__init__(message or f"Upstream responded with HTTP {status}")


class QueryError(UpstreamError):
    """Error object returned by the hosted database client.

    The client reports failures as ``{data, error}`` pairs instead of raising;
    ``code`` carries the PostgREST error code when there is one, and
    ``original`` the error object exactly as the client returned it.
    """

    def __init__(
        self,
        message: str = "Database query failed",
        code: str | None = None,
        status: int | None = None,
        original: object = None,
    ):
        self.code = code
        self.status = status
        self.original = original
        super().__init__(message)
