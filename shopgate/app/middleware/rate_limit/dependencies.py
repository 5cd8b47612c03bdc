"""FastAPI dependencies that apply a rate limit policy to a route."""

from typing import Awaitable, Callable

from fastapi import Request, Response

from shopgate.app.core.logging import get_log_context, get_logger
from shopgate.app.exceptions import RateLimitExceededError
from shopgate.app.middleware.rate_limit.client import get_client_id
from shopgate.app.middleware.rate_limit.limiter import RateLimiterRegistry
from shopgate.app.middleware.rate_limit.models import RateLimitResult
from shopgate.app.middleware.request_id import get_request_id

logger = get_logger(__name__)


def get_rate_limiters(request: Request) -> RateLimiterRegistry:
    """Get the registry created by the application factory."""
    return request.app.state.rate_limiters


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(int(result.reset_time)),
    }


def require_rate_limit(policy: str = "api") -> Callable[..., Awaitable[RateLimitResult]]:
    """Build a dependency that admits the caller under ``policy``.

    Example:
        >>> @router.post("/users", dependencies=[Depends(require_rate_limit("sensitive"))])
        ... async def create_user(...): ...

    Raises:
        RateLimitExceededError: The caller has no tokens left
    """

    async def dependency(request: Request, response: Response) -> RateLimitResult:
        client_id = get_client_id(
            request.headers,
            request.client.host if request.client else None,
        )
        result = get_rate_limiters(request).check(client_id, policy)

        if not result.allowed:
            logger.warning(
                "Rate limit exceeded",
                extra=get_log_context(
                    request_id=get_request_id(request),
                    client_id=client_id,
                    policy=policy,
                    path=request.url.path,
                ),
            )
            raise RateLimitExceededError(
                policy=policy,
                reset_time=result.reset_time,
                retry_after=result.retry_after or 1,
            )

        response.headers.update(rate_limit_headers(result))
        return result

    return dependency
