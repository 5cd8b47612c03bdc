"""Rate limiting for the shop backend.

Token bucket admission control per client key, with one policy class per
kind of endpoint (auth, api, read, sensitive, export).
"""

from shopgate.app.middleware.rate_limit.cleanup import RateLimitCleanupTask
from shopgate.app.middleware.rate_limit.client import get_client_id, get_client_ip
from shopgate.app.middleware.rate_limit.dependencies import (
    get_rate_limiters,
    rate_limit_headers,
    require_rate_limit,
)
from shopgate.app.middleware.rate_limit.limiter import (
    RateLimiterRegistry,
    TokenBucketRateLimiter,
)
from shopgate.app.middleware.rate_limit.models import (
    DEFAULT_POLICIES,
    RateLimitPolicy,
    RateLimitResult,
    TokenBucket,
)

__all__ = [
    # Models
    "DEFAULT_POLICIES",
    "RateLimitPolicy",
    "RateLimitResult",
    "TokenBucket",
    # Limiters
    "TokenBucketRateLimiter",
    "RateLimiterRegistry",
    "RateLimitCleanupTask",
    # Request integration
    "get_client_id",
    "get_client_ip",
    "get_rate_limiters",
    "rate_limit_headers",
    "require_rate_limit",
]
