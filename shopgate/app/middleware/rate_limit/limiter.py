"""In-memory token bucket rate limiter.

Buckets are refilled lazily on every read, so no per-key timers exist no
matter how many distinct clients are seen. Idle buckets are evicted by
``cleanup()``, which the application schedules; the limiter never schedules
anything itself.

State is per process and is not shared between instances.
"""

import math
import threading
import time
from typing import Callable, Dict, Iterable, Optional

from shopgate.app.core.logging import get_logger
from shopgate.app.middleware.rate_limit.models import (
    DEFAULT_POLICIES,
    RateLimitPolicy,
    RateLimitResult,
    TokenBucket,
)

logger = get_logger(__name__)

Clock = Callable[[], float]

DEFAULT_MAX_AGE = 60 * 60  # 1 hour


class TokenBucketRateLimiter:
    """Per-key token bucket admission controller for a single policy.

    Each key gets its own bucket, created at full capacity on first use.
    Refill adds ``refill_rate`` tokens per whole ``refill_interval`` elapsed
    since the last refill and then moves ``last_refill`` to now, so the
    fractional remainder of the interval is dropped on every check.

    All operations hold one lock, which makes check-then-decrement atomic
    when FastAPI runs sync dependencies in its threadpool.

    Usage:
        limiter = TokenBucketRateLimiter(DEFAULT_POLICIES["auth"])
        if not limiter.is_allowed(client_id):
            ...
    """

    def __init__(
        self,
        policy: RateLimitPolicy,
        clock: Clock = time.time,
        max_age: float = DEFAULT_MAX_AGE,
    ):
        """Initialize the limiter.

        Args:
            policy: Capacity and replenishment settings
            clock: Returns the current time as epoch seconds
            max_age: Seconds of inactivity after which cleanup() drops a bucket
        """
        self.policy = policy
        self._clock = clock
        self._max_age = max_age
        self._buckets: Dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, key: str) -> bool:
        return key in self._buckets

    def _refill(self, bucket: TokenBucket, now: float) -> None:
        elapsed = now - bucket.last_refill
        whole_intervals = math.floor(elapsed / self.policy.refill_interval)
        if whole_intervals > 0:
            bucket.tokens = min(
                self.policy.capacity,
                bucket.tokens + whole_intervals * self.policy.refill_rate,
            )
        bucket.last_refill = max(bucket.last_refill, now)

    def _get_bucket(self, key: str, now: float) -> TokenBucket:
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = TokenBucket(tokens=self.policy.capacity, last_refill=now)
            self._buckets[key] = bucket
        self._refill(bucket, now)
        return bucket

    def _consume(self, bucket: TokenBucket) -> bool:
        if bucket.tokens > 0:
            bucket.tokens -= 1
            return True
        return False

    def is_allowed(self, key: str) -> bool:
        """Consume one token for ``key`` if one is available."""
        with self._lock:
            bucket = self._get_bucket(key, self._clock())
            return self._consume(bucket)

    def get_remaining_tokens(self, key: str) -> int:
        """Return the tokens left for ``key`` without consuming one."""
        with self._lock:
            return self._get_bucket(key, self._clock()).tokens

    def get_reset_time(self, key: str) -> float:
        """Return the next instant at which ``key`` may gain tokens.

        This is ``last_refill + refill_interval``; the bucket is not
        necessarily full at that point.
        """
        with self._lock:
            bucket = self._get_bucket(key, self._clock())
            return bucket.last_refill + self.policy.refill_interval

    def check(self, key: str) -> RateLimitResult:
        """Admit or deny one request and report the bucket state."""
        with self._lock:
            now = self._clock()
            bucket = self._get_bucket(key, now)
            allowed = self._consume(bucket)
            reset_time = bucket.last_refill + self.policy.refill_interval

            retry_after = None
            if not allowed:
                retry_after = max(1, math.ceil(reset_time - now))

            return RateLimitResult(
                allowed=allowed,
                limit=self.policy.capacity,
                remaining=bucket.tokens,
                reset_time=reset_time,
                retry_after=retry_after,
            )

    def cleanup(self) -> int:
        """Drop buckets untouched for longer than max_age.

        Returns:
            Number of buckets removed
        """
        with self._lock:
            now = self._clock()
            expired = [
                key for key, bucket in self._buckets.items()
                if now - bucket.last_refill > self._max_age
            ]
            for key in expired:
                del self._buckets[key]
            return len(expired)

    def reset(self, key: Optional[str] = None) -> None:
        """Forget one bucket, or all of them when no key is given."""
        with self._lock:
            if key is None:
                self._buckets.clear()
            else:
                self._buckets.pop(key, None)


class RateLimiterRegistry:
    """Holds one TokenBucketRateLimiter per named policy class.

    Built once by the application and handed to request handlers, so tests
    can create isolated registries with their own policies and clock.
    """

    DEFAULT_POLICY = "api"

    def __init__(
        self,
        policies: Optional[Dict[str, RateLimitPolicy]] = None,
        clock: Clock = time.time,
        max_age: float = DEFAULT_MAX_AGE,
    ):
        policies = policies if policies is not None else DEFAULT_POLICIES
        self._limiters: Dict[str, TokenBucketRateLimiter] = {
            name: TokenBucketRateLimiter(policy, clock=clock, max_age=max_age)
            for name, policy in policies.items()
        }
        if self.DEFAULT_POLICY not in self._limiters:
            raise ValueError(f"Policy table must define '{self.DEFAULT_POLICY}'")

    @property
    def policies(self) -> Iterable[str]:
        return self._limiters.keys()

    def get(self, policy_name: str) -> TokenBucketRateLimiter:
        """Return the limiter for a policy class.

        Unknown policy names fall back to the general ``api`` policy.
        """
        limiter = self._limiters.get(policy_name)
        if limiter is None:
            logger.debug(f"Unknown rate limit policy '{policy_name}', using '{self.DEFAULT_POLICY}'")
            limiter = self._limiters[self.DEFAULT_POLICY]
        return limiter

    def check(self, key: str, policy_name: str = DEFAULT_POLICY) -> RateLimitResult:
        return self.get(policy_name).check(key)

    def cleanup(self) -> int:
        """Sweep idle buckets from every policy and return the total removed."""
        return sum(limiter.cleanup() for limiter in self._limiters.values())
