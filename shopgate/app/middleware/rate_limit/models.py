"""Rate limiting data models.

This module contains dataclasses for rate limit policies, bucket state and
check results.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class RateLimitPolicy:
    """Replenishment policy for one class of endpoints.

    Attributes:
        name: Policy class name (auth, api, read, sensitive, export)
        capacity: Maximum tokens a bucket can hold
        refill_rate: Tokens added per refill interval
        refill_interval: Seconds between refill ticks
    """
    name: str
    capacity: int
    refill_rate: int
    refill_interval: float

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError(f"{self.name}: capacity must be at least 1")
        if self.refill_rate < 1:
            raise ValueError(f"{self.name}: refill_rate must be at least 1")
        if self.refill_interval <= 0:
            raise ValueError(f"{self.name}: refill_interval must be positive")


@dataclass
class TokenBucket:
    """Token bucket state for one rate limited key."""
    tokens: int = 0
    last_refill: float = field(default_factory=time.time)


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    limit: int
    remaining: int
    reset_time: float
    retry_after: Optional[int] = None


DEFAULT_POLICIES: Dict[str, RateLimitPolicy] = {
    # Strict limits for authentication endpoints
    "auth": RateLimitPolicy("auth", capacity=5, refill_rate=1, refill_interval=60.0),
    # General API endpoints
    "api": RateLimitPolicy("api", capacity=100, refill_rate=10, refill_interval=60.0),
    # Read-only endpoints
    "read": RateLimitPolicy("read", capacity=200, refill_rate=20, refill_interval=60.0),
    # User administration, tenant status changes, payment proofs
    "sensitive": RateLimitPolicy("sensitive", capacity=3, refill_rate=1, refill_interval=300.0),
    # CSV/Excel exports
    "export": RateLimitPolicy("export", capacity=5, refill_rate=1, refill_interval=1.0),
}
