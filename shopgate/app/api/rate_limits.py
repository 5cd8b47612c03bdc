"""Diagnostic endpoint exposing the caller's rate limit state."""

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from shopgate.app.middleware.rate_limit import (
    get_client_id,
    get_rate_limiters,
    require_rate_limit,
)

router = APIRouter(prefix="/api/rate-limit", tags=["rate-limit"])


class RateLimitStatus(BaseModel):
    policy: str
    limit: int
    remaining: int
    reset_time: float


@router.get(
    "/{policy}",
    response_model=RateLimitStatus,
    dependencies=[Depends(require_rate_limit("read"))],
)
async def get_rate_limit_status(policy: str, request: Request) -> RateLimitStatus:
    """Report remaining tokens and next refill time for the caller under ``policy``."""
    registry = get_rate_limiters(request)
    if policy not in registry.policies:
        raise HTTPException(status_code=404, detail=f"Unknown rate limit policy: {policy}")

    limiter = registry.get(policy)
    client_id = get_client_id(
        request.headers,
        request.client.host if request.client else None,
    )
    return RateLimitStatus(
        policy=policy,
        limit=limiter.policy.capacity,
        remaining=limiter.get_remaining_tokens(client_id),
        reset_time=limiter.get_reset_time(client_id),
    )
