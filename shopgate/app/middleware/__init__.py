"""Middleware package for the shop backend."""

from shopgate.app.middleware.rate_limit import require_rate_limit
from shopgate.app.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = [
    "require_rate_limit",
    "RequestIdMiddleware",
    "get_request_id",
]
