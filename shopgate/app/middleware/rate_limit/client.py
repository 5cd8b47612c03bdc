"""Client identity for rate limiting."""

from typing import Mapping, Optional

USER_AGENT_MAX_LENGTH = 50


def get_client_ip(headers: Mapping[str, str], client_host: Optional[str] = None) -> str:
    """Best-effort client IP behind a proxy or load balancer.

    Uses the first X-Forwarded-For entry, then X-Real-IP, then the socket
    peer address, and finally "unknown".
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return client_host or "unknown"


def get_client_id(headers: Mapping[str, str], client_host: Optional[str] = None) -> str:
    """Build the rate limit key for a request.

    The truncated user agent separates distinct clients sharing one IP
    while keeping keys short.

    Args:
        headers: Request headers (case-insensitive mapping, or lower-case keys)
        client_host: Socket peer address, if known

    Returns:
        Key of the form "ip:user-agent"
    """
    ip = get_client_ip(headers, client_host)
    user_agent = headers.get("user-agent") or "unknown"
    return f"{ip}:{user_agent[:USER_AGENT_MAX_LENGTH]}"
