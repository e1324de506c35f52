"""Rate limiting with slowapi.

Only the expensive routes are limited: AI suggestions (each one is a Gemini
call) and PDF rendering. Editing endpoints are cheap in-memory operations and
are left unlimited. slowapi adds X-RateLimit-* headers to limited responses.
"""

import ipaddress
from functools import lru_cache
from typing import List, Union

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


@lru_cache(maxsize=8)
def _trusted_networks(trusted_proxies: str) -> List[Network]:
    """Parse TRUSTED_PROXIES: comma-separated addresses or CIDR ranges."""
    return [
        ipaddress.ip_network(entry.strip(), strict=False)
        for entry in trusted_proxies.split(",")
        if entry.strip()
    ]


def _is_trusted(ip: str, trusted_proxies: str) -> bool:
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        return False
    return any(address in network for network in _trusted_networks(trusted_proxies))


def get_client_ip(request: Request) -> str:
    """
    Rate limit key: the client IP address.

    X-Forwarded-For is honoured only when the direct peer is one of the
    configured trusted proxies, so clients cannot choose their own key.

    Args:
        request: FastAPI request object

    Returns:
        Client IP address string
    """
    from app.config import get_settings

    direct_ip: str = get_remote_address(request)

    trusted_proxies = get_settings().trusted_proxies
    if not trusted_proxies or not _is_trusted(direct_ip, trusted_proxies):
        return direct_ip

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return direct_ip


# In-memory storage, keyed by client IP
limiter = Limiter(key_func=get_client_ip, headers_enabled=True)


def suggest_rate_limit() -> str:
    """Limit for the AI suggestion endpoint, read from settings at request time."""
    from app.config import get_settings

    return get_settings().suggest_rate_limit


RATE_LIMITS = {
    "suggest": suggest_rate_limit,  # POST .../suggestions - calls Gemini
    "render": "30/minute",          # GET .../pdf - CPU bound
}


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """
    Answer 429 Too Many Requests as JSON.

    Headers:
    - Retry-After: Seconds until the client may retry
    - X-RateLimit-Limit: The limit that was exceeded
    - X-RateLimit-Remaining: Always 0

    Args:
        request: FastAPI request object
        exc: RateLimitExceeded exception with limit details

    Returns:
        JSONResponse with status 429
    """
    retry_after = getattr(exc, "retry_after", 60)

    headers = {
        "Retry-After": str(retry_after),
        "X-RateLimit-Remaining": "0",
    }
    if getattr(exc, "detail", None):
        headers["X-RateLimit-Limit"] = str(exc.detail)

    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded",
            "message": f"Too many requests. Please retry after {retry_after} seconds.",
            "retry_after": retry_after,
        },
        headers=headers,
    )


def get_limiter() -> Limiter:
    """Module-level Limiter used by route decorators and app.state."""
    return limiter
