"""
Rate limiting middleware using slowapi.

Requests are bucketed by client IP.  Limits are stored in Redis when
REDIS_URL is set and in process memory otherwise.

Rate Limits:
- Chat completion: 20 requests per minute
- Bulk keyword upload: 10 per minute
- Analytics tracking: 300 per minute
- Default: 100 requests per minute
"""

import ipaddress
import logging
import re

from starlette.requests import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

_IP_LIKE = re.compile(r"^[\d.:a-fA-F]+$")


def _is_valid_ip(value: str) -> bool:
    """Return True if *value* is an IPv4 or IPv6 address."""
    if not _IP_LIKE.match(value):
        return False
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def _is_private_ip(value: str) -> bool:
    """Private, loopback and link-local addresses in proxy headers are spoofable."""
    try:
        addr = ipaddress.ip_address(value)
        return addr.is_private or addr.is_loopback or addr.is_link_local
    except ValueError:
        return False


def get_client_ip(request: Request) -> str:
    """Client IP from X-Forwarded-For / X-Real-IP, falling back to the socket peer."""
    for header in ("x-forwarded-for", "x-real-ip"):
        value = request.headers.get(header)
        if not value:
            continue
        candidate = value.split(",")[0].strip()
        if _is_valid_ip(candidate) and not _is_private_ip(candidate):
            return candidate
    return get_remote_address(request)


# Format: "count/period" where period can be: second, minute, hour, day
RATE_LIMITS = {
    "chat": "20/minute",
    "bulk_upload": "10/minute",
    "tracking": "300/minute",
    "default": "100/minute",
}

_storage_uri = settings.redis_url if settings.redis_url else "memory://"

if not settings.redis_url:
    logger.warning("Rate limiter using in-memory storage, limits are per process")

limiter = Limiter(
    key_func=get_client_ip,
    storage_uri=_storage_uri,
    default_limits=[RATE_LIMITS["default"]],
)


def get_rate_limit(endpoint: str) -> str:
    """
    Rate limit string for an endpoint group.

    >>> get_rate_limit("chat")
    '20/minute'
    >>> get_rate_limit("unknown")
    '100/minute'
    """
    return RATE_LIMITS.get(endpoint, RATE_LIMITS["default"])
