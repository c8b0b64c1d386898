"""Shared web infrastructure: slowapi rate limiter.

Neutral module with no imports from web.* — safe for all web modules to import.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

_RATE_LIMIT = "100/15minutes"  # default; overridden by configure_rate_limit()


def configure_rate_limit(value: str) -> None:
    """Set the /api/videos rate limit from config."""
    global _RATE_LIMIT
    _RATE_LIMIT = value


def api_rate_limit() -> str:
    """Limit provider evaluated per request, so config changes apply at startup."""
    return _RATE_LIMIT
