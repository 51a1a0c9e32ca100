"""Shared rate limiter (in-memory storage, keyed by client address).

Public write endpoints that anonymous callers can hit (inquiry submission,
view and cart-add tracking) carry a stricter per-route limit on top of the
default. Limiting is off when TESTING is set.
"""

from loguru import logger
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings


def _enabled() -> bool:
    if settings.testing:
        return False
    if not settings.rate_limit_enabled:
        logger.warning("Rate limiting disabled by configuration")
    return settings.rate_limit_enabled


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=_enabled(),
)
