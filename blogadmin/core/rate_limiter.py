"""Request rate limiting (login brute-force protection)."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from blogadmin.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.RATE_LIMIT_ENABLED,
)
