"""Redis-backed store for revoked token ids."""

import logging
from typing import Optional
import redis

from blogadmin.core.config import settings

logger = logging.getLogger("blogadmin.cache")

REVOKED_PREFIX = "revoked:"


class CacheService:
    """Redis client wrapper; connection failures are logged, not raised."""

    def __init__(self):
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                max_connections=100,
            )
        return self._client

    def revoke_token(self, jti: str, ttl_seconds: int) -> bool:
        """Mark a token id as revoked until the token would have expired anyway."""
        if ttl_seconds <= 0:
            return True
        try:
            self.client.setex(f"{REVOKED_PREFIX}{jti}", ttl_seconds, "1")
            return True
        except redis.ConnectionError:
            logger.warning("Redis unavailable, token %s not revoked", jti)
            return False

    def is_token_revoked(self, jti: str) -> bool:
        try:
            return bool(self.client.exists(f"{REVOKED_PREFIX}{jti}"))
        except redis.ConnectionError:
            logger.warning("Redis unavailable, skipping revocation check")
            return False

    def health_check(self) -> bool:
        """Check if Redis is reachable."""
        try:
            return self.client.ping()
        except redis.ConnectionError:
            return False


cache_service = CacheService()
