"""
MT5 CRM Backend - Redis Client

Holds the access-token denylist and the per-IP rate-limit counters.
Every method is a no-op when the client was never initialized, so the
API keeps working without Redis (tokens then simply expire naturally).
"""
import json
from datetime import datetime, timezone

import redis.asyncio as redis
from loguru import logger

from mt5crm.config import settings


class RedisClient:
    """Async Redis client wrapper."""

    def __init__(self):
        self._client: redis.Redis | None = None

    async def initialize(self):
        """Initialize Redis connection."""
        try:
            redis_url = settings.redis_url
            self._client = redis.from_url(
                redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            # Test connection
            await self._client.ping()
            logger.info(f"✅ Redis connected: {redis_url.split('@')[-1] if '@' in redis_url else redis_url}")
        except Exception as e:
            logger.error(f"❌ Redis connection failed: {e}")
            self._client = None
            raise

    async def close(self):
        """Close Redis connection."""
        if self._client:
            await self._client.close()
            self._client = None
            logger.info("Redis connection closed")

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def ping(self) -> bool:
        if not self._client:
            return False
        return bool(await self._client.ping())

    # =========================
    # Token Denylist Methods
    # =========================
    async def blacklist_token(
        self,
        token_jti: str,
        user_id: int,
        ttl: int
    ) -> bool:
        """
        Add a token to the denylist for the rest of its lifetime.

        Args:
            token_jti: The JWT ID (jti claim)
            user_id: The user's ID (for tracking)
            ttl: Seconds until the token would expire anyway

        Returns:
            True if token was stored, False when Redis is unavailable
        """
        if not self._client or ttl <= 0:
            return False
        key = f"blacklist:{token_jti}"
        data = {
            "user_id": user_id,
            "blacklisted_at": datetime.now(timezone.utc).isoformat()
        }
        await self._client.setex(key, ttl, json.dumps(data))
        return True

    async def is_token_blacklisted(self, token_jti: str) -> bool:
        """
        Check if a token is on the denylist.

        Args:
            token_jti: The JWT ID (jti claim)

        Returns:
            True if token is blacklisted
        """
        if not self._client or not token_jti:
            return False
        key = f"blacklist:{token_jti}"
        return await self._client.exists(key) > 0

    # =========================
    # Rate Limit Methods
    # =========================
    async def increment_rate_limit(self, identifier: str, window_seconds: int) -> int:
        """
        Increment the fixed-window counter for an identifier (client IP).

        Returns:
            Requests counted in the current window, 0 when Redis is unavailable
        """
        if not self._client:
            return 0
        window = int(datetime.now(timezone.utc).timestamp()) // window_seconds
        key = f"ratelimit:{identifier}:{window}"
        count = await self._client.incr(key)
        if count == 1:
            await self._client.expire(key, window_seconds)
        return count


# Global Redis client instance
redis_client = RedisClient()
