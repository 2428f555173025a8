# src/carmarket_admin/core/redis_cache.py
import logging
from typing import Optional

from redis.asyncio import Redis

from carmarket_admin.core.config import settings, async_retry

logger = logging.getLogger(__name__)


@async_retry(max_attempts=4, base_delay=0.5, max_delay=3.0)
async def connect_redis(url: Optional[str] = None) -> Redis:
    url = url or settings.REDIS_URL
    client = Redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.POOL_SIZE,
    )
    pong = await client.ping()
    logger.info("Redis ping at %s: %s", url, pong)
    return client


class RateLimiter:
    """Fixed-window request counter stored in redis.

    The first hit in a window sets the key's expiry; every hit after
    ``limit`` within the window is reported as limited.
    """

    def __init__(self, redis: Redis, namespace: str = "rl"):
        self.redis = redis
        self.namespace = namespace

    def _key(self, key_prefix: str) -> str:
        return f"{self.namespace}:{key_prefix}"

    async def hit(self, key_prefix: str, limit: int, window_seconds: int) -> bool:
        """Count one request; return True when the caller is over ``limit``."""
        key = self._key(key_prefix)
        # window creation and the increment run as one MULTI/EXEC
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(key, 0, ex=window_seconds, nx=True)
            pipe.incr(key)
            _, cur = await pipe.execute()
        return cur > limit

    async def retry_after(self, key_prefix: str) -> int:
        ttl = await self.redis.ttl(self._key(key_prefix))
        return max(int(ttl), 0)

    async def close(self):
        try:
            await self.redis.aclose()
            logger.info("Closed redis client")
        except Exception:
            logger.exception("Error closing redis client")
