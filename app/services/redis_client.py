# app/services/redis_client.py
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MAX_CONNECTIONS = 20


class FastRedisClient:
    """Pooled async Redis client; every operation degrades to a falsy result on failure."""

    def __init__(self):
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        redis_url = settings.redis_url()
        if not redis_url:
            raise RuntimeError("Redis is not configured (set REDIS_URL or UPSTASH_REDIS_REST_*)")

        try:
            logger.info("Attempting Redis connection", url_preview=redis_url.split("@")[-1][:40])

            self.pool = ConnectionPool.from_url(
                redis_url,
                max_connections=MAX_CONNECTIONS,
                retry_on_timeout=True,
                retry_on_error=[redis.ConnectionError, redis.TimeoutError],
                socket_connect_timeout=10,
                socket_timeout=10,
                health_check_interval=30,
                decode_responses=True,
            )

            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True
            logger.info("Fast Redis client initialized successfully", max_connections=MAX_CONNECTIONS)

        except Exception as e:
            logger.error("Failed to initialize fast Redis client", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

    async def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self._initialized = False
            logger.info("Fast Redis client closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))

    async def _ensure_initialized(self):
        if not self._initialized:
            logger.warning("Redis not initialized, attempting to initialize")
            await self.initialize()

    async def ping(self) -> bool:
        try:
            await self._ensure_initialized()
            return bool(await self.client.ping())
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def get(self, key: str) -> str | None:
        try:
            await self._ensure_initialized()
            result = await self.client.get(key)
            return result if result else None
        except Exception as e:
            logger.error("Redis GET failed", key=key[:30], error=str(e))
            return None

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        try:
            await self._ensure_initialized()
            if ttl_s:
                result = await self.client.setex(key, ttl_s, value)
            else:
                result = await self.client.set(key, value)
            return bool(result)
        except Exception as e:
            logger.error("Redis SET failed", key=key[:30], error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        try:
            await self._ensure_initialized()
            result = await self.client.delete(key)
            return result > 0
        except Exception as e:
            logger.error("Redis DELETE failed", key=key[:30], error=str(e))
            return False


# Global instance
fast_redis = FastRedisClient()
