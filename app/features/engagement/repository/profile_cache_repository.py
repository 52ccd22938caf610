"""
Write-through profile cache backed by Redis.

Entries are camelCase JSON under `profile:v1:<account_id>`. The version in the
prefix is the ContentTypeDistribution schema version; bumping it orphans old
entries instead of serving them in the wrong shape.
"""

from pydantic import ValidationError

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.profile_domain import ActivityProfile
from app.services.redis_client import FastRedisClient, fast_redis

logger = get_logger(__name__)

CACHE_KEY_PREFIX = "profile:v1"


def profile_cache_key(account_id: int) -> str:
    return f"{CACHE_KEY_PREFIX}:{account_id}"


class ProfileCacheRepository:
    def __init__(self, client: FastRedisClient | None = None, ttl_s: int | None = None):
        self._client = client or fast_redis
        self._ttl_s = ttl_s

    @property
    def ttl_s(self) -> int | None:
        return self._ttl_s if self._ttl_s is not None else settings.PROFILE_CACHE_TTL_S

    async def get(self, account_id: int) -> ActivityProfile | None:
        raw = await self._client.get(profile_cache_key(account_id))
        if not raw:
            return None
        try:
            return ActivityProfile.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable cached profile", account_id=account_id, error=str(e))
            return None

    async def put(self, account_id: int, profile: ActivityProfile) -> bool:
        stored = await self._client.set_with_ttl(
            profile_cache_key(account_id),
            profile.model_dump_json(by_alias=True),
            self.ttl_s,
        )
        if not stored:
            logger.warning("Profile cache write failed", account_id=account_id)
        return stored

    async def delete(self, account_id: int) -> bool:
        return await self._client.delete(profile_cache_key(account_id))


profile_cache_repository = ProfileCacheRepository()
