"""
Engagement engine: cache, credential lookup, aggregation or synthesis.

Once the caller's identity is verified the engine always produces a profile.
Every collaborator failure below that point degrades instead of surfacing:
cache read → miss, cache write → ignored, credential lookup → synthesis,
aggregation or timeout → synthesis, photo lookup → no photo.
"""

from __future__ import annotations

import asyncio

from app.config import settings
from app.features.engagement.domain.ports import (
    CredentialStore,
    MessageSourceFactory,
    PhotoLookup,
    ProfileCache,
)
from app.features.engagement.pipeline.aggregation import MessageAggregationService
from app.features.engagement.pipeline.synthesis import HeuristicSynthesizer
from app.infrastructure.observability.logging import get_logger
from app.models.domain.profile_domain import ActivityProfile, IdentityClaim, ProfileOrigin

logger = get_logger(__name__)


class EngagementEngine:
    def __init__(
        self,
        cache: ProfileCache,
        credentials: CredentialStore,
        source_factory: MessageSourceFactory,
        photo_lookup: PhotoLookup,
        synthesizer: HeuristicSynthesizer | None = None,
        aggregator: MessageAggregationService | None = None,
    ):
        self.cache = cache
        self.credentials = credentials
        self.source_factory = source_factory
        self.photo_lookup = photo_lookup
        self.synthesizer = synthesizer or HeuristicSynthesizer()
        self.aggregator = aggregator or MessageAggregationService()

    async def get_profile(self, claim: IdentityClaim) -> ActivityProfile:
        account_id = claim.account_id

        cached = await self._cache_get(account_id)
        credential = None
        if cached is not None:
            if cached.origin == ProfileOrigin.AGGREGATED:
                logger.debug("Profile cache hit", account_id=account_id)
                return cached
            credential = await self._lookup_credential(account_id)
            if credential is None:
                logger.debug("Profile cache hit", account_id=account_id)
                return cached
            logger.info("Upgrading cached synthesized profile", account_id=account_id)
        else:
            credential = await self._lookup_credential(account_id)

        profile = None
        if credential is not None:
            profile = await self._aggregate(claim, credential)
        if profile is None:
            profile = self.synthesizer.synthesize(
                account_id, claim.is_premium_tier, claim.username
            )

        profile.photo_url = await self._photo_url(account_id)

        if profile.origin == ProfileOrigin.AGGREGATED or settings.CACHE_SYNTHESIZED_PROFILES:
            await self._cache_put(account_id, profile)

        logger.info(
            "Profile computed",
            account_id=account_id,
            origin=profile.origin.value,
            persona=profile.persona.value,
        )
        return profile

    def synthesize_fallback(self, claim: IdentityClaim) -> ActivityProfile:
        """Uncached synthesized profile for last-resort error paths."""
        return self.synthesizer.synthesize(claim.account_id, claim.is_premium_tier, claim.username)

    async def invalidate(self, account_id: int) -> bool:
        try:
            removed = await self.cache.delete(account_id)
        except Exception as e:
            logger.error("Profile cache delete failed", account_id=account_id, error=str(e))
            return False
        logger.info("Profile cache invalidated", account_id=account_id, removed=removed)
        return removed

    async def _aggregate(self, claim: IdentityClaim, credential: str) -> ActivityProfile | None:
        try:
            return await asyncio.wait_for(
                self._run_aggregation(claim, credential),
                timeout=settings.AGGREGATION_TIMEOUT_S,
            )
        except TimeoutError:
            logger.warning(
                "Aggregation timed out, falling back to synthesis",
                account_id=claim.account_id,
                timeout_s=settings.AGGREGATION_TIMEOUT_S,
            )
        except Exception as e:
            logger.warning(
                "Aggregation failed, falling back to synthesis",
                account_id=claim.account_id,
                error=str(e),
                error_type=type(e).__name__,
            )
        return None

    async def _run_aggregation(self, claim: IdentityClaim, credential: str) -> ActivityProfile:
        async with self.source_factory(credential) as source:
            return await self.aggregator.aggregate(
                source,
                claim.account_id,
                recency_window_days=settings.RECENCY_WINDOW_DAYS,
                max_conversations=settings.MAX_CONVERSATIONS,
                max_messages_per_conversation=settings.MAX_MESSAGES_PER_CONVERSATION,
                top_contacts_limit=settings.TOP_CONTACTS_LIMIT,
                concurrency=settings.AGGREGATION_CONCURRENCY,
                is_premium_tier=claim.is_premium_tier,
            )

    async def _cache_get(self, account_id: int) -> ActivityProfile | None:
        try:
            return await self.cache.get(account_id)
        except Exception as e:
            logger.warning("Profile cache read failed, treating as miss", account_id=account_id, error=str(e))
            return None

    async def _cache_put(self, account_id: int, profile: ActivityProfile) -> None:
        try:
            await self.cache.put(account_id, profile)
        except Exception as e:
            logger.warning("Profile cache write failed", account_id=account_id, error=str(e))

    async def _lookup_credential(self, account_id: int) -> str | None:
        try:
            return await self.credentials.get(account_id)
        except Exception as e:
            logger.warning("Credential lookup failed, using synthesis", account_id=account_id, error=str(e))
            return None

    async def _photo_url(self, account_id: int) -> str | None:
        try:
            return await self.photo_lookup.get_profile_photo_url(account_id)
        except Exception as e:
            logger.info("Photo lookup failed", account_id=account_id, error=str(e))
            return None
