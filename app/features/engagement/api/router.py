"""
Engagement stats routes.

GET returns the caller's ActivityProfile, DELETE drops the cached copy so the
next GET recomputes it. Both sit behind Telegram initData authentication.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.auth.verify import auth_dependency
from app.features.engagement.pipeline.aggregation import message_aggregation_service
from app.features.engagement.pipeline.synthesis import heuristic_synthesizer
from app.features.engagement.repository import credential_repository, profile_cache_repository
from app.features.engagement.services import EngagementEngine
from app.infrastructure.observability.logging import get_logger
from app.models.api.profile_response import ProfileInvalidationResponse
from app.models.domain.profile_domain import ActivityProfile, IdentityClaim
from app.services.telegram_bot_service import telegram_bot_service
from app.services.telegram_message_source import open_message_source

logger = get_logger(__name__)

router = APIRouter(prefix="/api/stats", tags=["engagement"])

_engine: EngagementEngine | None = None


def get_engagement_engine() -> EngagementEngine:
    """Process-wide engine wired to the Redis cache, Postgres store and Telegram adapters."""
    global _engine
    if _engine is None:
        _engine = EngagementEngine(
            cache=profile_cache_repository,
            credentials=credential_repository,
            source_factory=open_message_source,
            photo_lookup=telegram_bot_service,
            synthesizer=heuristic_synthesizer,
            aggregator=message_aggregation_service,
        )
    return _engine


def _profile_response(profile: ActivityProfile) -> JSONResponse:
    return JSONResponse(content=profile.model_dump(mode="json", by_alias=True))


@router.get("", response_model=ActivityProfile, response_model_by_alias=True)
async def get_stats(
    claim: IdentityClaim = Depends(auth_dependency),
    engine: EngagementEngine = Depends(get_engagement_engine),
):
    try:
        profile = await engine.get_profile(claim)
    except Exception as e:
        logger.error(
            "Engagement engine failed, serving synthesized profile",
            account_id=claim.account_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        profile = engine.synthesize_fallback(claim)
    return _profile_response(profile)


@router.delete("", response_model=ProfileInvalidationResponse, response_model_by_alias=True)
async def invalidate_stats(
    claim: IdentityClaim = Depends(auth_dependency),
    engine: EngagementEngine = Depends(get_engagement_engine),
):
    invalidated = await engine.invalidate(claim.account_id)
    response = ProfileInvalidationResponse(account_id=claim.account_id, invalidated=invalidated)
    return JSONResponse(content=response.model_dump(mode="json", by_alias=True))
