# app/main.py
"""
FastAPI application for the engagement stats backend.

Startup initializes the Postgres pool (credential store) and the Redis pool
(profile cache). Either may be missing or down: the engine then serves
uncached synthesized profiles, so a failed store only logs a warning.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import settings
from app.db.pool import db_pool
from app.features.engagement.api import router as engagement_router
from app.infrastructure.observability.logging import get_logger, setup_logging
from app.middleware import CORSMiddleware, RequestContextMiddleware, SecurityHeadersMiddleware
from app.routes import health
from app.services.infrastructure.encryption_service import validate_encryption_config
from app.services.redis_client import fast_redis

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    started = []

    if settings.SUPABASE_DB_URL:
        try:
            await db_pool.initialize()
            started.append("database_pool")
        except Exception as e:
            logger.warning("Database pool unavailable, credential lookups will miss", error=str(e))
    else:
        logger.warning("SUPABASE_DB_URL not set, every profile will be synthesized")

    if settings.redis_url():
        try:
            await fast_redis.initialize()
            started.append("redis")
        except Exception as e:
            logger.warning("Redis unavailable, profiles will not be cached", error=str(e))
    else:
        logger.warning("Redis not configured, profiles will not be cached")

    if settings.ENCRYPTION_KEY and not validate_encryption_config():
        logger.warning("ENCRYPTION_KEY is invalid, stored sessions cannot be decrypted")

    if not settings.BOT_TOKEN:
        logger.warning("BOT_TOKEN not set, signed initData cannot be verified")

    logger.info("Startup complete", services=started)

    yield

    # Shutdown (reverse order)
    logger.info("Application shutting down")
    shutdown_errors = []

    if "redis" in started:
        try:
            await fast_redis.close()
        except Exception as e:
            logger.error("Error closing Redis", error=str(e))
            shutdown_errors.append(f"Redis: {e}")

    if "database_pool" in started:
        try:
            await db_pool.close()
        except Exception as e:
            logger.error("Error closing database pool", error=str(e))
            shutdown_errors.append(f"Database: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Engagement Analytics",
    description="Telegram Mini App engagement profiles",
    version="0.1.0",
    lifespan=lifespan,
)

# Added last runs first: request context wraps everything
app.add_middleware(SecurityHeadersMiddleware, enforce_https=settings.environment == "production")
app.add_middleware(CORSMiddleware, allowed_origins=settings.CORS_ALLOWED_ORIGINS)
app.add_middleware(RequestContextMiddleware)

app.include_router(health.router)
app.include_router(engagement_router.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
