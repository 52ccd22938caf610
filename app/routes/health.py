# app/routes/health.py
"""
Liveness and readiness endpoints.

/readyz reports Redis (profile cache), Postgres (credential store) and the
configuration the engine needs. The service still answers /api/stats with
synthesized profiles when the stores are down, so readiness is informational.
"""

import time

from fastapi import APIRouter

from app.config import settings
from app.db.pool import db_health_check
from app.infrastructure.observability.logging import log_health_check
from app.services.redis_client import fast_redis

router = APIRouter()

SERVICE_NAME = "engagement-analytics"


def _config_issues() -> list[str]:
    issues = []
    if not settings.BOT_TOKEN:
        issues.append("BOT_TOKEN not set")
    if not settings.redis_url():
        issues.append("REDIS_URL / UPSTASH_REDIS_REST_* not set")
    if not settings.SUPABASE_DB_URL:
        issues.append("SUPABASE_DB_URL not set")
    if not settings.ENCRYPTION_KEY:
        issues.append("ENCRYPTION_KEY not set")
    if not settings.telegram_api_configured():
        issues.append("TG_API_ID / TG_API_HASH not set")
    return issues


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/readyz")
async def readyz():
    checks = {}
    overall_ok = True

    # 1) Redis
    t0 = time.time()
    redis_ok = await fast_redis.ping()
    latency_ms = round((time.time() - t0) * 1000, 1)
    checks["redis"] = {"ok": redis_ok, "latency_ms": latency_ms}
    log_health_check("redis", redis_ok, latency_ms)
    overall_ok = overall_ok and redis_ok

    # 2) Postgres
    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = bool(db_health.get("healthy", False))
        latency_ms = round((time.time() - t0) * 1000, 1)
        checks["database"] = {"ok": is_healthy, "latency_ms": latency_ms}

        if "pool_stats" in db_health:
            checks["database"].update(db_health["pool_stats"])
        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")
        log_health_check("database", is_healthy, latency_ms, db_health.get("error"))
        overall_ok = overall_ok and is_healthy
    except Exception as e:
        checks["database"] = {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = False

    # 3) Configuration
    issues = _config_issues()
    checks["configuration"] = {
        "ok": not issues,
        "issues": issues or None,
        "environment": settings.environment,
    }
    overall_ok = overall_ok and not issues

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}


@router.get("/health/database")
async def database_health():
    """Detailed database pool health information."""
    return await db_health_check()
