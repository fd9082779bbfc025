"""
Health check endpoints with database pool and optional Redis monitoring.
"""

import time

from fastapi import APIRouter, Request

from ladder_tracker.config import settings
from ladder_tracker.db.pool import db_health_check
from ladder_tracker.services.redis_client import fast_redis

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "ladder-tracker"}


@router.get("/readyz")
async def readyz(request: Request):
    """
    Readiness check: database pool, Redis (only when configured) and the
    Riot client.
    """
    checks = {}
    overall_ok = True

    # 1) Database pool
    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = db_health.get("healthy", False)

        checks["database"] = {
            "ok": is_healthy,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }

        if "pool_stats" in db_health:
            pool_stats = db_health["pool_stats"]
            checks["database"].update(
                {
                    "pool_size": pool_stats.get("pool_size", 0),
                    "pool_available": pool_stats.get("pool_available", 0),
                    "pool_utilization_percent": pool_stats.get("pool_utilization_percent", 0),
                }
            )

        if "warnings" in db_health:
            checks["database"]["warnings"] = db_health["warnings"]

        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")

        overall_ok = overall_ok and is_healthy

    except Exception as e:
        checks["database"] = {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = False

    # 2) Redis, only required when configured
    if fast_redis.configured:
        t0 = time.time()
        redis_ok = await fast_redis.ping()
        checks["redis"] = {
            "ok": redis_ok,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = overall_ok and redis_ok
    else:
        checks["redis"] = {"ok": True, "configured": False}

    # 3) Riot client
    riot_ready = getattr(request.app.state, "riot_client", None) is not None
    checks["riot_client"] = {
        "ok": riot_ready,
        "default_region": settings.RIOT_DEFAULT_REGION,
        "rate_budget": settings.RIOT_RATE_BUDGET_ENABLED,
    }
    overall_ok = overall_ok and riot_ready

    checks["configuration"] = {
        "ok": bool(settings.CRON_SECRET),
        "issues": None if settings.CRON_SECRET else ["CRON_SECRET not set"],
        "environment": settings.environment,
    }

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}


@router.get("/health/database")
async def database_health():
    """Detailed database pool health information."""
    return await db_health_check()
