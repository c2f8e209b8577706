"""Health and readiness endpoints.

  /health (liveness): the process is up.  Always 200; the status field
    reports "degraded" when a configured backend is unreachable.

  /ready (readiness): this instance can serve traffic.  503 when the
    database is configured but unreachable, since every credential
    operation needs it.  Redis only backs the approval lock and is not
    critical.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response

from app.db.engine import engine, ping_database
from app.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_database() -> str:
    if engine is None:
        return "not_configured"
    try:
        await ping_database()
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"
    return "ok"


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.warning("Redis health check failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health() -> dict:
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _check_database() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
