"""
Health endpoints for load balancers, Kubernetes liveness/readiness checks and monitoring.

All of them answer 503 as soon as shutdown has started (``fitsnap_ready`` = 0).
"""
import asyncio
import logging
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import text

from fitsnap.config import get_settings
from fitsnap.database import engine
from fitsnap.services.object_storage import get_storage_service
from fitsnap.utils.prometheus_metrics import health_check_status, ready

logger = logging.getLogger("fitsnap.health")
router = APIRouter(prefix="/health", tags=["Health"])

DB_CHECK_TIMEOUT_SECONDS = 1.0
STORAGE_CHECK_TIMEOUT_SECONDS = 2.0


def is_ready() -> bool:
    return ready._value.get() != 0


def _unavailable(detail: Any) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


async def database_status() -> Optional[str]:
    """``SELECT 1`` with a short timeout. Returns None when healthy, else the reason."""

    async def select_one() -> None:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))

    try:
        await asyncio.wait_for(select_one(), timeout=DB_CHECK_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        reason = "timeout"
    except Exception as e:
        reason = str(e)[:200]
    else:
        return None

    logger.warning("Database check failed", extra={"event": "health", "error": reason})
    return reason


async def storage_status() -> Dict[str, str]:
    storage = get_storage_service()
    if not storage.is_configured:
        return {"status": "skipped", "reason": "Not configured"}
    try:
        reachable = await asyncio.wait_for(
            storage.check_connection(), timeout=STORAGE_CHECK_TIMEOUT_SECONDS
        )
    except asyncio.TimeoutError:
        reachable = False
    if reachable:
        return {"status": "up"}
    return {"status": "down", "error": "Bucket unreachable"}


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


@router.get("", summary="Health check (fast)")
async def health_check() -> Dict[str, Any]:
    """Process alive and database reachable. Meant for the load balancer."""
    start = time.perf_counter()
    if not is_ready():
        health_check_status.labels(check_type="fast").set(0)
        raise _unavailable("Application is shutting down")

    db_error = await database_status()
    if db_error is not None:
        health_check_status.labels(check_type="fast").set(0)
        raise _unavailable(
            "Database connection timeout" if db_error == "timeout" else "Database connection failed"
        )

    health_check_status.labels(check_type="fast").set(1)
    return {
        "status": "healthy",
        "duration_ms": _elapsed_ms(start),
        "instance": get_settings().instance_ip or "unknown",
    }


@router.get("/liveness", summary="Liveness check (Kubernetes)")
async def liveness_check() -> Dict[str, str]:
    if not is_ready():
        raise _unavailable("Application is shutting down")
    return {"status": "alive"}


@router.get("/readiness", summary="Readiness check (Kubernetes)")
async def readiness_check() -> Dict[str, str]:
    if not is_ready():
        raise _unavailable("Application is not ready")
    if await database_status() is not None:
        raise _unavailable("Database not ready")
    return {"status": "ready"}


@router.get("/detailed", summary="Detailed health check (monitoring)")
async def detailed_health_check() -> Dict[str, Any]:
    """
    Database and object storage, each reported separately. Storage is
    ``skipped`` when no bucket credentials are configured.
    """
    start = time.perf_counter()
    if not is_ready():
        health_check_status.labels(check_type="detailed").set(0)
        raise _unavailable(
            {
                "status": "unhealthy",
                "checks": {"ready": {"status": "down", "error": "Application is shutting down"}},
            }
        )

    db_error = await database_status()
    checks = {
        "database": {"status": "up"} if db_error is None else {"status": "down", "error": db_error},
        "object_storage": await storage_status(),
    }
    healthy = all(check["status"] != "down" for check in checks.values())
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "checks": checks,
        "duration_ms": _elapsed_ms(start),
        "instance": get_settings().instance_ip or "unknown",
    }

    health_check_status.labels(check_type="detailed").set(1 if healthy else 0)
    if not healthy:
        raise _unavailable(body)
    return body
