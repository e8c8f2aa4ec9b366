"""
Health check endpoints.

- /health/live  - the process is up
- /health/ready - the database answers and the schema exists
- /health/deep  - readiness plus email and configuration diagnostics
"""

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from typing import Dict, Any
import time

from app.core.config import settings, missing_critical_settings
from app.core.database import get_engine
from app.core.logging_config import logger
from app.core.types import utcnow


router = APIRouter(prefix="/health", tags=["Health Checks"])

LEDGER_TABLES = ("users", "invites", "memberships", "applications", "audit_logs")


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


async def check_database() -> Dict[str, Any]:
    """Connectivity plus presence of the ledger tables"""
    start = time.perf_counter()
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
            existing = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
    except SQLAlchemyError as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(start), "tables_ready": False, "error": str(e)}

    missing = [name for name in LEDGER_TABLES if name not in existing]
    return {
        "status": "healthy",
        "latency_ms": _elapsed_ms(start),
        "tables_ready": not missing,
        "missing_tables": missing,
    }


def check_email_config() -> Dict[str, Any]:
    """Configuration only; no connection is attempted"""
    if settings.SMTP_HOST and settings.SMTP_USER and settings.SMTP_PASSWORD:
        return {"status": "healthy", "provider": "smtp", "host": settings.SMTP_HOST}
    return {
        "status": "degraded",
        "provider": "none",
        "message": "SMTP not configured - OTP and invite emails are only logged",
    }


def check_critical_env_vars() -> Dict[str, Any]:
    missing = missing_critical_settings()
    return {"status": "unhealthy" if missing else "healthy", "missing_critical": missing}


@router.get("/live")
async def liveness_check():
    return {
        "status": "alive",
        "timestamp": utcnow().isoformat(),
        "app": settings.APP_NAME,
    }


@router.get("/ready")
async def readiness_check():
    """Returns 503 until the database is reachable and migrated"""
    db_check = await check_database()
    is_ready = db_check.get("status") == "healthy" and db_check.get("tables_ready", False)

    response = {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": utcnow().isoformat(),
        "checks": {"database": db_check},
    }

    if not is_ready:
        logger.warning(f"[HealthCheck] Readiness check failed: {response}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=response)

    return response


@router.get("/deep")
async def deep_health_check():
    start = time.perf_counter()

    checks = {
        "database": await check_database(),
        "email": check_email_config(),
        "environment": check_critical_env_vars(),
    }

    statuses = [c.get("status", "unknown") for c in checks.values()]
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    response = {
        "status": overall,
        "timestamp": utcnow().isoformat(),
        "environment": settings.ENVIRONMENT,
        "total_check_time_ms": _elapsed_ms(start),
        "checks": checks,
    }

    if overall == "unhealthy":
        logger.error(f"[HealthCheck] Deep check unhealthy: {response}")

    return response
