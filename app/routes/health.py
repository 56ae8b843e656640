# app/routes/health.py
"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Request

from app.config import settings
from app.infrastructure.observability.logging import log_health_check

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "career-insight-platform"}


@router.get("/readyz")
async def readyz(request: Request):
    """Readiness check: the record store must answer a ping."""
    checks = {}
    overall_ok = True

    store = getattr(request.app.state, "record_store", None)
    t0 = time.time()
    if store is None:
        checks["record_store"] = {"ok": False, "error": "Record store not initialized"}
        overall_ok = False
    else:
        try:
            store_ok = await store.ping()
            latency_ms = round((time.time() - t0) * 1000, 1)
            checks["record_store"] = {
                "ok": store_ok,
                "latency_ms": latency_ms,
                "backend": type(store).__name__,
            }
            log_health_check("record_store", store_ok, latency_ms)
            overall_ok = overall_ok and store_ok
        except Exception as e:
            latency_ms = round((time.time() - t0) * 1000, 1)
            checks["record_store"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
            log_health_check("record_store", False, latency_ms, error=str(e))
            overall_ok = False

    checks["configuration"] = {
        "ok": True,
        "environment": settings.environment,
        "redis_configured": settings.use_redis(),
        "email_provider": "sendgrid" if settings.SENDGRID_API_KEY else "logging",
    }

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
