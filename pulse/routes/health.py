# pulse/routes/health.py
"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "relationship-pulse"}


@router.get("/readyz")
async def readyz(request: Request):
    """Readiness check including the database pool."""
    t0 = time.time()
    db_health = await request.app.state.db_pool.health_check()

    database = {
        "ok": db_health.get("healthy", False),
        "latency_ms": round((time.time() - t0) * 1000, 1),
    }
    if database["ok"]:
        database["pool_size"] = db_health.get("pool_size", 0)
    else:
        database["error"] = db_health.get("error", "Database unhealthy")

    body = {"status": "ready" if database["ok"] else "degraded", "checks": {"database": database}}
    return JSONResponse(status_code=200 if database["ok"] else 503, content=body)
