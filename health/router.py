# ============================================================================
# HEALTH CHECK ROUTER
# ============================================================================
# EPOCH: 2 - SHARED INSTANCES
# STATUS: Infrastructure - FastAPI health check endpoints
# PURPOSE: Liveness, readiness and detailed health endpoints
# CREATED: 18 SEP 2026
# ============================================================================
"""
Health Check Router

    GET /livez               process is up; touches nothing
    GET /readyz              required checks; 503 when one is unhealthy
    GET /health              every check plus per-category counts
    GET /health/{check_name} one check

/health and /health/{name} answer 200 healthy, 206 degraded,
503 unhealthy. Degraded is still ready: the cache keeps serving while
the upstream API is failing.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from health.core import HealthStatus
from health.executor import HealthCheckExecutor
from health.registry import get_registry
from __version__ import __version__, BUILD_DATE

health_router = APIRouter(tags=["Health"])


@health_router.get("/livez")
async def liveness():
    return {"status": "alive", "version": __version__, "build_date": BUILD_DATE}


@health_router.get("/readyz")
async def readiness():
    report = await HealthCheckExecutor(get_registry(), overall_timeout=10.0).execute_required()
    duration = round(report.total_duration_ms, 2)

    if report.status == HealthStatus.UNHEALTHY:
        failing = {name: result.to_dict() for name, result in report.failing().items()}
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "checks": failing, "total_duration_ms": duration},
        )

    return {"status": "ready", "checks_passed": len(report.checks), "total_duration_ms": duration}


@health_router.get("/health")
async def full_health_check():
    registry = get_registry()
    report = await HealthCheckExecutor(registry).execute_all()

    body = report.to_dict()
    body.update(
        version=__version__,
        build_date=BUILD_DATE,
        summary=report.summary(registry.category_of),
    )
    return JSONResponse(status_code=report.status.http_code, content=body)


@health_router.get("/health/{check_name}")
async def single_health_check(check_name: str):
    result = await HealthCheckExecutor().execute_single(check_name)
    if result is None:
        return JSONResponse(status_code=404, content={"error": f"Health check not found: {check_name}"})
    return JSONResponse(status_code=result.status.http_code, content=result.to_dict())


__all__ = [
    "health_router",
]
