"""Health check endpoints router for monitoring service availability."""

import asyncio
from typing import Any

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from src.app.api.http.app_data import ApplicationDependencies
from src.app.api.http.deps import get_app_dependencies

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health() -> dict[str, str]:
    """Liveness probe: 200 as long as the process is running."""
    return {"status": "healthy", "service": "auth-gateway"}


@router.get("/ready", response_model=None)
async def readiness(
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> dict[str, Any] | JSONResponse:
    """Readiness check.

    Sign-in only needs the local session store, so an unreachable database
    degrades remember-me without failing readiness. Returns 503 only when the
    session store is unavailable.
    """
    config = app_deps.config
    database_service = app_deps.database_service

    db_healthy = await asyncio.to_thread(database_service.health_check)
    checks: dict[str, Any] = {
        "database": {
            "status": "healthy" if db_healthy else "unhealthy",
            "type": database_service.backend,
            "pool": database_service.get_pool_status(),
        },
        "remember_me": {
            "status": "enabled"
            if config.remember.enabled and app_deps.token_ledger.ready
            else "disabled",
            "configured": config.remember.enabled,
        },
    }

    storage = app_deps.session_storage
    storage_available = storage.is_available()
    checks["session_storage"] = {
        "status": "healthy" if storage_available else "unhealthy",
        "type": storage.kind,
    }

    response = {
        "status": "ready" if storage_available else "not_ready",
        "environment": config.app.environment,
        "checks": checks,
    }

    if not storage_available:
        return JSONResponse(status_code=503, content=response)

    return response
