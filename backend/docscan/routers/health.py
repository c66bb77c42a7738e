"""Health and readiness endpoints."""
from __future__ import annotations

from datetime import datetime, timezone
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..config import get_settings

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict:
    """Liveness probe endpoint."""
    return {
        "status": "ok",
        "time": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/readyz")
async def readyz() -> JSONResponse:
    """Readiness: the analysis service endpoint and key must be configured."""
    settings = get_settings()
    configured = bool(settings.AZURE_ENDPOINT and settings.AZURE_API_KEY)
    return JSONResponse(
        status_code=200 if configured else 503,
        content={
            "status": "ok" if configured else "unconfigured",
            "analysisConfigured": configured,
            "persistEnabled": settings.PERSIST_ENABLED,
        },
    )
