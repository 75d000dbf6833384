"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from pnlsync.core.config import require_downstream, require_source, require_store
from pnlsync.core.exceptions import ConfigurationError

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def ready(request: Request):
    settings = request.app.state.settings
    try:
        require_source(settings)
        require_store(settings)
        require_downstream(settings)
    except ConfigurationError as exc:
        return JSONResponse({"status": "not_ready", "error": str(exc)}, status_code=503)
    return {"status": "ready"}
