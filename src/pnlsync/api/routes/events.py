"""Event endpoints: the forwarder and the downstream summary webhook."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from pnlsync.api.services import ServiceFactory, get_services
from pnlsync.core.exceptions import (
    ClientNotFound,
    ForwardFailure,
    NormalizationError,
    PnlSyncError,
    RecordNotResolvable,
    UnsupportedEventError,
)

router = APIRouter(tags=["events"])
logger = structlog.get_logger(__name__)


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@router.api_route("/events/forward", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def forward_event(request: Request, services: ServiceFactory = Depends(get_services)) -> JSONResponse:
    if request.method != "POST":
        return JSONResponse({"success": False, "error": "Method not allowed"}, status_code=405)

    body = await _json_body(request)
    logger.info("forward_received", event_type=body.get("event_type"))
    try:
        forwarder = services.forwarder()
        result = await run_in_threadpool(forwarder.forward, body)
    except NormalizationError as exc:
        return JSONResponse({"success": False, "error": str(exc)}, status_code=400)
    except ForwardFailure as exc:
        return JSONResponse({"success": False, "error": str(exc)}, status_code=500)
    except Exception as exc:
        logger.exception("forward_crashed", event_type=body.get("event_type"))
        return JSONResponse({"success": False, "error": str(exc) or "Unknown error"}, status_code=500)
    return JSONResponse(jsonable_encoder({"success": True, "data": result.data}))


@router.post("/webhooks/summary")
async def summary_webhook(request: Request, services: ServiceFactory = Depends(get_services)) -> JSONResponse:
    """Downstream consumer: applies a sync event to the KPI and client tables."""
    body = await _json_body(request)
    try:
        webhook = services.webhook()
        data = await run_in_threadpool(webhook.handle, body)
    except ClientNotFound as exc:
        return JSONResponse({"success": False, "error": str(exc)}, status_code=404)
    except (UnsupportedEventError, NormalizationError, RecordNotResolvable) as exc:
        return JSONResponse({"success": False, "error": str(exc)}, status_code=400)
    except PnlSyncError as exc:
        logger.error("webhook_failed", event_type=body.get("event_type"), error=str(exc))
        return JSONResponse({"success": False, "error": str(exc)}, status_code=500)
    return JSONResponse(jsonable_encoder({"success": True, **data}))
