"""Batch sync endpoints: year-to-date pull, salary roll-forward, daily summary, clients."""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from pnlsync.api.services import ServiceFactory, get_services
from pnlsync.core.exceptions import NormalizationError, SourceUnavailable

router = APIRouter(tags=["sync"])
logger = structlog.get_logger(__name__)

ANY_METHOD = ["GET", "POST", "PUT", "PATCH", "DELETE"]


class RolloverRequest(BaseModel):
    source_month: Optional[str] = Field(default=None, alias="sourceMonth")
    target_month: Optional[str] = Field(default=None, alias="targetMonth")


class ClientsSyncRequest(BaseModel):
    month: Optional[str] = None


@router.api_route("/year-to-date", methods=ANY_METHOD)
def year_to_date(year: Optional[int] = None, services: ServiceFactory = Depends(get_services)) -> JSONResponse:
    """Sync every month of ``year`` (default: this year) up to the current one."""
    try:
        result = services.monthly_sync().run_year_to_date(year)
    except Exception as exc:
        logger.exception("ytd_sync_aborted", year=year)
        return JSONResponse({"success": False, "error": str(exc)}, status_code=500)
    return JSONResponse(result.to_response())


@router.post("/salary-rollover")
def salary_rollover(body: Optional[RolloverRequest] = None,
                    services: ServiceFactory = Depends(get_services)) -> JSONResponse:
    if body is None or not body.source_month or not body.target_month:
        return JSONResponse({"error": "sourceMonth and targetMonth are required"}, status_code=400)
    try:
        result = services.salary_rollover().roll_forward(body.source_month, body.target_month)
    except NormalizationError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except Exception as exc:
        logger.exception("salary_rollover_aborted")
        return JSONResponse({"error": str(exc)}, status_code=500)
    return JSONResponse({
        "message": "Sync completed",
        "updated": result.updated,
        "inserted": result.inserted,
        "failed": result.failed,
        "source_month": result.source_month,
        "target_month": result.target_month,
    })


@router.api_route("/daily-summary", methods=ANY_METHOD)
def daily_summary(services: ServiceFactory = Depends(get_services)) -> JSONResponse:
    try:
        payload = services.daily_summary().run()
    except Exception as exc:
        logger.exception("daily_summary_aborted")
        return JSONResponse({"success": False, "error": str(exc)}, status_code=500)
    return JSONResponse(jsonable_encoder(payload))


@router.post("/clients")
def clients(body: Optional[ClientsSyncRequest] = None,
            services: ServiceFactory = Depends(get_services)) -> JSONResponse:
    """Pull one month's client roster (default: this month) into bankrot_clients."""
    month = body.month if body is not None else None
    try:
        result = services.clients_sync().run(month)
    except NormalizationError as exc:
        return JSONResponse({"success": False, "error": str(exc)}, status_code=400)
    except SourceUnavailable as exc:
        return JSONResponse({"success": False, "error": str(exc)}, status_code=502)
    except Exception as exc:
        logger.exception("clients_sync_aborted", month=month)
        return JSONResponse({"success": False, "error": str(exc)}, status_code=500)
    return JSONResponse({
        "success": True,
        "month": result.month,
        "synced": result.synced,
        "updated": result.updated,
        "failed": result.failed,
        "total": result.total,
    })
