"""Daily summary: today's receivables plan from the local client book."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

import structlog

from pnlsync.core.exceptions import RecordNotResolvable
from pnlsync.core.protocols import IRecordStore
from pnlsync.models.events import SYNC_SUMMARY
from pnlsync.models.records import CLIENTS
from pnlsync.services.event_forwarder import EventForwarder

logger = structlog.get_logger(__name__)


class DailySummarySync:
    """Sums clients' monthly payments and forwards it as a ``sync_summary``."""

    def __init__(self, store: IRecordStore, forwarder: EventForwarder, *, company: str,
                 now: Callable[[], datetime] = datetime.now) -> None:
        self._store = store
        self._forwarder = forwarder
        self._company = company
        self._now = now

    def run(self) -> dict[str, Any]:
        clients = self._store.scan(CLIENTS.name)
        total = sum(float(c.get("monthly_payment") or 0) for c in clients)
        user_id = next((c["user_id"] for c in clients if c.get("user_id")), None)
        if user_id is None:
            logger.error("daily_summary_no_owner", clients_count=len(clients))
            raise RecordNotResolvable("No user_id found in clients")

        logger.info("daily_summary_computed", total_payments=total, user_id=user_id)
        forwarded = self._forwarder.forward({
            "event_type": SYNC_SUMMARY,
            "total_payments": total,
            "company": self._company,
            "user_id": user_id,
            "date": self._now().isoformat(),
        })
        return {
            "success": True,
            "total_payments": total,
            "clients_count": len(clients),
            "updated_kpi": True,
            "data": forwarded.data,
        }
