"""Event forwarder: canonicalizes the period of summary events and relays them.

For ``sync_summary`` events the ``month`` field is always overwritten with the
last day of the month resolved from ``month``, then ``date``, then now. Any
caller-supplied ``month`` is discarded. Other event types pass through as-is.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

import structlog

from pnlsync.core.exceptions import ForwardFailure, NormalizationError
from pnlsync.core.protocols import IDownstream
from pnlsync.models.events import SYNC_SUMMARY, ForwardResult
from pnlsync.services.period_normalizer import storage_period

logger = structlog.get_logger(__name__)


class EventForwarder:
    def __init__(self, downstream: IDownstream, *, now: Callable[[], datetime] = datetime.now) -> None:
        self._downstream = downstream
        self._now = now

    def normalize(self, event: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of ``event`` with its period canonicalized.

        Raises:
            NormalizationError: if ``month``/``date`` is malformed.
        """
        body = dict(event)
        if body.get("event_type") != SYNC_SUMMARY:
            return body
        try:
            body["month"] = storage_period(body.get("month"), body.get("date"), now=self._now)
        except NormalizationError as exc:
            logger.error("forward_normalization_failed", month=body.get("month"), date=body.get("date"), error=str(exc))
            raise
        logger.info("forward_month_normalized", month=body["month"])
        return body

    def forward(self, event: dict[str, Any]) -> ForwardResult:
        """Normalize and deliver one event downstream. No retry.

        Raises:
            NormalizationError: malformed period input.
            ForwardFailure: the downstream consumer rejected the event.
        """
        body = self.normalize(event)
        event_type = body.get("event_type")
        logger.info("forward_event", event_type=event_type, month=body.get("month"))
        try:
            return self._downstream.send(body)
        except ForwardFailure as exc:
            logger.error("forward_failed", event_type=event_type, month=body.get("month"), error=str(exc))
            raise
