"""Shared test doubles: memory store plus scripted source and downstream."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pnlsync.core.exceptions import ForwardFailure, SourceUnavailable
from pnlsync.models.events import ForwardResult
from pnlsync.models.records import SourceSummary
from pnlsync.persistence.memory_backend import MemoryRecordStore

__all__ = ["FakeSourceClient", "FixedClock", "MemoryRecordStore", "RecordingDownstream"]


class FakeSourceClient:
    """ISourceClient and IClientsSource with canned totals and rosters; periods in ``failures`` raise."""

    def __init__(self, totals: dict[str, float] | None = None, failures: set[str] | None = None,
                 rosters: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.totals = totals or {}
        self.rosters = rosters or {}
        self.failures = failures or set()
        self.calls: list[tuple[str, str | None]] = []

    def fetch(self, api_period: str, api_key: str | None = None) -> SourceSummary:
        self.calls.append((api_period, api_key))
        if api_period in self.failures:
            raise SourceUnavailable(api_period, "HTTP 503: maintenance", status_code=503)
        return SourceSummary(total_amount=self.totals.get(api_period, 0.0))

    def fetch_clients(self, api_period: str, api_key: str | None = None) -> list[dict[str, Any]]:
        self.calls.append((api_period, api_key))
        if api_period in self.failures:
            raise SourceUnavailable(api_period, "HTTP 503: maintenance", status_code=503)
        return [dict(c) for c in self.rosters.get(api_period, [])]


class RecordingDownstream:
    """IDownstream that records events and optionally rejects them."""

    def __init__(self, reject: bool = False) -> None:
        self.reject = reject
        self.events: list[dict[str, Any]] = []

    def send(self, event: dict[str, Any]) -> ForwardResult:
        self.events.append(event)
        if self.reject:
            raise ForwardFailure(event.get("event_type"), "HTTP 502: bad gateway", status_code=502)
        return ForwardResult(success=True, data={"received": event.get("event_type")})


class FixedClock:
    """Injectable ``now``/``today`` pair frozen at one instant."""

    def __init__(self, instant: datetime) -> None:
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def today(self) -> date:
        return self.instant.date()
