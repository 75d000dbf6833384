"""Protocol interfaces for pnlsync abstractions.

Services depend on these Protocols only, so production backends (DynamoDB,
HTTP) and the in-memory fakes used in tests are interchangeable.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pnlsync.models.events import ForwardResult
from pnlsync.models.records import SourceSummary


# ---------------------------------------------------------------------------
# Persistence: Record Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IRecordStore(Protocol):
    """Request/response access to keyed financial records."""

    def get(self, table: str, key: dict[str, Any]) -> dict[str, Any] | None: ...

    def insert(self, table: str, row: dict[str, Any]) -> None: ...

    def update(self, table: str, key: dict[str, Any], fields: dict[str, Any]) -> None: ...

    def scan(self, table: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]: ...


# ---------------------------------------------------------------------------
# External Source
# ---------------------------------------------------------------------------

@runtime_checkable
class ISourceClient(Protocol):
    """Per-period financial summary provider."""

    def fetch(self, api_period: str, api_key: str | None = None) -> SourceSummary: ...


# ---------------------------------------------------------------------------
# Downstream Consumer
# ---------------------------------------------------------------------------

@runtime_checkable
class IDownstream(Protocol):
    """Receiver of forwarded sync events."""

    def send(self, event: dict[str, Any]) -> ForwardResult: ...


@runtime_checkable
class IClientsSource(Protocol):
    """Per-period client roster provider."""

    def fetch_clients(self, api_period: str, api_key: str | None = None) -> list[dict[str, Any]]: ...
