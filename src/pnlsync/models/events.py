"""Sync event, per-period outcome and batch result models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field

SYNC_SUMMARY = "sync_summary"
SYNC_CLIENTS_STATS = "sync_clients_stats"
NEW_CLIENT = "new_client"
UPDATE_CLIENT = "update_client"
SYNC_CLIENTS_FULL = "sync_clients_full"


class PeriodState(StrEnum):
    PENDING = "pending"
    FETCHING = "fetching"
    RECONCILING = "reconciling"
    DONE = "done"
    FAILED = "failed"


class SyncOutcome(BaseModel):
    """Result of syncing one month. Never mutated after creation."""

    month: str  # API period
    success: bool
    total_payments: Optional[float] = None
    error: Optional[str] = None

    model_config = {"frozen": True}

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class BatchResult(BaseModel):
    """Aggregated result of one year-to-date run."""

    success: bool = True
    year: int
    results: list[SyncOutcome] = Field(default_factory=list)

    @property
    def total_months(self) -> int:
        return len(self.results)

    @property
    def months_synced(self) -> int:
        return sum(1 for r in self.results if r.success)

    def to_response(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "year": self.year,
            "months_synced": self.months_synced,
            "total_months": self.total_months,
            "results": [r.to_response() for r in self.results],
        }


class ForwardResult(BaseModel):
    """Successful delivery of an event to the downstream consumer."""

    success: bool = True
    data: Any = None
