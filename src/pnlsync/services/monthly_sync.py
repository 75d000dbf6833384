"""Monthly sync driver: year-to-date pull from the payments source.

For each month of the year up to the current one, in order: fetch the month's
payments total, resolve the owning user, and forward a ``sync_summary`` event
whose consumer reconciles the month's KPI row. A failing month is recorded in
its outcome and the run moves on; only a bad month range aborts the batch.
Months run one at a time. Re-running is safe because the KPI reconcile is
idempotent.
"""

from __future__ import annotations

from datetime import date
from typing import Callable

import structlog

from pnlsync.core.exceptions import PnlSyncError
from pnlsync.core.protocols import ISourceClient
from pnlsync.models.events import SYNC_SUMMARY, BatchResult, PeriodState, SyncOutcome
from pnlsync.models.period import Period
from pnlsync.services.event_forwarder import EventForwarder
from pnlsync.services.owner_resolver import OwnerResolver

logger = structlog.get_logger(__name__)


class MonthlySyncDriver:
    def __init__(
        self,
        *,
        source: ISourceClient,
        forwarder: EventForwarder,
        owners: OwnerResolver,
        company: str,
        api_key: str | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._source = source
        self._forwarder = forwarder
        self._owners = owners
        self._company = company
        self._api_key = api_key
        self._today = today

    def months_for(self, year: int) -> list[Period]:
        """Months 1..current month for this year, 1..12 for past years.

        Raises:
            ValueError: for a year after the current one.
        """
        today = self._today()
        if year > today.year:
            raise ValueError(f"Year {year} is in the future")
        last = today.month if year == today.year else 12
        return [Period.from_year_month(year, m) for m in range(1, last + 1)]

    def run_year_to_date(self, year: int | None = None) -> BatchResult:
        if year is None:
            year = self._today().year
        periods = self.months_for(year)

        log = logger.bind(year=year)
        log.info("ytd_sync_started", months=len(periods))
        result = BatchResult(year=year)
        for period in periods:
            result.results.append(self.sync_month(period))
        log.info("ytd_sync_finished", total_months=result.total_months, months_synced=result.months_synced)
        return result

    def sync_month(self, period: Period) -> SyncOutcome:
        """Run one month: pending -> fetching -> reconciling -> done, or failed."""
        log = logger.bind(period=period.api_period, company=self._company)
        state = PeriodState.PENDING
        try:
            state = PeriodState.FETCHING
            summary = self._source.fetch(period.api_period, self._api_key)
            owner = self._owners.resolve()

            state = PeriodState.RECONCILING
            self._forwarder.forward({
                "event_type": SYNC_SUMMARY,
                "total_payments": summary.total_amount,
                "company": self._company,
                "user_id": owner,
                "month": period.storage_period,
            })
        except PnlSyncError as exc:
            log.error("month_sync_failed", state=str(PeriodState.FAILED), failed_in=str(state), error=str(exc))
            return SyncOutcome(month=period.api_period, success=False, error=str(exc))
        except Exception as exc:
            log.exception("month_sync_crashed", state=str(PeriodState.FAILED), failed_in=str(state))
            return SyncOutcome(month=period.api_period, success=False, error=f"Unexpected error: {exc}")

        state = PeriodState.DONE
        log.info("month_synced", state=str(state), total_payments=summary.total_amount)
        return SyncOutcome(month=period.api_period, success=True, total_payments=summary.total_amount)
