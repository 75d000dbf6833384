"""Client roster sync: bankruptcy-case clients keyed by name and contract date.

``ClientBook`` reconciles ``bankrot_clients`` rows for both the monthly pull
from the source (``ClientsSync``) and the client events the summary webhook
receives. Rows are never deleted; a client missing from a later roster keeps
its row.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Iterable

import structlog
from pydantic import ValidationError

from pnlsync.core.exceptions import ClientNotFound, NormalizationError, ReconcileWriteFailure
from pnlsync.core.protocols import IClientsSource, IRecordStore
from pnlsync.models.records import (
    BANKROT_CLIENTS,
    PROFILES,
    BankrotClient,
    ClientsSyncResult,
    ReconcileOutcome,
)
from pnlsync.services.owner_resolver import OwnerResolver
from pnlsync.services.period_normalizer import normalize_period
from pnlsync.services.reconciler import RecordReconciler

logger = structlog.get_logger(__name__)

UNNAMED_CLIENT = "Без имени"


def contract_date(value: Any, fallback: str | None = None) -> str:
    """ISO ``YYYY-MM-DD`` contract date; blank input takes ``fallback``.

    Raises:
        NormalizationError: if the value is not a date, or is blank with no fallback.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if fallback is None:
            raise NormalizationError(value, "contract date is required")
        return fallback
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value).strip()[:10]).isoformat()
    except ValueError:
        raise NormalizationError(value, "not a YYYY-MM-DD date") from None


class ClientBook:
    """Reconciles ``bankrot_clients`` rows by (full_name, contract_date)."""

    def __init__(
        self,
        store: IRecordStore,
        owners: OwnerResolver,
        *,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._rows = RecordReconciler(store, BANKROT_CLIENTS)
        self._owners = owners
        self._now = now
        self._roster_owner: str | None = None

    def _owner(self, preferred: str | None) -> str:
        """Explicit id, then whoever owns the existing roster, then the resolver."""
        if preferred:
            return preferred
        if self._roster_owner is None:
            owners = sorted(r["user_id"] for r in self._store.scan(BANKROT_CLIENTS.name) if r.get("user_id"))
            self._roster_owner = owners[0] if owners else ""
        return self._owners.resolve(self._roster_owner or None)

    def upsert(self, client: BankrotClient, user_id: str | None = None) -> ReconcileOutcome:
        row = client.model_copy(update={"updated_at": self._now().isoformat()})
        return self._rows.reconcile(
            row.model_dump(include=set(BANKROT_CLIENTS.key_fields)),
            row.model_dump(include=set(BANKROT_CLIENTS.owned_fields)),
            defaults=lambda: {"user_id": self._owner(user_id)},
        )

    def find_by_name(self, full_name: str) -> dict[str, Any] | None:
        """Latest-contract row for a client name, or None."""
        rows = self._store.scan(BANKROT_CLIENTS.name, {"full_name": full_name.strip()})
        if not rows:
            return None
        return max(rows, key=lambda r: str(r.get("contract_date")))

    def update_balances(self, full_name: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Overwrite balance fields on an existing client.

        Raises:
            ClientNotFound: no row carries ``full_name``.
        """
        existing = self.find_by_name(full_name)
        if existing is None:
            logger.warning("client_not_found", full_name=full_name)
            raise ClientNotFound(f"Client not found: {full_name!r}")
        key = BANKROT_CLIENTS.key_of(existing)
        self._rows.reconcile(key, {**fields, "updated_at": self._now().isoformat()})
        return key

    def employee_for(self, created_by: str | None) -> str | None:
        """Profile id for "First Last" or "Last First"; None when not found."""
        parts = (created_by or "").split()
        if len(parts) < 2:
            return None
        for first, last in ((parts[0], parts[1]), (parts[1], parts[0])):
            found = self._store.scan(PROFILES.name, {"first_name": first, "last_name": last})
            if found:
                return sorted(p["id"] for p in found)[0]
        logger.info("client_employee_unknown", created_by=created_by)
        return None

    def sync_roster(
        self,
        result: ClientsSyncResult,
        clients: Iterable[dict[str, Any]],
        *,
        fallback_date: str,
        user_id: str | None = None,
    ) -> ClientsSyncResult:
        """Reconcile each roster entry; bad entries and write failures are counted."""
        for raw in clients:
            name = str(raw.get("full_name") or "").strip() or UNNAMED_CLIENT
            try:
                client = BankrotClient(
                    full_name=name,
                    contract_date=contract_date(raw.get("contract_date"), fallback_date),
                    contract_amount=raw.get("contract_amount") or 0,
                    first_payment=raw.get("first_payment") or 0,
                    installment_period=raw.get("installment_period") or 0,
                    monthly_payment=raw.get("monthly_payment") or 0,
                    payment_day=raw.get("payment_day") or 1,
                    total_paid=raw.get("total_paid") or 0,
                    deposit_paid=raw.get("deposit_paid") or 0,
                    deposit_target=raw.get("deposit_target") or 70000,
                    remaining_amount=raw.get("remaining_amount") or 0,
                    source=raw.get("source") or None,
                    city=raw.get("city") or None,
                    manager=raw.get("manager") or None,
                    employee_id=self.employee_for(raw.get("created_by")),
                )
            except (ValidationError, NormalizationError) as exc:
                logger.error("client_row_invalid", full_name=name, error=str(exc))
                result.failed += 1
                result.errors.append(f"Invalid client row for {name}")
                continue

            try:
                outcome = self.upsert(client, user_id)
            except ReconcileWriteFailure as exc:
                result.failed += 1
                result.errors.append(str(exc))
                continue
            if outcome is ReconcileOutcome.UPDATED:
                result.updated += 1
            else:
                result.synced += 1
        return result


class ClientsSync:
    """Pulls one month's client roster from the source into ``bankrot_clients``."""

    def __init__(
        self,
        source: IClientsSource,
        book: ClientBook,
        *,
        api_key: str | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._source = source
        self._book = book
        self._api_key = api_key
        self._now = now

    def run(self, month: Any = None) -> ClientsSyncResult:
        """Sync ``month`` (default: the current month).

        Clients without a contract date are filed under the first day of the
        month.

        Raises:
            NormalizationError: malformed month.
            SourceUnavailable: the roster could not be fetched.
        """
        period = normalize_period(month, now=self._now)
        log = logger.bind(period=period.api_period)
        clients = self._source.fetch_clients(period.api_period, self._api_key)

        result = ClientsSyncResult(month=period.api_period, total=len(clients))
        self._book.sync_roster(result, clients, fallback_date=period.first_day.isoformat())
        log.info("clients_sync_finished", synced=result.synced, updated=result.updated, failed=result.failed)
        return result
