"""Summary webhook: the downstream consumer that applies sync events.

``sync_summary`` sets the monthly receivables plan (KPI ``debitorka_plan``)
to the reported payments total. ``sync_clients_stats`` sets the monthly new
client and completed case counts. Every KPI row is keyed by
(company, kpi_name, month) with month as the last day of the month.

Client events go to ``bankrot_clients``: ``new_client`` upserts one client,
``update_client`` overwrites the balances of a known client and
``sync_clients_full`` reconciles a whole month's roster.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

import structlog
from pydantic import ValidationError

from pnlsync.core.exceptions import UnsupportedEventError
from pnlsync.core.protocols import IRecordStore
from pnlsync.models.events import (
    NEW_CLIENT,
    SYNC_CLIENTS_FULL,
    SYNC_CLIENTS_STATS,
    SYNC_SUMMARY,
    UPDATE_CLIENT,
)
from pnlsync.models.records import KPI_TARGETS, BankrotClient, ClientsSyncResult, KpiTarget, ReconcileOutcome
from pnlsync.services.clients_sync import ClientBook, contract_date
from pnlsync.services.owner_resolver import OwnerResolver
from pnlsync.services.period_normalizer import normalize_period, storage_period
from pnlsync.services.reconciler import RecordReconciler

logger = structlog.get_logger(__name__)

DEBITORKA_PLAN = "debitorka_plan"
NEW_CLIENTS_COUNT = "new_clients_count"
COMPLETED_CASES_COUNT = "completed_cases_count"

_CENT = Decimal("0.01")
_BALANCE_FIELDS = (
    "total_paid", "remaining_amount", "deposit_paid", "deposit_target", "contract_amount", "monthly_payment",
)


def _amount(event: dict[str, Any], field: str) -> Decimal:
    value = event.get(field)
    if isinstance(value, bool) or value is None:
        raise UnsupportedEventError(f"{event.get('event_type')}: {field} is required")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise UnsupportedEventError(f"{event.get('event_type')}: {field}={value!r} is not a number") from None
    if not amount.is_finite():
        raise UnsupportedEventError(f"{event.get('event_type')}: {field}={value!r} is not a number")
    return amount


def _optional_amount(event: dict[str, Any], field: str) -> Decimal | None:
    if event.get(field) is None:
        return None
    return _amount(event, field)


class SummaryWebhook:
    def __init__(
        self,
        store: IRecordStore,
        owners: OwnerResolver,
        *,
        company: str,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._kpis = RecordReconciler(store, KPI_TARGETS)
        self._clients = ClientBook(store, owners, now=now)
        self._owners = owners
        self._company = company
        self._now = now

    def handle(self, event: dict[str, Any]) -> dict[str, Any]:
        event_type = event.get("event_type")
        handlers = {
            SYNC_SUMMARY: self._sync_summary,
            SYNC_CLIENTS_STATS: self._sync_clients_stats,
            NEW_CLIENT: self._new_client,
            UPDATE_CLIENT: self._update_client,
            SYNC_CLIENTS_FULL: self._sync_clients_full,
        }
        handler = handlers.get(event_type)
        if handler is None:
            raise UnsupportedEventError(f"Unsupported event_type {event_type!r}")
        return handler(event)

    def _upsert_kpi(self, company: str, kpi_name: str, month: str, value: Decimal,
                    user_id: str | None) -> ReconcileOutcome:
        row = KpiTarget(
            company=company,
            kpi_name=kpi_name,
            month=month,
            target_value=value,
            updated_at=self._now().isoformat(),
        )
        return self._kpis.reconcile(
            row.model_dump(include={"company", "kpi_name", "month"}),
            row.model_dump(include={"target_value", "updated_at"}),
            defaults=lambda: {"user_id": self._owners.resolve(user_id)},
        )

    def _sync_summary(self, event: dict[str, Any]) -> dict[str, Any]:
        month = storage_period(event.get("month"), event.get("date"), now=self._now)
        company = event.get("company") or self._company
        total = _amount(event, "total_payments")

        logger.info("debitorka_plan_sync", company=company, month=month, value=str(total))
        outcome = self._upsert_kpi(company, DEBITORKA_PLAN, month, total, event.get("user_id"))
        return {
            "message": "Receivables plan updated",
            "company": company,
            "month": month,
            "value": float(total),
            "outcome": str(outcome),
        }

    def _sync_clients_stats(self, event: dict[str, Any]) -> dict[str, Any]:
        month = storage_period(event.get("month"), event.get("date"), now=self._now)
        company = event.get("company") or self._company
        new_clients = _amount(event, "new_clients_count")
        completed = _amount(event, "completed_cases_count")

        logger.info(
            "clients_stats_sync", company=company, month=month,
            new_clients=str(new_clients), completed_cases=str(completed),
        )
        outcomes = {
            NEW_CLIENTS_COUNT: self._upsert_kpi(company, NEW_CLIENTS_COUNT, month, new_clients, event.get("user_id")),
            COMPLETED_CASES_COUNT: self._upsert_kpi(company, COMPLETED_CASES_COUNT, month, completed, event.get("user_id")),
        }
        return {
            "message": "Client stats updated",
            "company": company,
            "month": month,
            "new_clients": int(new_clients),
            "completed_cases": int(completed),
            "outcomes": {k: str(v) for k, v in outcomes.items()},
        }

    def _new_client(self, event: dict[str, Any]) -> dict[str, Any]:
        name = str(event.get("client_name") or "").strip()
        if not name:
            raise UnsupportedEventError(f"{NEW_CLIENT}: client_name is required")
        signed = contract_date(event.get("contract_date") or event.get("date"))
        contract = _amount(event, "contract_amount")
        first = _amount(event, "first_payment")
        try:
            installments = int(event.get("installment_period") or 0)
        except (TypeError, ValueError):
            raise UnsupportedEventError(f"{NEW_CLIENT}: installment_period must be a whole number") from None
        paid = _optional_amount(event, "total_paid") or first

        monthly = _optional_amount(event, "monthly_payment")
        if not monthly:
            monthly = ((contract - first) / installments).quantize(_CENT) if installments else Decimal("0")

        try:
            client = BankrotClient(
                full_name=name,
                contract_date=signed,
                contract_amount=contract,
                first_payment=first,
                installment_period=installments,
                monthly_payment=monthly,
                payment_day=event.get("payment_day") or 1,
                total_paid=paid,
                remaining_amount=contract - paid,
                source=event.get("source") or None,
                city=event.get("city") or None,
                manager=event.get("manager") or None,
                employee_id=event.get("user_id") or None,
            )
        except ValidationError as exc:
            raise UnsupportedEventError(f"{NEW_CLIENT}: invalid client {name!r}: {exc}") from None

        logger.info("new_client_sync", full_name=name, contract_date=signed)
        outcome = self._clients.upsert(client, event.get("user_id"))
        return {
            "message": "Client saved",
            "client_name": name,
            "contract_date": signed,
            "outcome": str(outcome),
        }

    def _update_client(self, event: dict[str, Any]) -> dict[str, Any]:
        name = str(event.get("client_name") or "").strip()
        if not name:
            raise UnsupportedEventError(f"{UPDATE_CLIENT}: client_name is required")
        fields: dict[str, Decimal] = {}
        for field in _BALANCE_FIELDS:
            value = _optional_amount(event, field)
            if value is not None:
                fields[field] = value
        if not fields:
            raise UnsupportedEventError(f"{UPDATE_CLIENT}: no balance fields given for {name!r}")

        key = self._clients.update_balances(name, fields)
        logger.info("client_balances_updated", full_name=name, fields=sorted(fields))
        return {
            "message": "Client updated",
            "client_name": name,
            "contract_date": key["contract_date"],
            "updated_fields": sorted(fields) + ["updated_at"],
        }

    def _sync_clients_full(self, event: dict[str, Any]) -> dict[str, Any]:
        clients = event.get("clients")
        if not isinstance(clients, list) or not all(isinstance(c, dict) for c in clients):
            raise UnsupportedEventError(f"{SYNC_CLIENTS_FULL}: clients must be a list of objects")
        period = normalize_period(event.get("month"), now=self._now)

        result = ClientsSyncResult(month=period.api_period, total=len(clients))
        self._clients.sync_roster(
            result, clients, fallback_date=period.first_day.isoformat(), user_id=event.get("user_id"),
        )
        logger.info("clients_full_sync", month=result.month, synced=result.synced,
                    updated=result.updated, failed=result.failed)
        return {
            "message": "Clients synced",
            "month": result.month,
            "synced": result.synced,
            "updated": result.updated,
            "failed": result.failed,
            "total": result.total,
        }
