"""Integration tests for DynamoDBRecordStore against LocalStack."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pnlsync.models.records import BANKROT_CLIENTS, KPI_TARGETS, BankrotClient
from pnlsync.services.clients_sync import ClientBook
from pnlsync.services.owner_resolver import OwnerResolver
from pnlsync.services.salary_rollover import SalaryRollover
from pnlsync.services.summary_webhook import SummaryWebhook
from tests.integration.conftest import skip_no_localstack


@skip_no_localstack
class TestDynamoDBIntegration:
    def test_admin_from_seed(self, store):
        assert OwnerResolver(store).resolve() == "00000000-0000-0000-0000-00000000a001"

    def test_kpi_upsert_converges(self, store):
        webhook = SummaryWebhook(store, OwnerResolver(store), company="Integration Co",
                                 now=lambda: datetime(2024, 5, 1))
        event = {"event_type": "sync_summary", "total_payments": 321.5, "month": "2024-05-31"}
        webhook.handle(event)
        webhook.handle(event)

        rows = store.scan(KPI_TARGETS.name, {"company": "Integration Co", "month": "2024-05-31"})
        assert len(rows) == 1
        assert rows[0]["target_value"] == 321.5

    def test_salary_rollover_from_seed(self, store):
        result = SalaryRollover(store, default_company="Спасение").roll_forward("2024-01", "2024-02")
        assert result.failed == 0
        row = store.get("department_employees",
                        {"department_id": "dept-sales", "employee_id": "emp-001", "month": "2024-02-29"})
        assert row["white_salary"] == 60000

    def test_client_balances_update_seeded_client(self, store):
        book = ClientBook(store, OwnerResolver(store), now=lambda: datetime(2024, 5, 2))

        key = book.update_balances("Client One", {"total_paid": Decimal("45000")})

        assert key == {"full_name": "Client One", "contract_date": "2024-01-15"}
        row = store.get(BANKROT_CLIENTS.name, key)
        assert row["total_paid"] == 45000
        assert row["payment_day"] == 15

    def test_client_upsert_keeps_one_row(self, store):
        book = ClientBook(store, OwnerResolver(store), now=lambda: datetime(2024, 5, 2))
        client = BankrotClient(full_name="Integration Client", contract_date="2024-05-02",
                               contract_amount=Decimal("1000"))
        book.upsert(client)
        book.upsert(client.model_copy(update={"total_paid": Decimal("100")}))

        rows = store.scan(BANKROT_CLIENTS.name, {"full_name": "Integration Client"})
        assert len(rows) == 1
        assert rows[0]["total_paid"] == 100
