"""Tests for ClientsSync and ClientBook."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from pnlsync.core.exceptions import ClientNotFound, NormalizationError, SourceUnavailable
from pnlsync.services.clients_sync import ClientBook, ClientsSync, contract_date
from pnlsync.services.owner_resolver import OwnerResolver
from tests.fakes import FakeSourceClient, FixedClock, MemoryRecordStore

CLOCK = FixedClock(datetime(2024, 3, 20, 10, 0))

_ROSTER = [
    {"full_name": "Ivanov Ivan ", "contract_date": "2024-03-04", "contract_amount": 120000,
     "first_payment": 20000, "installment_period": 10, "monthly_payment": 10000, "city": "Kazan",
     "created_by": "Anna Petrova"},
    {"full_name": "Sidorova Olga", "contract_amount": "90000", "first_payment": 0},
]


def _roster() -> list[dict]:
    return [dict(c) for c in _ROSTER]


@pytest.fixture
def store():
    s = MemoryRecordStore()
    s.seed("profiles", {"id": "emp-001", "first_name": "Anna", "last_name": "Petrova"})
    return s


def _book(store, owner: str | None = "owner-1") -> ClientBook:
    return ClientBook(store, OwnerResolver(store, owner), now=CLOCK.now)


def _sync(store, source, owner: str | None = "owner-1") -> ClientsSync:
    return ClientsSync(source, _book(store, owner), api_key="k", now=CLOCK.now)


def _row(store, name):
    return next(r for r in store.rows("bankrot_clients") if r["full_name"] == name)


class TestContractDate:
    @pytest.mark.parametrize("value,expected", [
        ("2024-03-04", "2024-03-04"),
        ("2024-03-04T12:00:00Z", "2024-03-04"),
        (datetime(2024, 3, 4, 23, 0), "2024-03-04"),
        ("", "2024-03-01"),
        (None, "2024-03-01"),
    ])
    def test_normalizes(self, value, expected):
        assert contract_date(value, "2024-03-01") == expected

    def test_garbage_is_rejected(self):
        with pytest.raises(NormalizationError):
            contract_date("next week", "2024-03-01")

    def test_blank_without_fallback_is_rejected(self):
        with pytest.raises(NormalizationError):
            contract_date(" ")


class TestClientsSync:
    def test_inserts_roster_for_month(self, store):
        source = FakeSourceClient(rosters={"2024-03": _roster()})

        result = _sync(store, source).run("2024-03")

        assert (result.month, result.synced, result.updated, result.failed, result.total) == ("2024-03", 2, 0, 0, 2)
        assert source.calls == [("2024-03", "k")]
        ivanov = _row(store, "Ivanov Ivan")
        assert ivanov["contract_date"] == "2024-03-04"
        assert ivanov["monthly_payment"] == Decimal("10000")
        assert ivanov["employee_id"] == "emp-001"
        assert ivanov["user_id"] == "owner-1"
        assert ivanov["deposit_target"] == Decimal("70000")
        assert ivanov["payment_day"] == 1

    def test_missing_contract_date_files_under_first_of_month(self, store):
        _sync(store, FakeSourceClient(rosters={"2024-03": _roster()})).run("2024-03-15")
        assert _row(store, "Sidorova Olga")["contract_date"] == "2024-03-01"

    def test_defaults_to_current_month(self, store):
        source = FakeSourceClient(rosters={"2024-03": _roster()[:1]})
        assert _sync(store, source).run().synced == 1
        assert source.calls[0][0] == "2024-03"

    def test_rerun_updates_and_keeps_owner(self, store):
        source = FakeSourceClient(rosters={"2024-03": _roster()})
        _sync(store, source).run("2024-03")
        source.rosters["2024-03"][0]["contract_amount"] = 130000

        result = _sync(store, source, owner="someone-else").run("2024-03")

        assert (result.synced, result.updated) == (0, 2)
        assert len(store.rows("bankrot_clients")) == 2
        row = _row(store, "Ivanov Ivan")
        assert row["contract_amount"] == Decimal("130000")
        assert row["user_id"] == "owner-1"

    def test_new_client_inherits_roster_owner(self, store):
        store.seed("bankrot_clients", {"full_name": "Old Client", "contract_date": "2023-12-01", "user_id": "roster-owner"})
        _sync(store, FakeSourceClient(rosters={"2024-03": _roster()[:1]}), owner=None).run("2024-03")
        assert _row(store, "Ivanov Ivan")["user_id"] == "roster-owner"

    def test_clients_missing_from_roster_are_kept(self, store):
        store.seed("bankrot_clients", {"full_name": "Old Client", "contract_date": "2024-03-02", "user_id": "u"})
        _sync(store, FakeSourceClient(rosters={"2024-03": _roster()})).run("2024-03")
        assert len(store.rows("bankrot_clients")) == 3

    def test_bad_rows_are_counted_not_fatal(self, store):
        roster = [{"full_name": "Broken", "contract_amount": "NaN"},
                  {"full_name": "Late", "contract_date": "soon"}] + _roster()
        result = _sync(store, FakeSourceClient(rosters={"2024-03": roster})).run("2024-03")
        assert (result.synced, result.failed) == (2, 2)
        assert len(result.errors) == 2

    def test_write_failures_are_counted(self, store):
        store.reject_writes("bankrot_clients")
        result = _sync(store, FakeSourceClient(rosters={"2024-03": _roster()})).run("2024-03")
        assert (result.synced, result.failed) == (0, 2)

    def test_empty_roster(self, store):
        result = _sync(store, FakeSourceClient()).run("2024-03")
        assert (result.total, result.synced) == (0, 0)
        assert store.count("insert") == 0

    def test_source_failure_propagates(self, store):
        with pytest.raises(SourceUnavailable):
            _sync(store, FakeSourceClient(failures={"2024-03"})).run("2024-03")

    def test_malformed_month(self, store):
        with pytest.raises(NormalizationError):
            _sync(store, FakeSourceClient()).run("March")


class TestClientBook:
    def test_update_balances_targets_latest_contract(self, store):
        store.seed("bankrot_clients",
                   {"full_name": "Ivanov", "contract_date": "2023-01-10", "total_paid": Decimal("1")},
                   {"full_name": "Ivanov", "contract_date": "2024-02-10", "total_paid": Decimal("1")})

        key = _book(store).update_balances("Ivanov ", {"total_paid": Decimal("500")})

        assert key == {"full_name": "Ivanov", "contract_date": "2024-02-10"}
        rows = sorted(store.rows("bankrot_clients"), key=lambda r: r["contract_date"])
        assert rows[0]["total_paid"] == Decimal("1")
        assert rows[1]["total_paid"] == Decimal("500")
        assert rows[1]["updated_at"] == "2024-03-20T10:00:00"

    def test_update_unknown_client(self, store):
        with pytest.raises(ClientNotFound):
            _book(store).update_balances("Nobody", {"total_paid": Decimal("1")})

    @pytest.mark.parametrize("created_by", ["Anna Petrova", "Petrova Anna"])
    def test_employee_lookup_in_either_name_order(self, store, created_by):
        assert _book(store).employee_for(created_by) == "emp-001"

    @pytest.mark.parametrize("created_by", [None, "Anna", "Boris Borisov"])
    def test_employee_lookup_misses(self, store, created_by):
        assert _book(store).employee_for(created_by) is None
