"""Unit tests for DynamoDBRecordStore using moto."""

from __future__ import annotations

from decimal import Decimal

import boto3
import pytest
from moto import mock_aws

from pnlsync.core.exceptions import StoreError
from pnlsync.models.records import ALL_TABLES, BANKROT_CLIENTS, KPI_TARGETS, PROFILES
from pnlsync.persistence.dynamodb_backend import DynamoDBRecordStore, item_key

TABLE_SUFFIX = "-test"
REGION = "us-east-1"

KEY = {"company": "Спасение", "kpi_name": "debitorka_plan", "month": "2024-02-29"}

# ---------- helpers ----------

def _create_table(client, name: str, pk: str = "PK", sk: str = "SK"):
    """Create a DynamoDB table with PK/SK key schema."""
    client.create_table(
        TableName=name,
        KeySchema=[
            {"AttributeName": pk, "KeyType": "HASH"},
            {"AttributeName": sk, "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": pk, "AttributeType": "S"},
            {"AttributeName": sk, "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )


# ---------- fixtures ----------

@pytest.fixture
def aws():
    with mock_aws():
        ddb = boto3.resource("dynamodb", region_name=REGION)
        client = boto3.client("dynamodb", region_name=REGION)
        for spec in ALL_TABLES:
            _create_table(client, DynamoDBRecordStore.physical_name(spec.name, TABLE_SUFFIX))
        yield ddb


@pytest.fixture
def store(aws):
    return DynamoDBRecordStore(table_suffix=TABLE_SUFFIX, region=REGION)


# ---------- item_key ----------

class TestItemKey:
    def test_last_key_field_is_sort_key(self):
        assert item_key(KPI_TARGETS, KEY) == {
            "PK": "COMPANY#Спасение#KPI_NAME#debitorka_plan",
            "SK": "MONTH#2024-02-29",
        }

    def test_single_field_tables_use_row_sort_key(self):
        assert item_key(PROFILES, {"id": "p1"}) == {"PK": "ID#p1", "SK": "ROW"}

    def test_client_contract_date_is_sort_key(self):
        assert item_key(BANKROT_CLIENTS, {"full_name": "Client One", "contract_date": "2024-01-15"}) == {
            "PK": "FULL_NAME#Client One",
            "SK": "CONTRACT_DATE#2024-01-15",
        }

    def test_missing_component_raises(self):
        with pytest.raises(KeyError):
            item_key(KPI_TARGETS, {"company": "X", "kpi_name": "k"})


# ---------- get / insert ----------

class TestInsertAndGet:
    def test_round_trip_decodes_decimals(self, store):
        store.insert("kpi_targets", {**KEY, "target_value": 1500.5, "user_id": "u1"})

        row = store.get("kpi_targets", KEY)
        assert row == {**KEY, "target_value": 1500.5, "user_id": "u1"}

    def test_stored_item_carries_pk_sk(self, store, aws):
        store.insert("kpi_targets", {**KEY, "target_value": Decimal("10")})
        tbl = aws.Table(f"pnlsync-kpi-targets{TABLE_SUFFIX}")
        item = tbl.get_item(Key=item_key(KPI_TARGETS, KEY))["Item"]
        assert item["target_value"] == Decimal("10")

    def test_get_returns_none_when_absent(self, store):
        assert store.get("kpi_targets", KEY) is None

    def test_other_month_is_not_a_match(self, store):
        store.insert("kpi_targets", {**KEY, "target_value": 1})
        assert store.get("kpi_targets", {**KEY, "month": "2024-03-31"}) is None

    def test_insert_never_overwrites(self, store):
        store.insert("kpi_targets", {**KEY, "target_value": 1})
        with pytest.raises(StoreError):
            store.insert("kpi_targets", {**KEY, "target_value": 2})
        assert store.get("kpi_targets", KEY)["target_value"] == 1

    def test_unknown_table_raises(self, store):
        with pytest.raises(StoreError):
            store.get("payments", {"id": "x"})


# ---------- update ----------

class TestUpdate:
    def test_sets_only_given_fields(self, store):
        store.insert("kpi_targets", {**KEY, "target_value": 1, "user_id": "u1"})
        store.update("kpi_targets", KEY, {"target_value": 2.25})

        row = store.get("kpi_targets", KEY)
        assert row["target_value"] == 2.25
        assert row["user_id"] == "u1"

    def test_update_never_creates(self, store):
        with pytest.raises(StoreError):
            store.update("kpi_targets", KEY, {"target_value": 5})
        assert store.get("kpi_targets", KEY) is None

    def test_empty_update_is_rejected(self, store):
        store.insert("kpi_targets", {**KEY, "target_value": 1})
        with pytest.raises(StoreError):
            store.update("kpi_targets", KEY, {})


# ---------- scan ----------

class TestScan:
    def test_filters_on_attributes(self, store):
        store.insert("kpi_targets", {**KEY, "target_value": 1})
        store.insert("kpi_targets", {**KEY, "month": "2024-03-31", "target_value": 2})
        store.insert("kpi_targets", {**KEY, "kpi_name": "new_clients_count", "target_value": 3})

        rows = store.scan("kpi_targets", {"kpi_name": "debitorka_plan"})
        assert sorted(r["month"] for r in rows) == ["2024-02-29", "2024-03-31"]
        assert all("PK" not in r for r in rows)

    def test_boolean_filter(self, store):
        store.insert("profiles", {"id": "p1", "is_active": True})
        store.insert("profiles", {"id": "p2", "is_active": False})
        assert [r["id"] for r in store.scan("profiles", {"is_active": True})] == ["p1"]

    def test_unfiltered_scan_returns_all(self, store):
        store.insert("profiles", {"id": "p1"})
        store.insert("profiles", {"id": "p2"})
        assert len(store.scan("profiles")) == 2
