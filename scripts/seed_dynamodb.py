"""Create the pnlsync DynamoDB tables and load sample lookup data.

Usage:
    python scripts/seed_dynamodb.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
from decimal import Decimal
from typing import Any

import boto3

from pnlsync.models.records import (
    ALL_TABLES,
    BANKROT_CLIENTS,
    CLIENTS,
    DEPARTMENT_EMPLOYEES,
    DEPARTMENTS,
    PROFILES,
    USER_ROLES,
)
from pnlsync.persistence.dynamodb_backend import DynamoDBRecordStore, item_key

ADMIN_USER_ID = "00000000-0000-0000-0000-00000000a001"

SAMPLE_DATA: dict[str, list[dict[str, Any]]] = {
    USER_ROLES.name: [
        {"user_id": ADMIN_USER_ID, "role": "admin"},
    ],
    PROFILES.name: [
        {"id": "emp-001", "user_id": "emp-001", "first_name": "Anna", "last_name": "Petrova",
         "department": "Sales", "is_active": True},
        {"id": "emp-002", "user_id": "emp-002", "first_name": "Ivan", "last_name": "Sidorov",
         "department": "Legal", "is_active": True},
    ],
    DEPARTMENTS.name: [
        {"id": "dept-sales", "name": "Sales", "project_name": "Спасение", "user_id": ADMIN_USER_ID},
        {"id": "dept-legal", "name": "Legal", "project_name": "Спасение", "user_id": ADMIN_USER_ID},
    ],
    DEPARTMENT_EMPLOYEES.name: [
        {"department_id": "dept-sales", "employee_id": "emp-001", "month": "2024-01-31",
         "company": "Спасение", "white_salary": Decimal("60000"), "gray_salary": Decimal("20000"),
         "ndfl": Decimal("7800"), "contributions": Decimal("18000"), "advance": Decimal("0"),
         "bonus": Decimal("5000"), "next_month_bonus": Decimal("0"), "cost": Decimal("98000"),
         "net_salary": Decimal("72200"), "total_amount": Decimal("103000"), "user_id": ADMIN_USER_ID},
    ],
    BANKROT_CLIENTS.name: [
        {"full_name": "Client One", "contract_date": "2024-01-15", "contract_amount": Decimal("180000"),
         "first_payment": Decimal("30000"), "installment_period": 10, "monthly_payment": Decimal("15000"),
         "total_paid": Decimal("45000"), "deposit_paid": Decimal("0"), "deposit_target": Decimal("70000"),
         "remaining_amount": Decimal("135000"), "payment_day": 15, "manager": "Anna Petrova",
         "employee_id": "emp-001", "user_id": ADMIN_USER_ID},
    ],
    CLIENTS.name: [
        {"id": "client-001", "full_name": "Client One", "monthly_payment": Decimal("15000"),
         "user_id": ADMIN_USER_ID},
        {"id": "client-002", "full_name": "Client Two", "monthly_payment": Decimal("12500"),
         "user_id": ADMIN_USER_ID},
    ],
}


def create_tables(ddb: Any, suffix: str = "") -> None:
    """Create one table per record table. Skips tables that already exist."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    for spec in ALL_TABLES:
        table_name = DynamoDBRecordStore.physical_name(spec.name, suffix)
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
        client.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        print(f"  Created table {table_name}")


def seed_sample_data(ddb: Any, suffix: str = "") -> None:
    """Load SAMPLE_DATA, keyed the same way DynamoDBRecordStore keys rows."""
    specs = {spec.name: spec for spec in ALL_TABLES}
    for name, rows in SAMPLE_DATA.items():
        tbl = ddb.Table(DynamoDBRecordStore.physical_name(name, suffix))
        with tbl.batch_writer() as batch:
            for row in rows:
                batch.put_item(Item={**item_key(specs[name], row), **row})
        print(f"  Seeded {len(rows)} rows into {name}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed DynamoDB tables for pnlsync")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument("--no-sample-data", action="store_true", help="Create tables only")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)

    if not args.no_sample_data:
        print("Seeding data...")
        seed_sample_data(ddb, suffix=args.table_suffix)

    print("Done!")


if __name__ == "__main__":
    main()
