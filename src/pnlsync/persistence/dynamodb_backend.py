"""DynamoDB backend implementing IRecordStore."""

from __future__ import annotations

from decimal import Decimal
from functools import reduce
from typing import Any, Iterable

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError

from pnlsync.core.exceptions import StoreError
from pnlsync.models.records import ALL_TABLES, TableSpec

_ITEM_KEYS = ("PK", "SK")


def _decode_decimals(item: dict[str, Any]) -> dict[str, Any]:
    """Convert Decimal values in a DynamoDB item to int/float."""
    out: dict[str, Any] = {}
    for k, v in item.items():
        if isinstance(v, Decimal):
            out[k] = int(v) if v == int(v) else float(v)
        elif isinstance(v, dict):
            out[k] = _decode_decimals(v)
        elif isinstance(v, list):
            out[k] = [
                _decode_decimals(i) if isinstance(i, dict)
                else (int(i) if isinstance(i, Decimal) and i == int(i) else float(i) if isinstance(i, Decimal) else i)
                for i in v
            ]
        else:
            out[k] = v
    return out


def _to_dynamodb(obj: Any) -> Any:
    """Convert floats to Decimal; DynamoDB rejects binary floats."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _to_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_to_dynamodb(i) for i in obj]
    return obj


def item_key(spec: TableSpec, key: dict[str, Any]) -> dict[str, str]:
    """Build the PK/SK pair for a composite key.

    The last key field becomes the sort key (the month, for monthly tables);
    single-field tables use a constant ``ROW`` sort key.
    """
    values = spec.key_of(key)
    fields = spec.key_fields
    if len(fields) == 1:
        return {"PK": f"{fields[0].upper()}#{values[fields[0]]}", "SK": "ROW"}
    pk = "#".join(f"{f.upper()}#{values[f]}" for f in fields[:-1])
    return {"PK": pk, "SK": f"{fields[-1].upper()}#{values[fields[-1]]}"}


class DynamoDBRecordStore:
    """Production IRecordStore backed by one DynamoDB table per record table."""

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None,
                 tables: Iterable[TableSpec] = ALL_TABLES) -> None:
        self._table_suffix = table_suffix
        self._region = region
        self._endpoint_url = endpoint_url
        self._specs = {spec.name: spec for spec in tables}
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)

    @staticmethod
    def physical_name(table: str, suffix: str = "") -> str:
        return f"pnlsync-{table.replace('_', '-')}{suffix}"

    def _spec(self, table: str) -> TableSpec:
        try:
            return self._specs[table]
        except KeyError:
            raise StoreError(f"Unknown table {table!r}") from None

    def _table(self, table: str):
        return self._ddb.Table(self.physical_name(table, self._table_suffix))

    def _key(self, table: str, key: dict[str, Any]) -> dict[str, str]:
        try:
            return item_key(self._spec(table), key)
        except KeyError as exc:
            raise StoreError(str(exc)) from exc

    # ---- IRecordStore methods ----

    def get(self, table: str, key: dict[str, Any]) -> dict[str, Any] | None:
        spec = self._spec(table)
        try:
            resp = self._table(table).get_item(Key=self._key(table, key))
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"DynamoDB get on {table} failed for {key}: {exc}") from exc
        item = resp.get("Item")
        if item is None:
            return None
        row = _decode_decimals({k: v for k, v in item.items() if k not in _ITEM_KEYS})
        # PK/SK are derived strings; confirm the stored attributes match exactly
        if any(str(row.get(f)) != str(key[f]) for f in spec.key_fields):
            return None
        return row

    def insert(self, table: str, row: dict[str, Any]) -> None:
        item = {**self._key(table, row), **_to_dynamodb(row)}
        try:
            self._table(table).put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(PK)",
            )
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"DynamoDB insert into {table} failed: {exc}") from exc

    def update(self, table: str, key: dict[str, Any], fields: dict[str, Any]) -> None:
        if not fields:
            raise StoreError(f"DynamoDB update on {table} has no fields to set")
        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        assignments: list[str] = []
        for i, (name, value) in enumerate(fields.items()):
            names[f"#f{i}"] = name
            values[f":v{i}"] = _to_dynamodb(value)
            assignments.append(f"#f{i} = :v{i}")
        try:
            self._table(table).update_item(
                Key=self._key(table, key),
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="attribute_exists(PK)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"DynamoDB update on {table} failed for {key}: {exc}") from exc

    def scan(self, table: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {}
        if filters:
            conditions = [Attr(name).eq(_to_dynamodb(value)) for name, value in filters.items()]
            kwargs["FilterExpression"] = reduce(lambda a, b: a & b, conditions)
        rows: list[dict[str, Any]] = []
        tbl = self._table(table)
        try:
            while True:
                resp = tbl.scan(**kwargs)
                for item in resp.get("Items", []):
                    rows.append(_decode_decimals({k: v for k, v in item.items() if k not in _ITEM_KEYS}))
                last_key = resp.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as exc:
            raise StoreError(f"DynamoDB scan on {table} failed: {exc}") from exc
        return rows
