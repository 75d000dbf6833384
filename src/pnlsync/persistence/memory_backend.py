"""In-memory record store for unit tests: dict-backed fake."""

from __future__ import annotations

import copy
from typing import Any

from pnlsync.core.exceptions import StoreError
from pnlsync.models.records import table_spec


class MemoryRecordStore:
    """Dict-backed IRecordStore for unit tests.

    Keeps a log of writes in ``writes`` as ``(op, table, key)`` tuples and can
    be told to reject writes for a table with ``reject_writes``.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[tuple, dict[str, Any]]] = {}
        self._rejected: set[str] = set()
        self.writes: list[tuple[str, str, dict[str, Any]]] = []

    def _key(self, table: str, key: dict[str, Any]) -> tuple:
        spec = table_spec(table)
        try:
            return tuple(key[f] for f in spec.key_fields)
        except KeyError as exc:
            raise StoreError(f"{table}: incomplete key {key}") from exc

    def seed(self, table: str, *rows: dict[str, Any]) -> None:
        """Load rows directly, bypassing the write log."""
        rows_by_key = self._tables.setdefault(table, {})
        for row in rows:
            rows_by_key[self._key(table, row)] = dict(row)

    def reject_writes(self, table: str) -> None:
        self._rejected.add(table)

    def count(self, op: str, table: str | None = None) -> int:
        return sum(1 for w_op, w_table, _ in self.writes if w_op == op and table in (None, w_table))

    def rows(self, table: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(r) for r in self._tables.get(table, {}).values()]

    # ---- IRecordStore methods ----

    def get(self, table: str, key: dict[str, Any]) -> dict[str, Any] | None:
        row = self._tables.get(table, {}).get(self._key(table, key))
        return copy.deepcopy(row) if row is not None else None

    def insert(self, table: str, row: dict[str, Any]) -> None:
        k = self._key(table, row)
        if table in self._rejected:
            raise StoreError(f"{table}: insert rejected")
        rows_by_key = self._tables.setdefault(table, {})
        if k in rows_by_key:
            raise StoreError(f"{table}: duplicate key {k}")
        rows_by_key[k] = dict(row)
        self.writes.append(("insert", table, dict(zip(table_spec(table).key_fields, k))))

    def update(self, table: str, key: dict[str, Any], fields: dict[str, Any]) -> None:
        k = self._key(table, key)
        if table in self._rejected:
            raise StoreError(f"{table}: update rejected")
        row = self._tables.get(table, {}).get(k)
        if row is None:
            raise StoreError(f"{table}: no row for key {k}")
        row.update(fields)
        self.writes.append(("update", table, dict(key)))

    def scan(self, table: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        filters = filters or {}
        return [
            copy.deepcopy(row)
            for row in self._tables.get(table, {}).values()
            if all(row.get(f) == v for f, v in filters.items())
        ]
