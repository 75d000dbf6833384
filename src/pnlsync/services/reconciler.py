"""Record reconciliation: update-if-exists-else-insert on one keyed record.

A row is "found" only when every component of its composite key matches.
Updates touch the sync-owned fields of the table and nothing else, so values
entered by hand (bonuses, advances) survive repeated syncs. Each call issues
exactly one write and never deletes.
"""

from __future__ import annotations

from typing import Any, Callable, Union

import structlog

from pnlsync.core.exceptions import ReconcileWriteFailure, StoreError
from pnlsync.core.protocols import IRecordStore
from pnlsync.models.records import ReconcileOutcome, TableSpec

logger = structlog.get_logger(__name__)

Defaults = Union[dict[str, Any], Callable[[], dict[str, Any]], None]


class RecordReconciler:
    """Idempotent upsert of one table's records through an IRecordStore."""

    def __init__(self, store: IRecordStore, table: TableSpec) -> None:
        self._store = store
        self._table = table

    @property
    def table(self) -> TableSpec:
        return self._table

    def find(self, key: dict[str, Any]) -> dict[str, Any] | None:
        return self._store.get(self._table.name, self._table.key_of(key))

    def reconcile(
        self,
        key: dict[str, Any],
        incoming: dict[str, Any],
        *,
        defaults: Defaults = None,
    ) -> ReconcileOutcome:
        """Write ``incoming`` owned fields to the record at ``key``.

        Args:
            key: Full composite key, including the target period.
            incoming: Field values from the sync; only the table's owned
                fields are written on update.
            defaults: Owner/context fields for a newly inserted row, copied
                from a source-period record or zeroed by the caller. May be a
                callable, evaluated only on insert. Ignored when the row
                already exists.

        Raises:
            KeyError: if a key component is missing.
            ValueError: if ``incoming`` carries none of the owned fields.
            ReconcileWriteFailure: if the store rejects the write.
        """
        target = self._table.key_of(key)
        owned = self._table.owned(incoming)
        if not owned:
            raise ValueError(
                f"{self._table.name}: none of {sorted(incoming)} are sync-owned fields"
            )

        try:
            existing = self._store.get(self._table.name, target)
        except StoreError as exc:
            logger.error("reconcile_lookup_failed", table=self._table.name, key=target, error=str(exc))
            raise ReconcileWriteFailure(self._table.name, target, str(exc)) from exc

        try:
            if existing is not None:
                self._store.update(self._table.name, target, owned)
                outcome = ReconcileOutcome.UPDATED
            else:
                if callable(defaults):
                    defaults = defaults()
                row = {**(defaults or {}), **owned, **target}
                self._store.insert(self._table.name, row)
                outcome = ReconcileOutcome.INSERTED
        except StoreError as exc:
            logger.error(
                "reconcile_write_failed",
                table=self._table.name,
                key=target,
                op="update" if existing is not None else "insert",
                error=str(exc),
            )
            raise ReconcileWriteFailure(self._table.name, target, str(exc)) from exc

        logger.debug("reconciled", table=self._table.name, key=target, outcome=str(outcome))
        return outcome
