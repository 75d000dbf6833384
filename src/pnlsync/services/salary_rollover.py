"""Salary roll-forward: carries employee-month pay rows into a new month."""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError

from pnlsync.core.exceptions import ReconcileWriteFailure
from pnlsync.core.protocols import IRecordStore
from pnlsync.models.period import Period
from pnlsync.models.records import (
    DEPARTMENT_EMPLOYEES,
    DEPARTMENTS,
    PROFILES,
    EmployeeMonth,
    ReconcileOutcome,
    RolloverResult,
)
from pnlsync.services.period_normalizer import parse_period
from pnlsync.services.reconciler import RecordReconciler

logger = structlog.get_logger(__name__)

_CARRY_OVER = ("advance", "bonus", "next_month_bonus")


class SalaryRollover:
    """Copies one month's salary rows into another through the reconciler.

    Existing target rows get the source's salary, tax and contribution
    amounts; their advances and bonuses are left alone. New target rows copy
    the source row's context and recompute net salary. Active profiles that
    have a department but no source row get a zeroed target row.
    """

    def __init__(self, store: IRecordStore, *, default_company: str,
                 carry_over_bonuses: bool = False) -> None:
        self._store = store
        self._rows = RecordReconciler(store, DEPARTMENT_EMPLOYEES)
        self._default_company = default_company
        self._carry_over_bonuses = carry_over_bonuses

    def roll_forward(self, source_month: Any, target_month: Any) -> RolloverResult:
        """Raises NormalizationError if either month is malformed."""
        source: Period = parse_period(source_month)
        target: Period = parse_period(target_month)
        result = RolloverResult(source_month=source.storage_period, target_month=target.storage_period)
        log = logger.bind(source_month=result.source_month, target_month=result.target_month)

        source_rows = self._store.scan(DEPARTMENT_EMPLOYEES.name, {"month": source.storage_period})
        seen: set[str] = set()
        for row in sorted(source_rows, key=lambda r: (str(r.get("department_id")), str(r.get("employee_id")))):
            try:
                emp = EmployeeMonth.model_validate({k: v for k, v in row.items() if v is not None})
            except ValidationError as exc:
                log.error("rollover_bad_source_row", employee_id=row.get("employee_id"), error=str(exc))
                result.failed += 1
                result.errors.append(f"Invalid source row for employee {row.get('employee_id')}")
                continue
            seen.add(emp.employee_id)
            key = {"department_id": emp.department_id, "employee_id": emp.employee_id,
                   "month": target.storage_period}
            self._apply(result, key, emp.model_dump(include=set(DEPARTMENT_EMPLOYEES.owned_fields)),
                        self._carried(emp))

        departments = {d["name"]: d for d in self._store.scan(DEPARTMENTS.name) if d.get("name")}
        for profile in self._store.scan(PROFILES.name, {"is_active": True}):
            if not profile.get("department") or profile.get("id") in seen:
                continue
            dept = departments.get(profile["department"])
            if dept is None:
                continue
            key = {"department_id": dept["id"], "employee_id": profile["id"], "month": target.storage_period}
            if self._rows.find(key) is not None:
                continue
            blank = EmployeeMonth(**key, company=dept.get("project_name") or self._default_company,
                                  user_id=dept.get("user_id") or "")
            self._apply(result, key, blank.model_dump(include=set(DEPARTMENT_EMPLOYEES.owned_fields)),
                        blank.model_dump(exclude=set(key)))
            log.info("rollover_new_employee", employee_id=profile["id"], department=profile["department"])

        log.info("rollover_finished", updated=result.updated, inserted=result.inserted, failed=result.failed)
        return result

    def _carried(self, emp: EmployeeMonth) -> dict[str, Any]:
        """Context for a newly inserted target row."""
        carried = emp.model_dump(include={"company", "cost", "total_amount", "user_id"})
        carried["net_salary"] = emp.fresh_net_salary
        for field in _CARRY_OVER:
            carried[field] = 0
        if self._carry_over_bonuses:
            carried["bonus"] = emp.bonus
            carried["next_month_bonus"] = emp.next_month_bonus
        return carried

    def _apply(self, result: RolloverResult, key: dict[str, Any], incoming: dict[str, Any],
               defaults: dict[str, Any]) -> None:
        try:
            outcome = self._rows.reconcile(key, incoming, defaults=defaults)
        except ReconcileWriteFailure as exc:
            logger.error("rollover_write_failed", employee_id=key["employee_id"],
                         department_id=key["department_id"], error=str(exc))
            result.failed += 1
            result.errors.append(str(exc))
            return
        if outcome is ReconcileOutcome.UPDATED:
            result.updated += 1
        else:
            result.inserted += 1
