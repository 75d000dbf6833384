"""Financial record models and the table layouts the reconciler writes to."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class TableSpec:
    """Composite key and sync-owned fields of one store table."""

    name: str
    key_fields: tuple[str, ...]
    owned_fields: tuple[str, ...] = ()

    def key_of(self, row: dict[str, Any]) -> dict[str, Any]:
        """Extract the composite key from a row; every component must be present."""
        missing = [f for f in self.key_fields if row.get(f) in (None, "")]
        if missing:
            raise KeyError(f"{self.name}: missing key fields {missing}")
        return {f: row[f] for f in self.key_fields}

    def owned(self, fields: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in fields.items() if k in self.owned_fields}


KPI_TARGETS = TableSpec(
    name="kpi_targets",
    key_fields=("company", "kpi_name", "month"),
    owned_fields=("target_value", "updated_at"),
)

DEPARTMENT_EMPLOYEES = TableSpec(
    name="department_employees",
    key_fields=("department_id", "employee_id", "month"),
    owned_fields=("white_salary", "gray_salary", "ndfl", "contributions"),
)

# Read-only lookup tables
PROFILES = TableSpec(name="profiles", key_fields=("id",))
DEPARTMENTS = TableSpec(name="departments", key_fields=("id",))
USER_ROLES = TableSpec(name="user_roles", key_fields=("user_id", "role"))
CLIENTS = TableSpec(name="clients", key_fields=("id",))

BANKROT_CLIENTS = TableSpec(
    name="bankrot_clients",
    key_fields=("full_name", "contract_date"),
    owned_fields=(
        "contract_amount", "first_payment", "installment_period", "monthly_payment",
        "total_paid", "deposit_paid", "deposit_target", "remaining_amount", "payment_day",
        "source", "city", "manager", "employee_id", "updated_at",
    ),
)

ALL_TABLES = (
    KPI_TARGETS, DEPARTMENT_EMPLOYEES, BANKROT_CLIENTS, PROFILES, DEPARTMENTS, USER_ROLES, CLIENTS,
)


class ReconcileOutcome(StrEnum):
    INSERTED = "inserted"
    UPDATED = "updated"


class SourceSummary(BaseModel):
    """Decoded monthly summary from the external payments source."""

    total_amount: float = 0.0


class KpiTarget(BaseModel):
    """Monthly KPI snapshot row, e.g. the receivables plan."""

    company: str
    kpi_name: str
    month: str  # storage period
    target_value: Decimal = Decimal("0")
    user_id: str = ""
    updated_at: Optional[str] = None


class EmployeeMonth(BaseModel):
    """Employee-month compensation row in ``department_employees``."""

    # --- Identity Fields ---
    department_id: str
    employee_id: str
    month: str  # storage period

    # --- Sync-owned Fields ---
    white_salary: Decimal = Decimal("0")
    gray_salary: Decimal = Decimal("0")
    ndfl: Decimal = Decimal("0")  # income tax withheld
    contributions: Decimal = Decimal("0")  # employer contributions

    # --- Carry-over Fields (entered by hand) ---
    advance: Decimal = Decimal("0")
    bonus: Decimal = Decimal("0")
    next_month_bonus: Decimal = Decimal("0")

    # --- Context Fields ---
    company: str = ""
    cost: Decimal = Decimal("0")
    net_salary: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    user_id: str = ""

    @property
    def fresh_net_salary(self) -> Decimal:
        """Net pay recomputed from the owned fields: white - ndfl + gray."""
        return self.white_salary - self.ndfl + self.gray_salary


class RolloverResult(BaseModel):
    """Counts from one salary roll-forward run."""

    source_month: str
    target_month: str
    updated: int = 0
    inserted: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)


class BankrotClient(BaseModel):
    """Bankruptcy-case client row in ``bankrot_clients``."""

    # --- Identity Fields ---
    full_name: str
    contract_date: str  # YYYY-MM-DD

    # --- Contract Fields ---
    contract_amount: Decimal = Decimal("0")
    first_payment: Decimal = Decimal("0")
    installment_period: int = 0  # months
    monthly_payment: Decimal = Decimal("0")
    payment_day: int = 1

    # --- Balance Fields ---
    total_paid: Decimal = Decimal("0")
    deposit_paid: Decimal = Decimal("0")
    deposit_target: Decimal = Decimal("70000")
    remaining_amount: Decimal = Decimal("0")

    # --- Context Fields ---
    source: Optional[str] = None  # lead source
    city: Optional[str] = None
    manager: Optional[str] = None
    employee_id: Optional[str] = None
    updated_at: Optional[str] = None


class ClientsSyncResult(BaseModel):
    """Counts from one client roster sync."""

    month: str  # API period
    synced: int = 0  # inserted
    updated: int = 0
    failed: int = 0
    total: int = 0
    errors: list[str] = Field(default_factory=list)


_TABLES_BY_NAME = {spec.name: spec for spec in ALL_TABLES}


def table_spec(name: str) -> TableSpec:
    """Look up a registered table layout by name."""
    try:
        return _TABLES_BY_NAME[name]
    except KeyError:
        raise KeyError(f"Unknown table {name!r}") from None
