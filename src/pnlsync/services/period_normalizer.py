"""Period normalization: heterogeneous month/date inputs to a canonical Period.

Precedence is explicit month, then explicit date, then the current time.
Year and month are always read as civil components of the input; a timestamp
such as ``2024-01-31T23:30:00-05:00`` belongs to January regardless of offset.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Callable, Union

from pnlsync.core.exceptions import NormalizationError
from pnlsync.models.period import Period

PeriodInput = Union[str, date, datetime, None]

_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{2})$")


def _period(year: int, month: int, raw: object) -> Period:
    if not 1 <= month <= 12:
        raise NormalizationError(raw, f"month {month} out of range")
    if not 1 <= year <= 9999:
        raise NormalizationError(raw, f"year {year} out of range")
    return Period.from_year_month(year, month)


def parse_period(value: str | date | datetime) -> Period:
    """Parse a single month or date reference.

    Accepts ``date``/``datetime`` objects and the strings ``YYYY-MM``,
    ``YYYY-MM-DD``, ``YYYY-MM-DDTHH:MM:SS...`` or anything else that
    ``datetime.fromisoformat`` understands.

    Raises:
        NormalizationError: if the value is not a recognizable period.
    """
    if isinstance(value, (date, datetime)):
        return Period.from_year_month(value.year, value.month)
    if not isinstance(value, str):
        raise NormalizationError(value, f"unsupported type {type(value).__name__}")

    text = value.strip()
    match = _DATE_PREFIX.match(text) or _YEAR_MONTH.match(text)
    if match:
        return _period(int(match.group(1)), int(match.group(2)), value)

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise NormalizationError(value) from None
    return _period(parsed.year, parsed.month, value)


def _present(value: PeriodInput) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def normalize_period(
    month: PeriodInput = None,
    date_ref: PeriodInput = None,
    *,
    now: Callable[[], datetime] = datetime.now,
) -> Period:
    """Resolve the canonical period from an optional month and date reference."""
    if _present(month):
        return parse_period(month)  # type: ignore[arg-type]
    if _present(date_ref):
        return parse_period(date_ref)  # type: ignore[arg-type]
    return Period.from_date(now())


def storage_period(
    month: PeriodInput = None,
    date_ref: PeriodInput = None,
    *,
    now: Callable[[], datetime] = datetime.now,
) -> str:
    """Last day of the resolved month as ``YYYY-MM-DD``."""
    return normalize_period(month, date_ref, now=now).storage_period


def api_period(
    month: PeriodInput = None,
    date_ref: PeriodInput = None,
    *,
    now: Callable[[], datetime] = datetime.now,
) -> str:
    """Resolved month as ``YYYY-MM``."""
    return normalize_period(month, date_ref, now=now).api_period
