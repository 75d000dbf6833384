"""Calendar month period with its API and storage renderings."""

from __future__ import annotations

import calendar
from datetime import date

from pydantic import BaseModel, Field


class Period(BaseModel):
    """A single calendar month.

    ``api_period`` (``YYYY-MM``) is what the external source is queried with;
    ``storage_period`` (last day of the month, ``YYYY-MM-DD``) is the key that
    monthly snapshot rows are stored under. Both come from the same civil
    year/month pair, so they always denote the same month.
    """

    year: int = Field(ge=1, le=9999)
    month: int = Field(ge=1, le=12)

    model_config = {"frozen": True}

    @classmethod
    def from_year_month(cls, year: int, month: int) -> Period:
        return cls(year=year, month=month)

    @classmethod
    def from_date(cls, value: date) -> Period:
        return cls(year=value.year, month=value.month)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    @property
    def api_period(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def storage_period(self) -> str:
        return self.last_day.isoformat()

    def __str__(self) -> str:
        return self.api_period
