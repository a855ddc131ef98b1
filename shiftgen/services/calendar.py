"""Company closed days, public holidays and the post-generation closed-day filter."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Iterable, List, Optional, Tuple

import holidays

from shiftgen.domain.types import (
    GenerationResult,
    Severity,
    Warning,
    WarningCategory,
    WEEKDAY_NAMES,
    week_dates,
)
from shiftgen.services.coverage import confidence_average, coverage_stats, workload_distribution

logger = logging.getLogger(__name__)

# dropped together with the shifts of a closed day
_DAY_WARNINGS = {
    WarningCategory.INSUFFICIENT_COVERAGE,
    WarningCategory.NO_CANDIDATES,
    WarningCategory.SUGGESTED_RELOCATION,
}


class CompanyCalendar:
    """
    Lookup of non-operating days.

    Args:
        closed_weekdays: ISO weekdays (1 = Monday) the company never opens
        public_holidays: Treat national public holidays as closed
        closed_dates: Extra one-off closures
        country: Country code understood by the ``holidays`` package
    """

    def __init__(
        self,
        closed_weekdays: Iterable[int] = (),
        public_holidays: bool = True,
        closed_dates: Iterable[date] = (),
        country: str = "IT",
    ):
        self.closed_weekdays = frozenset(closed_weekdays)
        self.public_holidays = public_holidays
        self.closed_dates = frozenset(closed_dates)
        self.country = country
        self._holidays = holidays.country_holidays(country) if public_holidays else {}

    def holiday_name(self, day: date) -> Optional[str]:
        if not self.public_holidays:
            return None
        return self._holidays.get(day)

    def closed_reason(self, day: date) -> Optional[str]:
        """Why ``day`` is closed, or ``None`` when the company operates."""
        if day in self.closed_dates:
            return "company closure"
        if day.isoweekday() in self.closed_weekdays:
            return f"closed on {WEEKDAY_NAMES[day.isoweekday()]}"
        name = self.holiday_name(day)
        if name:
            return f"public holiday ({name})"
        return None

    def is_closed(self, day: date) -> bool:
        return self.closed_reason(day) is not None

    def closed_days_in_week(self, week_start: date) -> List[Tuple[date, str]]:
        out = []
        for day in week_dates(week_start):
            reason = self.closed_reason(day)
            if reason is not None:
                out.append((day, reason))
        return out


def filter_closed_days(result: GenerationResult, calendar: CompanyCalendar) -> GenerationResult:
    """
    Drop shifts falling on closed days.

    The removed count is reported as one INFO warning. Shortfall and
    relocation warnings of the removed days go with them; averages, coverage
    and workload are recomputed.
    """
    kept = tuple(s for s in result.shifts if not calendar.is_closed(s.date))
    removed = len(result.shifts) - len(kept)
    if removed == 0:
        return result

    closed = {s.date for s in result.shifts if calendar.is_closed(s.date)}
    warnings = [
        w for w in result.warnings
        if not (w.category in _DAY_WARNINGS and w.date in closed)
    ]
    warnings.append(Warning(
        category=WarningCategory.CLOSED_DAY_FILTER,
        message=f"{removed} shifts excluded (company closed days or public holidays)",
        severity=Severity.INFO,
    ))
    logger.info("Closed-day filter removed %d shifts on %d days", removed, len(closed))

    contracted = {w.employee_id: w.contracted_hours for w in result.workload.per_employee}
    names = {w.employee_id: w.name for w in result.workload.per_employee}
    return replace(
        result,
        shifts=kept,
        warnings=tuple(warnings),
        confidence_average=round(confidence_average(kept), 6),
        coverage=coverage_stats(kept),
        workload=workload_distribution(kept, contracted, names),
    )
