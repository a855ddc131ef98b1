"""Time-conflict validation for shift assignments."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional

from shiftgen.domain.types import ExistingAssignment, Severity, TimeWindow
from shiftgen.services.intervals import gap_hours, overlaps

logger = logging.getLogger(__name__)

MAX_SHIFTS = "max_shifts"
OVERLAP = "overlap"
REST_TIME = "rest_time"


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[str] = None
    severity: Optional[Severity] = None


@dataclass(frozen=True)
class Conflict:
    kind: str
    employee_id: str
    date: date
    message: str
    severity: Severity
    shift_ids: tuple = ()


class ConflictValidator:
    """
    Per-date index of employee shifts with overlap, rest and count checks.

    The index is keyed date -> employee -> shifts, so validating one
    assignment only touches that employee's shifts on that date.
    """

    def __init__(
        self,
        existing: Iterable[ExistingAssignment] = (),
        max_shifts_per_day: int = 2,
        min_rest_hours: float = 8.0,
    ):
        self.max_shifts_per_day = max_shifts_per_day
        self.min_rest_hours = min_rest_hours
        self._index: Dict[date, Dict[str, List[ExistingAssignment]]] = {}
        for shift in existing:
            self.register(shift)

    def register(self, shift: ExistingAssignment) -> None:
        by_employee = self._index.setdefault(shift.date, {})
        by_employee.setdefault(shift.employee_id, []).append(shift)

    def shifts_for(self, employee_id: str, day: date) -> List[ExistingAssignment]:
        return list(self._index.get(day, {}).get(employee_id, ()))

    def validate_assignment(
        self,
        employee_id: str,
        day: date,
        window: TimeWindow,
        exclude_shift_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Check whether ``employee_id`` can take ``window`` on ``day``.

        Args:
            employee_id: Employee to check
            day: Calendar date of the new shift
            window: Start/end of the new shift (end <= start crosses midnight)
            exclude_shift_id: Shift being edited, ignored in all checks

        Returns:
            ValidationResult; severity ERROR blocks, WARNING is advisory
        """
        same_day = [
            s for s in self._index.get(day, {}).get(employee_id, ())
            if exclude_shift_id is None or s.shift_id != exclude_shift_id
        ]

        # 1. Shift count
        if len(same_day) >= self.max_shifts_per_day:
            return ValidationResult(
                False,
                f"Employee already has {len(same_day)} shifts on {day} (max {self.max_shifts_per_day})",
                Severity.ERROR,
            )

        # 2. Overlap
        for other in same_day:
            if window.overlaps(other.window):
                return ValidationResult(
                    False,
                    f"Overlaps shift {other.window} on {day}",
                    Severity.ERROR,
                )

        # 3. Rest gap to the neighbouring shifts
        for other in same_day:
            gap = gap_hours(window.start, window.end, other.window.start, other.window.end)
            if gap < self.min_rest_hours:
                return ValidationResult(
                    False,
                    f"Only {gap:.1f}h rest next to shift {other.window} (min {self.min_rest_hours:g}h)",
                    Severity.WARNING,
                )

        return ValidationResult(True)

    def get_conflicts_for_date(self, day: date) -> List[Conflict]:
        """Every count, overlap and rest violation on ``day``, per employee."""
        conflicts: List[Conflict] = []
        for employee_id in sorted(self._index.get(day, {})):
            shifts = sorted(
                self._index[day][employee_id],
                key=lambda s: (s.window.start, s.window.end, s.shift_id),
            )
            if len(shifts) > self.max_shifts_per_day:
                conflicts.append(Conflict(
                    MAX_SHIFTS,
                    employee_id,
                    day,
                    f"{len(shifts)} shifts on {day} (max {self.max_shifts_per_day})",
                    Severity.ERROR,
                    tuple(s.shift_id for s in shifts),
                ))
            for i, a in enumerate(shifts):
                for b in shifts[i + 1:]:
                    ids = (a.shift_id, b.shift_id)
                    if overlaps(a.window.start, a.window.end, b.window.start, b.window.end):
                        conflicts.append(Conflict(
                            OVERLAP,
                            employee_id,
                            day,
                            f"{a.window} overlaps {b.window}",
                            Severity.ERROR,
                            ids,
                        ))
                        continue
                    gap = gap_hours(a.window.start, a.window.end, b.window.start, b.window.end)
                    if gap < self.min_rest_hours:
                        conflicts.append(Conflict(
                            REST_TIME,
                            employee_id,
                            day,
                            f"Only {gap:.1f}h between {a.window} and {b.window}",
                            Severity.WARNING,
                            ids,
                        ))
        if conflicts:
            logger.debug("%d conflicts on %s", len(conflicts), day)
        return conflicts
