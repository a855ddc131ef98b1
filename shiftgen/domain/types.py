"""Typed, immutable input and output structures of the engine.

Everything the engine consumes is a frozen snapshot assembled once per call;
everything it returns is a plain value the caller may persist or discard.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time, timedelta
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from shiftgen.services.intervals import (
    TimeLike,
    contains,
    duration_hours,
    duration_minutes,
    format_time,
    overlaps,
    parse_time,
)

WEEKDAY_NAMES = ("", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def iso_weekday(day: date) -> int:
    """1 = Monday ... 7 = Sunday."""
    return day.isoweekday()


def week_dates(week_start: date) -> Tuple[date, ...]:
    return tuple(week_start + timedelta(days=i) for i in range(7))


class HoursModel(str, Enum):
    FIXED_WEEKLY = "fixed_weekly"
    MONTHLY = "monthly"
    FLEXIBLE = "flexible"


class RestType(str, Enum):
    FULL_DAYS = "full_days"
    HALF_DAYS = "half_days"
    HOURS = "hours"


class RestGranularity(str, Enum):
    FULL = "full"
    HALF_MORNING = "half_morning"
    HALF_AFTERNOON = "half_afternoon"


class RestSource(str, Enum):
    MANUAL = "manual"
    ENGINE = "engine"


class PreferencePolarity(str, Enum):
    PREFERRED = "preferred"
    UNAVAILABLE = "unavailable"
    AVAILABLE_ONLY = "available_only"


class LeaveCategory(str, Enum):
    VACATION = "vacation"
    PERMIT = "permit"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class WarningCategory(str, Enum):
    INSUFFICIENT_COVERAGE = "insufficient_coverage"
    HOURS_EXCEEDED = "hours_exceeded"
    SUGGESTED_RELOCATION = "suggested_relocation"
    NO_CANDIDATES = "no_candidates"
    CLOSED_DAY_FILTER = "closed_day_filter"
    REST_QUOTA = "rest_quota"
    REST_SKIPPED = "rest_skipped"


class CoverageStatus(str, Enum):
    OK = "ok"
    PARTIAL = "partial"
    UNCOVERED = "uncovered"


@dataclass(frozen=True)
class TimeWindow:
    start: time
    end: time

    @classmethod
    def parse(cls, start: TimeLike, end: TimeLike) -> "TimeWindow":
        return cls(parse_time(start), parse_time(end))

    @property
    def crosses_midnight(self) -> bool:
        return self.end <= self.start

    @property
    def minutes(self) -> int:
        return duration_minutes(self.start, self.end)

    @property
    def hours(self) -> float:
        return duration_hours(self.start, self.end)

    def overlaps(self, other: "TimeWindow") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def contains(self, other: "TimeWindow") -> bool:
        return contains(self.start, self.end, other.start, other.end)

    def __str__(self) -> str:
        return f"{format_time(self.start)}-{format_time(self.end)}"


@dataclass(frozen=True)
class Membership:
    nucleus_id: str
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    primary: bool = False

    @property
    def is_open(self) -> bool:
        return self.valid_to is None

    def active_on(self, day: date) -> bool:
        if self.valid_from is not None and day < self.valid_from:
            return False
        return self.valid_to is None or day <= self.valid_to


@dataclass(frozen=True)
class Employee:
    """Collaboratore: contract hours, rest configuration and nucleus memberships."""

    id: str
    first_name: str = ""
    last_name: str = ""
    hours_model: HoursModel = HoursModel.FIXED_WEEKLY
    weekly_hours: Optional[float] = None
    monthly_hours: Optional[float] = None
    min_hours: Optional[float] = None
    max_hours: Optional[float] = None
    rest_type: RestType = RestType.FULL_DAYS
    rest_quantity: Optional[float] = None
    memberships: Tuple[Membership, ...] = ()
    active: bool = True
    hours_assigned: Optional[float] = None

    @property
    def full_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.id

    def contracted_hours(self, weeks_per_month: float = 4.33, default: float = 40.0) -> float:
        """Weekly hour cap implied by the contract model."""
        if self.hours_model == HoursModel.MONTHLY and self.monthly_hours is not None:
            return self.monthly_hours / weeks_per_month
        if self.hours_model == HoursModel.FLEXIBLE:
            if self.max_hours is not None:
                return self.max_hours
            if self.min_hours is not None:
                return self.min_hours
            return default
        if self.weekly_hours is not None:
            return self.weekly_hours
        return default

    def is_member_of(self, nucleus_id: str, day: date) -> bool:
        return any(m.nucleus_id == nucleus_id and m.active_on(day) for m in self.memberships)

    def primary_nucleus(self, day: date) -> Optional[str]:
        for m in self.memberships:
            if m.primary and m.active_on(day):
                return m.nucleus_id
        return None


@dataclass(frozen=True)
class Nucleus:
    """Nucleo: a department with its own staffing minimum."""

    id: str
    name: str = ""
    task: str = ""
    min_staff: int = 1
    max_staff: Optional[int] = None
    window: Optional[TimeWindow] = None
    weekday_windows: Tuple[Tuple[int, TimeWindow], ...] = ()

    @property
    def label(self) -> str:
        return self.name or self.id

    def window_for(self, weekday: int) -> Optional[TimeWindow]:
        for day, window in self.weekday_windows:
            if day == weekday:
                return window
        return self.window


@dataclass(frozen=True)
class RecurringCriticality:
    """Criticita continuativa: a weekday-bound demand modifier."""

    id: str
    weekday: int
    staff_extra: int = 0
    multiplier: float = 1.0
    window: Optional[TimeWindow] = None
    category: str = ""
    name: str = ""
    nucleus_id: Optional[str] = None
    active: bool = True

    def applies_to(self, nucleus_id: str) -> bool:
        return self.nucleus_id is None or self.nucleus_id == nucleus_id


@dataclass(frozen=True)
class CriticalPeriod:
    """Periodo critico: a one-off date-ranged demand modifier."""

    id: str
    start_date: date
    end_date: date
    min_staff: Optional[int] = None
    multiplier: float = 1.0
    window: Optional[TimeWindow] = None
    name: str = ""
    blocks_preferences: bool = False
    nucleus_id: Optional[str] = None

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def applies_to(self, nucleus_id: str) -> bool:
        return self.nucleus_id is None or self.nucleus_id == nucleus_id


@dataclass(frozen=True)
class AssignedRest:
    employee_id: str
    week_start: date
    weekday: int
    granularity: RestGranularity = RestGranularity.FULL
    source: RestSource = RestSource.MANUAL


@dataclass(frozen=True)
class Preference:
    employee_id: str
    date: date
    polarity: PreferencePolarity
    window: Optional[TimeWindow] = None


@dataclass(frozen=True)
class ApprovedLeave:
    employee_id: str
    start_date: date
    end_date: date
    category: LeaveCategory = LeaveCategory.VACATION

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class HistoricalPattern:
    nucleus_id: str
    weekday: int
    mean_staff: float
    typical_window: Optional[TimeWindow] = None


@dataclass(frozen=True)
class ExistingAssignment:
    shift_id: str
    employee_id: str
    date: date
    window: TimeWindow
    nucleus_id: Optional[str] = None


@dataclass(frozen=True)
class GenerationContext:
    """Everything the assignment engine needs for one week, fetched once."""

    week_start: date
    employees: Tuple[Employee, ...]
    nuclei: Tuple[Nucleus, ...]
    week_end: Optional[date] = None
    criticalities: Tuple[RecurringCriticality, ...] = ()
    critical_periods: Tuple[CriticalPeriod, ...] = ()
    rests: Tuple[AssignedRest, ...] = ()
    preferences: Tuple[Preference, ...] = ()
    leaves: Tuple[ApprovedLeave, ...] = ()
    patterns: Tuple[HistoricalPattern, ...] = ()
    existing_assignments: Tuple[ExistingAssignment, ...] = ()
    worked_before: FrozenSet[Tuple[str, str, int]] = frozenset()

    @property
    def dates(self) -> Tuple[date, ...]:
        return week_dates(self.week_start)


@dataclass(frozen=True)
class DemandSlot:
    nucleus_id: str
    date: date
    window: TimeWindow
    required: int
    soft_target: Optional[float] = None
    blocks_preferences: bool = False
    reasons: Tuple[str, ...] = ()

    @property
    def weekday(self) -> int:
        return iso_weekday(self.date)


@dataclass(frozen=True)
class SuggestedEmployee:
    employee_id: str
    name: str
    score: float
    normalized_score: float
    preference: Optional[PreferencePolarity] = None
    relocated_from: Optional[str] = None


@dataclass(frozen=True)
class Shift:
    """Turno: a generated shift proposal, not authoritative until persisted."""

    nucleus_id: str
    nucleus_name: str
    date: date
    window: TimeWindow
    required: int
    suggested: Tuple[SuggestedEmployee, ...]
    confidence: float
    coverage: CoverageStatus
    note: str = ""

    @property
    def employee_ids(self) -> Tuple[str, ...]:
        return tuple(s.employee_id for s in self.suggested)


@dataclass(frozen=True)
class Warning:
    category: WarningCategory
    message: str
    severity: Severity = Severity.WARNING
    date: Optional[date] = None
    nucleus_id: Optional[str] = None
    employee_id: Optional[str] = None


@dataclass(frozen=True)
class CoverageStats:
    total: int = 0
    covered: int = 0
    partial: int = 0
    uncovered: int = 0

    @property
    def percent(self) -> float:
        return (self.covered / self.total) * 100 if self.total else 0.0


@dataclass(frozen=True)
class EmployeeWorkload:
    employee_id: str
    name: str
    assigned_hours: float
    contracted_hours: float

    @property
    def utilization(self) -> float:
        return (self.assigned_hours / self.contracted_hours) * 100 if self.contracted_hours > 0 else 0.0


@dataclass(frozen=True)
class WorkloadDistribution:
    per_employee: Tuple[EmployeeWorkload, ...] = ()
    equity_score: float = 1.0


@dataclass(frozen=True)
class GenerationResult:
    shifts: Tuple[Shift, ...]
    warnings: Tuple[Warning, ...]
    confidence_average: float
    coverage: CoverageStats = field(default_factory=CoverageStats)
    workload: WorkloadDistribution = field(default_factory=WorkloadDistribution)


@dataclass(frozen=True)
class RestRequest:
    employee_id: str
    rest_type: RestType
    quantity: float
    week_start: date
    specific_days: Tuple[int, ...] = ()

    @property
    def is_specific(self) -> bool:
        return bool(self.specific_days)


@dataclass(frozen=True)
class RestAssignmentContext:
    week_start: date
    employees: Tuple[Employee, ...]
    nuclei: Tuple[Nucleus, ...] = ()
    criticalities: Tuple[RecurringCriticality, ...] = ()
    critical_periods: Tuple[CriticalPeriod, ...] = ()
    leaves: Tuple[ApprovedLeave, ...] = ()
    existing_rests: Tuple[AssignedRest, ...] = ()


@dataclass(frozen=True)
class RestRecord:
    employee_id: str
    week_start: date
    weekday: int
    date: date
    granularity: RestGranularity
    confidence: float
    source: RestSource = RestSource.ENGINE

    @property
    def key(self) -> Tuple[str, date, int]:
        return (self.employee_id, self.week_start, self.weekday)

    def as_assigned(self) -> AssignedRest:
        return AssignedRest(self.employee_id, self.week_start, self.weekday, self.granularity, self.source)


@dataclass(frozen=True)
class RestAssignmentResult:
    employee_id: str
    rests: Tuple[RestRecord, ...]
    warnings: Tuple[str, ...]
    success: bool
    reasoning: str


@dataclass(frozen=True)
class BatchRestResult:
    week_start: date
    rests: Tuple[RestRecord, ...]
    warnings: Tuple[Warning, ...]
    results: Tuple[RestAssignmentResult, ...]
    skipped: Tuple[str, ...] = ()

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)


def index_by_id(items) -> Dict[str, object]:
    return {item.id: item for item in items}
