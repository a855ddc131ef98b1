"""Boundary checks run before any scoring.

Every check raises ``InputValidationError`` naming the offending field.
Infeasible but well-formed input passes here and is reported by the engines.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from shiftgen.domain.types import (
    ApprovedLeave,
    AssignedRest,
    CriticalPeriod,
    Employee,
    GenerationContext,
    Nucleus,
    RecurringCriticality,
    RestAssignmentContext,
    RestRequest,
)
from shiftgen.errors import InputValidationError


def validate_week(week_start: date, week_end: Optional[date] = None) -> None:
    if week_start.isoweekday() != 1:
        raise InputValidationError("week_start", "must be a Monday", week_start)
    if week_end is not None and week_end != week_start + timedelta(days=6):
        raise InputValidationError("week_end", "must be week_start + 6 days", week_end)


def _check_weekday(field: str, weekday: int) -> None:
    if not 1 <= weekday <= 7:
        raise InputValidationError(field, "weekday must be between 1 (Monday) and 7 (Sunday)", weekday)


def _check_unique(field: str, ids: Iterable[str]) -> None:
    seen = set()
    for item_id in ids:
        if item_id in seen:
            raise InputValidationError(field, "duplicate id", item_id)
        seen.add(item_id)


def _check_non_negative(field: str, value: Optional[float]) -> None:
    if value is not None and value < 0:
        raise InputValidationError(field, "must be >= 0", value)


def validate_employees(employees: Sequence[Employee]) -> None:
    if not employees:
        raise InputValidationError("employees", "roster is empty")
    _check_unique("employees", (e.id for e in employees))
    for e in employees:
        prefix = f"employees[{e.id}]"
        for attr in ("weekly_hours", "monthly_hours", "min_hours", "max_hours", "rest_quantity"):
            _check_non_negative(f"{prefix}.{attr}", getattr(e, attr))
        if e.min_hours is not None and e.max_hours is not None and e.max_hours < e.min_hours:
            raise InputValidationError(f"{prefix}.max_hours", "must be >= min_hours", e.max_hours)
        open_nuclei = set()
        for m in e.memberships:
            if m.valid_from is not None and m.valid_to is not None and m.valid_to < m.valid_from:
                raise InputValidationError(f"{prefix}.memberships", "valid_to before valid_from", m.nucleus_id)
            if m.is_open:
                if m.nucleus_id in open_nuclei:
                    raise InputValidationError(
                        f"{prefix}.memberships", "more than one open membership for nucleus", m.nucleus_id,
                    )
                open_nuclei.add(m.nucleus_id)


def validate_nuclei(nuclei: Sequence[Nucleus]) -> None:
    if not nuclei:
        raise InputValidationError("nuclei", "no nuclei defined")
    _check_unique("nuclei", (n.id for n in nuclei))
    for n in nuclei:
        if n.min_staff < 1:
            raise InputValidationError(f"nuclei[{n.id}].min_staff", "must be >= 1", n.min_staff)
        if n.max_staff is not None and n.max_staff < n.min_staff:
            raise InputValidationError(f"nuclei[{n.id}].max_staff", "must be >= min_staff", n.max_staff)
        for weekday, _ in n.weekday_windows:
            _check_weekday(f"nuclei[{n.id}].weekday_windows", weekday)


def validate_demand_signals(
    criticalities: Sequence[RecurringCriticality],
    periods: Sequence[CriticalPeriod],
) -> None:
    for c in criticalities:
        _check_weekday(f"criticalities[{c.id}].weekday", c.weekday)
        _check_non_negative(f"criticalities[{c.id}].staff_extra", c.staff_extra)
        if c.multiplier <= 0:
            raise InputValidationError(f"criticalities[{c.id}].multiplier", "must be > 0", c.multiplier)
    for p in periods:
        if p.end_date < p.start_date:
            raise InputValidationError(f"critical_periods[{p.id}]", "end_date before start_date", p.end_date)
        _check_non_negative(f"critical_periods[{p.id}].min_staff", p.min_staff)
        if p.multiplier <= 0:
            raise InputValidationError(f"critical_periods[{p.id}].multiplier", "must be > 0", p.multiplier)


def validate_commitments(leaves: Sequence[ApprovedLeave], rests: Sequence[AssignedRest]) -> None:
    for leave in leaves:
        if leave.end_date < leave.start_date:
            raise InputValidationError(f"leaves[{leave.employee_id}]", "end_date before start_date", leave.end_date)
    for rest in rests:
        _check_weekday(f"rests[{rest.employee_id}].weekday", rest.weekday)


def validate_generation_context(context: GenerationContext) -> None:
    """Reject a malformed generation snapshot."""
    validate_week(context.week_start, context.week_end)
    validate_employees(context.employees)
    validate_nuclei(context.nuclei)
    validate_demand_signals(context.criticalities, context.critical_periods)
    validate_commitments(context.leaves, context.rests)


def validate_rest_context(context: RestAssignmentContext) -> None:
    """Reject a malformed rest-assignment snapshot."""
    validate_week(context.week_start)
    validate_employees(context.employees)
    _check_unique("nuclei", (n.id for n in context.nuclei))
    validate_demand_signals(context.criticalities, context.critical_periods)
    validate_commitments(context.leaves, context.existing_rests)


def validate_rest_request(request: RestRequest, context: RestAssignmentContext) -> None:
    validate_week(request.week_start)
    if request.week_start != context.week_start:
        raise InputValidationError("week_start", "request and context weeks differ", request.week_start)
    if not any(e.id == request.employee_id for e in context.employees):
        raise InputValidationError("employee_id", "unknown employee", request.employee_id)
    _check_non_negative("quantity", request.quantity)
    for weekday in request.specific_days:
        _check_weekday("specific_days", weekday)
