"""Coverage check run before approving a rest, leave or unavailability."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from shiftgen.config import EngineConfig
from shiftgen.domain.types import Employee, GenerationContext, PreferencePolarity
from shiftgen.services.availability import AvailabilityResolver, rest_date


class RequestKind(str, Enum):
    REST = "rest"
    VACATION = "vacation"
    PERMIT = "permit"
    UNAVAILABLE = "unavailable"


_LABELS = {
    RequestKind.REST: "a rest day",
    RequestKind.VACATION: "vacation",
    RequestKind.PERMIT: "a permit",
    RequestKind.UNAVAILABLE: "unavailability",
}


@dataclass(frozen=True)
class SlotAvailability:
    allowed: bool
    reason: Optional[str] = None
    min_coverage: int = 0
    current_coverage: int = 0
    coverage_if_approved: int = 0
    others_available: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CoverageOption:
    employee_id: str
    name: str
    remaining_hours: float
    primary_nucleus: Optional[str] = None


def _absent(resolver: AvailabilityResolver, context: GenerationContext, employee: Employee, day: date) -> bool:
    if resolver.on_leave(employee.id, day):
        return True
    if any(r.employee_id == employee.id and rest_date(r) == day for r in context.rests):
        return True
    return any(
        p.employee_id == employee.id and p.date == day and p.polarity == PreferencePolarity.UNAVAILABLE
        for p in context.preferences
    )


def _members(context: GenerationContext, nucleus_id: str, day: date) -> List[Employee]:
    return sorted(
        (e for e in context.employees if e.active and e.is_member_of(nucleus_id, day)),
        key=lambda e: e.id,
    )


def check_slot_availability(
    context: GenerationContext,
    nucleus_id: str,
    day: date,
    employee_id: str,
    request_kind: RequestKind = RequestKind.REST,
    cfg: Optional[EngineConfig] = None,
) -> SlotAvailability:
    """
    Whether ``employee_id`` can be away from ``nucleus_id`` on ``day``.

    A request is refused only when approving it drops the nucleus below its
    minimum headcount and there are not enough other members to make up the
    difference. Employees already absent never change coverage.
    """
    nucleus = next((n for n in context.nuclei if n.id == nucleus_id), None)
    if nucleus is None:
        return SlotAvailability(True)

    resolver = AvailabilityResolver(context, cfg)
    members = _members(context, nucleus_id, day)
    present = [e for e in members if not _absent(resolver, context, e, day)]
    others = tuple(e.full_name for e in present if e.id != employee_id)
    current = len(present)

    if not any(e.id == employee_id for e in present):
        return SlotAvailability(True, None, nucleus.min_staff, current, current, others)

    after = current - 1
    missing = nucleus.min_staff - after
    if after < nucleus.min_staff and len(others) < missing:
        label = _LABELS[request_kind]
        if not others:
            reason = (
                f"Cannot request {label} on {day}: only available member of {nucleus.label} "
                f"and at least {nucleus.min_staff} are needed"
            )
        else:
            reason = (
                f"Cannot request {label} on {day}: {nucleus.label} needs {nucleus.min_staff} "
                f"but only {after} would remain ({missing} short)"
            )
        return SlotAvailability(False, reason, nucleus.min_staff, current, after, others)

    return SlotAvailability(True, None, nucleus.min_staff, current, after, others)


def check_multi_slot_availability(
    context: GenerationContext,
    nucleus_id: str,
    days: Sequence[date],
    employee_id: str,
    request_kind: RequestKind = RequestKind.VACATION,
    cfg: Optional[EngineConfig] = None,
) -> Tuple[bool, Dict[date, SlotAvailability]]:
    """Run ``check_slot_availability`` for each day; True only if all are allowed."""
    results = {
        day: check_slot_availability(context, nucleus_id, day, employee_id, request_kind, cfg)
        for day in days
    }
    return all(r.allowed for r in results.values()), results


def suggest_coverage_options(
    context: GenerationContext,
    nucleus_id: str,
    day: date,
    employee_id: str,
    cfg: Optional[EngineConfig] = None,
) -> List[CoverageOption]:
    """Members who could stand in for ``employee_id``, most remaining hours first."""
    resolver = AvailabilityResolver(context, cfg)
    options = []
    for employee in _members(context, nucleus_id, day):
        if employee.id == employee_id or _absent(resolver, context, employee, day):
            continue
        remaining = resolver.remaining_hours(employee)
        if remaining <= 0:
            continue
        primary = employee.primary_nucleus(day)
        options.append(CoverageOption(
            employee_id=employee.id,
            name=employee.full_name,
            remaining_hours=round(remaining, 2),
            primary_nucleus=primary if primary != nucleus_id else None,
        ))
    options.sort(key=lambda o: (-o.remaining_hours, o.employee_id))
    return options
