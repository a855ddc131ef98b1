"""Per-employee eligibility, remaining hours and preference weighting."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Dict, List, Optional, Tuple

from shiftgen.config import EngineConfig
from shiftgen.domain.types import (
    ApprovedLeave,
    AssignedRest,
    Employee,
    GenerationContext,
    Preference,
    PreferencePolarity,
    RestGranularity,
    TimeWindow,
)
from shiftgen.services.intervals import parse_time

ON_LEAVE = "on_leave"
RESTING = "resting"
NOT_MEMBER = "not_member"
INACTIVE = "inactive"
NO_HOURS = "no_hours"


@dataclass(frozen=True)
class Availability:
    eligible: bool
    remaining_hours: float
    contracted_hours: float
    preference_weight: float = 0.0
    preference: Optional[PreferencePolarity] = None
    reason: Optional[str] = None


def rest_window(granularity: RestGranularity, split: time) -> Optional[TimeWindow]:
    """Part of the day a rest covers; ``None`` for a full day."""
    if granularity == RestGranularity.HALF_MORNING:
        return TimeWindow(time(0, 0), split)
    if granularity == RestGranularity.HALF_AFTERNOON:
        # ends at midnight: end <= start makes it run to 24:00
        return TimeWindow(split, time(0, 0))
    return None


def rest_date(rest: AssignedRest) -> date:
    return rest.week_start + timedelta(days=rest.weekday - 1)


class AvailabilityResolver:
    """
    Answers "can this employee work this slot, and how keen are they?".

    Built once per generation call from the week snapshot. Hours taken by the
    engine during the run are passed in by the caller, the resolver itself
    never mutates.
    """

    def __init__(self, context: GenerationContext, cfg: Optional[EngineConfig] = None):
        self.cfg = cfg or EngineConfig()
        self.split = parse_time(self.cfg.half_day_split)
        self.employees: Dict[str, Employee] = {e.id: e for e in context.employees}

        self._leaves: Dict[str, List[ApprovedLeave]] = {}
        for leave in context.leaves:
            self._leaves.setdefault(leave.employee_id, []).append(leave)

        self._rests: Dict[Tuple[str, date], List[AssignedRest]] = {}
        for rest in context.rests:
            self._rests.setdefault((rest.employee_id, rest_date(rest)), []).append(rest)

        self._preferences: Dict[Tuple[str, date], List[Preference]] = {}
        for pref in context.preferences:
            self._preferences.setdefault((pref.employee_id, pref.date), []).append(pref)

        self._assigned: Dict[str, float] = {}
        for existing in context.existing_assignments:
            hours = max(0.0, existing.window.hours)
            self._assigned[existing.employee_id] = self._assigned.get(existing.employee_id, 0.0) + hours

    def contracted_hours(self, employee: Employee) -> float:
        return employee.contracted_hours(self.cfg.weeks_per_month, self.cfg.default_weekly_hours)

    def assigned_hours(self, employee: Employee) -> float:
        """Hours already committed this week before the engine runs."""
        if employee.hours_assigned is not None:
            return max(0.0, employee.hours_assigned)
        return self._assigned.get(employee.id, 0.0)

    def remaining_hours(self, employee: Employee, taken: float = 0.0) -> float:
        return self.contracted_hours(employee) - self.assigned_hours(employee) - taken

    def on_leave(self, employee_id: str, day: date) -> bool:
        return any(leave.covers(day) for leave in self._leaves.get(employee_id, ()))

    def rest_blocks(self, employee_id: str, day: date, window: TimeWindow) -> bool:
        for rest in self._rests.get((employee_id, day), ()):
            covered = rest_window(rest.granularity, self.split)
            if covered is None or covered.overlaps(window):
                return True
        return False

    def preference_weight(
        self,
        employee_id: str,
        day: date,
        window: TimeWindow,
        blocks_preferences: bool = False,
    ) -> Tuple[float, Optional[PreferencePolarity]]:
        """
        Weight of the employee's stated preferences for the slot.

        UNAVAILABLE wins over PREFERRED. An AVAILABLE_ONLY preference that
        does not contain the slot counts as unavailable.
        """
        if blocks_preferences:
            return 0.0, None
        prefs = self._preferences.get((employee_id, day), ())
        if not prefs:
            return 0.0, None

        def touches(pref: Preference) -> bool:
            return pref.window is None or pref.window.overlaps(window)

        if any(p.polarity == PreferencePolarity.UNAVAILABLE and touches(p) for p in prefs):
            return self.cfg.unavailable_penalty, PreferencePolarity.UNAVAILABLE

        only = [p for p in prefs if p.polarity == PreferencePolarity.AVAILABLE_ONLY]
        if only and not any(p.window is None or p.window.contains(window) for p in only):
            return self.cfg.unavailable_penalty, PreferencePolarity.AVAILABLE_ONLY

        if any(p.polarity == PreferencePolarity.PREFERRED and touches(p) for p in prefs):
            return self.cfg.preferred_bonus, PreferencePolarity.PREFERRED
        return 0.0, None

    def check(
        self,
        employee: Employee,
        nucleus_id: str,
        day: date,
        window: TimeWindow,
        taken: float = 0.0,
        blocks_preferences: bool = False,
    ) -> Availability:
        """
        Resolve eligibility of ``employee`` for one slot.

        Args:
            employee: Candidate
            nucleus_id: Nucleus of the slot
            day: Slot date
            window: Slot window
            taken: Hours the engine already gave this employee during the run
            blocks_preferences: A critical period suppresses preference weighting

        Returns:
            Availability with the first failing reason, if any
        """
        contracted = self.contracted_hours(employee)
        remaining = self.remaining_hours(employee, taken)

        if not employee.active:
            return Availability(False, remaining, contracted, reason=INACTIVE)
        if self.on_leave(employee.id, day):
            return Availability(False, remaining, contracted, reason=ON_LEAVE)
        if self.rest_blocks(employee.id, day, window):
            return Availability(False, remaining, contracted, reason=RESTING)
        if not employee.is_member_of(nucleus_id, day):
            return Availability(False, remaining, contracted, reason=NOT_MEMBER)
        if remaining < window.hours:
            return Availability(False, remaining, contracted, reason=NO_HOURS)

        weight, polarity = self.preference_weight(employee.id, day, window, blocks_preferences)
        return Availability(True, remaining, contracted, weight, polarity)
