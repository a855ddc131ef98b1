"""Weekly rest assignment, per employee and for the whole roster."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from shiftgen.config import EngineConfig
from shiftgen.domain.types import (
    AssignedRest,
    BatchRestResult,
    Employee,
    RestAssignmentContext,
    RestAssignmentResult,
    RestGranularity,
    RestRecord,
    RestRequest,
    RestSource,
    RestType,
    Severity,
    Warning,
    WarningCategory,
    WEEKDAY_NAMES,
)
from shiftgen.domain.validation import validate_rest_context, validate_rest_request

logger = logging.getLogger(__name__)

FULL = RestGranularity.FULL
MORNING = RestGranularity.HALF_MORNING
AFTERNOON = RestGranularity.HALF_AFTERNOON
HALVES = (MORNING, AFTERNOON)

RestKey = Tuple[str, date, int]


@dataclass(frozen=True)
class DayCost:
    weekday: int
    cost: float
    coverage_risk: bool = False

    @property
    def confidence(self) -> float:
        return min(1.0, max(0.0, 1.0 - max(self.cost, 0.0) / 100.0))


def merge_rest_records(
    existing: Iterable[AssignedRest],
    new: Iterable[RestRecord],
) -> Tuple[AssignedRest, ...]:
    """
    In-memory upsert keyed by (employee, week, weekday).

    The later record for a key replaces the earlier one, so merging the same
    batch twice yields the same set.
    """
    merged: Dict[RestKey, AssignedRest] = {}
    for rest in existing:
        merged[(rest.employee_id, rest.week_start, rest.weekday)] = rest
    for record in new:
        merged[record.key] = record.as_assigned()
    return tuple(merged[k] for k in sorted(merged))


class _Week:
    """Per-call lookups over a rest-assignment snapshot."""

    def __init__(self, context: RestAssignmentContext, rests: Sequence[AssignedRest]):
        self.context = context
        self.week_start = context.week_start
        self.dates = tuple(context.week_start + timedelta(days=i) for i in range(7))
        self.nuclei = {n.id: n for n in context.nuclei}
        self.employees = {e.id: e for e in context.employees}
        self.rests: Dict[Tuple[str, int], List[AssignedRest]] = {}
        for rest in rests:
            if rest.week_start == context.week_start:
                self.rests.setdefault((rest.employee_id, rest.weekday), []).append(rest)

    def date_of(self, weekday: int) -> date:
        return self.dates[weekday - 1]

    def on_leave(self, employee_id: str, weekday: int) -> bool:
        day = self.date_of(weekday)
        return any(l.employee_id == employee_id and l.covers(day) for l in self.context.leaves)

    def on_leave_all_week(self, employee_id: str) -> bool:
        return all(self.on_leave(employee_id, wd) for wd in range(1, 8))

    def held(self, employee_id: str, weekday: int) -> Set[RestGranularity]:
        """Parts of a weekday already covered by a rest of ``employee_id``."""
        covered: Set[RestGranularity] = set()
        for rest in self.rests.get((employee_id, weekday), ()):
            if rest.granularity == FULL:
                covered.update((FULL, MORNING, AFTERNOON))
            else:
                covered.add(rest.granularity)
        if covered >= set(HALVES):
            covered.add(FULL)
        return covered

    def manual_half(self, employee_id: str, weekday: int) -> bool:
        """A manual half-day rest cannot be extended without overwriting its row."""
        return any(
            r.source == RestSource.MANUAL and r.granularity in HALVES
            for r in self.rests.get((employee_id, weekday), ())
        )

    def away(self, employee_id: str, weekday: int, part: RestGranularity) -> bool:
        if self.on_leave(employee_id, weekday):
            return True
        held = self.held(employee_id, weekday)
        return FULL in held or part in held or (part == FULL and bool(held))

    def colleagues(self, employee: Employee, day: date) -> List[Employee]:
        mine = {m.nucleus_id for m in employee.memberships if m.active_on(day)}
        out = []
        for other in self.employees.values():
            if other.id == employee.id or not other.active:
                continue
            if not mine or any(other.is_member_of(n, day) for n in mine):
                out.append(other)
        return out


class RestAssignmentEngine:
    """
    Place weekly rest where it hurts coverage least.

    Each weekday gets a cost: demand modifiers that add staff, the risk of a
    nucleus falling below its minimum and colleagues already away all make a
    day more expensive; weekends are slightly cheaper. The cheapest free days
    (or half-days) are taken until the quota is met.
    """

    def __init__(self, cfg: Optional[EngineConfig] = None):
        self.cfg = cfg or EngineConfig()

    def day_cost(self, week: _Week, employee: Employee, weekday: int, part: RestGranularity = FULL) -> DayCost:
        costs = self.cfg.rest_costs
        day = week.date_of(weekday)
        nuclei_ids = [m.nucleus_id for m in employee.memberships if m.active_on(day)]

        def relevant(nucleus_id: Optional[str]) -> bool:
            return nucleus_id is None or nucleus_id in nuclei_ids

        cost = 0.0
        for crit in week.context.criticalities:
            if crit.active and crit.weekday == weekday and relevant(crit.nucleus_id):
                cost += crit.staff_extra * costs.per_extra_staff
                cost += max(0.0, crit.multiplier - 1.0) * costs.per_multiplier_point
        for period in week.context.critical_periods:
            if period.covers(day) and relevant(period.nucleus_id):
                if period.min_staff is not None or period.multiplier > 1.0:
                    cost += costs.critical_period
                cost += max(0.0, period.multiplier - 1.0) * costs.per_multiplier_point

        coverage_risk = False
        for nucleus_id in nuclei_ids:
            nucleus = week.nuclei.get(nucleus_id)
            if nucleus is None:
                continue
            present = sum(
                1 for e in week.employees.values()
                if e.active and e.is_member_of(nucleus_id, day) and not week.away(e.id, weekday, part)
            )
            if present - 1 < nucleus.min_staff:
                coverage_risk = True
        if coverage_risk:
            cost += costs.coverage_risk

        away = sum(1 for other in week.colleagues(employee, day) if week.away(other.id, weekday, part))
        cost += away * costs.team_load

        if weekday >= 6:
            cost -= costs.weekend_discount
        return DayCost(weekday, round(cost, 6), coverage_risk)

    @staticmethod
    def _units(rest_type: RestType, quantity: float, cfg: EngineConfig) -> int:
        if rest_type == RestType.FULL_DAYS:
            return min(7, math.ceil(quantity))
        if rest_type == RestType.HALF_DAYS:
            return min(14, math.ceil(quantity))
        return min(14, math.ceil(round(quantity / cfg.half_day_hours, 6)))

    @staticmethod
    def _distance(weekday: int, taken: Set[int]) -> int:
        if not taken:
            return 7
        return min(abs(weekday - t) for t in taken)

    def _free_slots(
        self, week: _Week, employee_id: str, rest_type: RestType, weekdays: Iterable[int], blocked: List[str],
    ) -> List[Tuple[int, RestGranularity]]:
        slots = []
        for weekday in weekdays:
            name = WEEKDAY_NAMES[weekday]
            if week.on_leave(employee_id, weekday):
                blocked.append(f"{name} on approved leave")
                continue
            held = week.held(employee_id, weekday)
            if rest_type == RestType.FULL_DAYS:
                if held:
                    blocked.append(f"{name} already a rest day")
                    continue
                slots.append((weekday, FULL))
            else:
                if week.manual_half(employee_id, weekday):
                    blocked.append(f"{name} already holds a manual half-day rest")
                    continue
                free = [h for h in HALVES if h not in held]
                if not free:
                    blocked.append(f"{name} already a rest day")
                slots.extend((weekday, h) for h in free)
        return slots

    def _pick(
        self,
        week: _Week,
        employee: Employee,
        slots: List[Tuple[int, RestGranularity]],
        needed: int,
    ) -> List[Tuple[int, RestGranularity, DayCost]]:
        costs = {(wd, part): self.day_cost(week, employee, wd, part) for wd, part in slots}
        held_days = {wd for wd in range(1, 8) if week.held(employee.id, wd)}
        remaining = list(slots)
        chosen: List[Tuple[int, RestGranularity, DayCost]] = []
        while remaining and len(chosen) < needed:
            taken = held_days | {wd for wd, _, _ in chosen}
            best = min(
                remaining,
                key=lambda s: (costs[s].cost, -self._distance(s[0], taken), s[0], HALVES.index(s[1]) if s[1] in HALVES else 0),
            )
            remaining.remove(best)
            chosen.append((best[0], best[1], costs[best]))
        return chosen

    def _records(
        self,
        week: _Week,
        employee: Employee,
        chosen: List[Tuple[int, RestGranularity, DayCost]],
    ) -> List[RestRecord]:
        by_day: Dict[int, List[Tuple[RestGranularity, DayCost]]] = {}
        for weekday, part, cost in chosen:
            by_day.setdefault(weekday, []).append((part, cost))

        records = []
        for weekday in sorted(by_day):
            parts = {p for p, _ in by_day[weekday]}
            confidence = min(c.confidence for _, c in by_day[weekday])
            # both halves of one day are stored as a full day
            if FULL in parts or parts >= set(HALVES):
                granularity = FULL
            else:
                granularity = next(iter(parts))
            records.append(RestRecord(
                employee_id=employee.id,
                week_start=week.week_start,
                weekday=weekday,
                date=week.date_of(weekday),
                granularity=granularity,
                confidence=round(confidence, 4),
                source=RestSource.ENGINE,
            ))
        return records

    def assign_for_employee(
        self,
        request: RestRequest,
        context: RestAssignmentContext,
    ) -> RestAssignmentResult:
        """
        Assign one employee's rest quota for the week.

        Args:
            request: Employee, rest type, quantity and optional explicit weekdays
            context: Week snapshot

        Returns:
            RestAssignmentResult; ``success`` is False when the quota could not
            be met, with whatever could be placed and a ``reasoning`` string

        Raises:
            InputValidationError: If the request or snapshot is malformed
        """
        validate_rest_request(request, context)
        # the employee's own engine-placed rests are re-planned, not kept
        rests = [
            r for r in context.existing_rests
            if not (r.employee_id == request.employee_id and r.source == RestSource.ENGINE)
        ]
        week = _Week(context, rests)
        employee = week.employees[request.employee_id]
        return self._assign(week, employee, request)

    def _assign(self, week: _Week, employee: Employee, request: RestRequest) -> RestAssignmentResult:
        cfg = self.cfg
        blocked: List[str] = []
        warnings: List[str] = []

        if request.is_specific:
            weekdays = sorted(set(request.specific_days))
            needed = len(weekdays)
            slots = self._free_slots(week, employee.id, request.rest_type, weekdays, blocked)
            chosen = []
            for weekday in weekdays:
                day_slots = [s for s in slots if s[0] == weekday]
                if day_slots:
                    # explicit days are taken as asked, first free part of the day
                    part = day_slots[0][1]
                    chosen.append((weekday, part, self.day_cost(week, employee, weekday, part)))
            placed = len(chosen)
        else:
            needed = self._units(request.rest_type, request.quantity, cfg)
            slots = self._free_slots(week, employee.id, request.rest_type, range(1, 8), blocked)
            chosen = self._pick(week, employee, slots, needed)
            placed = len(chosen)

        for weekday, _, cost in chosen:
            if cost.coverage_risk:
                warnings.append(f"{WEEKDAY_NAMES[weekday]} leaves a nucleus below its minimum staff")

        records = self._records(week, employee, chosen)
        success = placed >= needed
        if not success:
            warnings.append(f"Only {placed} of {needed} rest units assigned")
        reasoning = self._reasoning(employee, request, records, blocked, placed, needed)
        logger.debug("Rest for %s: %d/%d units (%s)", employee.id, placed, needed, reasoning)
        return RestAssignmentResult(
            employee_id=employee.id,
            rests=tuple(records),
            warnings=tuple(warnings),
            success=success,
            reasoning=reasoning,
        )

    @staticmethod
    def _reasoning(
        employee: Employee,
        request: RestRequest,
        records: List[RestRecord],
        blocked: List[str],
        placed: int,
        needed: int,
    ) -> str:
        unit = {
            RestType.FULL_DAYS: "full days",
            RestType.HALF_DAYS: "half days",
            RestType.HOURS: "half-day units",
        }[request.rest_type]
        days = ", ".join(
            WEEKDAY_NAMES[r.weekday] + ("" if r.granularity == FULL else f" ({r.granularity.value})")
            for r in records
        )
        if needed == 0:
            return f"No rest requested for {employee.full_name}"
        if placed >= needed:
            text = f"Assigned {placed} {unit} to {employee.full_name}: {days}"
        elif placed == 0:
            text = f"Could not assign any of {needed} {unit} to {employee.full_name}"
        else:
            text = f"Assigned only {placed} of {needed} {unit} to {employee.full_name}: {days}"
        if blocked and placed < needed:
            text += f". Unavailable: {'; '.join(blocked)}"
        return text

    def assign_batch(self, context: RestAssignmentContext) -> BatchRestResult:
        """
        Assign rest to every active employee of the week, in id order.

        Rests placed for one employee are visible to the next, so later
        employees avoid days where colleagues already rest. Employees on leave
        for the whole week are skipped.
        """
        validate_rest_context(context)
        cfg = self.cfg
        # a batch re-plans every engine-placed rest of the week
        working: List[AssignedRest] = [
            r for r in context.existing_rests
            if r.week_start == context.week_start and r.source == RestSource.MANUAL
        ]

        results: List[RestAssignmentResult] = []
        all_records: List[RestRecord] = []
        warnings: List[Warning] = []
        skipped: List[str] = []

        for employee in sorted(context.employees, key=lambda e: e.id):
            if not employee.active:
                continue
            week = _Week(context, working)
            if week.on_leave_all_week(employee.id):
                skipped.append(employee.id)
                warnings.append(Warning(
                    category=WarningCategory.REST_SKIPPED,
                    message=f"{employee.full_name} is on leave all week, no rest assigned",
                    severity=Severity.INFO,
                    employee_id=employee.id,
                ))
                continue

            quantity = employee.rest_quantity if employee.rest_quantity is not None else cfg.default_rest_quantity
            request = RestRequest(employee.id, employee.rest_type, quantity, context.week_start)
            result = self._assign(week, employee, request)
            results.append(result)
            all_records.extend(result.rests)
            working = list(merge_rest_records(working, result.rests))

            if not result.success:
                warnings.append(Warning(
                    category=WarningCategory.REST_QUOTA,
                    message=result.reasoning,
                    severity=Severity.WARNING,
                    employee_id=employee.id,
                ))

        logger.info(
            "Assigned %d rest records to %d employees for week %s (%d skipped)",
            len(all_records), len(results), context.week_start, len(skipped),
        )
        return BatchRestResult(
            week_start=context.week_start,
            rests=tuple(all_records),
            warnings=tuple(warnings),
            results=tuple(results),
            skipped=tuple(skipped),
        )


def with_rests(context: RestAssignmentContext, rests: Iterable[RestRecord]) -> RestAssignmentContext:
    """Copy of ``context`` with ``rests`` upserted into its existing rests."""
    return replace(context, existing_rests=merge_rest_records(context.existing_rests, rests))
