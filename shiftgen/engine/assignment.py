"""Greedy shift assignment over the week's demand slots."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from shiftgen.config import EngineConfig
from shiftgen.domain.types import (
    DemandSlot,
    Employee,
    ExistingAssignment,
    GenerationContext,
    GenerationResult,
    Severity,
    Shift,
    SuggestedEmployee,
    Warning,
    WarningCategory,
)
from shiftgen.domain.validation import validate_generation_context
from shiftgen.services.availability import Availability, AvailabilityResolver
from shiftgen.services.conflicts import ConflictValidator
from shiftgen.services.coverage import (
    confidence_average,
    coverage_stats,
    coverage_status,
    workload_distribution,
)
from shiftgen.services.demand import build_demand_slots
from shiftgen.services.scoring import (
    calculate_candidate_score,
    calculate_headroom,
    calculate_min_hours_deficit,
    normalize_score,
)

logger = logging.getLogger(__name__)


class ShiftAssignmentEngine:
    """
    Fill each demand slot with the best-scoring eligible employees.

    Slots are served most-constrained first. Every pick updates the running
    hours and the conflict index, so later slots see earlier choices. There is
    no backtracking: a slot that cannot be filled is reported and skipped.
    """

    def __init__(self, cfg: Optional[EngineConfig] = None):
        self.cfg = cfg or EngineConfig()

    def generate(self, context: GenerationContext) -> GenerationResult:
        """
        Build the week's shift proposals.

        Args:
            context: Immutable week snapshot

        Returns:
            GenerationResult with shifts, warnings and summary statistics

        Raises:
            InputValidationError: If the snapshot is malformed
        """
        validate_generation_context(context)
        cfg = self.cfg

        slots = build_demand_slots(context, cfg)
        resolver = AvailabilityResolver(context, cfg)
        validator = ConflictValidator(context.existing_assignments, cfg.max_shifts_per_day, cfg.min_rest_hours)
        nuclei = {n.id: n for n in context.nuclei}
        employees = sorted(context.employees, key=lambda e: e.id)

        taken: Dict[str, float] = {}
        warnings: List[Warning] = self._hours_exceeded(employees, resolver)
        shifts: List[Shift] = []

        for slot in slots:
            candidates = self._rank_candidates(slot, employees, resolver, validator, taken, context)
            chosen = candidates[: slot.required]

            suggested = []
            for score, employee, availability in chosen:
                taken[employee.id] = taken.get(employee.id, 0.0) + slot.window.hours
                validator.register(ExistingAssignment(
                    shift_id=f"new:{slot.nucleus_id}:{slot.date.isoformat()}",
                    employee_id=employee.id,
                    date=slot.date,
                    window=slot.window,
                    nucleus_id=slot.nucleus_id,
                ))
                primary = employee.primary_nucleus(slot.date)
                relocated_from = primary if primary is not None and primary != slot.nucleus_id else None
                if relocated_from is not None:
                    warnings.append(Warning(
                        category=WarningCategory.SUGGESTED_RELOCATION,
                        message=(
                            f"{employee.full_name} moved from {relocated_from} to "
                            f"{nuclei[slot.nucleus_id].label} on {slot.date}"
                        ),
                        severity=Severity.INFO,
                        date=slot.date,
                        nucleus_id=slot.nucleus_id,
                        employee_id=employee.id,
                    ))
                suggested.append(SuggestedEmployee(
                    employee_id=employee.id,
                    name=employee.full_name,
                    score=round(score, 6),
                    normalized_score=round(normalize_score(score, cfg), 6),
                    preference=availability.preference,
                    relocated_from=relocated_from,
                ))

            missing = slot.required - len(suggested)
            if missing > 0:
                warnings.append(self._shortfall(slot, nuclei[slot.nucleus_id].label, missing, bool(candidates)))

            confidence = (
                sum(s.normalized_score for s in suggested) / len(suggested) if suggested else 0.0
            )
            shifts.append(Shift(
                nucleus_id=slot.nucleus_id,
                nucleus_name=nuclei[slot.nucleus_id].label,
                date=slot.date,
                window=slot.window,
                required=slot.required,
                suggested=tuple(suggested),
                confidence=round(confidence, 6),
                coverage=coverage_status(len(suggested), slot.required),
                note=self._note(slot),
            ))

        shifts.sort(key=lambda s: (s.date, s.window.start, s.nucleus_id))
        contracted = {e.id: resolver.contracted_hours(e) for e in employees if e.active}
        names = {e.id: e.full_name for e in employees}
        result = GenerationResult(
            shifts=tuple(shifts),
            warnings=tuple(warnings),
            confidence_average=round(confidence_average(shifts), 6),
            coverage=coverage_stats(shifts),
            workload=workload_distribution(shifts, contracted, names),
        )
        logger.info(
            "Generated %d shifts for week %s: %d fully covered, %d warnings",
            len(shifts), context.week_start, result.coverage.covered, len(warnings),
        )
        return result

    def _rank_candidates(
        self,
        slot: DemandSlot,
        employees: List[Employee],
        resolver: AvailabilityResolver,
        validator: ConflictValidator,
        taken: Dict[str, float],
        context: GenerationContext,
    ) -> List[Tuple[float, Employee, Availability]]:
        candidates = []
        for employee in employees:
            already = taken.get(employee.id, 0.0)
            availability = resolver.check(
                employee, slot.nucleus_id, slot.date, slot.window, already, slot.blocks_preferences,
            )
            if not availability.eligible:
                logger.debug("%s skipped for %s %s: %s", employee.id, slot.nucleus_id, slot.date, availability.reason)
                continue
            check = validator.validate_assignment(employee.id, slot.date, slot.window)
            if not check.valid:
                logger.debug("%s skipped for %s %s: %s", employee.id, slot.nucleus_id, slot.date, check.reason)
                continue

            affinity = (employee.id, slot.nucleus_id, slot.weekday) in context.worked_before
            score = calculate_candidate_score(
                headroom=calculate_headroom(availability.remaining_hours, availability.contracted_hours),
                preference_weight=availability.preference_weight,
                affinity=affinity,
                cfg=self.cfg,
                soft_target=slot.soft_target,
                required=slot.required,
                min_hours_deficit=calculate_min_hours_deficit(employee, resolver.assigned_hours(employee) + already),
            )
            candidates.append((score, employee, availability))

        candidates.sort(key=lambda c: (-c[0], c[1].id))
        return candidates

    @staticmethod
    def _hours_exceeded(employees: List[Employee], resolver: AvailabilityResolver) -> List[Warning]:
        out = []
        for employee in employees:
            if not employee.active:
                continue
            assigned = resolver.assigned_hours(employee)
            contracted = resolver.contracted_hours(employee)
            if assigned > contracted:
                out.append(Warning(
                    category=WarningCategory.HOURS_EXCEEDED,
                    message=(
                        f"{employee.full_name} already has {assigned:g}h this week "
                        f"(contract {contracted:g}h)"
                    ),
                    severity=Severity.WARNING,
                    employee_id=employee.id,
                ))
        return out

    @staticmethod
    def _shortfall(slot: DemandSlot, label: str, missing: int, had_candidates: bool) -> Warning:
        if had_candidates:
            category = WarningCategory.INSUFFICIENT_COVERAGE
            text = f"{label} on {slot.date} {slot.window}: {missing} of {slot.required} staff missing"
        else:
            category = WarningCategory.NO_CANDIDATES
            text = f"{label} on {slot.date} {slot.window}: no eligible employees, {missing} staff missing"
        logger.warning(text)
        return Warning(
            category=category,
            message=text,
            severity=Severity.WARNING,
            date=slot.date,
            nucleus_id=slot.nucleus_id,
        )

    @staticmethod
    def _note(slot: DemandSlot) -> str:
        note = ", ".join(slot.reasons)
        if slot.soft_target is not None:
            note += f", historical mean {slot.soft_target:g}"
        return note


def generate_shifts(context: GenerationContext, cfg: Optional[EngineConfig] = None) -> GenerationResult:
    """Convenience wrapper around ``ShiftAssignmentEngine.generate``."""
    return ShiftAssignmentEngine(cfg).generate(context)
