"""Coverage statistics and workload distribution of a generated week."""

from __future__ import annotations

import statistics
from typing import Dict, Iterable, Mapping, Sequence

from shiftgen.domain.types import (
    CoverageStats,
    CoverageStatus,
    EmployeeWorkload,
    Shift,
    WorkloadDistribution,
)


def coverage_status(assigned: int, required: int) -> CoverageStatus:
    if assigned >= required:
        return CoverageStatus.OK
    if assigned > 0:
        return CoverageStatus.PARTIAL
    return CoverageStatus.UNCOVERED


def coverage_stats(shifts: Iterable[Shift]) -> CoverageStats:
    counts: Dict[CoverageStatus, int] = {status: 0 for status in CoverageStatus}
    total = 0
    for shift in shifts:
        counts[shift.coverage] += 1
        total += 1
    return CoverageStats(
        total=total,
        covered=counts[CoverageStatus.OK],
        partial=counts[CoverageStatus.PARTIAL],
        uncovered=counts[CoverageStatus.UNCOVERED],
    )


def confidence_average(shifts: Sequence[Shift]) -> float:
    if not shifts:
        return 0.0
    return sum(s.confidence for s in shifts) / len(shifts)


def assigned_hours_by_employee(shifts: Iterable[Shift]) -> Dict[str, float]:
    hours: Dict[str, float] = {}
    for shift in shifts:
        for employee_id in shift.employee_ids:
            hours[employee_id] = hours.get(employee_id, 0.0) + shift.window.hours
    return hours


def workload_distribution(
    shifts: Sequence[Shift],
    contracted: Mapping[str, float],
    names: Mapping[str, str],
) -> WorkloadDistribution:
    """
    Hours given to each employee this run against their contract.

    The equity score is ``1 - stdev(utilization %) / 100``, floored at 0.
    """
    hours = assigned_hours_by_employee(shifts)
    per_employee = tuple(
        EmployeeWorkload(
            employee_id=employee_id,
            name=names.get(employee_id, employee_id),
            assigned_hours=round(hours.get(employee_id, 0.0), 2),
            contracted_hours=round(contracted[employee_id], 2),
        )
        for employee_id in sorted(contracted)
    )
    utilization = [w.utilization for w in per_employee]
    if len(utilization) < 2:
        return WorkloadDistribution(per_employee, 1.0)
    spread = statistics.pstdev(utilization)
    return WorkloadDistribution(per_employee, max(0.0, 1.0 - spread / 100.0))
