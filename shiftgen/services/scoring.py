"""Candidate scoring for the greedy assignment engine."""

from __future__ import annotations

from typing import Optional

from shiftgen.config import EngineConfig
from shiftgen.domain.types import Employee, HoursModel


def calculate_headroom(remaining_hours: float, contracted_hours: float) -> float:
    """
    Share of the weekly budget still free, in [0, 1].

    Employees further from their cap score higher so hours spread out.
    """
    if contracted_hours <= 0:
        return 0.0
    return min(1.0, max(0.0, remaining_hours / contracted_hours))


def calculate_min_hours_deficit(employee: Employee, assigned_hours: float) -> float:
    """
    How far a flexible contract is below its minimum, in [0, 1].

    Args:
        employee: Candidate
        assigned_hours: Hours committed so far this week (before this slot)

    Returns:
        0 for non-flexible contracts or when the minimum is reached
    """
    if employee.hours_model != HoursModel.FLEXIBLE or not employee.min_hours:
        return 0.0
    missing = employee.min_hours - assigned_hours
    if missing <= 0:
        return 0.0
    return min(1.0, missing / employee.min_hours)


def calculate_candidate_score(
    headroom: float,
    preference_weight: float,
    affinity: bool,
    cfg: EngineConfig,
    soft_target: Optional[float] = None,
    required: int = 1,
    min_hours_deficit: float = 0.0,
) -> float:
    """
    Weighted sum used to rank candidates for a slot.

    Higher score = better candidate.

    Args:
        headroom: Remaining/contracted hours in [0, 1]
        preference_weight: Bonus, penalty or 0 from the availability resolver
        affinity: Employee worked this nucleus on this weekday in the history window
        cfg: Engine configuration carrying the weights
        soft_target: Historical mean headcount, only set when no criticality applies
        required: Headcount of the slot
        min_hours_deficit: Flexible-contract shortfall in [0, 1]

    Returns:
        Raw score (see ``normalize_score`` for the [0, 1] form)
    """
    w = cfg.weights
    score = w.headroom * headroom + w.preference * preference_weight
    if affinity:
        score += w.history
        # history hints only nudge candidates who know the slot
        if soft_target is not None and required > 0:
            score += w.soft_target * min(1.0, soft_target / required)
    score += w.min_hours * min_hours_deficit
    return score


def score_bounds(cfg: EngineConfig) -> tuple[float, float]:
    """Lowest and highest raw score the weights allow."""
    w = cfg.weights
    low = min(0.0, w.preference * cfg.unavailable_penalty)
    high = w.headroom + w.preference * max(0.0, cfg.preferred_bonus) + w.history + w.soft_target + w.min_hours
    return low, high


def normalize_score(score: float, cfg: EngineConfig) -> float:
    low, high = score_bounds(cfg)
    if high <= low:
        return 1.0
    return min(1.0, max(0.0, (score - low) / (high - low)))
