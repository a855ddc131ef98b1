"""Staffing demand per nucleus, day and operating window."""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from shiftgen.config import EngineConfig
from shiftgen.domain.types import (
    CriticalPeriod,
    DemandSlot,
    GenerationContext,
    HistoricalPattern,
    Nucleus,
    RecurringCriticality,
    TimeWindow,
    iso_weekday,
)

logger = logging.getLogger(__name__)


def resolve_window(
    nucleus: Nucleus,
    weekday: int,
    patterns: Dict[Tuple[str, int], HistoricalPattern],
    cfg: EngineConfig,
) -> TimeWindow:
    """
    Operating window of a nucleus on a weekday.

    Per-weekday window, then fixed window, then the historically most common
    window, then the configured default shift.
    """
    window = nucleus.window_for(weekday)
    if window is not None:
        return window
    pattern = patterns.get((nucleus.id, weekday))
    if pattern is not None and pattern.typical_window is not None:
        return pattern.typical_window
    return TimeWindow.parse(cfg.default_shift.start, cfg.default_shift.end)


def _window_applies(modifier_window: Optional[TimeWindow], window: TimeWindow) -> bool:
    return modifier_window is None or modifier_window.overlaps(window)


def matching_criticalities(
    criticalities: Sequence[RecurringCriticality],
    nucleus_id: str,
    day: date,
    window: TimeWindow,
) -> List[RecurringCriticality]:
    weekday = iso_weekday(day)
    return [
        c for c in criticalities
        if c.active and c.weekday == weekday and c.applies_to(nucleus_id) and _window_applies(c.window, window)
    ]


def matching_periods(
    periods: Sequence[CriticalPeriod],
    nucleus_id: str,
    day: date,
    window: TimeWindow,
) -> List[CriticalPeriod]:
    return [
        p for p in periods
        if p.covers(day) and p.applies_to(nucleus_id) and _window_applies(p.window, window)
    ]


def required_staff(
    nucleus: Nucleus,
    criticalities: Sequence[RecurringCriticality] = (),
    periods: Sequence[CriticalPeriod] = (),
) -> int:
    """
    Combine the nucleus minimum with already-matched modifiers.

    Additive extras are summed first, period floors are applied as a max
    against that total, and multipliers (recurring and period) go last.
    The result is rounded up, capped at ``max_staff`` and never below 1.
    """
    total = float(nucleus.min_staff + sum(c.staff_extra for c in criticalities))

    floors = [p.min_staff for p in periods if p.min_staff is not None]
    if floors:
        total = max(total, float(max(floors)))

    multiplier = 1.0
    for c in criticalities:
        multiplier *= c.multiplier
    for p in periods:
        multiplier *= p.multiplier

    # round() keeps 2 * 1.1 * ... float noise from bumping ceil by one
    required = math.ceil(round(total * multiplier, 6))
    if nucleus.max_staff is not None:
        required = min(required, nucleus.max_staff)
    return max(1, required)


def _reasons(
    nucleus: Nucleus,
    criticalities: Sequence[RecurringCriticality],
    periods: Sequence[CriticalPeriod],
) -> Tuple[str, ...]:
    out = [f"min_staff={nucleus.min_staff}"]
    for c in criticalities:
        label = c.category or c.name or c.id
        if c.staff_extra:
            out.append(f"{label} +{c.staff_extra}")
        if c.multiplier != 1.0:
            out.append(f"{label} x{c.multiplier:g}")
    for p in periods:
        label = p.name or p.id
        if p.min_staff is not None:
            out.append(f"{label} floor {p.min_staff}")
        if p.multiplier != 1.0:
            out.append(f"{label} x{p.multiplier:g}")
    return tuple(out)


def build_demand_slots(context: GenerationContext, cfg: Optional[EngineConfig] = None) -> List[DemandSlot]:
    """
    Compute one demand slot per (nucleus, day) of the week.

    Args:
        context: Week snapshot
        cfg: Engine configuration (defaults when omitted)

    Returns:
        Slots sorted most-constrained first: (-required, date, start, nucleus_id)
    """
    cfg = cfg or EngineConfig()
    patterns = {(p.nucleus_id, p.weekday): p for p in context.patterns}
    slots: List[DemandSlot] = []

    for day in context.dates:
        weekday = iso_weekday(day)
        for nucleus in context.nuclei:
            window = resolve_window(nucleus, weekday, patterns, cfg)
            crits = matching_criticalities(context.criticalities, nucleus.id, day, window)
            periods = matching_periods(context.critical_periods, nucleus.id, day, window)
            required = required_staff(nucleus, crits, periods)

            soft_target = None
            if not crits and not periods:
                pattern = patterns.get((nucleus.id, weekday))
                if pattern is not None:
                    soft_target = pattern.mean_staff

            slots.append(DemandSlot(
                nucleus_id=nucleus.id,
                date=day,
                window=window,
                required=required,
                soft_target=soft_target,
                blocks_preferences=any(p.blocks_preferences for p in periods),
                reasons=_reasons(nucleus, crits, periods),
            ))

    slots.sort(key=lambda s: (-s.required, s.date, s.window.start, s.nucleus_id))
    logger.debug("Built %d demand slots for week %s", len(slots), context.week_start)
    return slots
