"""Pure scheduling services: interval math, conflicts, demand, availability, scoring.

Modules:
- intervals: overnight-aware time-of-day arithmetic
- conflicts: per-date overlap, rest-gap and shift-count validation
- demand: required headcount per nucleus/day/window
- availability: eligibility, remaining hours and preference weight
- scoring: candidate score for the assignment engine
- history: trailing-window patterns from past shifts (pandas)
- coverage: coverage statistics and workload distribution
- calendar: company closed days, public holidays and the closed-day filter
- slot_availability: coverage check before approving a rest or leave
"""

__all__ = [
    "intervals",
    "conflicts",
    "demand",
    "availability",
    "scoring",
    "history",
    "coverage",
    "calendar",
    "slot_availability",
]
