"""Scheduling engines and the orchestrator that feeds them."""

from .assignment import ShiftAssignmentEngine, generate_shifts
from .orchestrator import Orchestrator, assign_employee_rest, assign_week_rests, build_week_schedule
from .rests import RestAssignmentEngine, merge_rest_records

__all__ = [
    "ShiftAssignmentEngine",
    "RestAssignmentEngine",
    "Orchestrator",
    "generate_shifts",
    "merge_rest_records",
    "build_week_schedule",
    "assign_week_rests",
    "assign_employee_rest",
]
