"""Orchestrator - loads a week snapshot, runs the engines, filters and persists."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from shiftgen.config import EngineConfig
from shiftgen.domain.repositories import ShiftRepository, SnapshotRepository, WeeklyRestRepository
from shiftgen.domain.types import BatchRestResult, GenerationResult, RestAssignmentResult, RestRequest
from shiftgen.services.calendar import CompanyCalendar, filter_closed_days

from .assignment import ShiftAssignmentEngine
from .rests import RestAssignmentEngine

logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Coordinates the data store, the engines and the closed-day filter.

    The engines only see immutable snapshots; every read and write of the
    store happens here.
    """

    def __init__(self, cfg: Optional[EngineConfig] = None, calendar: Optional[CompanyCalendar] = None):
        """
        Args:
            cfg: Engine configuration (defaults when omitted)
            calendar: Closed-day lookup applied after generation; ``None`` skips the filter
        """
        self.cfg = cfg or EngineConfig()
        self.calendar = calendar

    def build_schedule(self, session: Session, week_start: date) -> GenerationResult:
        """
        Generate the week's shifts from the stored roster and demand signals.

        Args:
            session: Database session
            week_start: Monday of the week

        Returns:
            GenerationResult after the closed-day filter
        """
        logger.info("Building schedule for week %s", week_start)
        context = SnapshotRepository.load_generation_context(session, week_start, self.cfg)
        result = ShiftAssignmentEngine(self.cfg).generate(context)
        if self.calendar is not None:
            result = filter_closed_days(result, self.calendar)
        return result

    def assign_rests(self, session: Session, week_start: date) -> BatchRestResult:
        """Batch rest assignment for every active employee of the week."""
        logger.info("Assigning weekly rests for week %s", week_start)
        context = SnapshotRepository.load_rest_context(session, week_start)
        return RestAssignmentEngine(self.cfg).assign_batch(context)

    def assign_employee_rest(self, session: Session, request: RestRequest) -> RestAssignmentResult:
        context = SnapshotRepository.load_rest_context(session, request.week_start)
        return RestAssignmentEngine(self.cfg).assign_for_employee(request, context)


def build_week_schedule(
    session: Session,
    week_start: date,
    cfg: Optional[EngineConfig] = None,
    calendar: Optional[CompanyCalendar] = None,
    persist: bool = False,
    replace: bool = False,
) -> GenerationResult:
    """
    Convenience function to build a week schedule using the orchestrator.

    Args:
        session: Database session
        week_start: Monday of the week
        cfg: Engine configuration
        calendar: Closed-day lookup; ``None`` skips the filter
        persist: If True, save generated shifts to the database
        replace: If True, delete the week's stored shifts before planning

    Returns:
        GenerationResult
    """
    if replace:
        deleted = ShiftRepository.delete_by_week(session, week_start)
        if deleted > 0:
            logger.info("Deleted %d existing shifts for %s", deleted, week_start)

    result = Orchestrator(cfg, calendar).build_schedule(session, week_start)

    if persist:
        written = ShiftRepository.bulk_create(session, result.shifts, week_start)
        logger.info("Persisted %d shifts for %s", written, week_start)
    return result


def assign_week_rests(
    session: Session,
    week_start: date,
    cfg: Optional[EngineConfig] = None,
    persist: bool = False,
) -> BatchRestResult:
    """
    Batch-assign rests for a week; with ``persist`` the records are upserted.

    Running it twice for the same week leaves one row per (employee, weekday).
    """
    result = Orchestrator(cfg).assign_rests(session, week_start)
    if persist:
        WeeklyRestRepository.upsert(session, result.rests)
        planned = [r.employee_id for r in result.results]
        removed = WeeklyRestRepository.delete_stale_engine_rests(session, week_start, result.rests, planned)
        if removed:
            logger.info("Removed %d outdated engine rests for %s", removed, week_start)
    return result


def assign_employee_rest(
    session: Session,
    request: RestRequest,
    cfg: Optional[EngineConfig] = None,
    persist: bool = False,
) -> RestAssignmentResult:
    """Assign one employee's rest; with ``persist`` the records are upserted."""
    result = Orchestrator(cfg).assign_employee_rest(session, request)
    if persist:
        WeeklyRestRepository.upsert(session, result.rests)
        WeeklyRestRepository.delete_stale_engine_rests(
            session, request.week_start, result.rests, [request.employee_id],
        )
    return result
