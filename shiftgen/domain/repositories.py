"""Repository classes for data access and week snapshot assembly."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, List, Optional, Union

import pandas as pd
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from shiftgen.config import EngineConfig
from shiftgen.errors import ShiftgenError
from shiftgen.services.history import (
    ASSIGNMENT_COLUMNS,
    SHIFT_COLUMNS,
    compute_historical_patterns,
    compute_worked_before,
)

from . import types as t
from .models import (
    Base,
    CriticalPeriod,
    Employee,
    LeaveRequest,
    Nucleus,
    Preference,
    RecurringCriticality,
    Shift,
    ShiftAssignment,
    WeeklyRest,
)

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages database connection and session factory."""

    def __init__(self, db_url: str = "sqlite:///shiftgen.db"):
        """
        Initialize database manager.

        Args:
            db_url: SQLAlchemy database URL (default: sqlite:///shiftgen.db)
        """
        self.engine = create_engine(db_url, echo=False)
        self.SessionLocal = sessionmaker(bind=self.engine)

    def create_tables(self):
        """Create all tables if they don't exist."""
        Base.metadata.create_all(self.engine)

    def drop_tables(self):
        """Drop all tables (use with caution!)."""
        Base.metadata.drop_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()


def _window(start, end) -> Optional[t.TimeWindow]:
    if start is None or end is None:
        return None
    return t.TimeWindow(start, end)


def to_domain_employee(row: Employee) -> t.Employee:
    return t.Employee(
        id=row.id,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        hours_model=t.HoursModel(row.hours_model),
        weekly_hours=row.weekly_hours,
        monthly_hours=row.monthly_hours,
        min_hours=row.min_hours,
        max_hours=row.max_hours,
        rest_type=t.RestType(row.rest_type),
        rest_quantity=row.rest_quantity,
        memberships=tuple(
            t.Membership(m.nucleus_id, m.valid_from, m.valid_to, bool(m.is_primary))
            for m in sorted(row.memberships, key=lambda m: (m.nucleus_id, m.id))
        ),
        active=bool(row.active),
    )


def to_domain_nucleus(row: Nucleus) -> t.Nucleus:
    return t.Nucleus(
        id=row.id,
        name=row.name,
        task=row.task or "",
        min_staff=row.min_staff,
        max_staff=row.max_staff,
        window=_window(row.start_time, row.end_time),
        weekday_windows=tuple(
            (w.weekday, t.TimeWindow(w.start_time, w.end_time))
            for w in sorted(row.windows, key=lambda w: w.weekday)
        ),
    )


class EmployeeRepository:
    """Repository for employee data access."""

    @staticmethod
    def get_all(session: Session) -> List[Employee]:
        """Get all employees."""
        return session.query(Employee).order_by(Employee.id).all()

    @staticmethod
    def bulk_create(session: Session, employees: List[Employee]) -> None:
        """Create multiple employees."""
        session.add_all(employees)
        session.commit()


class NucleusRepository:
    """Repository for nucleus data access."""

    @staticmethod
    def get_all(session: Session) -> List[Nucleus]:
        return session.query(Nucleus).order_by(Nucleus.id).all()

    @staticmethod
    def bulk_create(session: Session, nuclei: List[Nucleus]) -> None:
        session.add_all(nuclei)
        session.commit()


class ShiftRepository:
    """Repository for shift data access."""

    @staticmethod
    def get_by_week(session: Session, week_start: date) -> List[Shift]:
        """Get all shifts for the week starting on ``week_start``."""
        return (
            session.query(Shift)
            .filter(Shift.week_start == week_start)
            .order_by(Shift.date, Shift.start_time, Shift.nucleus_id)
            .all()
        )

    @staticmethod
    def get_between(session: Session, start: date, end: date) -> List[Shift]:
        """Shifts dated in ``[start, end)``."""
        return (
            session.query(Shift)
            .filter(Shift.date >= start, Shift.date < end)
            .order_by(Shift.date, Shift.start_time, Shift.nucleus_id)
            .all()
        )

    @staticmethod
    def bulk_create(session: Session, shifts: Iterable[t.Shift], week_start: date) -> int:
        """
        Persist generated shifts with their suggested employees.

        Concurrent calls for the same week are not deduplicated; callers
        serialize persistence per week.

        Returns:
            Number of shifts written
        """
        rows = []
        for shift in shifts:
            row = Shift(
                nucleus_id=shift.nucleus_id,
                week_start=week_start,
                date=shift.date,
                start_time=shift.window.start,
                end_time=shift.window.end,
                required=shift.required,
                confidence=shift.confidence,
                note=shift.note,
            )
            row.assignments = [ShiftAssignment(employee_id=s.employee_id) for s in shift.suggested]
            rows.append(row)
        session.add_all(rows)
        session.commit()
        return len(rows)

    @staticmethod
    def delete_by_week(session: Session, week_start: date) -> int:
        """Delete all shifts (and their assignments) of a week. Returns number of deleted shifts."""
        shifts = ShiftRepository.get_by_week(session, week_start)
        for shift in shifts:
            session.delete(shift)
        session.commit()
        return len(shifts)


class ShiftAssignmentRepository:
    """Repository for shift assignment data access."""

    @staticmethod
    def get_by_week(session: Session, week_start: date) -> List[ShiftAssignment]:
        return (
            session.query(ShiftAssignment)
            .join(Shift)
            .filter(Shift.week_start == week_start)
            .order_by(ShiftAssignment.id)
            .all()
        )

    @staticmethod
    def get_for_date(session: Session, day: date) -> List[ShiftAssignment]:
        return (
            session.query(ShiftAssignment)
            .join(Shift)
            .filter(Shift.date == day)
            .order_by(ShiftAssignment.id)
            .all()
        )

    @staticmethod
    def get_between(session: Session, start: date, end: date) -> List[ShiftAssignment]:
        return (
            session.query(ShiftAssignment)
            .join(Shift)
            .filter(Shift.date >= start, Shift.date < end)
            .order_by(ShiftAssignment.id)
            .all()
        )

    @staticmethod
    def to_existing(rows: Iterable[ShiftAssignment]) -> List[t.ExistingAssignment]:
        return [
            t.ExistingAssignment(
                shift_id=str(row.shift_id),
                employee_id=row.employee_id,
                date=row.shift.date,
                window=t.TimeWindow(row.shift.start_time, row.shift.end_time),
                nucleus_id=row.shift.nucleus_id,
            )
            for row in rows
        ]


class WeeklyRestRepository:
    """Repository for weekly rest data access."""

    @staticmethod
    def get_by_week(session: Session, week_start: date) -> List[WeeklyRest]:
        return (
            session.query(WeeklyRest)
            .filter(WeeklyRest.week_start == week_start)
            .order_by(WeeklyRest.employee_id, WeeklyRest.weekday)
            .all()
        )

    @staticmethod
    def upsert(session: Session, records: Iterable[Union[t.RestRecord, t.AssignedRest]]) -> int:
        """
        Insert or update rests keyed by (employee, week, weekday).

        Uses the dialect's ``ON CONFLICT`` / ``ON DUPLICATE KEY`` form, so a
        repeated or concurrent batch never produces a second row per key.

        Returns:
            Number of records written

        Raises:
            ShiftgenError: If the database dialect has no upsert support
        """
        rows = [
            {
                "employee_id": r.employee_id,
                "week_start": r.week_start,
                "weekday": r.weekday,
                "granularity": r.granularity.value,
                "source": r.source.value,
                "confidence": getattr(r, "confidence", None),
            }
            for r in records
        ]
        if not rows:
            return 0

        dialect = session.get_bind().dialect.name
        if dialect in ("sqlite", "postgresql"):
            if dialect == "sqlite":
                from sqlalchemy.dialects.sqlite import insert
            else:
                from sqlalchemy.dialects.postgresql import insert
            stmt = insert(WeeklyRest).values(rows)
            stmt = stmt.on_conflict_do_update(
                index_elements=["employee_id", "week_start", "weekday"],
                set_={
                    "granularity": stmt.excluded.granularity,
                    "source": stmt.excluded.source,
                    "confidence": stmt.excluded.confidence,
                },
            )
        elif dialect in ("mysql", "mariadb"):
            from sqlalchemy.dialects.mysql import insert

            stmt = insert(WeeklyRest).values(rows)
            stmt = stmt.on_duplicate_key_update(
                granularity=stmt.inserted.granularity,
                source=stmt.inserted.source,
                confidence=stmt.inserted.confidence,
            )
        else:
            raise ShiftgenError(f"rest upsert not supported on dialect {dialect!r}")

        session.execute(stmt)
        session.commit()
        logger.info("Upserted %d weekly rests", len(rows))
        return len(rows)

    @staticmethod
    def delete_stale_engine_rests(
        session: Session,
        week_start: date,
        keep: Iterable[Union[t.RestRecord, t.AssignedRest]],
        employee_ids: Optional[Iterable[str]] = None,
    ) -> int:
        """
        Remove engine-placed rests of a week that a new plan no longer contains.

        Manual rests are never touched. ``employee_ids`` limits the cleanup to
        the employees that were re-planned.
        """
        keep_keys = {(r.employee_id, r.weekday) for r in keep}
        query = session.query(WeeklyRest).filter(
            WeeklyRest.week_start == week_start,
            WeeklyRest.source == t.RestSource.ENGINE.value,
        )
        if employee_ids is not None:
            query = query.filter(WeeklyRest.employee_id.in_(list(employee_ids)))
        stale = [row for row in query.all() if (row.employee_id, row.weekday) not in keep_keys]
        for row in stale:
            session.delete(row)
        session.commit()
        return len(stale)

    @staticmethod
    def to_domain(rows: Iterable[WeeklyRest]) -> List[t.AssignedRest]:
        return [
            t.AssignedRest(
                employee_id=row.employee_id,
                week_start=row.week_start,
                weekday=row.weekday,
                granularity=t.RestGranularity(row.granularity),
                source=t.RestSource(row.source),
            )
            for row in rows
        ]


class SnapshotRepository:
    """Assembles the immutable engine inputs for one week."""

    @staticmethod
    def _history_frames(session: Session, week_start: date, weeks: int):
        start = week_start - timedelta(weeks=weeks)
        shifts = ShiftRepository.get_between(session, start, week_start)
        shift_frame = pd.DataFrame(
            [(s.nucleus_id, s.date, s.start_time, s.end_time, s.required) for s in shifts],
            columns=SHIFT_COLUMNS,
        )
        assignments = ShiftAssignmentRepository.get_between(session, start, week_start)
        assignment_frame = pd.DataFrame(
            [(a.employee_id, a.shift.nucleus_id, a.shift.date) for a in assignments],
            columns=ASSIGNMENT_COLUMNS,
        )
        return shift_frame, assignment_frame

    @staticmethod
    def _leaves(session: Session, week_start: date, week_end: date) -> tuple:
        rows = (
            session.query(LeaveRequest)
            .filter(
                LeaveRequest.status == "approved",
                LeaveRequest.start_date <= week_end,
                LeaveRequest.end_date >= week_start,
            )
            .order_by(LeaveRequest.employee_id, LeaveRequest.start_date)
            .all()
        )
        return tuple(
            t.ApprovedLeave(r.employee_id, r.start_date, r.end_date, t.LeaveCategory(r.category))
            for r in rows
        )

    @staticmethod
    def _criticalities(session: Session) -> tuple:
        rows = (
            session.query(RecurringCriticality)
            .filter(RecurringCriticality.active.is_(True))
            .order_by(RecurringCriticality.id)
            .all()
        )
        return tuple(
            t.RecurringCriticality(
                id=r.id,
                weekday=r.weekday,
                staff_extra=r.staff_extra,
                multiplier=r.multiplier,
                window=_window(r.start_time, r.end_time),
                category=r.category or "",
                name=r.name or "",
                nucleus_id=r.nucleus_id,
            )
            for r in rows
        )

    @staticmethod
    def _periods(session: Session, week_start: date, week_end: date) -> tuple:
        rows = (
            session.query(CriticalPeriod)
            .filter(CriticalPeriod.start_date <= week_end, CriticalPeriod.end_date >= week_start)
            .order_by(CriticalPeriod.id)
            .all()
        )
        return tuple(
            t.CriticalPeriod(
                id=r.id,
                start_date=r.start_date,
                end_date=r.end_date,
                min_staff=r.min_staff,
                multiplier=r.multiplier,
                window=_window(r.start_time, r.end_time),
                name=r.name or "",
                blocks_preferences=bool(r.blocks_preferences),
                nucleus_id=r.nucleus_id,
            )
            for r in rows
        )

    @staticmethod
    def load_generation_context(
        session: Session,
        week_start: date,
        cfg: Optional[EngineConfig] = None,
    ) -> t.GenerationContext:
        """
        Read everything the assignment engine needs for a week.

        Args:
            session: Database session
            week_start: Monday of the week
            cfg: Engine configuration (``history_weeks``)

        Returns:
            Immutable GenerationContext
        """
        cfg = cfg or EngineConfig()
        week_end = week_start + timedelta(days=6)

        preferences = (
            session.query(Preference)
            .filter(Preference.date >= week_start, Preference.date <= week_end)
            .order_by(Preference.employee_id, Preference.date, Preference.id)
            .all()
        )
        shift_frame, assignment_frame = SnapshotRepository._history_frames(session, week_start, cfg.history_weeks)

        context = t.GenerationContext(
            week_start=week_start,
            week_end=week_end,
            employees=tuple(to_domain_employee(e) for e in EmployeeRepository.get_all(session)),
            nuclei=tuple(to_domain_nucleus(n) for n in NucleusRepository.get_all(session)),
            criticalities=SnapshotRepository._criticalities(session),
            critical_periods=SnapshotRepository._periods(session, week_start, week_end),
            rests=tuple(WeeklyRestRepository.to_domain(WeeklyRestRepository.get_by_week(session, week_start))),
            preferences=tuple(
                t.Preference(p.employee_id, p.date, t.PreferencePolarity(p.polarity), _window(p.start_time, p.end_time))
                for p in preferences
            ),
            leaves=SnapshotRepository._leaves(session, week_start, week_end),
            patterns=compute_historical_patterns(shift_frame, week_start, cfg.history_weeks),
            existing_assignments=tuple(
                ShiftAssignmentRepository.to_existing(ShiftAssignmentRepository.get_by_week(session, week_start))
            ),
            worked_before=compute_worked_before(assignment_frame, week_start, cfg.history_weeks),
        )
        logger.info(
            "Loaded week %s: %d employees, %d nuclei, %d history patterns",
            week_start, len(context.employees), len(context.nuclei), len(context.patterns),
        )
        return context

    @staticmethod
    def load_rest_context(session: Session, week_start: date) -> t.RestAssignmentContext:
        """Read everything the rest engine needs for a week."""
        week_end = week_start + timedelta(days=6)
        return t.RestAssignmentContext(
            week_start=week_start,
            employees=tuple(to_domain_employee(e) for e in EmployeeRepository.get_all(session)),
            nuclei=tuple(to_domain_nucleus(n) for n in NucleusRepository.get_all(session)),
            criticalities=SnapshotRepository._criticalities(session),
            critical_periods=SnapshotRepository._periods(session, week_start, week_end),
            leaves=SnapshotRepository._leaves(session, week_start, week_end),
            existing_rests=tuple(WeeklyRestRepository.to_domain(WeeklyRestRepository.get_by_week(session, week_start))),
        )
