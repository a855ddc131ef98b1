"""Pytest configuration and shared fixtures."""

from datetime import date, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from shiftgen.config import EngineConfig
from shiftgen.domain import models as m
from shiftgen.domain.db import get_session, init_database
from shiftgen.domain.models import Base
from shiftgen.domain.repositories import EmployeeRepository, NucleusRepository
from shiftgen.domain.types import (
    Employee,
    GenerationContext,
    Membership,
    Nucleus,
    RestAssignmentContext,
    TimeWindow,
)

# Monday of ISO week 2025-W48, no public holidays
WEEK = date(2025, 11, 24)


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (deselect with '-m \"not integration\"')"
    )


@pytest.fixture
def week_start():
    return WEEK


@pytest.fixture
def cfg():
    return EngineConfig()


@pytest.fixture
def make_employee():
    """Factory for roster members; memberships are open-ended, first one primary."""

    def _make(employee_id, nuclei=("kitchen",), weekly_hours=40.0, **kwargs):
        kwargs.setdefault("memberships", tuple(
            Membership(nucleus_id=n, valid_from=date(2024, 1, 1), primary=(i == 0))
            for i, n in enumerate(nuclei)
        ))
        kwargs.setdefault("first_name", employee_id.capitalize())
        return Employee(id=employee_id, weekly_hours=weekly_hours, **kwargs)

    return _make


@pytest.fixture
def make_nucleus():
    def _make(nucleus_id, min_staff=1, max_staff=None, window=("09:00", "17:00"), **kwargs):
        kwargs.setdefault("name", nucleus_id.capitalize())
        return Nucleus(
            id=nucleus_id,
            min_staff=min_staff,
            max_staff=max_staff,
            window=TimeWindow.parse(*window) if window else None,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_context():
    def _make(employees, nuclei, **kwargs):
        kwargs.setdefault("week_start", WEEK)
        return GenerationContext(employees=tuple(employees), nuclei=tuple(nuclei), **kwargs)

    return _make


@pytest.fixture
def make_rest_context():
    def _make(employees, nuclei=(), **kwargs):
        kwargs.setdefault("week_start", WEEK)
        return RestAssignmentContext(employees=tuple(employees), nuclei=tuple(nuclei), **kwargs)

    return _make


@pytest.fixture
def db_session():
    """Create in-memory database session for testing."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


def seed_store(session):
    """Two nuclei, four employees and two weeks of history before ``WEEK``."""
    NucleusRepository.bulk_create(session, [
        m.Nucleus(id="kitchen", name="Kitchen", min_staff=2, start_time=time(9), end_time=time(17)),
        m.Nucleus(
            id="bar", name="Bar", min_staff=1,
            windows=[m.NucleusWindow(weekday=6, start_time=time(18), end_time=time(2))],
        ),
    ])
    EmployeeRepository.bulk_create(session, [
        m.Employee(
            id="anna", first_name="Anna", last_name="Rossi", weekly_hours=40,
            memberships=[m.Membership(nucleus_id="kitchen", valid_from=date(2024, 1, 1), is_primary=True)],
        ),
        m.Employee(
            id="bruno", first_name="Bruno", last_name="Bianchi", weekly_hours=30, rest_quantity=1,
            memberships=[
                m.Membership(nucleus_id="kitchen", valid_from=date(2024, 1, 1), is_primary=True),
                m.Membership(nucleus_id="bar", valid_from=date(2024, 1, 1)),
            ],
        ),
        m.Employee(
            id="carla", first_name="Carla", last_name="Verdi", weekly_hours=24,
            memberships=[m.Membership(nucleus_id="bar", valid_from=date(2024, 1, 1), is_primary=True)],
        ),
        m.Employee(
            id="dario", first_name="Dario", last_name="Neri", weekly_hours=40, active=False,
            memberships=[m.Membership(nucleus_id="kitchen", valid_from=date(2024, 1, 1), is_primary=True)],
        ),
    ])
    session.add_all([
        m.RecurringCriticality(id="c1", nucleus_id="kitchen", weekday=6, category="PICCO_WEEKEND", staff_extra=1),
        m.RecurringCriticality(id="c2", weekday=2, staff_extra=5, active=False),
        m.CriticalPeriod(id="p1", name="Black Friday", start_date=date(2025, 11, 28), end_date=date(2025, 11, 29), min_staff=3),
        m.CriticalPeriod(id="p2", start_date=date(2026, 1, 1), end_date=date(2026, 1, 6), min_staff=4),
        m.LeaveRequest(employee_id="anna", start_date=date(2025, 11, 26), end_date=date(2025, 11, 26)),
        m.LeaveRequest(employee_id="bruno", start_date=date(2025, 11, 27), end_date=date(2025, 11, 27), status="pending"),
        m.Preference(employee_id="carla", date=date(2025, 11, 25), polarity="unavailable"),
        m.WeeklyRest(employee_id="carla", week_start=WEEK, weekday=7, granularity="full", source="manual"),
    ])
    for monday, staff in ((date(2025, 11, 17), ["anna", "bruno"]), (date(2025, 11, 10), ["anna"])):
        session.add(m.Shift(
            nucleus_id="kitchen", week_start=monday, date=monday,
            start_time=time(9), end_time=time(17), required=2,
            assignments=[m.ShiftAssignment(employee_id=e) for e in staff],
        ))
    session.commit()


@pytest.fixture
def seeded_session(db_session):
    seed_store(db_session)
    return db_session


@pytest.fixture
def seeded_db_url(tmp_path):
    """File-backed store seeded like ``seeded_session``, for CLI runs."""
    url = f"sqlite:///{tmp_path / 'shiftgen.db'}"
    init_database(url)
    session = get_session(url)
    try:
        seed_store(session)
    finally:
        session.close()
    return url
