"""SQLAlchemy models for the shift planning store."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Employee(Base):
    """Collaboratore with contract hours and rest configuration."""

    __tablename__ = "employees"

    id = Column(String(36), primary_key=True)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")

    # Contract: fixed_weekly, monthly, flexible
    hours_model = Column(String(20), nullable=False, default="fixed_weekly")
    weekly_hours = Column(Float, nullable=True)
    monthly_hours = Column(Float, nullable=True)
    min_hours = Column(Float, nullable=True)
    max_hours = Column(Float, nullable=True)

    # Rest: full_days, half_days, hours
    rest_type = Column(String(20), nullable=False, default="full_days")
    rest_quantity = Column(Float, nullable=True)

    active = Column(Boolean, nullable=False, default=True)

    memberships = relationship("Membership", back_populates="employee", cascade="all, delete-orphan")
    rests = relationship("WeeklyRest", back_populates="employee", cascade="all, delete-orphan")
    shift_assignments = relationship("ShiftAssignment", back_populates="employee")

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, name='{self.first_name} {self.last_name}', hours_model='{self.hours_model}')>"


class Nucleus(Base):
    """Nucleo (department) with staffing bounds and optional operating hours."""

    __tablename__ = "nuclei"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    task = Column(String(200), nullable=True)
    min_staff = Column(Integer, nullable=False, default=1)
    max_staff = Column(Integer, nullable=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    memberships = relationship("Membership", back_populates="nucleus", cascade="all, delete-orphan")
    windows = relationship("NucleusWindow", back_populates="nucleus", cascade="all, delete-orphan")
    shifts = relationship("Shift", back_populates="nucleus")

    def __repr__(self) -> str:
        return f"<Nucleus(id={self.id}, name='{self.name}', min={self.min_staff}, max={self.max_staff})>"


class NucleusWindow(Base):
    """Per-weekday operating hours overriding the nucleus default."""

    __tablename__ = "nucleus_windows"
    __table_args__ = (UniqueConstraint("nucleus_id", "weekday", name="uq_nucleus_window_weekday"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    nucleus_id = Column(String(36), ForeignKey("nuclei.id"), nullable=False)
    weekday = Column(Integer, nullable=False)  # 1 = Monday ... 7 = Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    nucleus = relationship("Nucleus", back_populates="windows")


class Membership(Base):
    """Employee membership of a nucleus; ``valid_to`` NULL means open-ended."""

    __tablename__ = "memberships"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(String(36), ForeignKey("employees.id"), nullable=False)
    nucleus_id = Column(String(36), ForeignKey("nuclei.id"), nullable=False)
    valid_from = Column(Date, nullable=True)
    valid_to = Column(Date, nullable=True)
    is_primary = Column(Boolean, nullable=False, default=False)

    employee = relationship("Employee", back_populates="memberships")
    nucleus = relationship("Nucleus", back_populates="memberships")

    def __repr__(self) -> str:
        return f"<Membership(emp={self.employee_id}, nucleus={self.nucleus_id}, {self.valid_from}..{self.valid_to})>"


class RecurringCriticality(Base):
    """Criticita continuativa: weekly demand modifier."""

    __tablename__ = "recurring_criticalities"

    id = Column(String(36), primary_key=True)
    nucleus_id = Column(String(36), ForeignKey("nuclei.id"), nullable=True)  # NULL = every nucleus
    weekday = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    category = Column(String(50), nullable=True)  # e.g. PICCO_WEEKEND
    name = Column(String(100), nullable=True)
    staff_extra = Column(Integer, nullable=False, default=0)
    multiplier = Column(Float, nullable=False, default=1.0)
    active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<RecurringCriticality(id={self.id}, weekday={self.weekday}, +{self.staff_extra}, x{self.multiplier})>"


class CriticalPeriod(Base):
    """Periodo critico: date-ranged demand modifier."""

    __tablename__ = "critical_periods"

    id = Column(String(36), primary_key=True)
    nucleus_id = Column(String(36), ForeignKey("nuclei.id"), nullable=True)
    name = Column(String(100), nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    min_staff = Column(Integer, nullable=True)
    multiplier = Column(Float, nullable=False, default=1.0)
    blocks_preferences = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<CriticalPeriod(id={self.id}, {self.start_date}..{self.end_date}, min={self.min_staff})>"


class WeeklyRest(Base):
    """Riposo settimanale; at most one row per (employee, week, weekday)."""

    __tablename__ = "weekly_rests"
    __table_args__ = (
        UniqueConstraint("employee_id", "week_start", "weekday", name="uq_weekly_rest_employee_week_day"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(String(36), ForeignKey("employees.id"), nullable=False)
    week_start = Column(Date, nullable=False)  # Monday
    weekday = Column(Integer, nullable=False)
    granularity = Column(String(20), nullable=False, default="full")  # full, half_morning, half_afternoon
    source = Column(String(20), nullable=False, default="manual")  # manual, engine
    confidence = Column(Float, nullable=True)

    employee = relationship("Employee", back_populates="rests")

    def __repr__(self) -> str:
        return f"<WeeklyRest(emp={self.employee_id}, week={self.week_start}, day={self.weekday}, {self.granularity})>"


class Preference(Base):
    """Employee date preference: preferred, unavailable or available_only."""

    __tablename__ = "preferences"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(String(36), ForeignKey("employees.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    polarity = Column(String(20), nullable=False)


class LeaveRequest(Base):
    """Vacation or permit request; only approved rows block assignment."""

    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(String(36), ForeignKey("employees.id"), nullable=False)
    category = Column(String(20), nullable=False, default="vacation")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="approved")  # pending, approved, rejected

    def __repr__(self) -> str:
        return f"<LeaveRequest(emp={self.employee_id}, {self.category}, {self.start_date}..{self.end_date}, {self.status})>"


class Shift(Base):
    """Persisted turno for one nucleus on one date."""

    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nucleus_id = Column(String(36), ForeignKey("nuclei.id"), nullable=False)
    week_start = Column(Date, nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    required = Column(Integer, nullable=False, default=1)
    confidence = Column(Float, nullable=True)
    note = Column(Text, nullable=True)

    nucleus = relationship("Nucleus", back_populates="shifts")
    assignments = relationship("ShiftAssignment", back_populates="shift", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Shift(id={self.id}, nucleus={self.nucleus_id}, date={self.date}, {self.start_time}-{self.end_time})>"


class ShiftAssignment(Base):
    """Employee placed on a shift."""

    __tablename__ = "shift_assignments"
    __table_args__ = (UniqueConstraint("shift_id", "employee_id", name="uq_shift_assignment"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    shift_id = Column(Integer, ForeignKey("shifts.id"), nullable=False)
    employee_id = Column(String(36), ForeignKey("employees.id"), nullable=False)

    shift = relationship("Shift", back_populates="assignments")
    employee = relationship("Employee", back_populates="shift_assignments")

    def __repr__(self) -> str:
        return f"<ShiftAssignment(shift={self.shift_id}, emp={self.employee_id})>"
