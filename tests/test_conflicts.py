"""Tests for the conflict validator."""

from datetime import date

from shiftgen.domain.types import ExistingAssignment, Severity, TimeWindow
from shiftgen.services.conflicts import MAX_SHIFTS, OVERLAP, REST_TIME, ConflictValidator

DAY = date(2025, 11, 24)


def _shift(shift_id, employee_id, start, end, day=DAY):
    return ExistingAssignment(shift_id, employee_id, day, TimeWindow.parse(start, end))


def test_free_employee_is_valid():
    validator = ConflictValidator([_shift("s1", "anna", "09:00", "13:00")])
    result = validator.validate_assignment("bruno", DAY, TimeWindow.parse("09:00", "13:00"))
    assert result.valid is True
    assert result.severity is None


def test_overnight_overlap_is_an_error():
    """A 05:00-09:00 shift collides with the same day's 22:00-06:00 shift."""
    validator = ConflictValidator([_shift("night", "anna", "22:00", "06:00")])
    result = validator.validate_assignment("anna", DAY, TimeWindow.parse("05:00", "09:00"))
    assert result.valid is False
    assert result.severity == Severity.ERROR


def test_max_shifts_per_day():
    validator = ConflictValidator(
        [_shift("a", "anna", "06:00", "08:00"), _shift("b", "anna", "18:00", "20:00")],
        max_shifts_per_day=2,
        min_rest_hours=0,
    )
    result = validator.validate_assignment("anna", DAY, TimeWindow.parse("12:00", "13:00"))
    assert result.valid is False
    assert result.severity == Severity.ERROR
    assert "max 2" in result.reason


def test_excluded_shift_is_ignored():
    """Editing a shift does not conflict with itself."""
    validator = ConflictValidator([_shift("a", "anna", "09:00", "17:00")], max_shifts_per_day=1)
    result = validator.validate_assignment("anna", DAY, TimeWindow.parse("10:00", "18:00"), exclude_shift_id="a")
    assert result.valid is True


def test_short_rest_is_only_a_warning():
    validator = ConflictValidator([_shift("a", "anna", "06:00", "10:00")], min_rest_hours=8)
    result = validator.validate_assignment("anna", DAY, TimeWindow.parse("12:00", "16:00"))
    assert result.valid is False
    assert result.severity == Severity.WARNING
    assert "rest" in result.reason


def test_register_makes_shift_visible():
    validator = ConflictValidator()
    validator.register(_shift("a", "anna", "09:00", "17:00"))
    result = validator.validate_assignment("anna", DAY, TimeWindow.parse("16:00", "20:00"))
    assert result.valid is False
    assert len(validator.shifts_for("anna", DAY)) == 1


def test_other_dates_do_not_interfere():
    validator = ConflictValidator([_shift("a", "anna", "09:00", "17:00", day=date(2025, 11, 25))])
    assert validator.validate_assignment("anna", DAY, TimeWindow.parse("09:00", "17:00")).valid is True


def test_get_conflicts_for_date_reports_every_kind():
    validator = ConflictValidator(
        [
            _shift("a1", "anna", "22:00", "06:00"),
            _shift("a2", "anna", "05:00", "09:00"),
            _shift("a3", "anna", "13:00", "15:00"),
            _shift("b1", "bruno", "06:00", "10:00"),
            _shift("b2", "bruno", "12:00", "14:00"),
            _shift("c1", "carla", "09:00", "17:00"),
        ],
        max_shifts_per_day=2,
        min_rest_hours=8,
    )
    conflicts = validator.get_conflicts_for_date(DAY)
    kinds = {(c.employee_id, c.kind) for c in conflicts}

    assert ("anna", MAX_SHIFTS) in kinds
    assert ("anna", OVERLAP) in kinds
    assert ("bruno", REST_TIME) in kinds
    assert not any(c.employee_id == "carla" for c in conflicts)
    assert all(c.severity == Severity.WARNING for c in conflicts if c.kind == REST_TIME)


def test_get_conflicts_for_empty_date():
    assert ConflictValidator().get_conflicts_for_date(DAY) == []


def test_rest_gap_is_measured_between_same_day_shifts():
    """Morning and evening shifts ten hours apart leave enough rest."""
    validator = ConflictValidator([_shift("a", "anna", "06:00", "10:00")], min_rest_hours=8)
    assert validator.validate_assignment("anna", DAY, TimeWindow.parse("20:00", "23:00")).valid is True


def test_overnight_shift_gap_runs_from_the_earlier_shift():
    validator = ConflictValidator([_shift("night", "anna", "22:00", "06:00")], min_rest_hours=8)
    assert validator.validate_assignment("anna", DAY, TimeWindow.parse("07:00", "10:00")).valid is True
    assert validator.get_conflicts_for_date(DAY) == []


def test_rest_conflict_reports_the_real_gap():
    validator = ConflictValidator(
        [_shift("a", "anna", "06:00", "10:00"), _shift("b", "anna", "15:00", "18:00")],
        min_rest_hours=8,
    )
    (conflict,) = validator.get_conflicts_for_date(DAY)
    assert conflict.kind == REST_TIME
    assert "Only 5.0h" in conflict.message
