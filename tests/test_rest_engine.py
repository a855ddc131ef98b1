"""Tests for the weekly rest assignment engine."""

from datetime import date, timedelta

import pytest

from shiftgen.domain.types import (
    ApprovedLeave,
    AssignedRest,
    CriticalPeriod,
    RecurringCriticality,
    RestGranularity,
    RestRequest,
    RestSource,
    RestType,
    Severity,
    WarningCategory,
)
from shiftgen.engine.rests import DayCost, RestAssignmentEngine, merge_rest_records, with_rests
from shiftgen.errors import InputValidationError


def _weekdays(result):
    return [r.weekday for r in result.rests]


def test_quota_met_on_cheapest_remaining_days(make_employee, make_rest_context, week_start):
    """Two full days with Monday on leave and Tuesday/Wednesday already resting."""
    anna = make_employee("anna")
    context = make_rest_context(
        [anna],
        leaves=(ApprovedLeave("anna", week_start, week_start),),
        existing_rests=(AssignedRest("anna", week_start, 2), AssignedRest("anna", week_start, 3)),
        criticalities=(
            RecurringCriticality(id="thu", weekday=4, multiplier=1.5),
            RecurringCriticality(id="sat", weekday=6, staff_extra=2),
        ),
    )
    request = RestRequest("anna", RestType.FULL_DAYS, 2, week_start)

    result = RestAssignmentEngine().assign_for_employee(request, context)

    assert result.success is True
    assert _weekdays(result) == [5, 7]
    assert all(r.granularity == RestGranularity.FULL for r in result.rests)
    assert all(r.source == RestSource.ENGINE for r in result.rests)
    assert result.rests[0].date == week_start + timedelta(days=4)
    assert "Friday" in result.reasoning and "Sunday" in result.reasoning


def test_no_rest_inside_vacation(make_employee, make_rest_context):
    week = date(2024, 12, 23)
    leave = ApprovedLeave("anna", date(2024, 12, 20), date(2024, 12, 27))
    context = make_rest_context([make_employee("anna")], week_start=week, leaves=(leave,))

    result = RestAssignmentEngine().assign_for_employee(RestRequest("anna", RestType.FULL_DAYS, 2, week), context)

    assert result.success is True
    assert not any(leave.covers(r.date) for r in result.rests)
    assert _weekdays(result) == [6, 7]


def test_critical_period_raises_day_cost(make_employee, make_rest_context, week_start):
    period = CriticalPeriod(id="p1", start_date=week_start, end_date=week_start + timedelta(days=4), min_staff=3)
    context = make_rest_context([make_employee("anna")], critical_periods=(period,))

    result = RestAssignmentEngine().assign_for_employee(RestRequest("anna", RestType.FULL_DAYS, 2, week_start), context)

    assert _weekdays(result) == [6, 7]


def test_spreads_rest_away_from_chosen_days(make_employee, make_rest_context, week_start):
    """Equal weekday costs: the second day goes as far as possible from the first."""
    context = make_rest_context([make_employee("anna")], criticalities=(
        RecurringCriticality(id="sat", weekday=6, staff_extra=1),
        RecurringCriticality(id="sun", weekday=7, staff_extra=1),
    ))

    result = RestAssignmentEngine().assign_for_employee(RestRequest("anna", RestType.FULL_DAYS, 2, week_start), context)

    assert _weekdays(result) == [1, 5]


def test_half_days(make_employee, make_rest_context, week_start):
    context = make_rest_context([make_employee("anna")])
    result = RestAssignmentEngine().assign_for_employee(RestRequest("anna", RestType.HALF_DAYS, 1, week_start), context)

    assert len(result.rests) == 1
    assert result.rests[0].weekday == 6
    assert result.rests[0].granularity == RestGranularity.HALF_MORNING


def test_two_halves_of_one_day_become_full(make_employee, make_rest_context, week_start):
    leave = ApprovedLeave("anna", week_start + timedelta(days=1), week_start + timedelta(days=6))
    context = make_rest_context([make_employee("anna")], leaves=(leave,))

    result = RestAssignmentEngine().assign_for_employee(RestRequest("anna", RestType.HALF_DAYS, 2, week_start), context)

    assert result.success is True
    assert len(result.rests) == 1
    assert result.rests[0].weekday == 1
    assert result.rests[0].granularity == RestGranularity.FULL


def test_day_with_manual_half_is_not_extended(make_employee, make_rest_context, week_start):
    """The other half would overwrite the manual row, so the day is unavailable."""
    held = AssignedRest("anna", week_start, 7, RestGranularity.HALF_MORNING, RestSource.MANUAL)
    context = make_rest_context([make_employee("anna")], existing_rests=(held,))
    request = RestRequest("anna", RestType.HALF_DAYS, 1, week_start, specific_days=(7,))

    result = RestAssignmentEngine().assign_for_employee(request, context)

    assert result.success is False
    assert result.rests == ()
    assert "Sunday already holds a manual half-day rest" in result.reasoning


def test_batch_rerun_keeps_manual_half_day(make_employee, make_rest_context, week_start):
    """Every other day is busy, yet the manual Tuesday morning is left alone."""
    manual = AssignedRest("anna", week_start, 2, RestGranularity.HALF_MORNING, RestSource.MANUAL)
    busy = tuple(RecurringCriticality(id=f"c{wd}", weekday=wd, staff_extra=1) for wd in (1, 3, 4, 5, 6, 7))
    context = make_rest_context(
        [make_employee("anna", rest_type=RestType.HALF_DAYS, rest_quantity=1)],
        criticalities=busy,
        existing_rests=(manual,),
    )
    engine = RestAssignmentEngine()

    first = engine.assign_batch(context)
    second = engine.assign_batch(with_rests(context, first.rests))

    assert [(r.weekday, r.granularity) for r in first.rests] == [(7, RestGranularity.HALF_MORNING)]
    assert second.rests == first.rests
    stored = merge_rest_records(merge_rest_records(context.existing_rests, first.rests), second.rests)
    assert manual in stored
    assert len(stored) == 2


@pytest.mark.parametrize("hours, units", [(8, 2), (6, 2), (4, 1), (0, 0)])
def test_hours_become_half_day_units(hours, units, make_employee, make_rest_context, week_start):
    context = make_rest_context([make_employee("anna")])
    result = RestAssignmentEngine().assign_for_employee(RestRequest("anna", RestType.HOURS, hours, week_start), context)

    assert result.success is True
    assert len(result.rests) == units


def test_zero_quantity_is_a_successful_noop(make_employee, make_rest_context, week_start):
    context = make_rest_context([make_employee("anna")])
    result = RestAssignmentEngine().assign_for_employee(RestRequest("anna", RestType.FULL_DAYS, 0, week_start), context)

    assert result.success is True
    assert result.rests == ()
    assert result.reasoning.startswith("No rest requested")


def test_specific_days_bypass_scoring(make_employee, make_rest_context, week_start):
    crit = RecurringCriticality(id="tue", weekday=2, staff_extra=3)
    context = make_rest_context([make_employee("anna")], criticalities=(crit,))
    request = RestRequest("anna", RestType.FULL_DAYS, 0, week_start, specific_days=(4, 2))

    result = RestAssignmentEngine().assign_for_employee(request, context)

    assert result.success is True
    assert _weekdays(result) == [2, 4]
    # Tuesday is expensive, so confidence drops
    assert result.rests[0].confidence < result.rests[1].confidence


def test_specific_days_still_respect_leave(make_employee, make_rest_context, week_start):
    context = make_rest_context([make_employee("anna")], leaves=(ApprovedLeave("anna", week_start, week_start),))
    request = RestRequest("anna", RestType.FULL_DAYS, 2, week_start, specific_days=(1, 2))

    result = RestAssignmentEngine().assign_for_employee(request, context)

    assert result.success is False
    assert _weekdays(result) == [2]
    assert "Monday on approved leave" in result.reasoning


def test_unmet_quota_returns_reasoning(make_employee, make_rest_context, week_start):
    leave = ApprovedLeave("anna", week_start, week_start + timedelta(days=4))
    context = make_rest_context([make_employee("anna")], leaves=(leave,))

    result = RestAssignmentEngine().assign_for_employee(RestRequest("anna", RestType.FULL_DAYS, 3, week_start), context)

    assert result.success is False
    assert _weekdays(result) == [6, 7]
    assert "Assigned only 2 of 3 full days" in result.reasoning
    assert "Monday on approved leave" in result.reasoning
    assert "Only 2 of 3 rest units assigned" in result.warnings


def test_nothing_placeable(make_employee, make_rest_context, week_start):
    leave = ApprovedLeave("anna", week_start, week_start + timedelta(days=6))
    context = make_rest_context([make_employee("anna")], leaves=(leave,))

    result = RestAssignmentEngine().assign_for_employee(RestRequest("anna", RestType.FULL_DAYS, 2, week_start), context)

    assert result.success is False
    assert result.rests == ()
    assert result.reasoning.startswith("Could not assign any of 2 full days")


def test_coverage_risk_is_costed_and_warned(make_employee, make_nucleus, make_rest_context, week_start):
    kitchen = make_nucleus("kitchen", min_staff=2)
    context = make_rest_context([make_employee("anna"), make_employee("bruno")], nuclei=(kitchen,))

    result = RestAssignmentEngine().assign_for_employee(RestRequest("anna", RestType.FULL_DAYS, 1, week_start), context)

    assert result.success is True
    assert len(result.warnings) == 1
    assert "below its minimum staff" in result.warnings[0]
    assert result.rests[0].confidence == pytest.approx(0.55)


def test_own_engine_rests_are_replanned(make_employee, make_rest_context, week_start):
    previous = AssignedRest("anna", week_start, 4, source=RestSource.ENGINE)
    manual = AssignedRest("anna", week_start, 5, source=RestSource.MANUAL)
    context = make_rest_context([make_employee("anna")], existing_rests=(previous, manual))
    engine = RestAssignmentEngine()

    thursday = engine.assign_for_employee(RestRequest("anna", RestType.FULL_DAYS, 1, week_start, (4,)), context)
    friday = engine.assign_for_employee(RestRequest("anna", RestType.FULL_DAYS, 1, week_start, (5,)), context)

    assert thursday.success is True
    assert friday.success is False


def test_day_cost_confidence_is_clamped():
    assert DayCost(1, 0.0).confidence == 1.0
    assert DayCost(6, -5.0).confidence == 1.0
    assert DayCost(2, 30.0).confidence == pytest.approx(0.7)
    assert DayCost(3, 150.0).confidence == 0.0


def test_request_validation(make_employee, make_rest_context, week_start):
    context = make_rest_context([make_employee("anna")])
    engine = RestAssignmentEngine()

    with pytest.raises(InputValidationError):
        engine.assign_for_employee(RestRequest("ghost", RestType.FULL_DAYS, 1, week_start), context)
    with pytest.raises(InputValidationError):
        engine.assign_for_employee(RestRequest("anna", RestType.FULL_DAYS, 1, week_start + timedelta(days=7)), context)
    with pytest.raises(InputValidationError):
        engine.assign_for_employee(RestRequest("anna", RestType.FULL_DAYS, 1, week_start, (8,)), context)


@pytest.fixture
def kitchen_team(make_employee, make_nucleus, make_rest_context):
    employees = [make_employee("anna"), make_employee("bruno"), make_employee("carla")]
    return make_rest_context(employees, nuclei=(make_nucleus("kitchen", min_staff=1),))


def test_batch_staggers_colleagues(kitchen_team):
    result = RestAssignmentEngine().assign_batch(kitchen_team)

    assert result.success_count == 3
    days = {}
    for record in result.rests:
        days.setdefault(record.employee_id, set()).add(record.weekday)
    assert days == {"anna": {6, 7}, "bruno": {1, 5}, "carla": {2, 4}}


def test_batch_is_idempotent(kitchen_team):
    engine = RestAssignmentEngine()
    first = engine.assign_batch(kitchen_team)
    second = engine.assign_batch(with_rests(kitchen_team, first.rests))

    assert second.rests == first.rests
    once = merge_rest_records(kitchen_team.existing_rests, first.rests)
    twice = merge_rest_records(once, second.rests)
    assert once == twice
    assert len(twice) == 6


def test_batch_keeps_manual_rests(make_employee, make_rest_context, week_start):
    manual = AssignedRest("anna", week_start, 3, source=RestSource.MANUAL)
    context = make_rest_context([make_employee("anna")], existing_rests=(manual,))

    result = RestAssignmentEngine().assign_batch(context)

    assert 3 not in {r.weekday for r in result.rests}
    assert len(result.rests) == 2


def test_batch_skips_unavailable_employees(make_employee, make_rest_context, week_start):
    away = ApprovedLeave("bruno", week_start - timedelta(days=3), week_start + timedelta(days=10))
    context = make_rest_context(
        [make_employee("anna"), make_employee("bruno"), make_employee("carla", active=False)],
        leaves=(away,),
    )

    result = RestAssignmentEngine().assign_batch(context)

    assert result.skipped == ("bruno",)
    assert [r.employee_id for r in result.results] == ["anna"]
    skipped = [w for w in result.warnings if w.category == WarningCategory.REST_SKIPPED]
    assert len(skipped) == 1
    assert skipped[0].severity == Severity.INFO


def test_batch_uses_each_employee_rest_configuration(make_employee, make_rest_context, week_start):
    context = make_rest_context([
        make_employee("anna", rest_type=RestType.HALF_DAYS, rest_quantity=1),
        make_employee("bruno", rest_quantity=3),
        make_employee("carla"),
    ])

    result = RestAssignmentEngine().assign_batch(context)
    per_employee = {r.employee_id: r for r in result.results}

    assert len(per_employee["anna"].rests) == 1
    assert per_employee["anna"].rests[0].granularity == RestGranularity.HALF_MORNING
    assert len(per_employee["bruno"].rests) == 3
    assert len(per_employee["carla"].rests) == 2


def test_batch_reports_unmet_quota(make_employee, make_rest_context, week_start):
    leave = ApprovedLeave("anna", week_start, week_start + timedelta(days=5))
    context = make_rest_context([make_employee("anna", rest_quantity=2)], leaves=(leave,))

    result = RestAssignmentEngine().assign_batch(context)

    quota = [w for w in result.warnings if w.category == WarningCategory.REST_QUOTA]
    assert len(quota) == 1
    assert quota[0].severity == Severity.WARNING
    assert result.success_count == 0
    assert _weekdays(result) == [7]


def test_merge_rest_records_later_wins(week_start):
    manual = AssignedRest("anna", week_start, 2, RestGranularity.HALF_MORNING, RestSource.MANUAL)
    engine_rest = AssignedRest("anna", week_start, 2, RestGranularity.FULL, RestSource.ENGINE)
    merged = merge_rest_records([manual, engine_rest], [])
    assert merged == (engine_rest,)
