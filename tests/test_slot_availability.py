"""Tests for the pre-approval coverage check."""

from datetime import date, timedelta

from shiftgen.domain.types import (
    ApprovedLeave,
    AssignedRest,
    Membership,
    Preference,
    PreferencePolarity,
)
from shiftgen.services.slot_availability import (
    RequestKind,
    check_multi_slot_availability,
    check_slot_availability,
    suggest_coverage_options,
)


def test_sole_member_cannot_be_away(make_employee, make_nucleus, make_context, week_start):
    context = make_context([make_employee("anna")], [make_nucleus("kitchen", min_staff=1)])

    result = check_slot_availability(context, "kitchen", week_start, "anna")

    assert result.allowed is False
    assert "only available member" in result.reason
    assert "a rest day" in result.reason
    assert result.coverage_if_approved == 0


def test_enough_colleagues(make_employee, make_nucleus, make_context, week_start):
    context = make_context(
        [make_employee("anna"), make_employee("bruno"), make_employee("carla")],
        [make_nucleus("kitchen", min_staff=2)],
    )

    result = check_slot_availability(context, "kitchen", week_start, "anna", RequestKind.VACATION)

    assert result.allowed is True
    assert result.current_coverage == 3
    assert result.coverage_if_approved == 2
    assert result.others_available == ("Bruno", "Carla")


def test_short_of_minimum(make_employee, make_nucleus, make_context, week_start):
    context = make_context([make_employee("anna"), make_employee("bruno")], [make_nucleus("kitchen", min_staff=3)])

    result = check_slot_availability(context, "kitchen", week_start, "anna", RequestKind.PERMIT)

    assert result.allowed is False
    assert "needs 3 but only 1 would remain (2 short)" in result.reason


def test_absent_colleagues_do_not_count(make_employee, make_nucleus, make_context, week_start):
    context = make_context(
        [make_employee("anna"), make_employee("bruno"), make_employee("carla")],
        [make_nucleus("kitchen", min_staff=1)],
        preferences=(Preference("bruno", week_start, PreferencePolarity.UNAVAILABLE),),
        leaves=(ApprovedLeave("carla", week_start, week_start),),
    )

    assert check_slot_availability(context, "kitchen", week_start, "anna").allowed is False
    assert check_slot_availability(context, "kitchen", week_start + timedelta(days=1), "anna").allowed is True


def test_already_absent_requester_changes_nothing(make_employee, make_nucleus, make_context, week_start):
    context = make_context(
        [make_employee("anna")],
        [make_nucleus("kitchen", min_staff=1)],
        rests=(AssignedRest("anna", week_start, 1),),
    )

    result = check_slot_availability(context, "kitchen", week_start, "anna")

    assert result.allowed is True
    assert result.current_coverage == result.coverage_if_approved == 0


def test_unknown_nucleus_is_allowed(make_employee, make_nucleus, make_context, week_start):
    context = make_context([make_employee("anna")], [make_nucleus("kitchen")])
    assert check_slot_availability(context, "bar", week_start, "anna").allowed is True


def test_multi_day_request(make_employee, make_nucleus, make_context, week_start):
    tuesday = week_start + timedelta(days=1)
    context = make_context(
        [make_employee("anna"), make_employee("bruno")],
        [make_nucleus("kitchen", min_staff=1)],
        rests=(AssignedRest("bruno", week_start, 2),),
    )

    all_ok, per_day = check_multi_slot_availability(context, "kitchen", [week_start, tuesday], "anna")

    assert all_ok is False
    assert per_day[week_start].allowed is True
    assert per_day[tuesday].allowed is False


def test_suggest_coverage_options(make_employee, make_nucleus, make_context, week_start):
    dario = make_employee(
        "dario",
        memberships=(
            Membership("bar", valid_from=date(2024, 1, 1), primary=True),
            Membership("kitchen", valid_from=date(2024, 1, 1)),
        ),
        weekly_hours=30,
    )
    context = make_context(
        [
            make_employee("anna"),
            make_employee("bruno", hours_assigned=10),
            make_employee("carla"),
            make_employee("elena", hours_assigned=40),
            dario,
        ],
        [make_nucleus("kitchen"), make_nucleus("bar")],
        leaves=(ApprovedLeave("carla", week_start, week_start),),
    )

    options = suggest_coverage_options(context, "kitchen", week_start, "anna")

    assert [o.employee_id for o in options] == ["bruno", "dario"]
    assert options[0].remaining_hours == 30
    assert options[0].primary_nucleus is None
    assert options[1].primary_nucleus == "bar"
