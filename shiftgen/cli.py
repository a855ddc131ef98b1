"""Command-line interface for shift generation and rest assignment."""

from __future__ import annotations

import argparse
import logging
from datetime import date

from shiftgen.config import load_config
from shiftgen.domain.db import get_session, init_database
from shiftgen.domain.repositories import ShiftAssignmentRepository
from shiftgen.engine.orchestrator import assign_week_rests, build_week_schedule
from shiftgen.errors import ShiftgenError
from shiftgen.report import summarize_rests, summarize_result
from shiftgen.services.calendar import CompanyCalendar
from shiftgen.services.conflicts import ConflictValidator


def parse_week(value: str) -> date:
    """
    Parse an ISO week (``2025-W48``) or a ``YYYY-MM-DD`` date.

    A date is returned as given; the engines reject one that is not a Monday.
    """
    value = value.strip()
    if "-W" in value.upper():
        year, week = value.upper().split("-W")
        return date.fromisocalendar(int(year), int(week), 1)
    return date.fromisoformat(value)


def _db_url(args: argparse.Namespace, cfg=None) -> str:
    if args.db:
        return args.db
    if cfg is not None:
        return cfg.db_url
    return "sqlite:///shiftgen.db"


def _cmd_init_db(args: argparse.Namespace) -> None:
    """Initialize the database."""
    db_url = _db_url(args)
    init_database(db_url)
    print(f"[OK] Database initialized: {db_url}")


def _cmd_generate(args: argparse.Namespace) -> None:
    """Generate shifts for a week."""
    cfg = load_config(args.config)
    week_start = parse_week(args.week)
    session = get_session(_db_url(args, cfg))
    calendar = CompanyCalendar(
        closed_weekdays=args.closed_weekdays or (),
        public_holidays=not args.no_holidays,
    )

    try:
        result = build_week_schedule(
            session, week_start, cfg, calendar=calendar, persist=args.persist, replace=args.replace,
        )
        print(summarize_result(result))
        print(f"[OK] Generated {len(result.shifts)} shifts for week of {week_start}")
    except ShiftgenError as e:
        session.rollback()
        print(f"[ERROR] Generation failed: {e}")
        raise
    finally:
        session.close()


def _cmd_assign_rests(args: argparse.Namespace) -> None:
    """Batch-assign weekly rests."""
    cfg = load_config(args.config)
    week_start = parse_week(args.week)
    session = get_session(_db_url(args, cfg))

    try:
        result = assign_week_rests(session, week_start, cfg, persist=args.persist)
        print(summarize_rests(result))
        print(f"[OK] Assigned {len(result.rests)} rest records for week of {week_start}")
    except ShiftgenError as e:
        session.rollback()
        print(f"[ERROR] Rest assignment failed: {e}")
        raise
    finally:
        session.close()


def _cmd_conflicts(args: argparse.Namespace) -> None:
    """List time conflicts of stored shifts on one date."""
    cfg = load_config(args.config)
    day = date.fromisoformat(args.date)
    session = get_session(_db_url(args, cfg))

    try:
        existing = ShiftAssignmentRepository.to_existing(ShiftAssignmentRepository.get_for_date(session, day))
        validator = ConflictValidator(existing, cfg.max_shifts_per_day, cfg.min_rest_hours)
        conflicts = validator.get_conflicts_for_date(day)
    finally:
        session.close()

    for c in conflicts:
        print(f"[{c.severity.value.upper()}] {c.employee_id} {c.kind}: {c.message}")
    if conflicts:
        print(f"[WARN] {len(conflicts)} conflicts on {day}")
    else:
        print(f"[OK] No conflicts on {day}")


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="shiftgen",
        description="Weekly shift generation and rest assignment",
    )

    # Global options
    parser.add_argument("--db", help="Database URL (default: db_url from config, else sqlite:///shiftgen.db)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    # init-db command
    init = sub.add_parser("init-db", help="Initialize database")
    init.set_defaults(func=_cmd_init_db)

    # generate command
    gen = sub.add_parser("generate", help="Generate shifts for a week")
    gen.add_argument("--week", required=True, help="ISO week (2025-W48) or Monday date (YYYY-MM-DD)")
    gen.add_argument("--config", help="Path to config YAML/JSON")
    gen.add_argument("--persist", action="store_true", help="Save generated shifts")
    gen.add_argument("--replace", action="store_true", help="Delete the week's stored shifts first")
    gen.add_argument("--closed-weekdays", type=int, nargs="*", help="ISO weekdays the company is closed (7 = Sunday)")
    gen.add_argument("--no-holidays", action="store_true", help="Do not treat public holidays as closed")
    gen.set_defaults(func=_cmd_generate)

    # assign-rests command
    rest = sub.add_parser("assign-rests", help="Assign weekly rests to every active employee")
    rest.add_argument("--week", required=True, help="ISO week (2025-W48) or Monday date (YYYY-MM-DD)")
    rest.add_argument("--config", help="Path to config YAML/JSON")
    rest.add_argument("--persist", action="store_true", help="Upsert assigned rests")
    rest.set_defaults(func=_cmd_assign_rests)

    # conflicts command
    con = sub.add_parser("conflicts", help="List time conflicts on a date")
    con.add_argument("--date", required=True, help="YYYY-MM-DD")
    con.add_argument("--config", help="Path to config YAML/JSON")
    con.set_defaults(func=_cmd_conflicts)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
