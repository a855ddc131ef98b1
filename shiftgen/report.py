"""Plain-text summaries of engine results."""

from __future__ import annotations

import pandas as pd

from shiftgen.domain.types import BatchRestResult, GenerationResult, WEEKDAY_NAMES


def shifts_frame(result: GenerationResult) -> pd.DataFrame:
    """One row per (shift, suggested employee); unfilled shifts get one row with no employee."""
    rows = []
    for shift in result.shifts:
        base = {
            "date": shift.date.isoformat(),
            "nucleus": shift.nucleus_name,
            "window": str(shift.window),
            "hours": shift.window.hours,
            "required": shift.required,
            "assigned": len(shift.suggested),
            "coverage": shift.coverage.value,
            "confidence": shift.confidence,
        }
        if not shift.suggested:
            rows.append({**base, "employee": None})
        for suggested in shift.suggested:
            rows.append({**base, "employee": suggested.name})
    return pd.DataFrame(
        rows,
        columns=["date", "nucleus", "window", "hours", "required", "assigned", "coverage", "confidence", "employee"],
    )


def summarize_result(result: GenerationResult) -> str:
    if not result.shifts:
        return "No shifts."
    df = shifts_frame(result)

    per_shift = df.drop_duplicates(["date", "nucleus", "window"])
    coverage = per_shift.pivot_table(index="date", columns="nucleus", values="assigned", aggfunc="sum", fill_value=0)
    required = per_shift.pivot_table(index="date", columns="nucleus", values="required", aggfunc="sum", fill_value=0)
    hours = df.dropna(subset=["employee"]).groupby("employee")["hours"].sum().sort_values(ascending=False)

    lines = ["Assigned staff per day per nucleus:"]
    lines.append(coverage.to_string())
    lines.append("")
    lines.append("Required staff per day per nucleus:")
    lines.append(required.to_string())
    lines.append("")
    lines.append("Hours per employee (week):")
    lines.append(hours.to_string() if not hours.empty else "(none)")
    lines.append("")
    lines.append(
        f"Coverage: {result.coverage.covered}/{result.coverage.total} fully covered "
        f"({result.coverage.percent:.0f}%), {result.coverage.partial} partial, "
        f"{result.coverage.uncovered} uncovered"
    )
    lines.append(f"Confidence average: {result.confidence_average:.2f}")
    lines.append(f"Workload equity: {result.workload.equity_score:.2f}")
    if result.warnings:
        lines.append("")
        lines.append("Warnings:")
        for w in result.warnings:
            lines.append(f"  [{w.severity.value.upper()}] {w.message}")
    return "\n".join(lines)


def summarize_rests(result: BatchRestResult) -> str:
    if not result.rests:
        return "No rests assigned."
    df = pd.DataFrame(
        [
            {
                "employee": r.employee_id,
                "day": WEEKDAY_NAMES[r.weekday],
                "part": r.granularity.value,
                "confidence": r.confidence,
            }
            for r in result.rests
        ]
    )
    per_day = df.groupby("day", sort=False).size()
    lines = ["Rests:"]
    lines.append(df.to_string(index=False))
    lines.append("")
    lines.append("Employees resting per day:")
    lines.append(per_day.to_string())
    lines.append("")
    lines.append(f"{result.success_count}/{len(result.results)} employees got their full quota")
    for w in result.warnings:
        lines.append(f"  [{w.severity.value.upper()}] {w.message}")
    return "\n".join(lines)
