"""Trailing-window history signals computed from past shifts."""

from __future__ import annotations

from datetime import date, timedelta
from typing import FrozenSet, Tuple

import pandas as pd

from shiftgen.domain.types import HistoricalPattern, TimeWindow

SHIFT_COLUMNS = ["nucleus_id", "date", "start", "end", "required"]
ASSIGNMENT_COLUMNS = ["employee_id", "nucleus_id", "date"]


def _trailing(df: pd.DataFrame, week_start: date, weeks: int) -> pd.DataFrame:
    if df.empty:
        return df
    out = df.copy()
    out["date"] = pd.to_datetime(out["date"])
    lo = pd.Timestamp(week_start - timedelta(weeks=weeks))
    hi = pd.Timestamp(week_start)
    out = out[(out["date"] >= lo) & (out["date"] < hi)]
    return out.assign(weekday=out["date"].dt.dayofweek + 1)


def compute_historical_patterns(
    shifts: pd.DataFrame,
    week_start: date,
    weeks: int = 4,
) -> Tuple[HistoricalPattern, ...]:
    """
    Average headcount and usual window per (nucleus, weekday).

    Args:
        shifts: Past shifts with columns nucleus_id, date, start, end, required
        week_start: Monday of the week being planned (excluded from the window)
        weeks: Number of trailing weeks to average over

    Returns:
        Patterns sorted by (nucleus_id, weekday)
    """
    if shifts.empty:
        return ()
    df = _trailing(shifts[SHIFT_COLUMNS], week_start, weeks)
    if df.empty:
        return ()

    # several shifts of one nucleus on one date add up to that day's headcount
    per_day = df.groupby(["nucleus_id", "weekday", "date"], as_index=False)["required"].sum()
    means = per_day.groupby(["nucleus_id", "weekday"])["required"].mean()

    windows = (
        df.assign(start=df["start"].astype(str), end=df["end"].astype(str))
        .groupby(["nucleus_id", "weekday", "start", "end"])
        .size()
        .reset_index(name="count")
        .sort_values(["nucleus_id", "weekday", "count", "start", "end"], ascending=[True, True, False, True, True])
        .drop_duplicates(["nucleus_id", "weekday"])
        .set_index(["nucleus_id", "weekday"])
    )

    patterns = []
    for (nucleus_id, weekday), mean in means.items():
        row = windows.loc[(nucleus_id, weekday)]
        patterns.append(HistoricalPattern(
            nucleus_id=str(nucleus_id),
            weekday=int(weekday),
            mean_staff=round(float(mean), 2),
            typical_window=TimeWindow.parse(row["start"], row["end"]),
        ))
    patterns.sort(key=lambda p: (p.nucleus_id, p.weekday))
    return tuple(patterns)


def compute_worked_before(
    assignments: pd.DataFrame,
    week_start: date,
    weeks: int = 4,
) -> FrozenSet[Tuple[str, str, int]]:
    """(employee_id, nucleus_id, weekday) combinations worked in the trailing window."""
    if assignments.empty:
        return frozenset()
    df = _trailing(assignments[ASSIGNMENT_COLUMNS], week_start, weeks)
    if df.empty:
        return frozenset()
    unique = df[["employee_id", "nucleus_id", "weekday"]].drop_duplicates()
    return frozenset(
        (str(row.employee_id), str(row.nucleus_id), int(row.weekday))
        for row in unique.itertuples(index=False)
    )
