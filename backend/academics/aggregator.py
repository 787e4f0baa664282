"""
aggregator.py — Grade and attendance aggregation.

Computes:
- Per-discipline score lists and averages (one SubjectAverage per discipline id)
- Attendance totals and percentage over the whole fetched set
"""

import math
from typing import Iterable, List, Sequence

import pandas as pd

from academics.records import (
    AttendanceRecord,
    AttendanceSummary,
    GradeRecord,
    PeriodType,
    SubjectAverage,
)

GRADE_COLUMNS = [
    "student_id", "discipline_id", "discipline_name",
    "year", "period_type", "period_label", "score",
]


# ── Helpers ─────────────────────────────────────────────────────────

def _mean(values: Sequence[float]) -> float:
    """Order-independent mean; 0 for an empty sequence."""
    if not values:
        return 0.0
    return math.fsum(values) / len(values)


def grades_frame(records: Iterable[GradeRecord]) -> pd.DataFrame:
    """Tabular view of grade records, one row per record, in input order."""
    rows = [
        {
            "student_id": r.student_id,
            "discipline_id": r.discipline_id,
            "discipline_name": r.discipline_name,
            "year": r.year,
            "period_type": PeriodType(r.period_type).value,
            "period_label": str(r.period_label),
            "score": float(r.score),
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=GRADE_COLUMNS)


def select_window(
    records: Iterable[GradeRecord],
    year: str,
    period_type: PeriodType,
    labels: Iterable[str],
) -> List[GradeRecord]:
    """Keep the records of one year/period type whose label is in the window."""
    wanted = {str(label).strip() for label in labels}
    period_type = PeriodType(period_type)
    return [
        r for r in records
        if str(r.year) == str(year)
        and PeriodType(r.period_type) is period_type
        and str(r.period_label).strip() in wanted
    ]


# ── Grades ──────────────────────────────────────────────────────────

def aggregate_grades(records: Iterable[GradeRecord]) -> List[SubjectAverage]:
    """
    Group scores by discipline id and average them.

    Output is ordered by discipline name (then id, for identical names).
    A discipline only appears when at least one score was recorded for it.
    """
    df = grades_frame(records)
    if df.empty:
        return []

    averages = []
    for discipline_id, group in df.groupby("discipline_id", sort=False):
        scores = tuple(group["score"].tolist())
        averages.append(SubjectAverage(
            discipline_id=str(discipline_id),
            discipline_name=str(group["discipline_name"].iloc[0]),
            scores=scores,
            average=_mean(scores),
        ))

    averages.sort(key=lambda a: (a.discipline_name, a.discipline_id))
    return averages


def general_average(averages: Sequence[SubjectAverage]) -> float:
    """Plain mean of the per-discipline averages (not weighted by score count)."""
    return _mean([a.average for a in averages])


# ── Attendance ──────────────────────────────────────────────────────

def aggregate_attendance(records: Iterable[AttendanceRecord]) -> AttendanceSummary:
    """Count classes and presences; percentage is 0 when there are no calls."""
    calls = list(records)
    total = len(calls)
    present = sum(1 for c in calls if c.present)
    percentage = (present / total * 100) if total > 0 else 0.0
    return AttendanceSummary(
        total_classes=total,
        total_present=present,
        percentage=percentage,
    )
