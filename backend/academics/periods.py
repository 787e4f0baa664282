"""
periods.py — Prior-window inference and period-over-period trends.

A report covers a window of numeric period labels ("1,2,3"). The comparison
window is the same number of periods immediately before it, clipped at the
start of the year.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from academics.aggregator import aggregate_grades, select_window
from academics.records import (
    GradeRecord,
    PeriodType,
    PriorWindow,
    ReportCard,
    StudentInfo,
    SubjectAverage,
    Trend,
    TrendComparison,
)

logger = logging.getLogger(__name__)

# |percent delta| below this is considered "stable"
STABLE_THRESHOLD = 1.0


def _label_numbers(labels: Iterable[str]) -> List[int]:
    return sorted(int(str(label).strip()) for label in labels)


def describe_window(labels: Iterable[str]) -> str:
    """Human-readable window, e.g. {"3", "1", "2"} -> "1, 2, 3"."""
    return ", ".join(str(n) for n in _label_numbers(set(labels)))


def infer_prior_window(labels: Iterable[str]) -> PriorWindow:
    """
    Infer the window to compare against.

    >>> infer_prior_window({"3", "4"})
    PriorWindow(has_comparison=True, prior_labels=('1', '2'))
    >>> infer_prior_window({"2", "3"}).prior_labels
    ('1',)
    """
    numbers = _label_numbers(set(labels))
    if not numbers:
        return PriorWindow(has_comparison=False)

    first = numbers[0]
    if first == 1:
        return PriorWindow(has_comparison=False)

    count = len(numbers)
    prior = [first - count + i for i in range(count)]
    prior = [str(p) for p in prior if p > 0]
    return PriorWindow(has_comparison=bool(prior), prior_labels=tuple(prior))


def classify_trend(percent_delta: float) -> Trend:
    if abs(percent_delta) < STABLE_THRESHOLD:
        return Trend.STABLE
    if percent_delta > 0:
        return Trend.IMPROVED
    return Trend.DECLINED


def compare(
    current: Sequence[SubjectAverage],
    prior: Sequence[SubjectAverage],
) -> List[TrendComparison]:
    """
    Compare current averages with prior ones, discipline by discipline.

    Disciplines without a positive prior average have no baseline and are
    left out of the result.
    """
    prior_by_id: Dict[str, float] = {p.discipline_id: p.average for p in prior}
    comparisons = []
    for subject in current:
        previous = prior_by_id.get(subject.discipline_id)
        if previous is None or previous <= 0:
            continue
        delta = (subject.average - previous) / previous * 100
        comparisons.append(TrendComparison(
            discipline_id=subject.discipline_id,
            discipline_name=subject.discipline_name,
            current_average=subject.average,
            previous_average=previous,
            percent_delta=delta,
            classification=classify_trend(delta),
        ))
    return comparisons


def build_report_card(
    student: StudentInfo,
    year: str,
    period_type: PeriodType,
    labels: Sequence[str],
    records: Iterable[GradeRecord],
) -> ReportCard:
    """
    Aggregate one student's grades for a window and, when a prior window
    exists, attach the trend comparison.

    ``records`` are the student's grades already scoped to one school; they
    may span the whole year, the window filter is applied here.
    """
    records = list(records)
    period_type = PeriodType(period_type)
    labels = sorted({str(label).strip() for label in labels if str(label).strip()}, key=int)

    averages = aggregate_grades(select_window(records, year, period_type, labels))

    window = infer_prior_window(labels)
    comparisons: Optional[List[TrendComparison]] = None
    if window.has_comparison:
        prior = aggregate_grades(select_window(records, year, period_type, window.prior_labels))
        comparisons = compare(averages, prior)
        logger.debug(
            "Compared window %s with %s: %d of %d disciplines have a baseline",
            labels, list(window.prior_labels), len(comparisons), len(averages),
        )

    return ReportCard(
        student=student,
        year=str(year),
        period_type=period_type,
        window_description=describe_window(labels),
        averages=averages,
        comparisons=comparisons,
        has_comparison=window.has_comparison,
    )
