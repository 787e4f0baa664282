"""
Tests for academics/aggregator.py — grade averages and attendance totals.
"""

import os
import sys
from datetime import date

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from academics.aggregator import (
    aggregate_attendance,
    aggregate_grades,
    general_average,
    grades_frame,
    select_window,
)
from academics.records import AttendanceRecord, GradeRecord, PeriodType


def grade(discipline_id, name, score, label="1", year="2024", period_type=PeriodType.QUARTERLY):
    return GradeRecord(
        student_id="S001",
        discipline_id=discipline_id,
        discipline_name=name,
        year=year,
        period_type=period_type,
        period_label=label,
        score=score,
    )


@pytest.fixture
def grades():
    return [
        grade("d-mat", "Mathematics", 7.0, "1"),
        grade("d-por", "Portuguese", 5.5, "1"),
        grade("d-mat", "Mathematics", 8.0, "2"),
        grade("d-bio", "Biology", 9.0, "2"),
        grade("d-mat", "Mathematics", 6.0, "3"),
        grade("d-por", "Portuguese", 6.5, "3"),
    ]


class TestAggregateGrades:
    """Tests for aggregate_grades."""

    def test_one_entry_per_discipline(self, grades):
        result = aggregate_grades(grades)
        assert [a.discipline_id for a in result] == ["d-bio", "d-mat", "d-por"]

    def test_ordered_by_discipline_name(self, grades):
        names = [a.discipline_name for a in aggregate_grades(grades)]
        assert names == sorted(names)

    def test_average_is_arithmetic_mean(self, grades):
        by_id = {a.discipline_id: a for a in aggregate_grades(grades)}
        assert by_id["d-mat"].average == pytest.approx(7.0)
        assert by_id["d-por"].average == pytest.approx(6.0)
        assert by_id["d-bio"].average == pytest.approx(9.0)

    def test_scores_accumulate_in_record_order(self, grades):
        by_id = {a.discipline_id: a for a in aggregate_grades(grades)}
        assert by_id["d-mat"].scores == (7.0, 8.0, 6.0)

    def test_empty_input_gives_empty_output(self):
        assert aggregate_grades([]) == []

    def test_mean_does_not_depend_on_order(self):
        scores = [0.1] * 10 + [1e6, -1e6]
        forward = aggregate_grades([grade("d", "D", s) for s in scores])[0].average
        backward = aggregate_grades([grade("d", "D", s) for s in reversed(scores)])[0].average
        assert forward == backward
        assert forward == pytest.approx(1.0 / 12)

    def test_same_name_different_ids_stay_separate(self):
        result = aggregate_grades([grade("a", "Arts", 5.0), grade("b", "Arts", 7.0)])
        assert [(a.discipline_id, a.average) for a in result] == [("a", 5.0), ("b", 7.0)]


class TestGeneralAverage:
    """The overall average is not weighted by the number of scores."""

    def test_unweighted_mean_of_discipline_averages(self):
        records = [grade("m", "Math", 10.0)] * 3 + [grade("h", "History", 2.0)]
        assert general_average(aggregate_grades(records)) == pytest.approx(6.0)

    def test_empty_is_zero(self):
        assert general_average([]) == 0.0


class TestSelectWindow:
    """Tests for select_window."""

    def test_filters_labels_year_and_period_type(self, grades):
        other_year = grade("d-mat", "Mathematics", 1.0, "1", year="2023")
        other_type = grade("d-mat", "Mathematics", 1.0, "1", period_type=PeriodType.MONTHLY)
        selected = select_window(grades + [other_year, other_type], "2024", PeriodType.QUARTERLY, ["1", "3"])
        assert len(selected) == 4
        assert {r.period_label for r in selected} == {"1", "3"}
        assert all(r.year == "2024" for r in selected)

    def test_accepts_period_type_value(self, grades):
        assert len(select_window(grades, "2024", "quarterly", ["2"])) == 2


class TestGradesFrame:
    def test_columns_and_rows(self, grades):
        df = grades_frame(grades)
        assert len(df) == len(grades)
        assert list(df["period_type"].unique()) == ["quarterly"]

    def test_empty_frame_keeps_columns(self):
        df = grades_frame([])
        assert df.empty
        assert "score" in df.columns


class TestAggregateAttendance:
    """Tests for aggregate_attendance."""

    def test_percentage_over_all_calls(self):
        calls = [
            AttendanceRecord("S001", date(2024, 3, d), present=(d % 4 != 0))
            for d in range(1, 9)
        ]
        summary = aggregate_attendance(calls)
        assert summary.total_classes == 8
        assert summary.total_present == 6
        assert summary.total_absent == 2
        assert summary.percentage == pytest.approx(75.0)

    def test_no_calls_is_zero_not_error(self):
        summary = aggregate_attendance([])
        assert summary.total_classes == 0
        assert summary.percentage == 0
