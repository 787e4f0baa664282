"""
Tests for academics/periods.py — prior window inference and trend classification.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from academics.periods import (
    build_report_card,
    classify_trend,
    compare,
    describe_window,
    infer_prior_window,
)
from academics.records import GradeRecord, PeriodType, StudentInfo, SubjectAverage, Trend

STUDENT = StudentInfo(school_name="Test School", student_name="Ana Souza", class_name="7A")


def avg(discipline_id, value, name=None):
    return SubjectAverage(discipline_id, name or discipline_id, (value,), value)


def grade(discipline_id, name, score, label):
    return GradeRecord("S001", discipline_id, name, "2024", PeriodType.BIMONTHLY, label, score)


class TestInferPriorWindow:
    """Tests for infer_prior_window."""

    def test_first_period_has_no_comparison(self):
        window = infer_prior_window({"1"})
        assert window.has_comparison is False
        assert window.prior_labels == ()

    def test_window_starting_at_one_has_no_comparison(self):
        assert infer_prior_window({"1", "2", "3"}).has_comparison is False

    def test_clipped_at_start_of_year(self):
        window = infer_prior_window({"2", "3"})
        assert window.has_comparison is True
        assert window.prior_labels == ("1",)

    def test_same_number_of_preceding_periods(self):
        assert infer_prior_window({"3", "4"}).prior_labels == ("1", "2")
        assert infer_prior_window({"5"}).prior_labels == ("4",)
        assert infer_prior_window({"4", "5", "6"}).prior_labels == ("1", "2", "3")

    def test_unordered_labels(self):
        assert infer_prior_window(["6", "4", "5"]).prior_labels == ("1", "2", "3")

    def test_heavy_clipping_keeps_survivors(self):
        assert infer_prior_window({"2", "3", "4"}).prior_labels == ("1",)

    def test_non_contiguous_window_uses_minimum_and_count(self):
        assert infer_prior_window({"3", "6"}).prior_labels == ("1", "2")

    def test_empty_window(self):
        assert infer_prior_window(set()).has_comparison is False

    def test_non_numeric_label_raises(self):
        with pytest.raises(ValueError):
            infer_prior_window({"first"})


class TestClassifyTrend:
    """Boundary behaviour of the 1% stability band."""

    @pytest.mark.parametrize("delta,expected", [
        (0.999999, Trend.STABLE),
        (0.0, Trend.STABLE),
        (-0.999999, Trend.STABLE),
        (1.0, Trend.IMPROVED),
        (25.0, Trend.IMPROVED),
        (-1.0, Trend.DECLINED),
        (-40.0, Trend.DECLINED),
    ])
    def test_classification(self, delta, expected):
        assert classify_trend(delta) is expected


class TestCompare:
    """Tests for compare."""

    def test_percent_delta_against_prior(self):
        result = compare([avg("m", 8.0)], [avg("m", 6.4)])
        assert len(result) == 1
        assert result[0].percent_delta == pytest.approx(25.0)
        assert result[0].classification is Trend.IMPROVED
        assert result[0].previous_average == 6.4

    def test_missing_prior_is_excluded(self):
        result = compare([avg("m", 8.0), avg("p", 5.0)], [avg("m", 8.0)])
        assert [c.discipline_id for c in result] == ["m"]
        assert result[0].classification is Trend.STABLE

    def test_zero_prior_is_excluded(self):
        assert compare([avg("m", 8.0)], [avg("m", 0.0)]) == []

    def test_keeps_current_order(self):
        current = [avg("b", 5.0, "Biology"), avg("a", 5.0, "Arts")]
        prior = [avg("a", 4.0), avg("b", 6.0)]
        assert [c.discipline_id for c in compare(current, prior)] == ["b", "a"]


class TestBuildReportCard:
    """End-to-end window filtering, aggregation and comparison."""

    @pytest.fixture
    def year_grades(self):
        return [
            grade("m", "Mathematics", 5.0, "1"),
            grade("m", "Mathematics", 6.0, "2"),
            grade("m", "Mathematics", 8.0, "3"),
            grade("m", "Mathematics", 7.0, "4"),
            grade("h", "History", 9.0, "2"),
            grade("h", "History", 6.0, "3"),
            grade("s", "Science", 7.0, "4"),
        ]

    def test_window_with_prior(self, year_grades):
        card = build_report_card(STUDENT, "2024", PeriodType.BIMONTHLY, ["4", "3"], year_grades)
        assert card.has_comparison is True
        assert card.window_description == "3, 4"
        assert [a.discipline_name for a in card.averages] == ["History", "Mathematics", "Science"]

        by_id = {c.discipline_id: c for c in card.comparisons}
        # Science has no grades in periods 1-2
        assert set(by_id) == {"h", "m"}
        assert by_id["m"].previous_average == pytest.approx(5.5)
        assert by_id["m"].current_average == pytest.approx(7.5)
        assert by_id["h"].classification is Trend.DECLINED

    def test_first_period_has_no_comparisons(self, year_grades):
        card = build_report_card(STUDENT, "2024", "bimonthly", ["1"], year_grades)
        assert card.has_comparison is False
        assert card.comparisons is None
        assert [a.discipline_id for a in card.averages] == ["m"]

    def test_no_grades_in_window(self, year_grades):
        card = build_report_card(STUDENT, "2023", PeriodType.BIMONTHLY, ["2"], year_grades)
        assert card.averages == []
        assert card.comparisons == []


class TestDescribeWindow:
    def test_numeric_order(self):
        assert describe_window(["10", "2", "9"]) == "2, 9, 10"
