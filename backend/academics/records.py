"""
records.py — Record types shared by the reporting core.

Raw records (grades, attendance calls, class links) are immutable once
fetched; everything else here is derived per request.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple


class PeriodType(str, Enum):
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    SEMESTER = "semester"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Trend(str, Enum):
    IMPROVED = "improved"
    DECLINED = "declined"
    STABLE = "stable"


# ── Raw records ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class GradeRecord:
    student_id: str
    discipline_id: str
    discipline_name: str
    year: str
    period_type: PeriodType
    period_label: str
    score: float


@dataclass(frozen=True)
class AttendanceRecord:
    student_id: str
    date: date
    present: bool


@dataclass(frozen=True)
class AssignmentLink:
    id: str
    teacher_id: str
    class_id: str


# ── Derived ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SubjectAverage:
    discipline_id: str
    discipline_name: str
    scores: Tuple[float, ...]
    average: float


@dataclass(frozen=True)
class TrendComparison:
    discipline_id: str
    discipline_name: str
    current_average: float
    previous_average: float
    percent_delta: float
    classification: Trend


@dataclass(frozen=True)
class AttendanceSummary:
    total_classes: int
    total_present: int
    percentage: float

    @property
    def total_absent(self) -> int:
        return self.total_classes - self.total_present


@dataclass(frozen=True)
class PriorWindow:
    has_comparison: bool
    prior_labels: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StudentInfo:
    """Display names resolved by the caller for one student."""
    school_name: str
    student_name: str
    class_name: str


@dataclass(frozen=True)
class ReportCard:
    student: StudentInfo
    year: str
    period_type: PeriodType
    window_description: str
    averages: List[SubjectAverage]
    comparisons: Optional[List[TrendComparison]] = None
    has_comparison: bool = False


@dataclass(frozen=True)
class AttendanceReport:
    student: StudentInfo
    start: date
    end: date
    calls: List[AttendanceRecord]
    summary: AttendanceSummary


@dataclass(frozen=True)
class StudentReport:
    """Free-text observations a teacher wrote about one student for one period."""
    student: StudentInfo
    teacher_name: str
    period_type: PeriodType
    period_label: str
    content: str


@dataclass(frozen=True)
class ReconciliationPlan:
    teacher_id: str
    to_add: FrozenSet[str]
    to_remove: FrozenSet[AssignmentLink]
    to_keep: FrozenSet[AssignmentLink]

    @property
    def is_noop(self) -> bool:
        return not self.to_add and not self.to_remove


@dataclass(frozen=True)
class ReconciliationResult:
    added: int
    removed: int
    kept: int
    added_links: List[AssignmentLink] = field(default_factory=list)
