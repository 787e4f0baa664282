"""
Report routes — report card, attendance and student report endpoints (JSON and PDF).

Payloads carry records already fetched and scoped to one school and one
student by the caller; nothing here reads session state.
"""

import logging
import os
import re
from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from academics.aggregator import aggregate_attendance, general_average
from academics.layout import layout_attendance_report, layout_report_card, layout_student_report
from academics.periods import build_report_card
from academics.records import (
    AttendanceRecord,
    AttendanceReport,
    GradeRecord,
    PeriodType,
    ReportCard,
    StudentInfo,
    StudentReport,
)
from academics.render import render_pdf

router = APIRouter()
logger = logging.getLogger(__name__)

SCHOOL_NAME = os.getenv("SCHOOL_NAME", "My School")


# ── Payload helpers ─────────────────────────────────────────────────

def _safe_token(value: str, fallback: str = "item") -> str:
    """Create filesystem-safe token for filenames."""
    token = re.sub(r"[^A-Za-z0-9._-]+", "-", str(value)).strip("._-")
    return token or fallback


def _student_info(payload: dict) -> StudentInfo:
    student_name = str(payload.get("student_name") or "").strip()
    if not student_name:
        raise HTTPException(400, "Provide 'student_name'.")
    return StudentInfo(
        school_name=str(payload.get("school_name") or SCHOOL_NAME),
        student_name=student_name,
        class_name=str(payload.get("class_name") or "N/A"),
    )


def _normalise_label(value: Any) -> str:
    label = str(value).strip()
    return str(int(label)) if label.isdigit() else label


def _period_labels(raw: Any) -> List[str]:
    """Accept "1,2,3" or ["1", "2", "3"]; every label must be a positive integer."""
    if isinstance(raw, str):
        parts = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        parts = [str(p) for p in raw]
    else:
        parts = []
    labels = [p.strip() for p in parts if p.strip()]
    if not labels:
        raise HTTPException(400, "Provide at least one valid period.")
    if not all(p.isdigit() and int(p) > 0 for p in labels):
        raise HTTPException(400, "Periods must be positive whole numbers, e.g. '1,2,3'.")
    # "02" and "2" name the same period
    return [_normalise_label(p) for p in labels]


def _grade_records(rows: Any, student_id: str) -> List[GradeRecord]:
    if not isinstance(rows, list):
        raise HTTPException(400, "'grades' must be a list of records.")
    records = []
    try:
        for row in rows:
            records.append(GradeRecord(
                student_id=str(row.get("student_id", student_id)),
                discipline_id=str(row["discipline_id"]),
                discipline_name=str(row["discipline_name"]),
                year=str(row["year"]),
                period_type=PeriodType(row["period_type"]),
                period_label=_normalise_label(row["period_label"]),
                score=float(row["score"]),
            ))
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise HTTPException(400, f"Invalid grade record: {exc}")
    return [r for r in records if r.student_id == student_id]


def _attendance_records(rows: Any, student_id: str) -> List[AttendanceRecord]:
    if not isinstance(rows, list):
        raise HTTPException(400, "'calls' must be a list of records.")
    records = []
    try:
        for row in rows:
            records.append(AttendanceRecord(
                student_id=str(row.get("student_id", student_id)),
                date=date.fromisoformat(str(row["date"])[:10]),
                present=_presence(row["present"]),
            ))
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise HTTPException(400, f"Invalid attendance record: {exc}")
    return [r for r in records if r.student_id == student_id]


def _presence(value: Any) -> bool:
    """A JSON boolean, or the strings "true"/"false"."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValueError(f"'present' must be true or false, got {value!r}")


def _parse_date(payload: dict, key: str) -> date:
    try:
        return date.fromisoformat(str(payload.get(key))[:10])
    except ValueError:
        raise HTTPException(400, f"'{key}' must be an ISO date (YYYY-MM-DD).")


# ── Builders ────────────────────────────────────────────────────────

def _report_card(payload: dict) -> ReportCard:
    student_id = str(payload.get("student_id") or "").strip()
    year = str(payload.get("year") or "").strip()
    if not student_id:
        raise HTTPException(400, "Provide 'student_id'.")
    if len(year) != 4 or not year.isdigit():
        raise HTTPException(400, "'year' must have 4 digits.")
    try:
        period_type = PeriodType(payload.get("period_type"))
    except ValueError:
        allowed = ", ".join(p.value for p in PeriodType)
        raise HTTPException(400, f"'period_type' must be one of: {allowed}.")

    labels = _period_labels(payload.get("periods"))
    student = _student_info(payload)
    records = _grade_records(payload.get("grades") or [], student_id)

    card = build_report_card(student, year, period_type, labels, records)
    if not card.averages:
        raise HTTPException(404, "No grades found for the requested periods.")
    return card


def _attendance_report(payload: dict) -> AttendanceReport:
    student_id = str(payload.get("student_id") or "").strip()
    if not student_id:
        raise HTTPException(400, "Provide 'student_id'.")
    start = _parse_date(payload, "start")
    end = _parse_date(payload, "end")
    if start > end:
        raise HTTPException(400, "'start' cannot be after 'end'.")

    student = _student_info(payload)
    calls = [
        c for c in _attendance_records(payload.get("calls") or [], student_id)
        if start <= c.date <= end
    ]
    calls.sort(key=lambda c: c.date)
    return AttendanceReport(
        student=student,
        start=start,
        end=end,
        calls=calls,
        summary=aggregate_attendance(calls),
    )


def _student_report(payload: dict) -> StudentReport:
    content = str(payload.get("content") or "").strip()
    period = str(payload.get("period") or "").strip()
    if not content:
        raise HTTPException(400, "Provide the report 'content'.")
    if not period:
        raise HTTPException(400, "Provide 'period'.")
    try:
        period_type = PeriodType(payload.get("period_type"))
    except ValueError:
        allowed = ", ".join(p.value for p in PeriodType)
        raise HTTPException(400, f"'period_type' must be one of: {allowed}.")

    return StudentReport(
        student=_student_info(payload),
        teacher_name=str(payload.get("teacher_name") or "N/A"),
        period_type=period_type,
        period_label=period,
        content=content,
    )


def _card_payload(card: ReportCard) -> Dict[str, Any]:
    return {
        "school_name": card.student.school_name,
        "student_name": card.student.student_name,
        "class_name": card.student.class_name,
        "year": card.year,
        "period_type": card.period_type.value,
        "periods": card.window_description,
        "subjects": [
            {
                "discipline_id": a.discipline_id,
                "discipline_name": a.discipline_name,
                "scores": list(a.scores),
                "average": round(a.average, 2),
            }
            for a in card.averages
        ],
        "has_comparison": card.has_comparison,
        "comparisons": [
            {**asdict(c), "classification": c.classification.value,
             "percent_delta": round(c.percent_delta, 2)}
            for c in (card.comparisons or [])
        ],
        "total_subjects": len(card.averages),
        "general_average": round(general_average(card.averages), 2),
    }


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Endpoints ───────────────────────────────────────────────────────

@router.post("/report-card")
async def report_card(payload: dict):
    """Per-subject averages for a window, with trends against the prior window."""
    return _card_payload(_report_card(payload))


@router.post("/report-card-pdf")
async def report_card_pdf(payload: dict):
    """Printable report card PDF."""
    card = _report_card(payload)
    instructions = layout_report_card(card, generated_at=datetime.now())
    content = render_pdf(instructions, title="Report Card", author=card.student.school_name)
    logger.info("Report card rendered for %s (%d subjects)", card.student.student_name, len(card.averages))
    token = _safe_token(card.student.student_name, fallback="student")
    return _pdf_response(content, f"report-card-{token}.pdf")


@router.post("/attendance")
async def attendance(payload: dict):
    """Attendance totals for a date range."""
    report = _attendance_report(payload)
    summary = report.summary
    return {
        "student_name": report.student.student_name,
        "class_name": report.student.class_name,
        "start": report.start.isoformat(),
        "end": report.end.isoformat(),
        "total_classes": summary.total_classes,
        "total_present": summary.total_present,
        "total_absent": summary.total_absent,
        "percentage": round(summary.percentage, 2),
    }


@router.post("/attendance-pdf")
async def attendance_pdf(payload: dict):
    """Printable attendance report PDF."""
    report = _attendance_report(payload)
    instructions = layout_attendance_report(report, generated_at=datetime.now())
    content = render_pdf(instructions, title="Attendance Report", author=report.student.school_name)
    token = _safe_token(report.student.student_name, fallback="student")
    return _pdf_response(content, f"attendance-{token}.pdf")


@router.post("/student-report-pdf")
async def student_report_pdf(payload: dict):
    """Printable PDF of a teacher's written observations about a student."""
    report = _student_report(payload)
    instructions = layout_student_report(report, generated_at=datetime.now())
    content = render_pdf(instructions, title="Student Performance Report", author=report.student.school_name)
    token = _safe_token(report.student.student_name, fallback="student")
    return _pdf_response(content, f"student-report-{token}.pdf")
