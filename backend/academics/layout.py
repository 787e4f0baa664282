"""
layout.py — Table layout for printable report documents.

Turns aggregated report data into an ordered list of draw instructions
(rectangles, text runs, page breaks). Nothing here touches a file or a
canvas; ``academics.render`` streams the instructions into a PDF.

Coordinates are points on an A4 page, y growing downward from the top
edge. Layout is deterministic: identical input gives identical output.

Documents:
- Report card      (discipline | average [| trend], legend, summary box)
- Attendance report (date | presence, summary box)
- Student report    (teacher observations as a justified text body)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple, Union

from reportlab.pdfbase.pdfmetrics import stringWidth

from academics.aggregator import general_average
from academics.errors import LayoutConfigError
from academics.records import AttendanceReport, ReportCard, StudentReport, Trend, TrendComparison


# ── Colour palette ──────────────────────────────────────────────────

PASS_COLOR = "green"
FAIL_COLOR = "red"
NEUTRAL_COLOR = "gray"
TEXT_COLOR = "black"
HEADER_FILL = "#2E5090"
HEADER_TEXT = "white"
ZEBRA_FILLS = ("#f0f0f0", "white")
ROW_STROKE = "gray"
SUMMARY_FILL = "#e8f4f8"
RULE_COLOR = "#cccccc"
FOOTNOTE_COLOR = "#666666"

PASS_AVERAGE = 6.0
PASS_ATTENDANCE = 75.0

TREND_SYMBOLS = {
    Trend.IMPROVED: ("↑", PASS_COLOR),
    Trend.DECLINED: ("↓", FAIL_COLOR),
    Trend.STABLE: ("=", NEUTRAL_COLOR),
}


# ── Draw instructions ───────────────────────────────────────────────

@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: str
    stroke: Optional[str] = None


@dataclass(frozen=True)
class TextRun:
    text: str
    x: float
    y: float
    width: Optional[float] = None
    color: str = TEXT_COLOR
    bold: bool = False
    size: float = 10
    align: str = "left"


@dataclass(frozen=True)
class PageBreak:
    pass


Instruction = Union[Rect, TextRun, PageBreak]


# ── Configuration ───────────────────────────────────────────────────

@dataclass(frozen=True)
class LayoutConfig:
    page_width: float = 595.0
    page_height: float = 842.0
    margin: float = 50.0
    page_break_y: float = 700.0
    footer_y: float = 750.0
    summary_width: float = 490.0

    def __post_init__(self):
        for name in ("page_width", "page_height", "margin", "page_break_y", "summary_width"):
            if getattr(self, name) <= 0:
                raise LayoutConfigError(f"{name} must be positive, got {getattr(self, name)!r}")
        if self.page_break_y <= self.margin:
            raise LayoutConfigError("page_break_y must be below the top margin")
        if self.content_right > self.page_width:
            raise LayoutConfigError("margins leave no room for content")

    @property
    def content_right(self) -> float:
        return self.page_width - self.margin

    @property
    def content_width(self) -> float:
        return self.content_right - self.margin


@dataclass(frozen=True)
class TableOptions:
    column_widths: Tuple[float, ...]
    top: float = 50.0
    row_height: float = 30.0
    header_height: float = 30.0
    text_offset: float = 10.0
    config: LayoutConfig = field(default_factory=LayoutConfig)

    def __post_init__(self):
        if not self.column_widths:
            raise LayoutConfigError("a table needs at least one column")
        if any(w <= 0 for w in self.column_widths):
            raise LayoutConfigError(f"column widths must be positive, got {self.column_widths!r}")
        if self.row_height <= 0 or self.header_height <= 0:
            raise LayoutConfigError("row and header heights must be positive")
        if self.config.margin + self.row_height > self.config.page_break_y:
            raise LayoutConfigError("row height does not fit between margin and page break")

    @property
    def total_width(self) -> float:
        return sum(self.column_widths)

    def with_columns(self, count: int) -> "TableOptions":
        return TableOptions(
            column_widths=self.column_widths[:count],
            top=self.top,
            row_height=self.row_height,
            header_height=self.header_height,
            text_offset=self.text_offset,
            config=self.config,
        )


GRADE_TABLE = TableOptions(column_widths=(300.0, 90.0, 100.0), row_height=30.0, header_height=30.0, text_offset=10.0)
ATTENDANCE_TABLE = TableOptions(column_widths=(245.0, 245.0), row_height=25.0, header_height=25.0, text_offset=8.0)


@dataclass(frozen=True)
class Cell:
    text: str
    color: str = TEXT_COLOR
    bold: bool = False


# ── Colour policy ───────────────────────────────────────────────────

def average_color(average: float) -> str:
    return PASS_COLOR if average >= PASS_AVERAGE else FAIL_COLOR


def attendance_color(percentage: float) -> str:
    return PASS_COLOR if percentage >= PASS_ATTENDANCE else FAIL_COLOR


def trend_cell(comparison: TrendComparison) -> Cell:
    """Arrow/equals symbol plus signed percentage, e.g. '↑ +12.5%'."""
    symbol, color = TREND_SYMBOLS[Trend(comparison.classification)]
    sign = "+" if comparison.percent_delta > 0 else ""
    return Cell(f"{symbol} {sign}{comparison.percent_delta:.1f}%", color=color, bold=True)


def _timestamp(generated_at: datetime) -> str:
    return generated_at.strftime("%d/%m/%Y %H:%M")


def wrap_text(text: str, width: float, font: str = "Helvetica", size: float = 11) -> List[str]:
    """Greedy word wrap by Helvetica metrics. A word wider than ``width`` gets a line of its own."""
    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and stringWidth(candidate, font, size) > width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


# ── Builder ─────────────────────────────────────────────────────────

class LayoutBuilder:
    """Accumulates instructions while tracking the vertical cursor."""

    def __init__(self, config: Optional[LayoutConfig] = None, top: Optional[float] = None):
        self.config = config or LayoutConfig()
        self.y = self.config.margin if top is None else top
        self.instructions: List[Instruction] = []

    def text(self, text: str, x: float, y: float, **kwargs) -> None:
        self.instructions.append(TextRun(text, x, y, **kwargs))

    def rect(self, x: float, y: float, width: float, height: float, fill: str, stroke: Optional[str] = None) -> None:
        self.instructions.append(Rect(x, y, width, height, fill, stroke))

    def page_break(self) -> None:
        self.instructions.append(PageBreak())
        self.y = self.config.margin

    def ensure_room(self, height: float) -> None:
        """Break the page when a block of ``height`` would cross the limit."""
        if self.y + height > self.config.page_break_y:
            self.page_break()

    def skip(self, height: float) -> None:
        self.y += height

    # Document pieces

    def title(self, text: str, size: float = 18, gap: float = 10, bold: bool = True) -> None:
        cfg = self.config
        self.text(text, cfg.margin, self.y, width=cfg.content_width, bold=bold, size=size, align="center")
        self.y += size + gap

    def rule(self, color: str = RULE_COLOR, thickness: float = 1) -> None:
        """Horizontal line across the content width."""
        cfg = self.config
        self.rect(cfg.margin, self.y, cfg.content_width, thickness, color)
        self.y += thickness

    def paragraph(self, text: str, size: float = 11, line_gap: float = 5) -> None:
        """
        Word-wrapped body text, justified except for the last line of each
        paragraph. Lines break onto a new page individually.
        """
        cfg = self.config
        line_height = size + line_gap
        for block in text.splitlines() or [""]:
            lines = wrap_text(block, cfg.content_width, size=size)
            if not lines:
                self.ensure_room(line_height)
                self.y += line_height
                continue
            for index, line in enumerate(lines):
                self.ensure_room(line_height)
                align = "left" if index == len(lines) - 1 else "justify"
                self.text(line, cfg.margin, self.y, width=cfg.content_width, size=size, align=align)
                self.y += line_height

    def info_line(self, label: str, value: str, label_width: float = 90, size: float = 11) -> None:
        x = self.config.margin
        self.text(label, x, self.y, bold=True, size=size)
        self.text(value, x + label_width, self.y, size=size)
        self.y += size + 7

    def table(self, header: Sequence[str], rows: Sequence[Sequence[Cell]], options: TableOptions) -> None:
        """
        Header band then one zebra-striped row per entry.

        A row whose bottom edge would pass ``page_break_y`` starts a new
        page at the top margin. The header band is drawn once, before the
        first row only.
        """
        if len(header) != len(options.column_widths):
            raise LayoutConfigError(
                f"{len(header)} header titles for {len(options.column_widths)} columns"
            )
        x0 = self.config.margin
        total = options.total_width

        # header band plus the first row stay together
        self.ensure_room(options.header_height + options.row_height)
        self.rect(x0, self.y, total, options.header_height, HEADER_FILL, HEADER_FILL)
        x = x0
        for title, width in zip(header, options.column_widths):
            self.text(title, x, self.y + options.text_offset, width=width,
                      color=HEADER_TEXT, bold=True, size=11, align="center")
            x += width
        self.y += options.header_height

        for index, row in enumerate(rows):
            self.ensure_room(options.row_height)
            self.rect(x0, self.y, total, options.row_height, ZEBRA_FILLS[index % 2], ROW_STROKE)
            x = x0
            for col, (cell, width) in enumerate(zip(row, options.column_widths)):
                if cell is not None and cell.text:
                    if col == 0:
                        self.text(cell.text, x + 10, self.y + options.text_offset, width=width - 20,
                                  color=cell.color, bold=cell.bold, align="left")
                    else:
                        self.text(cell.text, x, self.y + options.text_offset, width=width,
                                  color=cell.color, bold=cell.bold, align="center")
                x += width
            self.y += options.row_height

    def summary_box(self, heading: str, height: float) -> float:
        """Draw the bordered summary box; returns its top edge."""
        cfg = self.config
        self.ensure_room(height)
        top = self.y
        self.rect(cfg.margin, top, cfg.summary_width, height, SUMMARY_FILL, HEADER_FILL)
        self.text(heading, cfg.margin, top + 10, width=cfg.summary_width, bold=True, size=12, align="center")
        self.y = top + height
        return top

    def footer(self, text: str) -> None:
        cfg = self.config
        self.text(text, cfg.margin, cfg.footer_y, width=cfg.summary_width,
                  color=NEUTRAL_COLOR, size=8, align="center")


def layout_table(
    header: Sequence[str],
    rows: Sequence[Sequence[Cell]],
    options: TableOptions,
) -> List[Instruction]:
    """Lay out a single table starting at ``options.top``."""
    builder = LayoutBuilder(options.config, top=options.top)
    builder.table(header, rows, options)
    return builder.instructions


# ═══════════════════════════════════════════════════════════════════
# REPORT CARD
# ═══════════════════════════════════════════════════════════════════

def report_card_rows(card: ReportCard) -> Tuple[List[str], List[List[Cell]]]:
    with_trend = bool(card.has_comparison and card.comparisons is not None)
    header = ["SUBJECT", "AVERAGE"] + (["TREND"] if with_trend else [])
    by_id = {c.discipline_id: c for c in (card.comparisons or [])}

    rows = []
    for subject in card.averages:
        row = [
            Cell(subject.discipline_name),
            Cell(f"{subject.average:.2f}", color=average_color(subject.average), bold=True),
        ]
        if with_trend:
            comparison = by_id.get(subject.discipline_id)
            row.append(trend_cell(comparison) if comparison else Cell(""))
        rows.append(row)
    return header, rows


def _trend_legend(builder: LayoutBuilder) -> None:
    x = builder.config.margin
    builder.ensure_room(70)
    builder.text("TREND LEGEND:", x, builder.y, bold=True)
    builder.skip(18)
    for trend, caption, description in (
        (Trend.IMPROVED, "Improved:", "Better than the previous period"),
        (Trend.DECLINED, "Declined:", "Worse than the previous period"),
        (Trend.STABLE, "Stable:", "Similar to the previous period"),
    ):
        symbol, color = TREND_SYMBOLS[trend]
        builder.text(f"{symbol} {caption}", x + 10, builder.y, color=color, size=9)
        builder.text(description, x + 80, builder.y, size=9)
        builder.skip(14)


def layout_report_card(
    card: ReportCard,
    generated_at: datetime,
    options: TableOptions = GRADE_TABLE,
) -> List[Instruction]:
    builder = LayoutBuilder(options.config)
    builder.title(card.student.school_name.upper())
    builder.title("REPORT CARD", size=14, gap=21)

    builder.info_line("Student:", card.student.student_name)
    builder.info_line("Class:", card.student.class_name)
    builder.info_line("School year:", card.year)
    builder.info_line("Period:", f"{card.period_type.label} - {card.window_description}")
    builder.skip(20)

    header, rows = report_card_rows(card)
    builder.table(header, rows, options.with_columns(len(header)))
    builder.skip(25)

    if len(header) == 3:
        _trend_legend(builder)
        builder.skip(15)

    top = builder.summary_box("GENERAL SUMMARY", 60)
    overall = general_average(card.averages)
    x = builder.config.margin
    builder.text(f"Total subjects: {len(card.averages)}", x + 10, top + 35, size=11)
    builder.text("General average:", x + 220, top + 35, size=11)
    builder.text(f"{overall:.2f}", x + 320, top + 35, color=average_color(overall), bold=True, size=11)

    builder.footer(f"Report card generated on {_timestamp(generated_at)}")
    return builder.instructions


# ═══════════════════════════════════════════════════════════════════
# ATTENDANCE REPORT
# ═══════════════════════════════════════════════════════════════════

def attendance_rows(report: AttendanceReport) -> List[List[Cell]]:
    rows = []
    for call in report.calls:
        if call.present:
            presence = Cell("PRESENT", color=PASS_COLOR, bold=True)
        else:
            presence = Cell("ABSENT", color=FAIL_COLOR, bold=True)
        rows.append([Cell(call.date.strftime("%d/%m/%Y")), presence])
    return rows


def layout_attendance_report(
    report: AttendanceReport,
    generated_at: datetime,
    options: TableOptions = ATTENDANCE_TABLE,
) -> List[Instruction]:
    builder = LayoutBuilder(options.config)
    builder.title(report.student.school_name.upper())
    builder.title("ATTENDANCE REPORT", size=14, gap=21)

    builder.info_line("Student:", report.student.student_name)
    builder.info_line("Class:", report.student.class_name)
    builder.info_line(
        "Period:",
        f"{report.start.strftime('%d/%m/%Y')} to {report.end.strftime('%d/%m/%Y')}",
    )
    builder.skip(20)

    builder.table(["DATE", "PRESENCE"], attendance_rows(report), options)
    builder.skip(25)

    summary = report.summary
    top = builder.summary_box("SUMMARY", 80)
    x = builder.config.margin
    builder.text(f"Total classes: {summary.total_classes}", x + 10, top + 30, size=11)
    builder.text(f"Present: {summary.total_present}", x + 170, top + 30, size=11)
    builder.text(f"Absences: {summary.total_absent}", x + 310, top + 30, size=11)
    builder.text("Attendance:", x + 10, top + 50, bold=True, size=14)
    builder.text(f"{summary.percentage:.2f}%", x + 100, top + 50,
                 color=attendance_color(summary.percentage), bold=True, size=14)

    builder.footer(f"Report generated on {_timestamp(generated_at)}")
    return builder.instructions


# ═══════════════════════════════════════════════════════════════════
# STUDENT REPORT
# ═══════════════════════════════════════════════════════════════════

def layout_student_report(report: StudentReport, generated_at: datetime) -> List[Instruction]:
    builder = LayoutBuilder()
    cfg = builder.config
    builder.title(report.student.school_name.upper())
    builder.title("STUDENT PERFORMANCE REPORT", size=14, gap=21, bold=False)

    builder.info_line("Student:", report.student.student_name)
    builder.info_line("Class:", report.student.class_name)
    builder.info_line("Teacher:", report.teacher_name)
    builder.info_line("Period:", f"{report.period_type.label} - {report.period_label}".upper())
    builder.skip(20)

    builder.rule()
    builder.skip(15)

    builder.ensure_room(40)
    builder.text("TEACHER'S OBSERVATIONS", cfg.margin, builder.y, color=HEADER_FILL, bold=True, size=12)
    builder.skip(18)
    builder.paragraph(report.content)

    # follows the text, but never lower than 40pt above the bottom margin
    footer_y = min(builder.y + 40, cfg.page_height - cfg.margin - 40)
    builder.text(f"Report generated on {_timestamp(generated_at)}", cfg.margin, footer_y,
                 width=cfg.content_width, color=FOOTNOTE_COLOR, size=9, align="center")
    return builder.instructions
