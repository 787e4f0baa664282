"""
render.py — Stream layout instructions onto a ReportLab canvas.

Layout coordinates are top-down; the PDF user space is bottom-up, so every
y is flipped against the page height here.
"""

import io
from typing import Iterable, List, Optional, Tuple

from reportlab.lib import colors
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas as rl_canvas

from academics.layout import Instruction, LayoutConfig, PageBreak, Rect, TextRun

# Arrows are not in the WinAnsi encoding of Helvetica; Symbol has them.
SYMBOL_CHARS = {"↑", "↓"}


def _color(name: str):
    if name.startswith("#"):
        return colors.HexColor(name)
    return getattr(colors, name)


def _segments(text: str, font: str) -> List[Tuple[str, str]]:
    """Split text into (font, chunk) runs so arrows use the Symbol font."""
    runs: List[Tuple[str, str]] = []
    for ch in text:
        face = "Symbol" if ch in SYMBOL_CHARS else font
        if runs and runs[-1][0] == face:
            runs[-1] = (face, runs[-1][1] + ch)
        else:
            runs.append((face, ch))
    return runs


def _draw_justified(c, run: TextRun, font: str, baseline: float) -> None:
    """Spread the words of one line so it fills ``run.width`` exactly."""
    words = run.text.split()
    widths = [stringWidth(w, font, run.size) for w in words]
    gap = (run.width - sum(widths)) / (len(words) - 1)
    x = run.x
    for word, width in zip(words, widths):
        c.drawString(x, baseline, word)
        x += width + gap


def _draw_text(c, run: TextRun, page_height: float) -> None:
    font = "Helvetica-Bold" if run.bold else "Helvetica"
    if run.align == "justify" and run.width is not None and len(run.text.split()) > 1:
        c.setFillColor(_color(run.color))
        c.setFont(font, run.size)
        _draw_justified(c, run, font, page_height - run.y - run.size)
        return

    runs = _segments(run.text, font)
    total = sum(stringWidth(chunk, face, run.size) for face, chunk in runs)

    x = run.x
    if run.width is not None:
        if run.align == "center":
            x = run.x + (run.width - total) / 2
        elif run.align == "right":
            x = run.x + run.width - total

    # pdfkit-style: the run's y is the top of the line box
    baseline = page_height - run.y - run.size
    c.setFillColor(_color(run.color))
    for face, chunk in runs:
        c.setFont(face, run.size)
        c.drawString(x, baseline, chunk)
        x += stringWidth(chunk, face, run.size)


def _draw_rect(c, rect: Rect, page_height: float) -> None:
    c.setFillColor(_color(rect.fill))
    stroke = 0
    if rect.stroke:
        c.setStrokeColor(_color(rect.stroke))
        stroke = 1
    c.rect(rect.x, page_height - rect.y - rect.height, rect.width, rect.height, fill=1, stroke=stroke)


def render_pdf(
    instructions: Iterable[Instruction],
    title: str = "",
    author: str = "",
    config: Optional[LayoutConfig] = None,
) -> bytes:
    """Render instructions into a PDF document and return its bytes."""
    config = config or LayoutConfig()
    page_height = config.page_height

    buf = io.BytesIO()
    c = rl_canvas.Canvas(buf, pagesize=(config.page_width, page_height))
    c.setTitle(title)
    c.setAuthor(author)

    for item in instructions:
        if isinstance(item, PageBreak):
            c.showPage()
        elif isinstance(item, Rect):
            _draw_rect(c, item, page_height)
        elif isinstance(item, TextRun):
            _draw_text(c, item, page_height)
        else:
            raise TypeError(f"Unknown draw instruction: {item!r}")

    c.showPage()
    c.save()
    return buf.getvalue()
