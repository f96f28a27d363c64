from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from fpdf import FPDF

from lighthouse_runner.config import CATEGORY_LABELS
from lighthouse_runner.models import AuditResult

# ---------------------------------------------------------------------------
# Colour constants (RGB tuples)
# ---------------------------------------------------------------------------
GREEN = (34, 197, 94)
YELLOW = (245, 158, 11)
RED = (239, 68, 68)
DARK_BG = (30, 41, 59)
LIGHT_TEXT = (226, 232, 240)
WHITE = (255, 255, 255)
GREY = (148, 163, 184)
BAR_BG = (80, 90, 110)


def _score_color(score: int) -> tuple[int, int, int]:
    # Lighthouse thresholds: 90+ good, 50-89 needs work
    if score >= 90:
        return GREEN
    if score >= 50:
        return YELLOW
    return RED


def _percent(score: Optional[float]) -> Optional[int]:
    return None if score is None else round(score * 100)


# ===================================================================
# PDF class
# ===================================================================

class SummaryPDF(FPDF):
    def __init__(self) -> None:
        super().__init__(orientation="P", unit="mm", format="A4")
        self.set_auto_page_break(auto=False)

    def _set_color(self, rgb: tuple[int, int, int]) -> None:
        self.set_text_color(*rgb)

    def dark_page(self) -> None:
        self.add_page()
        self.set_fill_color(*DARK_BG)
        self.rect(0, 0, self.w, self.h, "F")


# ===================================================================
# Page renderers
# ===================================================================

def _render_header(pdf: SummaryPDF, base_url: str, sub_dir: Optional[str], count: int) -> float:
    pdf.dark_page()
    pdf.set_font("Helvetica", "B", 22)
    pdf._set_color(WHITE)
    pdf.set_xy(15, 15)
    pdf.cell(0, 10, "Lighthouse Summary", new_x="LMARGIN", new_y="NEXT")

    now = datetime.now(timezone.utc).strftime("%B %d, %Y at %H:%M UTC")
    pdf.set_font("Helvetica", "", 10)
    pdf._set_color(GREY)
    pdf.set_x(15)
    pdf.cell(0, 6, f"{base_url}  |  subdirectory: {sub_dir or 'None'}  |  {count} report(s)", new_x="LMARGIN", new_y="NEXT")
    pdf.set_x(15)
    pdf.cell(0, 6, f"Generated {now}", new_x="LMARGIN", new_y="NEXT")

    pdf.set_draw_color(*GREY)
    pdf.set_line_width(0.3)
    pdf.line(15, 42, pdf.w - 15, 42)
    return 48


def _render_route(pdf: SummaryPDF, report: AuditResult, y: float) -> float:
    block_h = 10 + 7 * len(CATEGORY_LABELS)
    if y + block_h > pdf.h - 15:
        pdf.dark_page()
        y = 15

    pdf.set_font("Helvetica", "B", 12)
    pdf._set_color(WHITE)
    pdf.set_xy(15, y)
    # core fonts are latin-1 only
    pdf.cell(0, 7, report.route.encode("latin-1", "replace").decode("latin-1"))
    y += 9

    scores = report.scores.model_dump() if report.scores else {}
    bar_x = 60
    bar_max_w = pdf.w - bar_x - 30
    for field, label in CATEGORY_LABELS.items():
        value = _percent(scores.get(field))

        pdf.set_font("Helvetica", "", 9)
        pdf._set_color(LIGHT_TEXT)
        pdf.set_xy(15, y)
        pdf.cell(bar_x - 17, 6, label, align="R")

        pdf.set_fill_color(*BAR_BG)
        pdf.rect(bar_x, y + 1, bar_max_w, 4, "F")

        if value is None:
            pdf.set_font("Helvetica", "", 8)
            pdf._set_color(GREY)
            pdf.set_xy(bar_x + bar_max_w + 2, y)
            pdf.cell(20, 6, "n/a")
        else:
            color = _score_color(value)
            fill_w = bar_max_w * value / 100
            if fill_w > 0:
                pdf.set_fill_color(*color)
                pdf.rect(bar_x, y + 1, fill_w, 4, "F")
            pdf.set_font("Helvetica", "B", 9)
            pdf._set_color(color)
            pdf.set_xy(bar_x + bar_max_w + 2, y)
            pdf.cell(20, 6, str(value))
        y += 7

    return y + 4


# ===================================================================
# Public API
# ===================================================================

def generate_pdf(reports: Sequence[AuditResult], base_url: str, sub_dir: Optional[str] = None) -> bytes:
    """Render one score block per audited route and return raw PDF bytes."""
    pdf = SummaryPDF()
    y = _render_header(pdf, base_url, sub_dir, len(reports))
    for report in reports:
        y = _render_route(pdf, report, y)
    return bytes(pdf.output())
