from __future__ import annotations  # Styled PDF rendering for hiring reports

from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from interview_session.models import ROUND_ORDER, HiringReport, Session

ACCENT = (45, 115, 245)  # Palette accent
TEXT = (34, 34, 34)  # Primary text color
MUTED = (100, 100, 100)  # Secondary text color
RULE = (230, 230, 230)  # Divider color
SOFT_ACCENT_BG = (243, 248, 255)  # Highlight background
ROW_FILL = (247, 250, 255)  # Zebra row background

ROUND_LABELS = {"technical": "Technical", "hr": "HR / Behavioral", "coding": "Coding"}


def _format_datetime(value: Optional[datetime]) -> str:  # Format timestamp for display
    if not value:
        return "-"
    return value.strftime("%d %b %Y, %I:%M %p").lstrip("0").replace(" 0", " ")


def _effective_width(pdf: FPDF) -> float:
    return float(pdf.w) - float(pdf.l_margin) - float(pdf.r_margin)


class ReportPDF(FPDF):  # PDF with banner header, paginated footer and latin-1 text
    def __init__(self, title: str, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.header_title = title

    @staticmethod
    def clean(text: Any) -> str:  # Core fonts only cover latin-1
        value = "" if text is None else str(text)
        value = value.replace("•", "-").replace("–", "-").replace("—", "-")
        return value.encode("latin-1", "ignore").decode("latin-1")

    def line_cell(self, width: float, height: float, text: Any, *, last: bool = False, **kwargs: Any) -> None:
        if last:
            self.cell(width, height, self.clean(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT, **kwargs)
        else:
            self.cell(width, height, self.clean(text), new_x=XPos.RIGHT, new_y=YPos.TOP, **kwargs)

    def paragraph(self, text: Any, height: float = 6) -> None:
        self.set_x(self.l_margin)
        self.multi_cell(_effective_width(self), height, self.clean(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def header(self) -> None:
        usable = _effective_width(self)
        if self.page_no() == 1:
            self.set_fill_color(*ACCENT)
            self.rect(0, 0, self.w, 20, style="F")
            self.set_text_color(255, 255, 255)
            self.set_font("Helvetica", "B", 16)
            self.set_xy(self.l_margin, 6)
            self.cell(usable, 8, self.clean(self.header_title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            self.set_text_color(*TEXT)
            self.set_y(26)
        else:
            self.set_text_color(80, 80, 80)
            self.set_xy(self.l_margin, 8)
            self.set_font("Helvetica", "B", 12)
            self.cell(usable, 6, self.clean(self.header_title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            self.set_draw_color(*ACCENT)
            self.set_line_width(0.4)
            self.line(self.l_margin, self.get_y() + 1, self.w - self.r_margin, self.get_y() + 1)
            self.set_text_color(*TEXT)
            self.ln(4)

    def footer(self) -> None:
        self.set_y(-12)
        self.set_draw_color(*RULE)
        self.set_line_width(0.2)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_text_color(120, 120, 120)
        self.set_font("Helvetica", "", 9)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="R")


def _section_title(pdf: ReportPDF, title: str) -> None:
    pdf.set_text_color(*TEXT)
    pdf.set_x(pdf.l_margin)
    pdf.set_font("Helvetica", "B", 13)
    pdf.line_cell(0, 9, title, last=True)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y()
    pdf.line(pdf.l_margin, y, pdf.l_margin + _effective_width(pdf), y)
    pdf.ln(2)


def _meta_block(pdf: ReportPDF, rows: List[Tuple[str, str]]) -> None:  # Two-column label/value grid
    col = _effective_width(pdf) / 2.0
    for idx in range(0, len(rows), 2):
        left = rows[idx]
        right = rows[idx + 1] if idx + 1 < len(rows) else ("", "")
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font("Helvetica", "", 10)
        pdf.line_cell(col, 6, left[0])
        pdf.line_cell(col, 6, right[0], last=True)
        pdf.set_text_color(*TEXT)
        pdf.set_font("Helvetica", "B", 11)
        pdf.line_cell(col, 6, left[1])
        pdf.line_cell(col, 6, right[1], last=True)
    pdf.ln(2)


def _table(pdf: ReportPDF, headers: Sequence[str], ratios: Sequence[float], rows: Sequence[Sequence[str]], empty: str) -> None:
    widths = [_effective_width(pdf) * ratio for ratio in ratios]
    pdf.set_x(pdf.l_margin)
    pdf.set_fill_color(*ACCENT)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font("Helvetica", "B", 10)
    for idx, title in enumerate(headers):
        pdf.line_cell(widths[idx], 8, title, last=idx == len(headers) - 1, fill=True)
    pdf.set_text_color(*TEXT)
    if not rows:
        pdf.set_text_color(*MUTED)
        pdf.set_font("Helvetica", "", 10)
        pdf.paragraph(empty)
        pdf.set_text_color(*TEXT)
        pdf.ln(2)
        return
    pdf.set_font("Helvetica", "", 10)
    for row_idx, row in enumerate(rows):
        fill = row_idx % 2 == 0
        if fill:
            pdf.set_fill_color(*ROW_FILL)
        pdf.set_x(pdf.l_margin)
        for idx, value in enumerate(row):
            pdf.line_cell(widths[idx], 7, value, last=idx == len(row) - 1, fill=fill)
    pdf.ln(2)


def _bullets(pdf: ReportPDF, lines: Sequence[str], empty: str) -> None:
    pdf.set_font("Helvetica", "", 11)
    if not lines:
        pdf.set_text_color(*MUTED)
        pdf.paragraph(empty)
        pdf.set_text_color(*TEXT)
    for line in lines:
        pdf.paragraph(f"- {line}")
    pdf.ln(2)


def _score_banner(pdf: ReportPDF, report: HiringReport) -> None:
    width = _effective_width(pdf)
    top = pdf.get_y()
    pdf.set_fill_color(*SOFT_ACCENT_BG)
    pdf.rect(pdf.l_margin, top, width, 18, style="F")
    pdf.set_xy(pdf.l_margin + 6, top + 5)
    pdf.set_text_color(*MUTED)
    pdf.set_font("Helvetica", "", 10)
    label = "Overall Score (provisional)" if report.provisional else "Overall Score"
    pdf.line_cell(width / 2 - 6, 8, label)
    pdf.set_text_color(*ACCENT)
    pdf.set_font("Helvetica", "B", 14)
    pdf.line_cell(width / 2 - 6, 8, f"{report.overall_score:.2f}/100  {report.decision}", last=True, align="R")
    pdf.set_y(top + 22)
    pdf.set_text_color(*TEXT)


def _round_rows(report: HiringReport) -> List[List[str]]:
    rows = []
    for kind in ROUND_ORDER:
        score = report.round_scores.get(kind, 0.0)
        weight = report.weights.get(kind, 0.0)
        rows.append([ROUND_LABELS[kind], f"{score:.2f}", f"{weight:.2f}", f"{score * weight:.2f}"])
    return rows


def _item_rows(session: Session) -> List[List[str]]:
    rows = []
    for kind in ROUND_ORDER:
        for item in session.round(kind).items:
            if item.answered:
                state = "skipped" if item.skipped else "answered"
            elif item.pending_answer:
                state = "draft only"
            else:
                state = "unanswered"
            score = "pending" if item.answered and item.score is None else (f"{item.score:.1f}" if item.score is not None else "-")
            rows.append([ROUND_LABELS[kind], item.item_id, item.category, state, score])
    return rows


def generate_hiring_report_pdf(report: HiringReport, session: Session) -> bytes:
    """Render the hiring report and per-item outcomes as PDF bytes."""

    pdf = ReportPDF(f"{session.role} - Hiring Report")
    pdf.alias_nb_pages()
    pdf.set_margins(15, 22, 15)
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    _section_title(pdf, "Session Overview")
    _meta_block(
        pdf,
        [
            ("Session ID", session.session_id),
            ("Candidate ID", session.candidate_id),
            ("Role", session.role),
            ("Difficulty", session.difficulty.title()),
            ("Started", _format_datetime(session.created_at)),
            ("Completed", _format_datetime(session.completed_at)),
            ("Decision", report.decision),
            ("Hiring Probability", f"{report.probability}%"),
            ("Role Readiness", report.role_readiness or "-"),
            ("Generated", _format_datetime(report.generated_at)),
        ],
    )
    _score_banner(pdf, report)

    _section_title(pdf, "Round Scores")
    _table(pdf, ["Round", "Score", "Weight", "Contribution"], [0.4, 0.2, 0.2, 0.2], _round_rows(report), "No rounds scored.")

    _section_title(pdf, "Integrity")
    counts = ", ".join(f"{kind.replace('_', ' ')}: {count}" for kind, count in sorted(report.signal_counts.items()))
    pdf.set_font("Helvetica", "", 11)
    pdf.paragraph(f"Raw score {report.raw_score:.2f}, penalty {report.integrity_penalty:.2f}.")
    pdf.paragraph(f"Signals: {counts or 'none recorded'}")
    pdf.ln(2)

    _section_title(pdf, "Category Scores")
    category_rows = [
        [ROUND_LABELS.get(kind, kind), category, f"{score:.2f}"]
        for kind in ROUND_ORDER
        for category, score in sorted(report.category_scores.get(kind, {}).items())
    ]
    _table(pdf, ["Round", "Category", "Score"], [0.3, 0.5, 0.2], category_rows, "No category scores recorded.")

    _section_title(pdf, "Strengths")
    _bullets(pdf, report.strengths, "No standout categories.")
    _section_title(pdf, "Areas to Improve")
    _bullets(pdf, report.weaknesses, "No weak categories.")
    _section_title(pdf, "Improvement Plan")
    _bullets(pdf, report.improvement_plan, "Keep practising across all categories.")

    _section_title(pdf, "Item Breakdown")
    _table(
        pdf,
        ["Round", "Item", "Category", "State", "Score"],
        [0.22, 0.12, 0.3, 0.2, 0.16],
        _item_rows(session),
        "No items recorded for this session.",
    )

    output = pdf.output()
    return bytes(output)


__all__ = ["ReportPDF", "generate_hiring_report_pdf"]
