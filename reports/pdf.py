from __future__ import annotations  # Styled PDF rendering for applicant assessments

import os
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from interview import CATEGORY_TITLES, Facts
from storage.assessments import Assessment


DEJAVU_SANS = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"  # System font
DEJAVU_SANS_BOLD = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"  # System font

ACCENT = (30, 58, 138)  # Default dealer theme #1E3A8A
TEXT = (34, 34, 34)  # Primary text color
MUTED = (100, 100, 100)  # Secondary text color
RULE = (230, 230, 230)  # Divider color
SOFT_BG = (246, 248, 252)  # Zebra row background

RISK_COLORS = {  # Badge colors per risk band
    "low": (22, 163, 74),
    "medium": (217, 119, 6),
    "high": (220, 38, 38),
    "pending": (120, 120, 120),
}

_LATIN1_FOLD = {"’": "'", "‘": "'", "“": '"', "”": '"', "—": "-", "–": "-", "…": "...", "•": "-"}  # Core-font replacements


def hex_to_rgb(value: Optional[str], default: Tuple[int, int, int] = ACCENT) -> Tuple[int, int, int]:  # Parse #RRGGBB
    text = (value or "").strip().lstrip("#")
    if len(text) != 6:
        return default
    try:
        return tuple(int(text[i : i + 2], 16) for i in (0, 2, 4))  # type: ignore[return-value]
    except ValueError:
        return default


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:  # Parse ISO timestamp safely
    if not value:
        return None
    try:
        normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _format_datetime(value: Optional[datetime]) -> str:  # Format timestamp for display
    if not value:
        return "-"
    return value.strftime("%d %b %Y, %I:%M %p").lstrip("0").replace(" 0", " ")


def _effective_width(pdf: FPDF) -> float:  # Compute effective page width
    return float(pdf.w) - float(pdf.l_margin) - float(pdf.r_margin)


def format_value(value: Any) -> str:  # Render a fact value for humans
    if value is None or value == "":
        return "-"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        return f"{value:,.2f}".rstrip("0").rstrip(".")
    if isinstance(value, int):
        return f"{value:,}"
    return str(value)


def field_label(name: str) -> str:  # job_title -> Job title
    return name.replace("_", " ").capitalize()


class AssessmentPDF(FPDF):  # PDF with dealer-branded header/footer
    def __init__(self, *args, accent: Tuple[int, int, int] = ACCENT, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.accent = accent
        self.header_title = "Applicant Assessment"
        self.font_regular = "Helvetica"
        self.font_bold = "Helvetica"
        self.supports_unicode = False

    def use_unicode_fonts(self) -> None:  # Switch to DejaVu when installed
        if not (os.path.exists(DEJAVU_SANS) and os.path.exists(DEJAVU_SANS_BOLD)):
            return
        self.add_font("DejaVu", "", DEJAVU_SANS)
        self.add_font("DejaVu", "B", DEJAVU_SANS_BOLD)
        self.font_regular = "DejaVu"
        self.font_bold = "DejaVu"
        self.supports_unicode = True

    def prepare_text(self, text: Any) -> str:  # Sanitize text for core fonts
        value = "" if text is None else str(text)
        if self.supports_unicode:
            return value
        for src, dst in _LATIN1_FOLD.items():
            value = value.replace(src, dst)
        return value.encode("latin-1", "ignore").decode("latin-1")

    def write_cell(self, width: float, height: float, text: Any, **kwargs: Any) -> None:
        self.cell(width, height, self.prepare_text(text), **kwargs)

    def write_block(self, width: float, height: float, text: Any, **kwargs: Any) -> None:
        self.multi_cell(width, height, self.prepare_text(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT, **kwargs)

    def header(self) -> None:  # Render header banner
        usable = _effective_width(self)
        if self.page_no() == 1:
            self.set_fill_color(*self.accent)
            self.rect(0, 0, self.w, 20, style="F")
            self.set_text_color(255, 255, 255)
            self.set_font(self.font_bold, "B", 16)
            self.set_xy(self.l_margin, 6)
            self.write_cell(usable, 8, self.header_title)
            self.set_text_color(*TEXT)
            self.set_y(26)
        else:
            self.set_text_color(80, 80, 80)
            self.set_font(self.font_bold, "B", 12)
            self.set_xy(self.l_margin, 8)
            self.write_cell(usable, 6, self.header_title)
            self.set_draw_color(*self.accent)
            self.set_line_width(0.4)
            self.line(self.l_margin, 15, self.w - self.r_margin, 15)
            self.set_text_color(*TEXT)
            self.set_y(20)

    def footer(self) -> None:  # Render footer with pagination
        self.set_y(-12)
        self.set_draw_color(*RULE)
        self.set_line_width(0.2)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_text_color(120, 120, 120)
        self.set_font(self.font_regular, "", 9)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="R")


def _section_title(pdf: AssessmentPDF, title: str) -> None:  # Render styled section title
    pdf.set_text_color(*TEXT)
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf.font_bold, "B", 13)
    pdf.write_cell(0, 9, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y()
    pdf.line(pdf.l_margin, y, pdf.l_margin + _effective_width(pdf), y)
    pdf.ln(2)


def _muted_line(pdf: AssessmentPDF, text: str) -> None:  # Placeholder line for empty sections
    pdf.set_x(pdf.l_margin)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.write_block(_effective_width(pdf), 6, text)
    pdf.set_text_color(*TEXT)
    pdf.ln(2)


def _meta_block(pdf: AssessmentPDF, rows: List[Tuple[str, str]]) -> None:  # Draw two-column metadata
    col = _effective_width(pdf) / 2.0
    line = 6
    for idx in range(0, len(rows), 2):
        left = rows[idx]
        right = rows[idx + 1] if idx + 1 < len(rows) else ("", "")
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.write_cell(col, line, left[0], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.write_cell(col, line, right[0], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf.font_bold, "B", 11)
        pdf.write_cell(col, line, left[1], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.write_cell(col, line, right[1], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _render_risk(pdf: AssessmentPDF, assessment: Assessment) -> None:  # Badge, summary, pros and cons
    risk = assessment.risk_score or "pending"
    pdf.set_x(pdf.l_margin)
    pdf.set_fill_color(*RISK_COLORS.get(risk, RISK_COLORS["pending"]))
    pdf.set_text_color(255, 255, 255)
    pdf.set_font(pdf.font_bold, "B", 12)
    badge = risk.upper()
    if assessment.risk_score_numeric is not None:
        badge += f"  {assessment.risk_score_numeric}/100"
    pdf.write_cell(50, 9, badge, align="C", fill=True, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_text_color(*TEXT)
    pdf.ln(3)

    analysis = assessment.facts.get("analysis")
    if not isinstance(analysis, dict):
        _muted_line(pdf, "Risk analysis has not been run for this assessment yet.")
        return
    pdf.set_font(pdf.font_regular, "", 11)
    pdf.write_block(_effective_width(pdf), 6, analysis.get("result_summary") or "-")
    pdf.ln(2)
    for title, key in (("Pros", "pros"), ("Cons", "cons")):
        pdf.set_font(pdf.font_bold, "B", 11)
        pdf.write_cell(0, 7, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font(pdf.font_regular, "", 10)
        for item in analysis.get(key) or []:
            pdf.write_block(_effective_width(pdf), 6, f"• {item}")
        pdf.ln(1)
    pdf.ln(2)


def category_rows(facts: Facts) -> List[Tuple[str, List[Tuple[str, str]]]]:  # Answered fields per category
    sections: List[Tuple[str, List[Tuple[str, str]]]] = []
    for category, record in facts.by_category().items():
        rows = [
            (field_label(name), format_value(value)) for name, value in record.model_dump().items() if value is not None
        ]
        if rows:
            sections.append((CATEGORY_TITLES.get(category, category.title()), rows))
    return sections


def _render_facts(pdf: AssessmentPDF, facts: Facts) -> None:  # Facts grouped by category
    sections = category_rows(facts)
    if not sections:
        _muted_line(pdf, "No answers collected yet.")
        return
    width = _effective_width(pdf)
    for title, rows in sections:
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*pdf.accent)
        pdf.set_font(pdf.font_bold, "B", 11)
        pdf.write_cell(0, 7, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf.font_regular, "", 10)
        for idx, (label, value) in enumerate(rows):
            fill = idx % 2 == 0
            pdf.set_fill_color(*SOFT_BG)
            pdf.set_x(pdf.l_margin)
            pdf.write_cell(width * 0.4, 6, label, fill=fill, new_x=XPos.RIGHT, new_y=YPos.TOP)
            pdf.write_cell(width * 0.6, 6, value, fill=fill, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(2)


def _render_tags(pdf: AssessmentPDF, tags: Sequence[str], empty: str) -> None:  # Warning or hard-stop bullets
    if not tags:
        _muted_line(pdf, empty)
        return
    pdf.set_font(pdf.font_regular, "", 10)
    for tag in tags:
        pdf.write_block(_effective_width(pdf), 6, f"• {tag.replace('_', ' ')}")
    pdf.ln(2)


def _render_transcript(pdf: AssessmentPDF, messages: Sequence[Dict[str, Any]]) -> None:  # Chat transcript rows
    if not messages:
        _muted_line(pdf, "No transcript entries recorded for this assessment.")
        return
    width = _effective_width(pdf)
    for message in messages:
        role = message.get("role")
        speaker = "Applicant" if role == "user" else "Assistant"
        pdf.set_x(pdf.l_margin)
        pdf.set_font(pdf.font_bold, "B", 9)
        pdf.set_text_color(*(pdf.accent if role == "user" else MUTED))
        pdf.write_cell(width, 5, speaker, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.write_block(width, 5.5, message.get("content") or "-")
        pdf.ln(1.5)


def generate_assessment_report_pdf(  # Build PDF payload for one assessment
    assessment: Assessment,
    *,
    dealer_name: Optional[str] = None,
    theme_color: Optional[str] = None,
) -> bytes:
    facts = Facts.model_validate(assessment.facts)
    pdf = AssessmentPDF(accent=hex_to_rgb(theme_color))
    pdf.use_unicode_fonts()
    pdf.alias_nb_pages()
    customer = assessment.customer_name or "Applicant"
    pdf.header_title = f"{dealer_name or 'Dealership'} - {customer} - Applicant Assessment"
    pdf.set_margins(15, 22, 15)
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    _section_title(pdf, "Applicant")
    _meta_block(
        pdf,
        [
            ("Customer", customer),
            ("Phone", assessment.customer_phone or "-"),
            ("Vehicle", assessment.vehicle_type or "-"),
            ("Specific vehicle", assessment.vehicle_specific or "-"),
            ("Status", assessment.status.replace("_", " ")),
            ("Mode", assessment.mode),
            ("Created", _format_datetime(_parse_datetime(assessment.created_at))),
            ("Updated", _format_datetime(_parse_datetime(assessment.updated_at))),
        ],
    )

    _section_title(pdf, "Risk Result")
    _render_risk(pdf, assessment)

    _section_title(pdf, "Warnings")
    _render_tags(pdf, facts.warnings, "No warnings raised.")
    if facts.hard_stops:
        _section_title(pdf, "Hard Stops")
        _render_tags(pdf, facts.hard_stops, "")

    _section_title(pdf, "Answers")
    _render_facts(pdf, facts)

    _section_title(pdf, "Transcript")
    _render_transcript(pdf, assessment.answers)

    return bytes(pdf.output())


__all__ = ["generate_assessment_report_pdf", "category_rows", "format_value", "hex_to_rgb"]
