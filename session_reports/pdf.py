from __future__ import annotations  # Styled PDF rendering for interview transcripts and evaluations

import math
from typing import Any, List, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from interview_evaluation import EvaluationResult, Finding
from interview_session import TranscriptItem
from services.interviews import InterviewRecord


DEJAVU_SANS = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"  # System font
DEJAVU_SANS_BOLD = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"  # System font

ACCENT = (45, 115, 245)  # Palette accent
TEXT = (34, 34, 34)  # Primary text color
MUTED = (100, 100, 100)  # Secondary text color
RULE = (230, 230, 230)  # Divider color
SOFT_ACCENT_BG = (243, 248, 255)  # Highlight background
DECISION_COLORS = {"Hire": (22, 163, 74), "Consider": (202, 138, 4), "Pass": (220, 38, 38)}


def _effective_width(pdf: FPDF) -> float:  # Compute effective page width
    return float(pdf.w) - float(pdf.l_margin) - float(pdf.r_margin)


def _calc_text_height(pdf: FPDF, width: float, text: str, line_height: float) -> float:  # Estimate multi-cell height
    if not text:
        return line_height
    lines = pdf.multi_cell(width, line_height, text, dry_run=True, output="LINES")
    if isinstance(lines, (list, tuple)):
        return line_height * max(1, len(lines))
    return max(1, math.ceil(len(text) / 90)) * line_height


class ReportPDF(FPDF):  # PDF with custom header/footer styling
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.header_title = "Interview Report"
        self.font_regular = "Helvetica"
        self.font_bold = "Helvetica"
        self.supports_unicode = False

    def prepare(self, text: Any) -> str:  # Sanitize text for non-unicode fonts
        value = "" if text is None else str(text)
        if self.supports_unicode:
            return value
        return value.replace("•", "-").encode("latin-1", "ignore").decode("latin-1")

    def header(self) -> None:  # Render header banner
        usable = _effective_width(self)
        if self.page_no() == 1:
            self.set_fill_color(*ACCENT)
            self.rect(0, 0, self.w, 20, style="F")
            self.set_text_color(255, 255, 255)
            self.set_xy(self.l_margin, 6)
            self.set_font(self.font_bold, "B", 16)
            self.cell(usable, 8, self.prepare(self.header_title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            self.set_text_color(*TEXT)
            self.ln(6)
        else:
            self.set_text_color(80, 80, 80)
            self.set_xy(self.l_margin, 8)
            self.set_font(self.font_bold, "B", 12)
            self.cell(usable, 6, self.prepare(self.header_title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            mark = self.get_y()
            self.set_draw_color(*ACCENT)
            self.set_line_width(0.4)
            self.line(self.l_margin, mark + 1, self.w - self.r_margin, mark + 1)
            self.set_text_color(*TEXT)
            self.ln(4)

    def footer(self) -> None:  # Render footer with pagination
        self.set_y(-12)
        self.set_draw_color(*RULE)
        self.set_line_width(0.2)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_text_color(120, 120, 120)
        self.set_font(self.font_regular, "", 9)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="R")


def _section_title(pdf: ReportPDF, title: str) -> None:  # Render styled section title
    pdf.set_text_color(*TEXT)
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf.font_bold, "B", 13)
    pdf.cell(0, 9, pdf.prepare(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y()
    pdf.line(pdf.l_margin, y, pdf.l_margin + _effective_width(pdf), y)
    pdf.ln(2)


def _muted_line(pdf: ReportPDF, text: str) -> None:
    pdf.set_x(pdf.l_margin)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.multi_cell(_effective_width(pdf), 6, pdf.prepare(text))
    pdf.set_text_color(*TEXT)
    pdf.ln(2)


def _meta_block(pdf: ReportPDF, rows: List[Tuple[str, str]]) -> None:  # Draw two-column metadata
    col = _effective_width(pdf) / 2.0
    line = 6
    for idx in range(0, len(rows), 2):
        left = rows[idx]
        right = rows[idx + 1] if idx + 1 < len(rows) else ("", "")
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.cell(col, line, pdf.prepare(left[0]), new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, pdf.prepare(right[0]), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf.font_bold, "B", 11)
        pdf.cell(col, line, pdf.prepare(left[1]), new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, pdf.prepare(right[1]), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _render_scores(pdf: ReportPDF, evaluation: EvaluationResult) -> None:  # Draw competency score table
    widths = [_effective_width(pdf) * 0.7, _effective_width(pdf) * 0.3]
    pdf.set_x(pdf.l_margin)
    pdf.set_fill_color(*ACCENT)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font(pdf.font_bold, "B", 10)
    pdf.cell(widths[0], 8, "Competency", fill=True)
    pdf.cell(widths[1], 8, "Score", fill=True)
    pdf.ln(8)
    pdf.set_text_color(*TEXT)
    if not evaluation.scores:
        _muted_line(pdf, "No competency scores returned.")
        return
    pdf.set_font(pdf.font_regular, "", 10)
    for idx, (name, score) in enumerate(evaluation.scores.items()):
        fill = idx % 2 == 0
        if fill:
            pdf.set_fill_color(247, 250, 255)
        pdf.set_x(pdf.l_margin)
        pdf.cell(widths[0], 7, pdf.prepare(name.replace("_", " ").title()), fill=fill)
        pdf.cell(widths[1], 7, f"{score.score:.1f}/10", fill=fill)
        pdf.ln(7)
    pdf.ln(2)


def _render_overall(pdf: ReportPDF, evaluation: EvaluationResult) -> None:  # Highlight overall score and decision
    decision = evaluation.recommendation.decision
    pdf.set_fill_color(*SOFT_ACCENT_BG)
    pdf.rect(pdf.l_margin, pdf.get_y(), _effective_width(pdf), 16, style="F")
    pdf.set_xy(pdf.l_margin + 6, pdf.get_y() + 4)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.cell(_effective_width(pdf) / 2, 8, "Overall Score")
    pdf.set_text_color(*DECISION_COLORS.get(decision, ACCENT))
    pdf.set_font(pdf.font_bold, "B", 14)
    pdf.cell(
        _effective_width(pdf) / 2 - 12,
        8,
        f"{evaluation.weighted_average:.1f}/10 - {decision}",
        align="R",
    )
    pdf.ln(14)
    pdf.set_text_color(*TEXT)
    if evaluation.recommendation.summary:
        pdf.set_x(pdf.l_margin)
        pdf.set_font(pdf.font_regular, "", 11)
        pdf.multi_cell(_effective_width(pdf), 6, pdf.prepare(evaluation.recommendation.summary))
        pdf.ln(2)


def _render_findings(pdf: ReportPDF, findings: Sequence[Finding], empty: str) -> None:  # Bullet list of findings
    if not findings:
        _muted_line(pdf, empty)
        return
    bullet = "•" if pdf.supports_unicode else "-"
    for finding in findings:
        pdf.set_x(pdf.l_margin)
        pdf.set_font(pdf.font_bold, "B", 10)
        pdf.multi_cell(_effective_width(pdf), 6, pdf.prepare(f"{bullet} {finding.area}"))
        pdf.set_x(pdf.l_margin + 4)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.multi_cell(_effective_width(pdf) - 4, 5.5, pdf.prepare(finding.description))
    pdf.ln(2)


def _render_transcript(pdf: ReportPDF, items: Sequence[TranscriptItem]) -> None:  # Render transcript rows
    if not items:
        _muted_line(pdf, "No transcript entries recorded for this interview.")
        return
    stamp = 16.0
    body = _effective_width(pdf) - stamp
    line = 5.5
    for item in items:
        label = "Interviewer" if item.speaker == "interviewer" else "Candidate"
        content = pdf.prepare(item.content)
        block = _calc_text_height(pdf, body, content, line) + line + 3
        if pdf.get_y() + block > pdf.page_break_trigger:
            pdf.add_page()
        origin_y = pdf.get_y()
        if item.speaker == "interviewer":
            pdf.set_fill_color(248, 249, 255)
            pdf.rect(pdf.l_margin, origin_y, _effective_width(pdf), block, style="F")
        pdf.set_xy(pdf.l_margin, origin_y + 1)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 9)
        pdf.cell(stamp, line, item.timestamp)
        pdf.set_text_color(*ACCENT)
        pdf.set_font(pdf.font_bold, "B", 10)
        pdf.cell(body, line, label, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_x(pdf.l_margin + stamp)
        pdf.set_text_color(60, 60, 60)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.multi_cell(body, line, content)
        pdf.set_y(max(pdf.get_y(), origin_y + block) + 1)
    pdf.set_text_color(*TEXT)


def generate_interview_report_pdf(record: InterviewRecord) -> bytes:  # Build PDF payload for an interview record
    pdf = ReportPDF()
    pdf.alias_nb_pages()
    try:
        pdf.add_font("DejaVu", "", DEJAVU_SANS)
        pdf.add_font("DejaVu", "B", DEJAVU_SANS_BOLD)
    except (OSError, RuntimeError):  # system font missing; core fonts only cover latin-1
        pass
    else:
        pdf.font_regular = "DejaVu"
        pdf.font_bold = "DejaVu"
        pdf.supports_unicode = True
    pdf.header_title = f"{record.candidate_name} - {record.position_level} Interview Report"
    pdf.set_margins(15, 22, 15)
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    _section_title(pdf, "Interview Overview")
    _meta_block(
        pdf,
        [
            ("Candidate", record.candidate_name),
            ("Level", record.position_level),
            ("Date", record.date),
            ("Status", record.status.title()),
            ("Interview ID", record.interview_id),
            ("Score", f"{record.score:.1f}/10" if record.score is not None else "-"),
        ],
    )
    if record.notes:
        _section_title(pdf, "Interviewer Notes")
        pdf.set_x(pdf.l_margin)
        pdf.set_font(pdf.font_regular, "", 11)
        pdf.multi_cell(_effective_width(pdf), 6, pdf.prepare(record.notes))
        pdf.ln(2)

    _section_title(pdf, "Evaluation")
    evaluation = record.evaluation
    if evaluation is None:
        _muted_line(pdf, "This interview has not been evaluated yet.")
    else:
        _render_overall(pdf, evaluation)
        _render_scores(pdf, evaluation)
        _section_title(pdf, "Strengths")
        _render_findings(pdf, evaluation.strengths, "No strengths recorded.")
        _section_title(pdf, "Areas for Improvement")
        _render_findings(pdf, evaluation.weaknesses, "No weaknesses recorded.")

    _section_title(pdf, "Transcript")
    _render_transcript(pdf, record.transcript)

    return bytes(pdf.output())


__all__ = ["generate_interview_report_pdf"]
