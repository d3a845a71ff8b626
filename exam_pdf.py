"""
Exam PDF Renderer

Lays out a plain-text exam paper on A4 pages with reportlab: centered title
lines, bold section headers and questions, indented options, right-aligned
mark allocations and a "Page i of N" footer on every page.
"""

import io
import logging
import re
from typing import List, Tuple

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 20 * mm
MAX_WIDTH = PAGE_WIDTH - 2 * MARGIN
BOTTOM_LIMIT = PAGE_HEIGHT - 30 * mm
INDENT = 5 * mm

INSTRUCTION_PREFIXES = ("instructions:", "time allowed:", "total marks:", "name:", "class:")

MCQ_OPTION = re.compile(r"^[A-D]\)")
SECTION_HEADER = re.compile(r"^SECTION [A-Z]", re.IGNORECASE)
QUESTION = re.compile(r"^[0-9]+\.")
SUB_QUESTION = re.compile(r"^[a-z]\)", re.IGNORECASE)
MARKS = re.compile(r"^(\[.*marks?\]|\(.*marks?\))$", re.IGNORECASE)

# kind -> (font, size, leading mm, indent, space before mm, space after mm)
LINE_STYLES = {
    "option": ("Helvetica", 11, 5, INDENT, 0, 0),
    "section": ("Helvetica-Bold", 14, 7, 0, 5, 2),
    "instruction": ("Helvetica-Bold", 11, 5, 0, 0, 2),
    "question": ("Helvetica-Bold", 11, 6, 0, 3, 1),
    "subquestion": ("Helvetica", 11, 5, INDENT, 0, 1),
    "marks": ("Helvetica-Oblique", 10, 5, 0, 0, 0),
    "text": ("Helvetica", 11, 5, 0, 0, 1),
}


def strip_markdown(text: str) -> str:
    text = re.sub(r"\*\*(.*?)\*\*", r"\1", text)
    text = re.sub(r"\*(.*?)\*", r"\1", text)
    text = re.sub(r"__(.*?)__", r"\1", text)
    text = re.sub(r"_(.*?)_", r"\1", text)
    text = re.sub(r"##\s*", "", text)
    return re.sub(r"#\s*", "", text)


def classify_line(line: str, index: int) -> str:
    """
    Decide how a cleaned exam line is drawn.

    Args:
        line: Line with markdown already stripped
        index: Position of the line in the document, blank lines included

    Returns:
        One of blank, option, title, section, instruction, question,
        subquestion, marks or text
    """
    if not line:
        return "blank"
    if MCQ_OPTION.match(line):
        return "option"
    if index < 3 and not line[0].isdigit() and len(line) < 100:
        return "title"
    if SECTION_HEADER.match(line):
        return "section"
    if line.lower().startswith(INSTRUCTION_PREFIXES):
        return "instruction"
    if QUESTION.match(line):
        return "question"
    if SUB_QUESTION.match(line):
        return "subquestion"
    if MARKS.match(line):
        return "marks"
    return "text"


def layout_lines(content: str) -> List[Tuple[str, str]]:
    """Pair every line of the paper with its kind"""
    return [
        (classify_line(strip_markdown(raw.strip()), index), strip_markdown(raw.strip()))
        for index, raw in enumerate(content.split("\n"))
    ]


class NumberedCanvas(canvas.Canvas):
    """Canvas that stamps "Page i of N" once the page count is known"""

    def __init__(self, *args, **kwargs):
        canvas.Canvas.__init__(self, *args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total_pages = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self.draw_footer(total_pages)
            canvas.Canvas.showPage(self)
        canvas.Canvas.save(self)

    def draw_footer(self, total_pages: int):
        self.saveState()
        self.setStrokeGray(0.78)
        self.line(MARGIN, 15 * mm, PAGE_WIDTH - MARGIN, 15 * mm)
        self.setFont("Helvetica", 9)
        self.setFillGray(0.39)
        self.drawCentredString(PAGE_WIDTH / 2, 10 * mm, f"Page {self._pageNumber} of {total_pages}")
        self.restoreState()


class ExamPdfWriter:
    """Draws classified lines top to bottom, breaking pages as needed"""

    def __init__(self, pdf: canvas.Canvas):
        self.pdf = pdf
        self.y = MARGIN  # distance from the top edge

    def _new_page_if_needed(self):
        if self.y > BOTTOM_LIMIT:
            self.pdf.showPage()
            self.y = MARGIN

    def _draw(self, text: str, x: float, align: str = "left"):
        baseline = PAGE_HEIGHT - self.y
        if align == "center":
            self.pdf.drawCentredString(x, baseline, text)
        elif align == "right":
            self.pdf.drawRightString(x, baseline, text)
        else:
            self.pdf.drawString(x, baseline, text)

    def write_title(self, text: str, index: int):
        size = 16 if index == 0 else 14
        self.pdf.setFont("Helvetica-Bold", size)
        for part in simpleSplit(text, "Helvetica-Bold", size, MAX_WIDTH):
            self._draw(part, PAGE_WIDTH / 2, align="center")
            self.y += (8 if index == 0 else 7) * mm
        self.y += 2 * mm

    def write(self, kind: str, text: str):
        font, size, leading, indent, before, after = LINE_STYLES[kind]
        self.y += before * mm
        self.pdf.setFont(font, size)
        if kind == "marks":
            self._draw(text, PAGE_WIDTH - MARGIN, align="right")
            self.y += leading * mm
            return
        for part in simpleSplit(text, font, size, MAX_WIDTH - 2 * indent):
            self._new_page_if_needed()
            self.pdf.setFont(font, size)
            self._draw(part, MARGIN + indent)
            self.y += leading * mm
        self.y += after * mm

    def write_all(self, lines: List[Tuple[str, str]]):
        previous_kind = None
        for index, (kind, text) in enumerate(lines):
            follows_question = previous_kind == "question"
            previous_kind = kind
            if kind == "blank":
                self.y += 3 * mm
                continue
            if kind == "marks" and follows_question:
                continue
            self._new_page_if_needed()
            if kind == "title":
                self.write_title(text, index)
            else:
                self.write(kind, text)


def render_exam_pdf(content: str) -> bytes:
    """
    Render exam text to PDF bytes

    Args:
        content: Plain-text exam paper, one item per line

    Returns:
        bytes: The PDF document
    """
    buffer = io.BytesIO()
    pdf = NumberedCanvas(buffer, pagesize=A4)
    pdf.setTitle("Exam Paper")
    ExamPdfWriter(pdf).write_all(layout_lines(content))
    pdf.showPage()
    pdf.save()
    data = buffer.getvalue()
    logger.info(f"📄 Rendered exam PDF ({len(data)} bytes)")
    return data
