"""A4 PDF output for printable question papers.

Lays out a PrintableDocument with reportlab platypus: 20 mm margins, a
centered school header, the class/subject and time/marks row, general
instructions, section badges, question rows with right-aligned marks and the
per-type blocks (option grid, match columns, inset passage, answer space).

The built-in Times faces cover Latin text only. Pass ``font_path`` (a
TrueType font with Devanagari and math glyphs) to print Hindi or Sanskrit
papers and symbol-heavy maths questions.
"""

import hashlib
import logging
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Tuple
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor, black
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, StyleSheet1, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import (
    Flowable,
    KeepTogether,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from app.models.printable import (
    AnswerSpaceBlock,
    MatchBlock,
    OptionsBlock,
    PassageBlock,
    PrintableDocument,
    PrintableQuestion,
    PrintableSection,
)

logger = logging.getLogger(__name__)

MARGIN = 20 * mm
PAGE_WIDTH = A4[0] - 2 * MARGIN
NUMBER_COLUMN = 12 * mm
MARKS_COLUMN = 14 * mm
ANSWER_LINE_HEIGHT = 8 * mm

BADGE_BACKGROUND = HexColor("#f1f5f9")
PASSAGE_BACKGROUND = HexColor("#f8fafc")
PASSAGE_RULE = HexColor("#cbd5e1")
MUTED = HexColor("#64748b")
PASSAGE_PADDING = 6

CUSTOM_FONT_PREFIX = "PaperFont"


def _register_font(font_path: Optional[str]) -> Tuple[str, str]:
    """Return (regular, bold) font names, registering ``font_path`` if given."""
    if not font_path:
        return "Times-Roman", "Times-Bold"
    path = str(Path(font_path))
    # One registered name per font file
    name = f"{CUSTOM_FONT_PREFIX}-{hashlib.sha1(path.encode('utf-8')).hexdigest()[:10]}"
    if name not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(name, path))
        logger.info("Registered PDF font %s from %s", name, font_path)
    # A single TTF file has no separate bold face
    return name, name


def build_styles(font: str, bold: str) -> StyleSheet1:
    styles = getSampleStyleSheet()

    def add(name: str, **kw: object) -> None:
        styles.add(ParagraphStyle(name=name, **kw))

    add("SchoolName", fontName=bold, fontSize=18, leading=22, alignment=TA_CENTER, spaceAfter=2)
    add("SchoolAddress", fontName=font, fontSize=10, leading=13, alignment=TA_CENTER, spaceAfter=6)
    add("ExamType", fontName=bold, fontSize=14, leading=18, alignment=TA_CENTER)
    add("Info", fontName=bold, fontSize=10, leading=14)
    add("InfoRight", fontName=bold, fontSize=10, leading=14, alignment=TA_RIGHT)
    add("InstructionsHeading", fontName=bold, fontSize=10, leading=14, spaceAfter=2)
    add("Instruction", fontName=font, fontSize=9, leading=12, leftIndent=10, bulletIndent=2)
    add("Badge", fontName=bold, fontSize=10, leading=13, alignment=TA_CENTER)
    add("SectionNote", fontName=font, fontSize=9, leading=12, alignment=TA_CENTER, spaceAfter=4)
    add("QNumber", fontName=bold, fontSize=10, leading=14)
    add("QText", fontName=font, fontSize=10, leading=14)
    add("QMarks", fontName=bold, fontSize=10, leading=14, alignment=TA_RIGHT)
    add("Option", fontName=font, fontSize=10, leading=14)
    add(
        "Passage",
        fontName=font,
        fontSize=9.5,
        leading=13,
        leftIndent=NUMBER_COLUMN + PASSAGE_PADDING,
        rightIndent=MARKS_COLUMN + PASSAGE_PADDING,
        backColor=PASSAGE_BACKGROUND,
        borderColor=PASSAGE_RULE,
        borderWidth=0.5,
        borderPadding=PASSAGE_PADDING,
        spaceBefore=PASSAGE_PADDING,
        spaceAfter=PASSAGE_PADDING,
    )
    add("SectionFooter", fontName=bold, fontSize=8.5, leading=12, alignment=TA_RIGHT)
    add("DocumentFooter", fontName=font, fontSize=8, leading=10, alignment=TA_CENTER, textColor=MUTED)
    return styles


def _text(value: str) -> str:
    """Escape for reportlab's mini-markup and keep line breaks."""
    return escape(value).replace("\n", "<br/>")


def _header(document: PrintableDocument, styles: StyleSheet1) -> List[Flowable]:
    header = document.header
    info = Table(
        [
            [
                Paragraph(f"Class: {_text(header.class_name)}", styles["Info"]),
                Paragraph(f"Time: {_text(header.duration)}", styles["InfoRight"]),
            ],
            [
                Paragraph(f"Subject: {_text(header.subject)}", styles["Info"]),
                Paragraph(f"Max Marks: {header.max_marks}", styles["InfoRight"]),
            ],
        ],
        colWidths=[PAGE_WIDTH / 2, PAGE_WIDTH / 2],
    )
    info.setStyle(TableStyle([
        ("LINEABOVE", (0, 0), (-1, 0), 1.5, black),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ("RIGHTPADDING", (0, 0), (-1, -1), 0),
    ]))

    flowables: List[Flowable] = [
        Paragraph(_text(header.school_name.upper()), styles["SchoolName"]),
        Paragraph(_text(header.school_address), styles["SchoolAddress"]),
        Paragraph(_text(header.exam_type.upper()), styles["ExamType"]),
        Spacer(1, 4 * mm),
        info,
        Spacer(1, 4 * mm),
    ]

    if document.instructions:
        flowables.append(Paragraph("GENERAL INSTRUCTIONS:", styles["InstructionsHeading"]))
        for item in document.instructions:
            flowables.append(
                Paragraph(f"<i>{_text(item)}</i>", styles["Instruction"], bulletText="•")
            )
        flowables.append(Spacer(1, 5 * mm))
    return flowables


def _badge(title: str, styles: StyleSheet1) -> Table:
    badge = Table([[Paragraph(_text(title.upper()), styles["Badge"])]], colWidths=[60 * mm])
    badge.setStyle(TableStyle([
        ("BOX", (0, 0), (-1, -1), 0.8, black),
        ("BACKGROUND", (0, 0), (-1, -1), BADGE_BACKGROUND),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
    ]))
    badge.hAlign = "CENTER"
    return badge


def _two_columns(left: List[str], right: List[str], style: ParagraphStyle, width: float) -> Table:
    """Two-column grid placed under the question text; rows split across pages."""
    rows = [
        ["", Paragraph(_text(a), style), Paragraph(_text(b), style)]
        for a, b in zip(left, right)
    ]
    grid = Table(rows, colWidths=[NUMBER_COLUMN, width / 2, width / 2])
    grid.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ("TOPPADDING", (0, 0), (-1, -1), 1),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 1),
    ]))
    grid.hAlign = "LEFT"
    return grid


def _block(question: PrintableQuestion, styles: StyleSheet1, width: float) -> List[Flowable]:
    """Flowables printed below the question row, aligned with the question text."""
    block = question.block
    if block is None:
        return []
    if isinstance(block, OptionsBlock):
        items = list(block.items)
        if len(items) % 2:
            items.append("")
        return [_two_columns(items[0::2], items[1::2], styles["Option"], width)]
    if isinstance(block, MatchBlock):
        return [_two_columns(block.left, block.right, styles["Option"], min(width, 110 * mm))]
    if isinstance(block, PassageBlock):
        # A Paragraph, not a table cell, so long passages continue on the next page
        return [Paragraph(f"<i>{_text(block.text)}</i>", styles["Passage"])]
    if isinstance(block, AnswerSpaceBlock):
        return [Spacer(1, block.lines * ANSWER_LINE_HEIGHT)]
    raise TypeError(f"Unsupported question block: {type(block).__name__}")


def _question(question: PrintableQuestion, styles: StyleSheet1) -> Flowable:
    body_width = PAGE_WIDTH - NUMBER_COLUMN - MARKS_COLUMN
    row = Table(
        [[
            Paragraph(question.label, styles["QNumber"]),
            Paragraph(_text(question.text), styles["QText"]),
            Paragraph(f"<i>{question.marks_label}</i>", styles["QMarks"]),
        ]],
        colWidths=[NUMBER_COLUMN, body_width, MARKS_COLUMN],
        splitInRow=1,
    )
    row.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ("RIGHTPADDING", (0, 0), (-1, -1), 0),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 1.5 * mm),
    ]))

    parts: List[Flowable] = [row, *_block(question, styles, body_width), Spacer(1, 2.5 * mm)]
    # Frame-sized questions still split; KeepTogether only moves smaller ones whole
    return KeepTogether(parts)


def _section(section: PrintableSection, styles: StyleSheet1) -> List[Flowable]:
    opening: List[Flowable] = [_badge(section.title, styles), Spacer(1, 3 * mm)]
    if section.instructions:
        opening.append(Paragraph(f"<i>{_text(section.instructions)}</i>", styles["SectionNote"]))

    questions = [_question(q, styles) for q in section.questions]
    flowables: List[Flowable] = []
    # Badge stays on the same page as the first question
    if questions:
        flowables.append(KeepTogether(opening + questions[:1]))
        flowables.extend(questions[1:])
    else:
        flowables.extend(opening)

    footer = Table([[Paragraph(_text(section.footer), styles["SectionFooter"])]], colWidths=[PAGE_WIDTH])
    footer.setStyle(TableStyle([
        ("LINEABOVE", (0, 0), (-1, 0), 0.5, PASSAGE_RULE),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ("RIGHTPADDING", (0, 0), (-1, -1), 0),
    ]))
    flowables.extend([footer, Spacer(1, 6 * mm)])
    return flowables


def render_pdf(document: PrintableDocument, font_path: Optional[str] = None) -> bytes:
    """Render ``document`` as an A4 PDF and return the file bytes.

    Args:
        document: Printable projection produced by render_paper
        font_path: Optional TrueType font used for all text

    Returns:
        PDF file content
    """
    font, bold = _register_font(font_path)
    styles = build_styles(font, bold)
    buffer = BytesIO()

    header = document.header
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        title=f"{header.exam_type} - {header.class_name} {header.subject}",
        author=header.school_name,
    )

    elements: List[Flowable] = _header(document, styles)
    for section in document.sections:
        elements.extend(_section(section, styles))
    elements.extend([Spacer(1, 8 * mm), Paragraph(document.footer.upper(), styles["DocumentFooter"])])

    doc.build(elements)
    pdf_bytes = buffer.getvalue()
    logger.debug("Rendered PDF: %d sections, %d bytes", len(document.sections), len(pdf_bytes))
    return pdf_bytes
