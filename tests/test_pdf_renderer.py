"""Tests for A4 PDF output."""

import re
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from reportlab.platypus import KeepTogether, Paragraph, Spacer, Table

from app.models.paper import Duration, MatchPair, Paper, Question, QuestionType, Section
from app.models.printable import AnswerSpaceBlock, PassageBlock, PrintableQuestion
from app.services.paper_model import new_paper
from app.services.paper_renderer import render_paper
from app.services.pdf_renderer import (
    ANSWER_LINE_HEIGHT,
    _block,
    _register_font,
    _section,
    _text,
    build_styles,
    render_pdf,
)


@pytest.fixture
def full_paper():
    """One question of every type across two sections."""
    questions = [
        Question(id="q1", type=QuestionType.MCQ, text="2 + 2 = ?", marks=1,
                 options=["2", "4", "6", "8"]),
        Question(id="q2", type=QuestionType.VERY_SHORT, text="Name a gas.", marks=1),
        Question(id="q3", type=QuestionType.SHORT, text="Define <osmosis> & diffusion.", marks=3),
        Question(id="q4", type=QuestionType.LONG, text="Explain photosynthesis.", marks=5),
        Question(id="q5", type=QuestionType.FILL_BLANKS, text="Water boils at ___ C.", marks=1),
    ]
    more = [
        Question(id="q6", type=QuestionType.TRUE_FALSE, text="The sun is a star.", marks=1),
        Question(id="q7", type=QuestionType.MATCH_FOLLOWING, text="Match.", marks=4,
                 pairs=[MatchPair(left="H2O", right="Water"), MatchPair(left="NaCl", right="Salt")]),
        Question(id="q8", type=QuestionType.CASE_STUDY, text="Read the case.", marks=4,
                 passage="A farmer noticed...\nThe crop failed."),
        Question(id="q9", type=QuestionType.PASSAGE, text="Read the passage.", marks=4,
                 passage="Once upon a time."),
        Question(id="q10", type=QuestionType.PRACTICAL, text="Set up the apparatus.", marks=5),
    ]
    return Paper(
        school_name="Springfield High",
        school_address="12 Elm Street",
        exam_type="Annual Examination",
        class_name="Class X",
        subject="Science",
        duration=Duration(hours=3, minutes=0),
        general_instructions="1. All questions are compulsory.",
        total_marks=29,
        sections=[
            Section(id="s1", title="Section A", instructions="Answer briefly.", questions=questions),
            Section(id="s2", title="Section B", questions=more),
        ],
    )


class TestRenderPdf:

    def test_returns_pdf_bytes(self, full_paper):
        pdf = render_pdf(render_paper(full_paper))

        assert pdf.startswith(b"%PDF-")
        assert b"%%EOF" in pdf[-64:]

    def test_blank_paper(self):
        pdf = render_pdf(render_paper(new_paper()))
        assert pdf.startswith(b"%PDF-")

    def test_long_paper_spans_pages(self, full_paper):
        sections = [
            Section(id=f"s{n}", title=f"Section {n}", questions=[
                q.model_copy(update={"id": f"{q.id}_{n}"}) for q in full_paper.sections[1].questions
            ])
            for n in range(8)
        ]
        paper = full_paper.model_copy(update={"sections": sections})

        pdf = render_pdf(render_paper(paper))

        assert len(re.findall(rb"/Type /Page[^s]", pdf)) > 1

    def test_custom_font_is_registered(self):
        with patch("app.services.pdf_renderer.TTFont") as mock_font, \
                patch("app.services.pdf_renderer.pdfmetrics") as mock_metrics:
            mock_metrics.getRegisteredFontNames.return_value = []

            font, bold = _register_font("/fonts/NotoSerifDevanagari.ttf")

        mock_font.assert_called_once_with(font, "/fonts/NotoSerifDevanagari.ttf")
        mock_metrics.registerFont.assert_called_once()
        assert font == bold
        assert font.startswith("PaperFont-")

    def test_each_font_file_gets_its_own_name(self):
        with patch("app.services.pdf_renderer.TTFont") as mock_font, \
                patch("app.services.pdf_renderer.pdfmetrics") as mock_metrics:
            registered = []
            mock_metrics.getRegisteredFontNames.side_effect = lambda: list(registered)
            mock_metrics.registerFont.side_effect = lambda font: registered.append(font.name)
            mock_font.side_effect = lambda name, path: SimpleNamespace(name=name)

            devanagari, _ = _register_font("/fonts/NotoSerifDevanagari.ttf")
            maths, _ = _register_font("/fonts/STIXTwoMath.ttf")
            again, _ = _register_font("/fonts/NotoSerifDevanagari.ttf")

        assert devanagari != maths
        assert again == devanagari
        assert mock_metrics.registerFont.call_count == 2

    def test_default_fonts(self):
        assert _register_font(None) == ("Times-Roman", "Times-Bold")

    def test_passage_longer_than_a_page(self, full_paper):
        passage = Question(id="qp", type=QuestionType.PASSAGE, text="Read the passage.", marks=6,
                           passage="Lorem ipsum dolor sit amet. " * 800)
        paper = full_paper.model_copy(update={
            "sections": [Section(id="s1", title="Section A", questions=[passage])]
        })

        pdf = render_pdf(render_paper(paper))

        assert len(re.findall(rb"/Type /Page[^s]", pdf)) > 2

    def test_question_text_longer_than_a_page(self, full_paper):
        essay = Question(id="ql", type=QuestionType.LONG, text="Discuss the following. " * 900, marks=10)
        paper = full_paper.model_copy(update={
            "sections": [Section(id="s1", title="Section A", questions=[essay])]
        })

        pdf = render_pdf(render_paper(paper))

        assert len(re.findall(rb"/Type /Page[^s]", pdf)) > 1


class TestLayoutHelpers:

    def test_text_escapes_markup_and_keeps_line_breaks(self):
        assert _text("a < b & c\nnext") == "a &lt; b &amp; c<br/>next"

    def test_answer_space_height(self):
        styles = build_styles("Times-Roman", "Times-Bold")
        question = PrintableQuestion(
            number=1, label="Q.1.", text="Explain.", marks=5, marks_label="[5]",
            block=AnswerSpaceBlock(lines=3),
        )

        (spacer,) = _block(question, styles, 100)

        assert isinstance(spacer, Spacer)
        assert spacer.height == 3 * ANSWER_LINE_HEIGHT

    def test_passage_is_a_splittable_paragraph(self):
        styles = build_styles("Times-Roman", "Times-Bold")
        question = PrintableQuestion(
            number=1, label="Q.1.", text="Read.", marks=4, marks_label="[4]",
            block=PassageBlock(text="Once upon a time."),
        )

        (passage,) = _block(question, styles, 100)

        assert isinstance(passage, Paragraph)

    def test_no_block(self):
        styles = build_styles("Times-Roman", "Times-Bold")
        question = PrintableQuestion(number=1, label="Q.1.", text="T or F?", marks=1, marks_label="[1]")

        assert _block(question, styles, 100) == []

    def test_section_keeps_badge_with_first_question(self, full_paper):
        styles = build_styles("Times-Roman", "Times-Bold")
        section = render_paper(full_paper).sections[0]

        flowables = _section(section, styles)

        assert isinstance(flowables[0], KeepTogether)
        assert all(isinstance(f, KeepTogether) for f in flowables[:len(section.questions)])
        assert isinstance(flowables[len(section.questions)], Table)

    def test_empty_section_has_badge_and_footer(self):
        styles = build_styles("Times-Roman", "Times-Bold")
        section = render_paper(new_paper()).sections[0]

        flowables = _section(section, styles)

        assert not any(isinstance(f, KeepTogether) for f in flowables)
        assert isinstance(flowables[0], Table)
