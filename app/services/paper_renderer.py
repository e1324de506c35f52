"""Project a Paper onto its printable A4 layout.

render_paper is a pure function: it reads the paper and returns a
PrintableDocument, substituting display placeholders for blank header fields
without touching the stored data.

Each question type maps to exactly one block builder in _BLOCK_BUILDERS. The
table is checked against QuestionType when this module is imported, so a new
question type cannot reach the renderer without a rendering rule.
"""

from typing import Callable, Dict, List, Optional

from app.models.paper import Paper, Question, QuestionType, Section
from app.models.printable import (
    AnswerSpaceBlock,
    MatchBlock,
    OptionsBlock,
    PassageBlock,
    PrintableDocument,
    PrintableHeader,
    PrintableQuestion,
    PrintableSection,
    QuestionBlock,
)
from app.services.paper_model import section_letters

SCHOOL_NAME_PLACEHOLDER = "School Name"
SCHOOL_ADDRESS_PLACEHOLDER = "School Address Line"
EXAM_TYPE_PLACEHOLDER = "Examination"
CLASS_PLACEHOLDER = "Class"
SUBJECT_PLACEHOLDER = "Subject"


def letter_label(index: int) -> str:
    """Lowercase option label for a 0-based index: (a)..(z), then (aa), (ab), ..."""
    return f"({section_letters(index).lower()})"


# ---------------------------------------------------------------------------
# Per-type blocks
# ---------------------------------------------------------------------------

def _options_block(question: Question) -> Optional[QuestionBlock]:
    if not question.options:
        return None
    return OptionsBlock(
        items=[f"{letter_label(i)} {option}" for i, option in enumerate(question.options)]
    )


def _match_block(question: Question) -> Optional[QuestionBlock]:
    if not question.pairs:
        return None
    return MatchBlock(
        left=[f"{i + 1}. {pair.left}" for i, pair in enumerate(question.pairs)],
        right=[f"{letter_label(i)} {pair.right}" for i, pair in enumerate(question.pairs)],
    )


def _passage_block(question: Question) -> Optional[QuestionBlock]:
    if not question.passage:
        return None
    return PassageBlock(text=question.passage)


def _short_answer_space(question: Question) -> Optional[QuestionBlock]:
    return AnswerSpaceBlock(lines=1)


def _long_answer_space(question: Question) -> Optional[QuestionBlock]:
    return AnswerSpaceBlock(lines=3)


def _no_block(question: Question) -> Optional[QuestionBlock]:
    return None


_BLOCK_BUILDERS: Dict[QuestionType, Callable[[Question], Optional[QuestionBlock]]] = {
    QuestionType.MCQ: _options_block,
    QuestionType.VERY_SHORT: _no_block,
    QuestionType.SHORT: _short_answer_space,
    QuestionType.LONG: _long_answer_space,
    QuestionType.FILL_BLANKS: _no_block,
    QuestionType.TRUE_FALSE: _no_block,
    QuestionType.MATCH_FOLLOWING: _match_block,
    QuestionType.CASE_STUDY: _passage_block,
    QuestionType.PASSAGE: _passage_block,
    QuestionType.PRACTICAL: _no_block,
}

_missing = set(QuestionType) - set(_BLOCK_BUILDERS)
if _missing:
    raise RuntimeError(
        f"No rendering rule for question types: {sorted(t.value for t in _missing)}"
    )


# ---------------------------------------------------------------------------
# Document parts
# ---------------------------------------------------------------------------

def _or_placeholder(value: str, placeholder: str) -> str:
    return value.strip() or placeholder


def render_header(paper: Paper) -> PrintableHeader:
    total = sum(section.total_marks for section in paper.sections)
    return PrintableHeader(
        school_name=_or_placeholder(paper.school_name, SCHOOL_NAME_PLACEHOLDER),
        school_address=_or_placeholder(paper.school_address, SCHOOL_ADDRESS_PLACEHOLDER),
        exam_type=_or_placeholder(paper.exam_type, EXAM_TYPE_PLACEHOLDER),
        class_name=_or_placeholder(paper.class_name, CLASS_PLACEHOLDER),
        subject=_or_placeholder(paper.subject, SUBJECT_PLACEHOLDER),
        duration=f"{paper.duration.hours}h {paper.duration.minutes}m",
        max_marks=total,
    )


def render_instructions(text: str) -> List[str]:
    """One item per non-blank line, trimmed, in order."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def render_question(question: Question, number: int) -> PrintableQuestion:
    return PrintableQuestion(
        number=number,
        label=f"Q.{number}.",
        text=question.text,
        marks=question.marks,
        marks_label=f"[{question.marks}]",
        block=_BLOCK_BUILDERS[question.type](question),
    )


def render_section(section: Section) -> PrintableSection:
    """Render a section. Question numbers restart at 1 in every section."""
    total = section.total_marks
    return PrintableSection(
        title=section.title,
        instructions=section.instructions or None,
        questions=[
            render_question(question, number)
            for number, question in enumerate(section.questions, start=1)
        ],
        total_marks=total,
        footer=f"Total Marks for {section.title}: {total}",
    )


def render_paper(paper: Paper) -> PrintableDocument:
    """Build the printable layout of ``paper``."""
    return PrintableDocument(
        header=render_header(paper),
        instructions=render_instructions(paper.general_instructions),
        sections=[render_section(section) for section in paper.sections],
    )


def render_text(document: PrintableDocument) -> str:
    """Plain-text rendering of a printable document, used by the CLI preview."""
    header = document.header
    lines = [
        header.school_name.upper(),
        header.school_address,
        header.exam_type.upper(),
        "",
        f"Class: {header.class_name}    Time: {header.duration}",
        f"Subject: {header.subject}    Max Marks: {header.max_marks}",
        "",
        "GENERAL INSTRUCTIONS:",
    ]
    lines.extend(f"  - {item}" for item in document.instructions)

    for section in document.sections:
        lines.extend(["", f"[ {section.title.upper()} ]"])
        if section.instructions:
            lines.append(section.instructions)
        for question in section.questions:
            lines.append(f"{question.label} {question.text}  {question.marks_label}")
            block = question.block
            if isinstance(block, OptionsBlock):
                lines.extend(f"      {item}" for item in block.items)
            elif isinstance(block, MatchBlock):
                width = max(len(item) for item in block.left)
                lines.extend(
                    f"      {left.ljust(width)}    {right}"
                    for left, right in zip(block.left, block.right)
                )
            elif isinstance(block, PassageBlock):
                lines.extend(f"    | {line}" for line in block.text.splitlines())
            elif isinstance(block, AnswerSpaceBlock):
                lines.extend([""] * block.lines)
        lines.append(section.footer)

    lines.extend(["", document.footer.upper()])
    return "\n".join(lines)
