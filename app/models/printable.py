"""Pydantic models for the printable projection of a paper.

A PrintableDocument is plain display data: every label is already formatted
and every placeholder already substituted, so the PDF renderer and any client
preview only lay it out.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class OptionsBlock(BaseModel):
    """Lettered MCQ options: ``(a) ...``, ``(b) ...``."""
    kind: Literal["options"] = "options"
    items: List[str] = Field(default_factory=list)


class MatchBlock(BaseModel):
    """Two independent columns. Row order carries no answer key."""
    kind: Literal["match"] = "match"
    left: List[str] = Field(default_factory=list, description="Numbered items: '1. ...'")
    right: List[str] = Field(default_factory=list, description="Lettered items: '(a) ...'")


class PassageBlock(BaseModel):
    """Inset passage or case study text, shown after the question text."""
    kind: Literal["passage"] = "passage"
    text: str


class AnswerSpaceBlock(BaseModel):
    """Blank space left under short and long answer questions."""
    kind: Literal["answer_space"] = "answer_space"
    lines: int = Field(default=1, ge=1)


QuestionBlock = Annotated[
    Union[OptionsBlock, MatchBlock, PassageBlock, AnswerSpaceBlock],
    Field(discriminator="kind"),
]


class PrintableQuestion(BaseModel):
    number: int = Field(ge=1, description="1-based position within its section")
    label: str = Field(description="e.g. 'Q.1.'")
    text: str
    marks: int
    marks_label: str = Field(description="e.g. '[3]'")
    block: Optional[QuestionBlock] = None


class PrintableSection(BaseModel):
    title: str
    instructions: Optional[str] = None
    questions: List[PrintableQuestion] = Field(default_factory=list)
    total_marks: int
    footer: str = Field(description="e.g. 'Total Marks for Section A: 10'")


class PrintableHeader(BaseModel):
    school_name: str
    school_address: str
    exam_type: str
    class_name: str
    subject: str
    duration: str = Field(description="e.g. '3h 0m'")
    max_marks: int


class PrintableDocument(BaseModel):
    """A4 question paper layout, in reading order."""
    header: PrintableHeader
    instructions: List[str] = Field(default_factory=list)
    sections: List[PrintableSection] = Field(default_factory=list)
    footer: str = "End of Question Paper"
