"""Pydantic models for exam question papers.

A Paper is the root document: school metadata, general instructions and an
ordered list of Sections, each holding an ordered list of Questions. Models
are frozen; edits go through app.services.paper_model, which builds new
instances instead of mutating existing ones.

Serialized field names are camelCase (``schoolName``, ``totalMarks``) so that
files exported by the browser editor load unchanged. Python attributes stay
snake_case.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# CATALOG
# =============================================================================

class QuestionType(str, Enum):
    """Closed set of question kinds. Values are the labels shown in the editor."""
    MCQ = "MCQ"
    VERY_SHORT = "Very Short Answer"
    SHORT = "Short Answer"
    LONG = "Long Answer"
    FILL_BLANKS = "Fill in the Blanks"
    TRUE_FALSE = "True / False"
    MATCH_FOLLOWING = "Match the Following"
    CASE_STUDY = "Case Study Based"
    PASSAGE = "Passage Based"
    PRACTICAL = "Practical Questions"


class Subject(str, Enum):
    HINDI = "Hindi"
    ENGLISH = "English"
    MATHS = "Mathematics"
    SCIENCE = "Science"
    SOCIAL_SCIENCE = "Social Science"
    COMPUTER = "Computer Science"
    SANSKRIT = "Sanskrit"
    CUSTOM = "Custom"


class ExamType(str, Enum):
    UNIT_TEST = "Unit Test"
    HALF_YEARLY = "Half Yearly"
    ANNUAL = "Annual Examination"
    BOARD = "Board Examination"
    CUSTOM = "Custom Exam"


CLASSES = [
    "Class I", "Class II", "Class III", "Class IV", "Class V", "Class VI",
    "Class VII", "Class VIII", "Class IX", "Class X", "Class XI", "Class XII",
]

DEFAULT_INSTRUCTIONS = (
    "1. All questions are compulsory.\n"
    "2. The question paper consists of 4 sections A, B, C, and D.\n"
    "3. Marks for each question are indicated against it.\n"
    "4. Use of calculator is strictly prohibited."
)

MATH_SYMBOLS = [
    "√", "π", "∑", "∫", "≤", "≥", "×", "÷", "≠", "±",
    "∞", "α", "β", "γ", "Δ", "θ", "λ", "μ", "σ", "Ω",
]

SANSKRIT_SYMBOLS = ["।", "॥", "ऽ", "ॐ", "ं", "ः"]

# Types not listed fall back to FALLBACK_MARKS
DEFAULT_MARKS: Dict[QuestionType, int] = {
    QuestionType.MCQ: 1,
    QuestionType.VERY_SHORT: 1,
    QuestionType.FILL_BLANKS: 1,
    QuestionType.SHORT: 3,
    QuestionType.LONG: 5,
}
FALLBACK_MARKS = 5

PASSAGE_TYPES = frozenset({QuestionType.PASSAGE, QuestionType.CASE_STUDY})


def default_marks(question_type: QuestionType) -> int:
    """Marks a freshly added question of this type starts with."""
    return DEFAULT_MARKS.get(question_type, FALLBACK_MARKS)


# =============================================================================
# DOCUMENT MODELS
# =============================================================================

class PaperModel(BaseModel):
    """Base for stored document nodes: camelCase on the wire, immutable in memory."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict in the persisted format (camelCase, absent fields omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MatchPair(PaperModel):
    """One row of a match-the-following question. Rows are not answer keys."""
    left: StrictStr = ""
    right: StrictStr = ""


class Question(PaperModel):
    """A single testable item."""
    id: StrictStr = Field(min_length=1)
    type: QuestionType
    text: StrictStr
    marks: StrictInt = Field(ge=0)
    options: Optional[List[StrictStr]] = None
    pairs: Optional[List[MatchPair]] = None
    passage: Optional[StrictStr] = None
    correct_answer: Optional[StrictStr] = None

    @model_validator(mode="after")
    def check_type_fields(self) -> "Question":
        """Type-specific fields may only appear on their own question types."""
        if self.options is not None and self.type is not QuestionType.MCQ:
            raise ValueError(
                f"options are only allowed on '{QuestionType.MCQ.value}' questions "
                f"(question {self.id} is '{self.type.value}')"
            )
        if self.pairs is not None and self.type is not QuestionType.MATCH_FOLLOWING:
            raise ValueError(
                f"pairs are only allowed on '{QuestionType.MATCH_FOLLOWING.value}' questions "
                f"(question {self.id} is '{self.type.value}')"
            )
        if self.passage is not None and self.type not in PASSAGE_TYPES:
            raise ValueError(
                "passage is only allowed on passage and case study questions "
                f"(question {self.id} is '{self.type.value}')"
            )
        return self


class Section(PaperModel):
    """An ordered, titled group of questions."""
    id: StrictStr = Field(min_length=1)
    title: StrictStr
    instructions: StrictStr = ""
    questions: List[Question]

    @property
    def total_marks(self) -> int:
        return sum(q.marks for q in self.questions)


class Duration(PaperModel):
    hours: StrictInt = Field(ge=0)
    minutes: StrictInt = Field(ge=0)


class Paper(PaperModel):
    """The root exam document.

    ``total_marks`` is derived: app.services.paper_model recomputes it after
    every edit and on import, so a stored value is never trusted.
    """
    school_name: StrictStr
    school_address: StrictStr
    exam_type: StrictStr
    class_name: StrictStr
    subject: StrictStr
    duration: Duration
    general_instructions: StrictStr
    total_marks: StrictInt
    sections: List[Section]

    @field_validator("class_name")
    @classmethod
    def validate_class_name(cls, v: str) -> str:
        if v not in CLASSES:
            raise ValueError(f"className must be one of {CLASSES} (got '{v}')")
        return v

    @model_validator(mode="after")
    def check_unique_ids(self) -> "Paper":
        """Section ids and question ids must each be unique across the paper."""
        section_ids = [s.id for s in self.sections]
        duplicates = {i for i in section_ids if section_ids.count(i) > 1}
        if duplicates:
            raise ValueError(f"duplicate section ids: {sorted(duplicates)}")

        question_ids = [q.id for s in self.sections for q in s.questions]
        duplicates = {i for i in question_ids if question_ids.count(i) > 1}
        if duplicates:
            raise ValueError(f"duplicate question ids: {sorted(duplicates)}")
        return self

    def question_ids(self) -> set[str]:
        return {q.id for s in self.sections for q in s.questions}


# =============================================================================
# PARTIAL UPDATES
# =============================================================================

class UpdateModel(BaseModel):
    """Base for partial-update payloads. Only fields the caller set are merged."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class SectionUpdate(UpdateModel):
    title: Optional[StrictStr] = None
    instructions: Optional[StrictStr] = None
    questions: Optional[List[Question]] = None


class QuestionUpdate(UpdateModel):
    """Editable question fields. ``id`` and ``type`` are fixed at creation."""
    text: Optional[StrictStr] = None
    marks: Optional[StrictInt] = Field(default=None, ge=0)
    options: Optional[List[StrictStr]] = None
    pairs: Optional[List[MatchPair]] = None
    passage: Optional[StrictStr] = None
    correct_answer: Optional[StrictStr] = None


class PaperDetailsUpdate(UpdateModel):
    """Paper metadata edits. ``totalMarks`` is derived and not accepted here."""
    school_name: Optional[StrictStr] = None
    school_address: Optional[StrictStr] = None
    exam_type: Optional[StrictStr] = None
    class_name: Optional[StrictStr] = None
    subject: Optional[StrictStr] = None
    duration: Optional[Duration] = None
    general_instructions: Optional[StrictStr] = None
