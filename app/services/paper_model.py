"""Edit operations on exam papers.

Every function here is pure: it takes a Paper and returns a new Paper,
leaving the input and every untouched section and question as they were.
Each mutation finishes with recompute_total_marks, so a Paper returned from
this module always satisfies::

    paper.total_marks == sum(q.marks for s in paper.sections for q in s.questions)

Operations that name a section or question which does not exist return the
paper unchanged. Callers that need to report a missing target (the HTTP
layer) look it up first with find_section / find_question.
"""

import json
import logging
import uuid
from typing import Any, Collection, Iterable, List, Mapping, Optional, Tuple, TypeVar, Union

from pydantic import ValidationError

from app.models.paper import (
    CLASSES,
    DEFAULT_INSTRUCTIONS,
    Duration,
    ExamType,
    MatchPair,
    Paper,
    PaperDetailsUpdate,
    PaperModel,
    PASSAGE_TYPES,
    Question,
    QuestionType,
    QuestionUpdate,
    Section,
    SectionUpdate,
    Subject,
    default_marks,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=PaperModel)

RawDocument = Union[str, bytes, bytearray, Mapping[str, Any]]


class PaperValidationError(ValueError):
    """Raised when an imported document or an edit would produce an invalid paper.

    Attributes:
        reason: Human-readable description suitable for showing to the user
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def describe_validation_error(error: ValidationError, limit: int = 3) -> str:
    """Flatten a pydantic ValidationError into one readable line."""
    parts = []
    for detail in error.errors()[:limit]:
        location = ".".join(str(part) for part in detail["loc"])
        message = detail["msg"]
        parts.append(f"{location}: {message}" if location else message)
    remaining = error.error_count() - limit
    if remaining > 0:
        parts.append(f"and {remaining} more error(s)")
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# Ids and titles
# ---------------------------------------------------------------------------

def new_id(prefix: str, taken: Collection[str] = ()) -> str:
    """Generate an id not present in ``taken``."""
    while True:
        candidate = f"{prefix}_{uuid.uuid4().hex[:12]}"
        if candidate not in taken:
            return candidate


def section_letters(index: int) -> str:
    """Spreadsheet-style letters for a 0-based index: A..Z, AA, AB, ..."""
    letters = ""
    n = index + 1
    while n:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def new_paper() -> Paper:
    """Blank paper with one empty section, as the editor starts."""
    return Paper(
        school_name="",
        school_address="",
        exam_type=ExamType.ANNUAL.value,
        class_name=CLASSES[9],
        subject=Subject.SCIENCE.value,
        duration=Duration(hours=3, minutes=0),
        general_instructions=DEFAULT_INSTRUCTIONS,
        total_marks=0,
        sections=[
            Section(
                id=new_id("sec"),
                title="Section A",
                instructions="Choose the correct option.",
                questions=[],
            )
        ],
    )


def new_question(question_type: QuestionType, taken: Collection[str] = ()) -> Question:
    """Blank question with default marks and the fields its type needs."""
    return Question(
        id=new_id("q", taken),
        type=question_type,
        text="",
        marks=default_marks(question_type),
        options=["", "", "", ""] if question_type is QuestionType.MCQ else None,
        pairs=[MatchPair()] if question_type is QuestionType.MATCH_FOLLOWING else None,
        passage="" if question_type in PASSAGE_TYPES else None,
    )


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

def find_section(paper: Paper, section_id: str) -> Optional[Section]:
    return next((s for s in paper.sections if s.id == section_id), None)


def find_question(paper: Paper, section_id: str, question_id: str) -> Optional[Question]:
    section = find_section(paper, section_id)
    if section is None:
        return None
    return next((q for q in section.questions if q.id == question_id), None)


# ---------------------------------------------------------------------------
# Derived total
# ---------------------------------------------------------------------------

def recompute_total_marks(paper: Paper) -> Paper:
    """Return a paper whose total_marks is the sum of all question marks."""
    total = sum(section.total_marks for section in paper.sections)
    if total == paper.total_marks:
        return paper
    return paper.model_copy(update={"total_marks": total})


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _merge(model: M, changes: Mapping[str, Any]) -> M:
    """Re-validate ``model`` with ``changes`` applied."""
    try:
        return type(model).model_validate({**model.model_dump(), **changes})
    except ValidationError as e:
        raise PaperValidationError(describe_validation_error(e)) from e


def _with_sections(paper: Paper, sections: List[Section]) -> Paper:
    return recompute_total_marks(paper.model_copy(update={"sections": sections}))


def _replace_section(paper: Paper, updated: Section) -> Paper:
    return _with_sections(
        paper, [updated if s.id == updated.id else s for s in paper.sections]
    )


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

def add_section(paper: Paper) -> Tuple[Paper, Section]:
    """Append an empty section titled after the current section count."""
    section = Section(
        id=new_id("sec", {s.id for s in paper.sections}),
        title=f"Section {section_letters(len(paper.sections))}",
        instructions="",
        questions=[],
    )
    return _with_sections(paper, [*paper.sections, section]), section


def delete_section(paper: Paper, section_id: str) -> Paper:
    if find_section(paper, section_id) is None:
        return paper
    return _with_sections(paper, [s for s in paper.sections if s.id != section_id])


def update_section(paper: Paper, section_id: str, updates: SectionUpdate) -> Paper:
    """Merge title, instructions or a replacement question list into a section.

    Raises:
        PaperValidationError: If a replacement question collides with a
            question id used in another section, or fails validation
    """
    section = find_section(paper, section_id)
    if section is None:
        return paper

    changes = updates.changes()
    if "questions" in changes and changes["questions"] is None:
        raise PaperValidationError("questions: must be a list, not null")
    for key in ("title", "instructions"):
        if key in changes and changes[key] is None:
            raise PaperValidationError(f"{key}: must be a string, not null")

    updated = _merge(section, changes)

    if "questions" in changes:
        elsewhere = {
            q.id for s in paper.sections if s.id != section_id for q in s.questions
        }
        clashes = sorted({q.id for q in updated.questions} & elsewhere)
        if clashes:
            raise PaperValidationError(f"question ids already used in another section: {clashes}")
        ids = [q.id for q in updated.questions]
        if len(ids) != len(set(ids)):
            raise PaperValidationError("questions: duplicate question ids")

    return _replace_section(paper, updated)


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

def add_question(
    paper: Paper, section_id: str, question_type: QuestionType
) -> Tuple[Paper, Optional[Question]]:
    """Append a blank question of ``question_type`` to a section.

    Returns:
        The new paper and the created question, or the unchanged paper and
        None when the section does not exist
    """
    section = find_section(paper, section_id)
    if section is None:
        return paper, None

    question = new_question(question_type, paper.question_ids())
    updated = section.model_copy(update={"questions": [*section.questions, question]})
    return _replace_section(paper, updated), question


def append_questions(
    paper: Paper, section_id: str, questions: Iterable[Question]
) -> Tuple[Paper, List[Question]]:
    """Append prepared questions to a section under freshly assigned ids.

    Used for AI suggestions. When the section no longer exists the paper is
    returned unchanged and nothing is appended.
    """
    section = find_section(paper, section_id)
    if section is None:
        return paper, []

    taken = set(paper.question_ids())
    added: List[Question] = []
    for question in questions:
        question_id = new_id("q", taken)
        taken.add(question_id)
        added.append(question.model_copy(update={"id": question_id}))

    if not added:
        return paper, []

    updated = section.model_copy(update={"questions": [*section.questions, *added]})
    return _replace_section(paper, updated), added


def update_question(
    paper: Paper, section_id: str, question_id: str, updates: QuestionUpdate
) -> Paper:
    """Merge edits into one question. The question's id and type never change.

    Raises:
        PaperValidationError: If the edit sets a field the question type does
            not allow (e.g. options on a Long Answer question)
    """
    section = find_section(paper, section_id)
    question = find_question(paper, section_id, question_id)
    if section is None or question is None:
        return paper

    changes = updates.changes()
    for key in ("text", "marks"):
        if key in changes and changes[key] is None:
            raise PaperValidationError(f"{key}: must not be null")

    updated_question = _merge(question, changes)
    updated = section.model_copy(update={
        "questions": [
            updated_question if q.id == question_id else q for q in section.questions
        ]
    })
    return _replace_section(paper, updated)


def delete_question(paper: Paper, section_id: str, question_id: str) -> Paper:
    section = find_section(paper, section_id)
    if section is None or find_question(paper, section_id, question_id) is None:
        return paper
    updated = section.model_copy(update={
        "questions": [q for q in section.questions if q.id != question_id]
    })
    return _replace_section(paper, updated)


# ---------------------------------------------------------------------------
# Paper details
# ---------------------------------------------------------------------------

def update_details(paper: Paper, updates: PaperDetailsUpdate) -> Paper:
    """Merge school metadata, exam info, duration or general instructions."""
    changes = updates.changes()
    nulls = sorted(key for key, value in changes.items() if value is None)
    if nulls:
        raise PaperValidationError(f"fields must not be null: {nulls}")
    return recompute_total_marks(_merge(paper, changes))


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------

def replace_document(raw: RawDocument) -> Paper:
    """Validate serialized paper data and build a Paper from it.

    Accepts JSON text, UTF-8 bytes or an already decoded mapping. The
    imported totalMarks must be an integer but its value is discarded and
    recomputed from the question marks.

    Raises:
        PaperValidationError: If the data is not JSON or not a valid paper
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PaperValidationError(f"Invalid JSON file: {e}") from e
    else:
        data = raw

    if not isinstance(data, Mapping):
        raise PaperValidationError(
            f"Paper must be a JSON object, got {type(data).__name__}"
        )

    try:
        paper = Paper.model_validate(dict(data))
    except ValidationError as e:
        raise PaperValidationError(describe_validation_error(e)) from e

    recomputed = recompute_total_marks(paper)
    if recomputed.total_marks != paper.total_marks:
        logger.info(
            "Imported totalMarks %s replaced by recomputed %s",
            paper.total_marks,
            recomputed.total_marks,
        )
    return recomputed


def serialize_paper(paper: Paper) -> str:
    """Serialize in the persisted camelCase format, indented like the editor's export."""
    return json.dumps(paper.to_payload(), indent=2, ensure_ascii=False)


def export_filename(paper: Paper) -> str:
    """Download name used by the editor, e.g. ``exam_science_class_x.json``."""
    class_part = paper.class_name.lower().replace(" ", "_", 1)
    return f"exam_{paper.subject.lower()}_{class_part}.json"
