"""Draft sample exam questions with Gemini.

The collaborator is asked for a JSON array of questions of one type. The
reply is validated as a whole: if any item is malformed the entire batch is
rejected with SuggestionError, and nothing reaches the paper. Every accepted
item is normalized to the requested type and given a local id; whatever type
or id the model returned is discarded.
"""

import asyncio
import logging
from typing import Any, Collection, Dict, List

from google import genai
from google.genai import types
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from app.models.paper import MatchPair, PASSAGE_TYPES, Question, QuestionType
from app.services.paper_model import describe_validation_error, new_id

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-flash-preview"

SUGGESTION_FAILED_NOTICE = (
    "AI suggestion failed. Please ensure you have a valid API key and internet connection."
)

SUGGESTION_PROMPT = """Generate {count} professional exam questions for {class_name} {subject}.
The question type must be exactly "{question_type}".
Include marks for each question.
Return the result as a JSON array of objects fitting the Question interface."""


class SuggestionError(Exception):
    """Raised when the AI collaborator fails or returns an unusable reply.

    Attributes:
        message: Error message
        original_exception: The exception that caused the failure, if any
    """

    def __init__(self, message: str, original_exception: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception


class GeminiCompatibleModel(BaseModel):
    """Base model with Gemini API-compatible JSON schema."""
    model_config = ConfigDict(
        json_schema_extra={
            "additionalProperties": False
        }
    )


class SuggestedMatchPair(GeminiCompatibleModel):
    left: str = Field(description="Column A item")
    right: str = Field(description="Column B item")


class SuggestedQuestion(GeminiCompatibleModel):
    """One question as returned by the model, before normalization."""
    type: str = Field(description="Question type label")
    text: str = Field(description="The question statement")
    marks: int = Field(ge=0, description="Marks for this question")
    options: List[str] = Field(default_factory=list, description="For MCQ only: the answer options")
    pairs: List[SuggestedMatchPair] = Field(
        default_factory=list,
        description="For match the following only: Column A / Column B rows"
    )
    passage: str = Field(default="", description="For passage or case study questions: the source text")

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("question text is empty")
        return v.strip()


_SUGGESTIONS = TypeAdapter(List[SuggestedQuestion])


def _remove_additional_properties(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively drop ``additionalProperties``, which Gemini's schema dialect rejects."""
    if not isinstance(schema, dict):
        return schema

    cleaned: Dict[str, Any] = {}
    for key, value in schema.items():
        if key == "additionalProperties":
            continue
        if isinstance(value, dict):
            cleaned[key] = _remove_additional_properties(value)
        elif isinstance(value, list):
            cleaned[key] = [
                _remove_additional_properties(item) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            cleaned[key] = value
    return cleaned


def suggestion_response_schema() -> Dict[str, Any]:
    """JSON schema for the reply: an array of SuggestedQuestion objects."""
    return _remove_additional_properties(_SUGGESTIONS.json_schema())


def build_prompt(subject: str, class_name: str, question_type: QuestionType, count: int) -> str:
    return SUGGESTION_PROMPT.format(
        count=count,
        class_name=class_name,
        subject=subject,
        question_type=question_type.value,
    )


def normalize_suggestion(
    item: SuggestedQuestion, question_type: QuestionType, taken: Collection[str] = ()
) -> Question:
    """Turn a model reply item into a Question of ``question_type``.

    Fields that do not belong to the requested type are dropped, and types
    that need options, pairs or a passage get them even when the model left
    them out.
    """
    options = None
    pairs = None
    passage = None
    if question_type is QuestionType.MCQ:
        options = list(item.options) or ["", "", "", ""]
    elif question_type is QuestionType.MATCH_FOLLOWING:
        pairs = [MatchPair(left=p.left, right=p.right) for p in item.pairs] or [MatchPair()]
    elif question_type in PASSAGE_TYPES:
        passage = item.passage

    return Question(
        id=new_id("q", taken),
        type=question_type,
        text=item.text,
        marks=item.marks,
        options=options,
        pairs=pairs,
        passage=passage,
    )


async def generate_sample_questions(
    client: genai.Client,
    subject: str,
    class_name: str,
    question_type: QuestionType,
    count: int = 1,
    model: str = DEFAULT_MODEL,
) -> List[Question]:
    """Ask Gemini for ``count`` sample questions of one type.

    Args:
        client: Gemini API client
        subject: Paper subject, e.g. "Science"
        class_name: Paper class, e.g. "Class X"
        question_type: Type every returned question will have
        count: Number of questions to request (>= 1)
        model: Gemini model name

    Returns:
        Between 0 and ``count`` (or however many the model sent) questions,
        each with a fresh local id

    Raises:
        ValueError: If count is below 1
        SuggestionError: On any transport, auth, empty or malformed reply
    """
    if count < 1:
        raise ValueError(f"count must be at least 1 (got {count})")

    prompt = build_prompt(subject, class_name, question_type, count)

    def _call() -> Any:
        return client.models.generate_content(
            model=model,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=suggestion_response_schema(),
            ),
        )

    try:
        response = await asyncio.to_thread(_call)
    except Exception as e:
        logger.error("AI suggestion request failed: %s: %s", type(e).__name__, e)
        raise SuggestionError(f"Gemini request failed: {e}", original_exception=e) from e

    text = response.text if response else None
    if not text or not text.strip():
        logger.error("AI suggestion returned an empty response")
        raise SuggestionError("Gemini API returned empty response")

    try:
        items = _SUGGESTIONS.validate_json(text)
    except ValidationError as e:
        reason = describe_validation_error(e)
        logger.error("AI suggestion reply rejected: %s", reason)
        raise SuggestionError(f"Gemini reply was not a valid question list: {reason}", original_exception=e) from e

    taken: set[str] = set()
    questions = []
    for item in items:
        question = normalize_suggestion(item, question_type, taken)
        taken.add(question.id)
        questions.append(question)

    logger.info(
        "AI suggestion produced %d of %d requested '%s' question(s)",
        len(questions),
        count,
        question_type.value,
    )
    return questions
