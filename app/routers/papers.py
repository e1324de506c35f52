"""
Question paper API endpoints.

Create papers, edit their sections and questions, draft questions with AI,
import and export the JSON document, and produce the printable projection
and A4 PDF.

Missing ids: adding to or updating a section or question that does not
exist returns 404. Deleting one that does not exist is a successful no-op.
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import APIRouter, Body, Depends, File, HTTPException, Request, Response, UploadFile, status
from pydantic import BaseModel, Field

from app.config import get_settings
from app.middleware.rate_limit import get_limiter, RATE_LIMITS
from app.models.paper import (
    Paper,
    PaperDetailsUpdate,
    Question,
    QuestionType,
    QuestionUpdate,
    Section,
    SectionUpdate,
)
from app.services.gemini_client import get_gemini_client
from app.services.paper_model import (
    PaperValidationError,
    add_question,
    add_section,
    append_questions,
    delete_question,
    delete_section,
    export_filename,
    find_question,
    find_section,
    replace_document,
    serialize_paper,
    update_details,
    update_question,
    update_section,
)
from app.services.paper_renderer import render_paper
from app.services.paper_store import (
    PaperNotFoundError,
    PaperStore,
    QuestionNotFoundError,
    SectionNotFoundError,
    SuggestionInProgressError,
    get_paper_store,
)
from app.services.pdf_renderer import render_pdf
from app.services.question_suggester import (
    SUGGESTION_FAILED_NOTICE,
    SuggestionError,
    generate_sample_questions,
)

router = APIRouter(prefix="/api/papers", tags=["papers"])
limiter = get_limiter()
logger = logging.getLogger(__name__)


class NewQuestionRequest(BaseModel):
    type: QuestionType = Field(description="Question type to add")


class SuggestionRequest(BaseModel):
    type: QuestionType = Field(description="Question type to draft")
    count: Optional[int] = Field(
        default=None,
        ge=1,
        description="Number of questions to request (default from settings)"
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load(store: PaperStore, paper_id: str) -> Paper:
    try:
        return store.get(paper_id)
    except PaperNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _require_section(paper: Paper, section_id: str) -> Section:
    section = find_section(paper, section_id)
    if section is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(SectionNotFoundError(section_id)),
        )
    return section


def _require_question(paper: Paper, section_id: str, question_id: str) -> Question:
    _require_section(paper, section_id)
    question = find_question(paper, section_id, question_id)
    if question is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(QuestionNotFoundError(question_id)),
        )
    return question


def _edit(store: PaperStore, paper_id: str, edit: Any, *args: Any) -> Any:
    """Apply a model edit, mapping invalid edits to 422."""
    try:
        return store.apply(paper_id, edit, *args)
    except PaperValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.reason)


def _mark(response: Response, paper_id: str, paper: Paper) -> None:
    response.headers["X-Paper-ID"] = paper_id
    response.headers["X-Total-Marks"] = str(paper.total_marks)


def _attachment(filename: str) -> str:
    """Content-Disposition for a download; non-ASCII names go in filename*."""
    encoded = quote(filename)
    if encoded == filename:
        return f'attachment; filename="{filename}"'
    fallback = filename.encode("ascii", "ignore").decode("ascii").replace('"', "").replace("\\", "")
    return f"attachment; filename=\"{fallback or 'paper'}\"; filename*=utf-8''{encoded}"


# ---------------------------------------------------------------------------
# Papers
# ---------------------------------------------------------------------------

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_paper(response: Response, store: PaperStore = Depends(get_paper_store)) -> Dict[str, Any]:
    """Create a blank paper with one empty section."""
    paper_id, paper = store.create()
    _mark(response, paper_id, paper)
    return {"id": paper_id, "paper": paper.to_payload()}


@router.get("")
async def list_papers(store: PaperStore = Depends(get_paper_store)) -> Dict[str, Any]:
    return {"papers": store.list_ids()}


@router.get("/{paper_id}")
async def get_paper(
    paper_id: str, response: Response, store: PaperStore = Depends(get_paper_store)
) -> Dict[str, Any]:
    paper = _load(store, paper_id)
    _mark(response, paper_id, paper)
    return paper.to_payload()


@router.patch("/{paper_id}")
async def update_paper_details(
    paper_id: str,
    updates: PaperDetailsUpdate,
    response: Response,
    store: PaperStore = Depends(get_paper_store),
) -> Dict[str, Any]:
    """Edit school metadata, exam info, duration or general instructions.

    totalMarks is derived from the questions and cannot be set; sending it
    is rejected with 422.
    """
    _load(store, paper_id)
    paper = _edit(store, paper_id, update_details, updates)
    _mark(response, paper_id, paper)
    return paper.to_payload()


@router.put("/{paper_id}")
async def replace_paper(
    paper_id: str,
    response: Response,
    document: Dict[str, Any] = Body(..., description="Complete paper in the export format"),
    store: PaperStore = Depends(get_paper_store),
) -> Dict[str, Any]:
    """Replace the whole paper with a JSON document. totalMarks is recomputed."""
    _load(store, paper_id)
    try:
        paper = replace_document(document)
    except PaperValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.reason)
    store.replace(paper_id, paper)
    _mark(response, paper_id, paper)
    return paper.to_payload()


@router.delete("/{paper_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_paper(paper_id: str, store: PaperStore = Depends(get_paper_store)) -> Response:
    store.remove(paper_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

@router.post("/{paper_id}/sections", status_code=status.HTTP_201_CREATED)
async def create_section(
    paper_id: str, response: Response, store: PaperStore = Depends(get_paper_store)
) -> Dict[str, Any]:
    """Append a new empty section titled after the current section count."""
    _load(store, paper_id)
    paper, section = store.apply(paper_id, add_section)
    _mark(response, paper_id, paper)
    return section.to_payload()


@router.patch("/{paper_id}/sections/{section_id}")
async def edit_section(
    paper_id: str,
    section_id: str,
    updates: SectionUpdate,
    response: Response,
    store: PaperStore = Depends(get_paper_store),
) -> Dict[str, Any]:
    _require_section(_load(store, paper_id), section_id)
    paper = _edit(store, paper_id, update_section, section_id, updates)
    _mark(response, paper_id, paper)
    return _require_section(paper, section_id).to_payload()


@router.delete("/{paper_id}/sections/{section_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_section(
    paper_id: str, section_id: str, store: PaperStore = Depends(get_paper_store)
) -> Response:
    _load(store, paper_id)
    paper = store.apply(paper_id, delete_section, section_id)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    _mark(response, paper_id, paper)
    return response


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

@router.post("/{paper_id}/sections/{section_id}/questions", status_code=status.HTTP_201_CREATED)
async def create_question(
    paper_id: str,
    section_id: str,
    body: NewQuestionRequest,
    response: Response,
    store: PaperStore = Depends(get_paper_store),
) -> Dict[str, Any]:
    """Append a blank question of the given type with its default marks."""
    _require_section(_load(store, paper_id), section_id)
    paper, question = store.apply(paper_id, add_question, section_id, body.type)
    _mark(response, paper_id, paper)
    return question.to_payload()


@router.patch("/{paper_id}/sections/{section_id}/questions/{question_id}")
async def edit_question(
    paper_id: str,
    section_id: str,
    question_id: str,
    updates: QuestionUpdate,
    response: Response,
    store: PaperStore = Depends(get_paper_store),
) -> Dict[str, Any]:
    _require_question(_load(store, paper_id), section_id, question_id)
    paper = _edit(store, paper_id, update_question, section_id, question_id, updates)
    _mark(response, paper_id, paper)
    return _require_question(paper, section_id, question_id).to_payload()


@router.delete(
    "/{paper_id}/sections/{section_id}/questions/{question_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_question(
    paper_id: str,
    section_id: str,
    question_id: str,
    store: PaperStore = Depends(get_paper_store),
) -> Response:
    _load(store, paper_id)
    paper = store.apply(paper_id, delete_question, section_id, question_id)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    _mark(response, paper_id, paper)
    return response


# ---------------------------------------------------------------------------
# AI suggestions
# ---------------------------------------------------------------------------

@router.post("/{paper_id}/sections/{section_id}/suggestions", status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["suggest"])  # type: ignore[untyped-decorator]
async def suggest_questions(
    request: Request,
    paper_id: str,
    section_id: str,
    body: SuggestionRequest,
    response: Response,
    store: PaperStore = Depends(get_paper_store),
) -> Dict[str, Any]:
    """
    Draft questions with Gemini and append them to a section.

    Only one suggestion per section may be in flight; other sections are not
    blocked. If the section is deleted while Gemini is working, the reply is
    discarded and the paper is left untouched.

    Returns:
        201: Questions appended
        404: Paper or section not found
        409: A suggestion for this section is already running, or the
             section was deleted before the reply arrived
        422: count above the configured maximum
        502: Gemini failed or replied with unusable data
        503: Gemini is not configured
    """
    settings = get_settings()
    paper = _load(store, paper_id)
    _require_section(paper, section_id)

    count = body.count if body.count is not None else settings.default_suggestion_count
    if count > settings.max_suggestion_count:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"count must be at most {settings.max_suggestion_count}",
        )

    try:
        client = get_gemini_client()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    try:
        with store.suggestion_slot(paper_id, section_id):
            questions = await generate_sample_questions(
                client,
                subject=paper.subject,
                class_name=paper.class_name,
                question_type=body.type,
                count=count,
                model=settings.model_name,
            )
    except SuggestionInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except SuggestionError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": SUGGESTION_FAILED_NOTICE, "reason": e.message},
        )

    # The paper may have changed while Gemini was working
    try:
        current = store.get(paper_id)
    except PaperNotFoundError as e:
        logger.warning("Discarding %d suggestion(s): paper %s was deleted", len(questions), paper_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    if find_section(current, section_id) is None:
        logger.warning(
            "Discarding %d suggestion(s): section %s of paper %s was deleted",
            len(questions),
            section_id,
            paper_id,
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Section {section_id} was deleted before the suggestions arrived; "
                   f"{len(questions)} suggestion(s) discarded",
        )

    updated, added = store.apply(paper_id, append_questions, section_id, questions)
    _mark(response, paper_id, updated)
    return {"questions": [q.to_payload() for q in added]}


# ---------------------------------------------------------------------------
# Import / export / print
# ---------------------------------------------------------------------------

@router.get("/{paper_id}/export")
async def export_paper(paper_id: str, store: PaperStore = Depends(get_paper_store)) -> Response:
    """Download the paper as a JSON file in the editor's format."""
    paper = _load(store, paper_id)
    response = Response(
        content=serialize_paper(paper).encode("utf-8"),
        media_type="application/json",
        headers={"Content-Disposition": _attachment(export_filename(paper))},
    )
    _mark(response, paper_id, paper)
    return response


@router.post("/{paper_id}/import")
async def import_paper(
    paper_id: str,
    response: Response,
    file: UploadFile = File(..., description="Paper JSON file exported earlier"),
    store: PaperStore = Depends(get_paper_store),
) -> Dict[str, Any]:
    """
    Replace the paper with an uploaded JSON file.

    The file is validated before anything changes: an invalid file returns
    422 with the reason and the current paper stays as it was. totalMarks in
    the file is ignored and recomputed.
    """
    _load(store, paper_id)
    content = await file.read()
    try:
        paper = replace_document(content)
    except PaperValidationError as e:
        logger.info("Rejected import for paper %s: %s", paper_id, e.reason)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.reason)

    store.replace(paper_id, paper)
    _mark(response, paper_id, paper)
    return paper.to_payload()


@router.get("/{paper_id}/preview")
async def preview_paper(
    paper_id: str, response: Response, store: PaperStore = Depends(get_paper_store)
) -> Dict[str, Any]:
    """Printable projection of the paper (header, instructions, numbered questions)."""
    paper = _load(store, paper_id)
    _mark(response, paper_id, paper)
    return render_paper(paper).model_dump(mode="json")


@router.get("/{paper_id}/pdf")
@limiter.limit(RATE_LIMITS["render"])  # type: ignore[untyped-decorator]
async def paper_pdf(
    request: Request, paper_id: str, store: PaperStore = Depends(get_paper_store)
) -> Response:
    """A4 PDF of the paper, ready to print."""
    paper = _load(store, paper_id)
    settings = get_settings()
    pdf_bytes = await asyncio.to_thread(render_pdf, render_paper(paper), settings.pdf_font_path)
    filename = export_filename(paper).rsplit(".", 1)[0] + ".pdf"
    response = Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": _attachment(filename)},
    )
    _mark(response, paper_id, paper)
    return response
