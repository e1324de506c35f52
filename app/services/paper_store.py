"""In-memory ownership of the papers being edited.

Each paper lives under a handle (paper id). Edits go through ``apply``,
which runs a pure function from app.services.paper_model and swaps in the
paper it returns. Requests are handled on one event loop, and nothing awaits
between reading a paper and storing its successor, so edits to the same paper
never interleave.

The store also tracks AI suggestions in flight: at most one per section.
"""

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Any, Callable, Dict, Iterator, List, Set, Tuple

from app.models.paper import Paper
from app.services.paper_model import new_id, new_paper

logger = logging.getLogger(__name__)


class PaperNotFoundError(LookupError):
    def __init__(self, paper_id: str):
        super().__init__(f"Paper not found: {paper_id}")
        self.paper_id = paper_id


class SectionNotFoundError(LookupError):
    def __init__(self, section_id: str):
        super().__init__(f"Section not found: {section_id}")
        self.section_id = section_id


class QuestionNotFoundError(LookupError):
    def __init__(self, question_id: str):
        super().__init__(f"Question not found: {question_id}")
        self.question_id = question_id


class SuggestionInProgressError(RuntimeError):
    """A suggestion for this section is already being generated."""

    def __init__(self, section_id: str):
        super().__init__(f"AI suggestion already in progress for section {section_id}")
        self.section_id = section_id


class PaperStore:
    """Papers keyed by id, plus per-section suggestion markers."""

    def __init__(self) -> None:
        self._papers: Dict[str, Paper] = {}
        self._generating: Set[Tuple[str, str]] = set()

    def create(self, paper: Paper | None = None) -> Tuple[str, Paper]:
        """Store ``paper`` (or a new blank paper) under a fresh id."""
        paper_id = new_id("paper", self._papers)
        self._papers[paper_id] = paper if paper is not None else new_paper()
        logger.info("Created paper %s", paper_id)
        return paper_id, self._papers[paper_id]

    def get(self, paper_id: str) -> Paper:
        try:
            return self._papers[paper_id]
        except KeyError:
            raise PaperNotFoundError(paper_id) from None

    def list_ids(self) -> List[str]:
        return list(self._papers)

    def replace(self, paper_id: str, paper: Paper) -> Paper:
        """Swap in a whole new paper, e.g. after an import."""
        self.get(paper_id)
        self._papers[paper_id] = paper
        return paper

    def remove(self, paper_id: str) -> bool:
        """Drop a paper. Returns False if it was not stored."""
        removed = self._papers.pop(paper_id, None) is not None
        self._generating = {key for key in self._generating if key[0] != paper_id}
        if removed:
            logger.info("Removed paper %s", paper_id)
        return removed

    def apply(self, paper_id: str, edit: Callable[..., Any], *args: Any) -> Any:
        """Run ``edit(paper, *args)`` and store the resulting paper.

        ``edit`` returns either a Paper or a ``(Paper, extra)`` tuple; the
        return value of ``edit`` is passed back to the caller unchanged.
        If ``edit`` raises, the stored paper is left as it was.
        """
        paper = self.get(paper_id)
        result = edit(paper, *args)
        updated = result[0] if isinstance(result, tuple) else result
        if not isinstance(updated, Paper):
            raise TypeError(f"{getattr(edit, '__name__', edit)} did not return a Paper")
        self._papers[paper_id] = updated
        return result

    def is_generating(self, paper_id: str, section_id: str) -> bool:
        return (paper_id, section_id) in self._generating

    @contextmanager
    def suggestion_slot(self, paper_id: str, section_id: str) -> Iterator[None]:
        """Mark a section as having an AI suggestion in flight.

        Raises:
            SuggestionInProgressError: If the section is already marked
        """
        key = (paper_id, section_id)
        if key in self._generating:
            raise SuggestionInProgressError(section_id)
        self._generating.add(key)
        try:
            yield
        finally:
            self._generating.discard(key)


@lru_cache
def get_paper_store() -> PaperStore:
    """Process-wide store, provided to routes as a FastAPI dependency."""
    return PaperStore()
