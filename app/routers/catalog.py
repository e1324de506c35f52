"""
Catalog endpoint.

Lists the fixed choices the editor offers: question types with their default
marks, subjects, exam types, classes and the symbol palettes.
"""

from typing import Any, Dict

from fastapi import APIRouter

from app.models.paper import (
    CLASSES,
    DEFAULT_INSTRUCTIONS,
    MATH_SYMBOLS,
    SANSKRIT_SYMBOLS,
    ExamType,
    QuestionType,
    Subject,
    default_marks,
)

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


@router.get("")
async def get_catalog() -> Dict[str, Any]:
    return {
        "questionTypes": [
            {"type": t.value, "defaultMarks": default_marks(t)} for t in QuestionType
        ],
        "subjects": [s.value for s in Subject],
        "examTypes": [e.value for e in ExamType],
        "classes": list(CLASSES),
        "defaultInstructions": DEFAULT_INSTRUCTIONS,
        "symbols": {
            "math": list(MATH_SYMBOLS),
            "sanskrit": list(SANSKRIT_SYMBOLS),
        },
    }
