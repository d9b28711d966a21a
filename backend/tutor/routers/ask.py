"""
Ask Router

The inbound AskQuestion boundary: a question plus optional grade, language
and subject hints in, a grounded answer with provenance out.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from tutor.core.exceptions import InvalidFilter
from tutor.services.rag.pipeline import TutorPipeline, get_pipeline

router = APIRouter()


# Schemas
class AskRequest(BaseModel):
    question: str = Field(min_length=1)
    # Validated by the pipeline's filter builder so that a bad value is a 400
    grade_hint: Any = None
    language_hint: str | None = None
    subject: Any = None

    @field_validator("question")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question must not be blank")
        return value.strip()


class GroundedChunk(BaseModel):
    id: str
    score: float


class AskResponse(BaseModel):
    answer: str
    grounded_chunks: list[GroundedChunk]
    expanded_queries: list[str]
    grounded: bool
    scoring_method: str | None = None
    model: str | None = None


# Endpoints
@router.post("", response_model=AskResponse)
async def ask_question(
    request: AskRequest,
    pipeline: TutorPipeline = Depends(get_pipeline),
):
    """Answer a student's question from curriculum content."""
    try:
        draft = await pipeline.ask(
            request.question,
            grade_hint=request.grade_hint,
            language_hint=request.language_hint,
            subject=request.subject,
        )
    except InvalidFilter as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    method = draft.retrieval.method
    return AskResponse(
        answer=draft.answer,
        grounded_chunks=[
            GroundedChunk(id=sc.id, score=sc.score) for sc in draft.retrieval.chunks
        ],
        expanded_queries=draft.expanded_queries,
        grounded=draft.grounded,
        scoring_method=method.value if method else None,
        model=draft.model_id,
    )
