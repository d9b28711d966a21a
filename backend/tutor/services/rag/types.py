"""
Pydantic models shared by every stage of the RAG pipeline.

Chunks are frozen: once a chunk carries an embedding it is never partially
updated. Stores that compute embeddings lazily keep them in their own table.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from tutor.core.exceptions import InvalidFilter

MIN_GRADE = 1
MAX_GRADE = 12
MAX_EXPANDED_QUERIES = 4


class ScoringMethod(str, Enum):
    COSINE = "cosine"
    LEXICAL = "lexical"


class Chunk(BaseModel):
    id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    metadata: dict[str, Any] = {}
    embedding: list[float] | None = None

    class Config:
        frozen = True


class ScoredChunk(BaseModel):
    chunk: Chunk
    score: float
    method: ScoringMethod

    @property
    def id(self) -> str:
        return self.chunk.id


class RetrievalResult(BaseModel):
    """Ranked, deduplicated chunks from a single scoring method."""

    chunks: list[ScoredChunk] = []

    @model_validator(mode="after")
    def _check_invariants(self) -> "RetrievalResult":
        ids = [c.id for c in self.chunks]
        if len(ids) != len(set(ids)):
            raise ValueError("chunk ids must be unique within a retrieval result")
        if len({c.method for c in self.chunks}) > 1:
            raise ValueError("cosine and lexical scores cannot share one ranking")
        return self

    @property
    def method(self) -> ScoringMethod | None:
        return self.chunks[0].method if self.chunks else None

    @property
    def is_empty(self) -> bool:
        return not self.chunks

    @property
    def ids(self) -> list[str]:
        return [c.id for c in self.chunks]

    def __len__(self) -> int:
        return len(self.chunks)


class Query(BaseModel):
    text: str = Field(min_length=1)
    grade_hint: int | None = Field(default=None, ge=MIN_GRADE, le=MAX_GRADE)
    language_hint: str | None = None

    @field_validator("text")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("question text must not be blank")
        return value


class ExpandedQuerySet(BaseModel):
    """The original question followed by up to three rephrasings."""

    queries: list[str] = Field(min_length=1, max_length=MAX_EXPANDED_QUERIES)

    @property
    def original(self) -> str:
        return self.queries[0]

    @property
    def variants(self) -> list[str]:
        return self.queries[1:]

    def __iter__(self):
        return iter(self.queries)

    def __len__(self) -> int:
        return len(self.queries)


class AnswerDraft(BaseModel):
    answer: str
    retrieval: RetrievalResult
    expanded_queries: list[str] = []
    grounded: bool = True
    model_id: str | None = None


# ── Metadata filter ──────────────────────────────────────────────────────────

class MetadataFilter(BaseModel):
    """Equality filter over chunk metadata. Build it with build_filter()."""

    grade: int | None = None
    subject: str | None = None

    class Config:
        frozen = True

    @property
    def is_empty(self) -> bool:
        return self.grade is None and self.subject is None

    def matches(self, metadata: dict[str, Any]) -> bool:
        if self.grade is not None and _as_grade(metadata.get("grade")) != self.grade:
            return False
        if self.subject is not None:
            subject = metadata.get("subject")
            if not isinstance(subject, str) or subject.strip().lower() != self.subject:
                return False
        return True

    def to_where(self) -> dict[str, Any] | None:
        """Translate into a ChromaDB `where` clause."""
        clauses = []
        if self.grade is not None:
            clauses.append({"grade": self.grade})
        if self.subject is not None:
            clauses.append({"subject": self.subject})
        if not clauses:
            return None
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}


def _as_grade(value: Any) -> int | None:
    # Externally authored metadata sometimes stores grades as strings
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def build_filter(grade: Any = None, subject: Any = None) -> MetadataFilter:
    """
    Validate caller-supplied filter values.

    Raises:
        InvalidFilter: grade is not an integer in 1-12 or subject is not a
            non-empty string.
    """
    parsed_grade = None
    if grade is not None:
        parsed_grade = _as_grade(grade)
        if parsed_grade is None:
            raise InvalidFilter(f"grade must be an integer, got {grade!r}")
        if not MIN_GRADE <= parsed_grade <= MAX_GRADE:
            raise InvalidFilter(
                f"grade must be between {MIN_GRADE} and {MAX_GRADE}, got {parsed_grade}"
            )

    parsed_subject = None
    if subject is not None:
        if not isinstance(subject, str) or not subject.strip():
            raise InvalidFilter(f"subject must be a non-empty string, got {subject!r}")
        parsed_subject = subject.strip().lower()

    return MetadataFilter(grade=parsed_grade, subject=parsed_subject)
