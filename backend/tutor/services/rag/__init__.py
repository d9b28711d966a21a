"""
RAG (Retrieval-Augmented Generation) Pipeline

Answers curriculum questions grounded in curated content by:
1. Expanding the question into a few rephrasings
2. Retrieving chunks per rephrasing (ChromaDB → in-memory cosine → lexical)
3. Merging results by chunk id, keeping the best score
4. Building a bounded context block and generating an answer through the
   model fallback chain
"""

from tutor.services.rag.pipeline import TutorPipeline, get_pipeline
from tutor.services.rag.retriever import Retriever, aggregate
from tutor.services.rag.types import (
    AnswerDraft,
    Chunk,
    RetrievalResult,
    ScoredChunk,
    build_filter,
)

__all__ = [
    "TutorPipeline",
    "get_pipeline",
    "Retriever",
    "aggregate",
    "AnswerDraft",
    "Chunk",
    "RetrievalResult",
    "ScoredChunk",
    "build_filter",
]
