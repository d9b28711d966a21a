"""
Tutor Pipeline

The end-to-end "ask → answer" flow:

    EXPANDING → RETRIEVING → GROUNDED   → GENERATING → ANSWERED
                           ↘ UNGROUNDED (terminal, fixed refusal)

- Expanding never fails the pipeline (falls back to the original question).
- Retrieving runs every expanded query and merges the results. When the
  retrieval deadline passes, the corpus is searched lexically instead. An
  empty result means UNGROUNDED.
- UNGROUNDED answers with a fixed refusal and never calls the answer model.
- Each request runs once end to end; there is no retry around the pipeline.
"""

import asyncio
import logging
from enum import Enum

from tutor.core.config import get_settings
from tutor.services.llm.orchestrator import get_orchestrator
from tutor.services.rag.content import InMemoryContentSource, load_corpus
from tutor.services.rag.context import build_context
from tutor.services.rag.embedder import Embedder
from tutor.services.rag.expander import QueryExpander
from tutor.services.rag.generator import AnswerGenerator
from tutor.services.rag.retriever import Retriever, build_remote_store
from tutor.services.rag.stores import InMemoryStore
from tutor.services.rag.types import AnswerDraft, Query, build_filter

logger = logging.getLogger(__name__)

INSUFFICIENT_GROUNDING_ANSWER = (
    "I don't know because it is out of syllabus. "
    "I couldn't find curriculum material for this question."
)


class PipelineState(str, Enum):
    EXPANDING = "expanding"
    RETRIEVING = "retrieving"
    GROUNDED = "grounded"
    UNGROUNDED = "ungrounded"
    GENERATING = "generating"
    ANSWERED = "answered"


class TutorPipeline:
    def __init__(
        self,
        expander: QueryExpander,
        retriever: Retriever,
        generator: AnswerGenerator,
        context_max_chars: int = 2000,
        retrieval_timeout_seconds: float | None = 5.0,
    ):
        self.expander = expander
        self.retriever = retriever
        self.generator = generator
        self.context_max_chars = context_max_chars
        self.retrieval_timeout_seconds = retrieval_timeout_seconds

    async def ask(
        self,
        text: str,
        grade_hint: int | None = None,
        language_hint: str | None = None,
        subject: str | None = None,
    ) -> AnswerDraft:
        """
        Answer one question.

        Raises:
            InvalidFilter: grade_hint or subject is malformed (checked before
                any backend is called)
        """
        filter = build_filter(grade=grade_hint, subject=subject)
        query = Query(text=text, grade_hint=filter.grade, language_hint=language_hint)

        state = PipelineState.EXPANDING
        logger.info("[Pipeline] %s: %r (grade=%s)", state.value, query.text, query.grade_hint)
        expanded = await self.expander.expand(query.text, query.grade_hint)

        state = PipelineState.RETRIEVING
        logger.info("[Pipeline] %s: %d queries", state.value, len(expanded))
        try:
            retrieval = await asyncio.wait_for(
                self.retriever.retrieve(expanded, filter),
                timeout=self.retrieval_timeout_seconds,
            )
        except asyncio.TimeoutError:
            # Lexical scoring needs no network, so it still runs past the deadline
            logger.warning("[Pipeline] Retrieval deadline exceeded, using lexical search")
            retrieval = self.retriever.lexical_retrieve(expanded, filter)

        if retrieval.is_empty:
            state = PipelineState.UNGROUNDED
            logger.info("[Pipeline] %s: no chunks retrieved, refusing", state.value)
            return AnswerDraft(
                answer=INSUFFICIENT_GROUNDING_ANSWER,
                retrieval=retrieval,
                expanded_queries=expanded.queries,
                grounded=False,
            )

        state = PipelineState.GROUNDED
        logger.info("[Pipeline] %s: %s", state.value, ", ".join(retrieval.ids))
        context = build_context(retrieval, self.context_max_chars)

        state = PipelineState.GENERATING
        draft = await self.generator.generate(
            query.text,
            context,
            retrieval,
            grade_hint=query.grade_hint,
            language_hint=query.language_hint,
        )

        state = PipelineState.ANSWERED
        logger.info("[Pipeline] %s by %s", state.value, draft.model_id or "fallback")
        return draft.model_copy(update={"expanded_queries": expanded.queries})


# ── Singleton ─────────────────────────────────────────────────────────────────

_pipeline: TutorPipeline | None = None


def build_pipeline(settings=None) -> TutorPipeline:
    """Wire every stage from settings."""
    settings = settings or get_settings()

    orchestrator = get_orchestrator()
    embedder = Embedder(
        model=settings.embedding_model,
        timeout_seconds=settings.embedding_timeout_seconds,
    )
    content = InMemoryContentSource(load_corpus(settings.corpus_path or None))

    retriever = Retriever(
        memory_store=InMemoryStore(
            content,
            embedder,
            retry_after_seconds=settings.embedding_retry_seconds,
        ),
        remote_store=build_remote_store(embedder, content, settings),
        per_query_top_k=settings.per_query_top_k,
        final_top_k=settings.final_top_k,
        # One query embedding plus one index query
        remote_timeout_seconds=settings.embedding_timeout_seconds + settings.index_timeout_seconds,
    )
    return TutorPipeline(
        expander=QueryExpander(
            orchestrator,
            model_id=settings.expansion_model,
            timeout_seconds=settings.expansion_timeout_seconds,
        ),
        retriever=retriever,
        generator=AnswerGenerator(
            orchestrator,
            model_ids=settings.generation_models,
            timeout_seconds=settings.generation_timeout_seconds,
            extractive_fallback=settings.extractive_fallback,
        ),
        context_max_chars=settings.context_max_chars,
        retrieval_timeout_seconds=settings.retrieval_timeout_seconds,
    )


def get_pipeline() -> TutorPipeline:
    """Get or create the pipeline singleton."""
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline()
    return _pipeline


def reset_pipeline() -> None:
    """Drop the singleton so the next request reconnects (used after ingestion)."""
    global _pipeline
    _pipeline = None
