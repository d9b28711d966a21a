"""
Answer Generator

Builds the grounded prompt and runs it through the model fallback chain.
The caller always gets an AnswerDraft: when every model fails, or the
generation deadline passes, the answer is a neutral refusal (or, when
enabled, a short extract from the context).
"""

import asyncio
import logging
import re

from tutor.core.exceptions import GenerationUnavailable
from tutor.services.llm.orchestrator import LLMOrchestrator
from tutor.services.prompts import compile_answer_prompt
from tutor.services.rag.types import AnswerDraft, RetrievalResult

logger = logging.getLogger(__name__)

GENERATION_REFUSAL = (
    "I'm sorry, I couldn't generate an answer right now. Please try again in a little while."
)

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def extractive_answer(context: str, sentences: int = 2) -> str | None:
    """First sentences of the context, used when no model is available."""
    text = " ".join(context.split())
    if not text:
        return None
    excerpt = " ".join(SENTENCE_BOUNDARY.split(text)[:sentences])
    return f"From the syllabus: {excerpt}"


class AnswerGenerator:
    def __init__(
        self,
        orchestrator: LLMOrchestrator,
        model_ids: list[str],
        timeout_seconds: float | None = 20.0,
        extractive_fallback: bool = False,
    ):
        self.orchestrator = orchestrator
        self.model_ids = list(model_ids)
        self.timeout_seconds = timeout_seconds
        self.extractive_fallback = extractive_fallback

    async def generate(
        self,
        question: str,
        context: str,
        retrieval: RetrievalResult,
        grade_hint: int | None = None,
        language_hint: str | None = None,
    ) -> AnswerDraft:
        """
        Generate an answer grounded in the given context.

        Args:
            question: The student's question
            context: Context block built from the retrieval result
            retrieval: The retrieval result the context came from (provenance)
            grade_hint: Optional grade for tone
            language_hint: Optional response language

        Returns:
            AnswerDraft paired with the retrieval result; never raises for
            backend failures.
        """
        prompt = compile_answer_prompt(question, context, grade_hint, language_hint)

        try:
            success = await asyncio.wait_for(
                self.orchestrator.complete_with_fallback(
                    prompt,
                    self.model_ids,
                    max_output_tokens=500,
                    temperature=0.3,
                ),
                timeout=self.timeout_seconds,
            )
        except (GenerationUnavailable, asyncio.TimeoutError) as e:
            logger.error("[RAG Generator] Generation unavailable: %r", e)
            return AnswerDraft(
                answer=self._fallback_answer(context),
                retrieval=retrieval,
                grounded=True,
                model_id=None,
            )

        return AnswerDraft(
            answer=success.text,
            retrieval=retrieval,
            grounded=True,
            model_id=success.model_id,
        )

    def _fallback_answer(self, context: str) -> str:
        if self.extractive_fallback:
            excerpt = extractive_answer(context)
            if excerpt:
                return excerpt
        return GENERATION_REFUSAL
