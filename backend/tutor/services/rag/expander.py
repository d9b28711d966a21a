"""
Query Expander

A lightweight first pass that asks a cheap, fast model (gpt-4o-mini) to
rephrase the student's question 2-3 ways with curriculum terminology.

Why this exists:
- Students phrase questions casually ("why do things keep moving?") while the
  curriculum text uses subject terms ("inertia", "Newton's first law")
- Retrieving with several phrasings widens recall at the cost of one cheap call

Expansion is an optimization, never a dependency: any failure returns just
the original question.
"""

import asyncio
import logging
import re

from tutor.services.llm.orchestrator import LLMOrchestrator
from tutor.services.prompts import compile_expansion_prompt
from tutor.services.rag.types import ExpandedQuerySet, MAX_EXPANDED_QUERIES

logger = logging.getLogger(__name__)

# Lines the model numbered despite being asked not to ("1. ...")
NUMBERED_LINE = re.compile(r"^\d+\.")


def parse_expansions(raw: str) -> list[str]:
    """Split model output into at most three rephrasings."""
    lines = (line.strip() for line in raw.splitlines())
    variants = [line for line in lines if line and not NUMBERED_LINE.match(line)]
    return variants[: MAX_EXPANDED_QUERIES - 1]


class QueryExpander:
    def __init__(
        self,
        orchestrator: LLMOrchestrator,
        model_id: str = "gpt-4o-mini",
        timeout_seconds: float | None = 5.0,
    ):
        self.orchestrator = orchestrator
        self.model_id = model_id
        self.timeout_seconds = timeout_seconds

    async def expand(self, question: str, grade_hint: int | None = None) -> ExpandedQuerySet:
        """
        Return [question, variant_1, ...] with the original always first.

        Args:
            question: The student's question
            grade_hint: Optional grade used to frame the rephrasings

        Returns:
            ExpandedQuerySet of 1-4 queries
        """
        prompt = compile_expansion_prompt(question, grade_hint)

        try:
            raw = await asyncio.wait_for(
                self.orchestrator.complete(
                    prompt,
                    self.model_id,
                    max_output_tokens=200,
                    temperature=0.7,
                ),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            logger.warning("[RAG Expander] Expansion failed, using original question: %r", e)
            return ExpandedQuerySet(queries=[question])

        variants = [v for v in parse_expansions(raw) if v != question]
        logger.info("[RAG Expander] Expanded into %d variants", len(variants))
        return ExpandedQuerySet(queries=[question, *variants])
