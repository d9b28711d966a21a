"""
LLM Orchestrator

Shared logic for all providers:
- Resolving model ids to providers through the registry
- Turning each call into a typed outcome (Success / Retryable / Fatal)
- Walking an ordered fallback chain of models with linear backoff

The chain is strictly sequential: each attempt's outcome decides whether the
next model is tried, so paid calls are never duplicated. Backoff only smooths
transient errors between models; a model is never retried.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from tutor.core.config import get_settings
from tutor.core.exceptions import GenerationUnavailable
from tutor.services.llm.base import EmptyCompletionError, LLMProvider
from tutor.services.llm.models import Outcome, Retryable, Success, classify_error
from tutor.services.llm.registry import get_provider

logger = logging.getLogger(__name__)

ProviderLookup = Callable[[str], tuple[LLMProvider, str]]


class LLMOrchestrator:
    """Orchestrates LLM calls with shared fallback and backoff logic."""

    def __init__(
        self,
        provider_lookup: ProviderLookup = get_provider,
        backoff_base_seconds: float = 0.3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._lookup = provider_lookup
        self.backoff_base_seconds = backoff_base_seconds
        self._sleep = sleep

    async def complete(
        self,
        prompt: str,
        model_id: str,
        system_prompt: str | None = None,
        max_output_tokens: int = 800,
        temperature: float = 0.3,
    ) -> str:
        """Single call to one model. Provider errors propagate to the caller."""
        provider, api_model = self._lookup(model_id)
        content = await provider.complete(
            prompt=prompt,
            model=api_model,
            system_prompt=system_prompt,
            max_output_tokens=max_output_tokens,
            temperature=temperature,
        )
        logger.debug("[LLM] model=%s provider=%s", model_id, provider.provider_name)
        return content

    async def attempt(self, model_id: str, prompt: str, **kwargs) -> Outcome:
        """Call one model and classify the result instead of raising."""
        try:
            text = await self.complete(prompt, model_id, **kwargs)
        except Exception as e:
            outcome = classify_error(model_id, e)
            logger.warning(
                "[LLM] %s failed (%s): %s", model_id, type(outcome).__name__.lower(), e
            )
            return outcome
        if not text or not text.strip():
            logger.warning("[LLM] %s returned an empty completion", model_id)
            return Retryable(model_id=model_id, error=EmptyCompletionError(model_id))
        return Success(model_id=model_id, text=text.strip())

    async def complete_with_fallback(
        self,
        prompt: str,
        model_ids: list[str],
        system_prompt: str | None = None,
        max_output_tokens: int = 800,
        temperature: float = 0.3,
    ) -> Success:
        """
        Try each model in order until one returns non-empty text.

        Between attempts, a retryable failure waits backoff_base_seconds x
        attempt number (1, 2, 3, ...). A fatal failure moves on immediately.

        Raises:
            GenerationUnavailable: every model in the chain failed
        """
        errors: list[Exception] = []

        for index, model_id in enumerate(model_ids, start=1):
            outcome = await self.attempt(
                model_id,
                prompt,
                system_prompt=system_prompt,
                max_output_tokens=max_output_tokens,
                temperature=temperature,
            )
            if isinstance(outcome, Success):
                if index > 1:
                    logger.info("[LLM] Answered by fallback model %s", model_id)
                return outcome

            errors.append(outcome.error)
            if index == len(model_ids):
                break

            if isinstance(outcome, Retryable):
                await self._sleep(self.backoff_base_seconds * index)

        raise GenerationUnavailable(
            f"all {len(model_ids)} models in the fallback chain failed", errors
        )


# ── Singleton ─────────────────────────────────────────────────────────────────

_orchestrator: LLMOrchestrator | None = None


def get_orchestrator() -> LLMOrchestrator:
    """Get or create the LLM orchestrator singleton."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = LLMOrchestrator(
            backoff_base_seconds=get_settings().backoff_base_seconds
        )
    return _orchestrator
