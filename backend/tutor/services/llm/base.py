"""
Abstract base class for all LLM providers.

Each provider implements the API-specific translation layer.
Fallback across models and backoff between attempts are handled by the
orchestrator.
"""

from abc import ABC, abstractmethod


class EmptyCompletionError(ValueError):
    """The provider answered but the completion text was empty."""


class LLMProvider(ABC):
    """Abstract base class for all LLM providers."""

    provider_name: str = "base"

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        model: str,
        system_prompt: str | None = None,
        max_output_tokens: int = 800,
        temperature: float = 0.3,
    ) -> str:
        """
        Send a text prompt to the LLM and return the raw text response.

        Args:
            prompt: The user prompt
            model: The API model identifier (e.g., "gpt-4o", "gpt-5-mini")
            system_prompt: Optional system prompt
            max_output_tokens: Maximum tokens in the response
            temperature: Sampling temperature

        Returns:
            Raw text response from the LLM

        Raises:
            EmptyCompletionError: The response contained no text
        """
        ...
