"""
OpenAI Responses API Provider

Handles GPT-5.x models using the newer Responses API format:
- client.responses.create()
- input (not messages)
- response.output_text
"""

from openai import AsyncOpenAI

from tutor.core.config import get_settings
from tutor.services.llm.base import EmptyCompletionError, LLMProvider


class OpenAIResponsesProvider(LLMProvider):
    """Provider for OpenAI Responses API (GPT-5.x models)."""

    provider_name = "openai_responses"

    def __init__(self, client: AsyncOpenAI | None = None):
        self.client = client or AsyncOpenAI(api_key=get_settings().openai_api_key)

    async def complete(
        self,
        prompt: str,
        model: str,
        system_prompt: str | None = None,
        max_output_tokens: int = 800,
        temperature: float = 0.3,
    ) -> str:
        input_messages = []
        if system_prompt:
            input_messages.append({"role": "system", "content": system_prompt})
        input_messages.append({"role": "user", "content": prompt})

        # Reasoning models reject temperature, so it is not forwarded
        response = await self.client.responses.create(
            model=model,
            input=input_messages,
            max_output_tokens=max_output_tokens,
        )

        content = response.output_text
        if not content or not content.strip():
            raise EmptyCompletionError("Empty response from OpenAI Responses API")
        return content
