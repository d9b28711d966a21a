"""
OpenAI Chat Completions API Provider

Handles GPT-4o, GPT-4o-mini, GPT-4.1 and other Chat Completions API models:
- client.chat.completions.create()
- messages (not input)
- response.choices[0].message.content
"""

from openai import AsyncOpenAI

from tutor.core.config import get_settings
from tutor.services.llm.base import EmptyCompletionError, LLMProvider


class OpenAIChatProvider(LLMProvider):
    """Provider for OpenAI Chat Completions API (GPT-4o, GPT-4o-mini, etc.)."""

    provider_name = "openai_chat"

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
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response = await self.client.chat.completions.create(
            model=model,
            messages=messages,
            max_completion_tokens=max_output_tokens,
            temperature=temperature,
        )

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise EmptyCompletionError("Empty response from OpenAI Chat Completions API")
        return content
