"""
LLM Provider Abstraction Layer

Provides a unified interface over OpenAI's Chat Completions and Responses
APIs with a model registry and a sequential fallback chain.
"""

from tutor.services.llm.orchestrator import LLMOrchestrator, get_orchestrator
from tutor.services.llm.registry import MODEL_REGISTRY, get_provider, list_models
from tutor.services.llm.models import Fatal, Retryable, Success

__all__ = [
    "LLMOrchestrator",
    "get_orchestrator",
    "MODEL_REGISTRY",
    "get_provider",
    "list_models",
    "Success",
    "Retryable",
    "Fatal",
]
