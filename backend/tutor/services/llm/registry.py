"""
Model Registry

Known answer and expansion models, keyed by the ids used in settings.
Used by the orchestrator to resolve each entry of the fallback chain to a
provider, and by the /models endpoint.
"""

from tutor.services.llm.base import LLMProvider
from tutor.services.llm.openai_chat import OpenAIChatProvider
from tutor.services.llm.openai_responses import OpenAIResponsesProvider


# ── Model Registry ────────────────────────────────────────────────────────────
# Each entry maps a model_id to:
#   - display_name: Human-readable name
#   - provider:     Which LLMProvider class to use
#   - api_model:    The actual model string sent to the provider API
#   - tier:         Cost tier, used to order fallback chains

MODEL_REGISTRY: dict[str, dict] = {
    # ── OpenAI Responses API (GPT-5.x) ──
    "gpt-5.2": {
        "display_name": "GPT-5.2 (Premium)",
        "provider": "openai_responses",
        "api_model": "gpt-5.2",
        "tier": "premium",
        "description": "Most capable model. Best reasoning but slowest.",
    },
    "gpt-5-mini": {
        "display_name": "GPT-5 Mini",
        "provider": "openai_responses",
        "api_model": "gpt-5-mini",
        "tier": "standard",
        "description": "Good balance of quality and speed.",
    },
    # ── OpenAI Chat Completions API (GPT-4o / GPT-4.1) ──
    "gpt-4o": {
        "display_name": "GPT-4o",
        "provider": "openai_chat",
        "api_model": "gpt-4o",
        "tier": "standard",
        "description": "Fast and reliable. Recommended primary answer model.",
    },
    "gpt-4o-mini": {
        "display_name": "GPT-4o Mini (Budget)",
        "provider": "openai_chat",
        "api_model": "gpt-4o-mini",
        "tier": "budget",
        "description": "Fast and cheap. Used for query expansion and as a fallback.",
    },
    "gpt-4.1-nano": {
        "display_name": "GPT-4.1 Nano (Budget)",
        "provider": "openai_chat",
        "api_model": "gpt-4.1-nano",
        "tier": "budget",
        "description": "Smallest and cheapest. Last resort in the fallback chain.",
    },
}


class UnknownModelError(ValueError):
    """The model id is not in the registry."""


# ── Providers ─────────────────────────────────────────────────────────────────

PROVIDER_CLASSES: dict[str, type[LLMProvider]] = {
    "openai_chat": OpenAIChatProvider,
    "openai_responses": OpenAIResponsesProvider,
}

# One client per provider type, created on first use
_providers: dict[str, LLMProvider] = {}


def get_provider(model_id: str) -> tuple[LLMProvider, str]:
    """
    Resolve a model id to (provider, api_model).

    Raises:
        UnknownModelError: the id is not registered. The orchestrator treats
            this as a fatal outcome and moves down the chain.
    """
    info = MODEL_REGISTRY.get(model_id)
    if info is None:
        raise UnknownModelError(
            f"Unknown model: {model_id} (registered: {', '.join(MODEL_REGISTRY)})"
        )

    kind = info["provider"]
    provider = _providers.get(kind)
    if provider is None:
        provider = _providers[kind] = PROVIDER_CLASSES[kind]()
    return provider, info["api_model"]


def list_models(fallback_chain: list[str] | None = None) -> list[dict]:
    """
    Registered models for the /models endpoint.

    chain_position is the model's index in the fallback chain, or None when
    it is registered but not part of the chain.
    """
    chain = list(fallback_chain or [])
    models = []
    for model_id, info in MODEL_REGISTRY.items():
        models.append(
            {
                "id": model_id,
                "display_name": info["display_name"],
                "tier": info["tier"],
                "description": info.get("description", ""),
                "chain_position": chain.index(model_id) if model_id in chain else None,
            }
        )
    return models
