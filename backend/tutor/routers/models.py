"""
Models Router

Exposes the registered AI models and the configured fallback chain.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from tutor.core.config import get_settings
from tutor.services.llm.registry import list_models


router = APIRouter()


class ModelInfo(BaseModel):
    id: str
    display_name: str
    tier: str
    description: str
    chain_position: int | None = None


@router.get("", response_model=list[ModelInfo])
async def get_available_models():
    """Return the registered models, marking their place in the fallback chain."""
    return list_models(get_settings().generation_models)
