"""
Rewrite provider variants.
"""

from typing import Dict, Type

from .base import RewriteProvider, ProviderRequest
from .openai_provider import OpenAIProvider
from .gemini_provider import GeminiProvider
from .groq_provider import GroqProvider
from ...database.models import RewriteProviderType

PROVIDER_CLASSES: Dict[RewriteProviderType, Type[RewriteProvider]] = {
    RewriteProviderType.OPENAI: OpenAIProvider,
    RewriteProviderType.GEMINI: GeminiProvider,
    RewriteProviderType.GROQ: GroqProvider,
}

__all__ = [
    "RewriteProvider",
    "ProviderRequest",
    "OpenAIProvider",
    "GeminiProvider",
    "GroqProvider",
    "PROVIDER_CLASSES",
]
