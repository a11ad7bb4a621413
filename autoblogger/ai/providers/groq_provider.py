"""
Groq Rewrite Provider
=====================

Groq exposes an OpenAI-compatible chat completions endpoint, so request
and response handling are inherited unchanged.
"""

from .openai_provider import OpenAIProvider
from ...database.models import RewriteProviderType


class GroqProvider(OpenAIProvider):
    """Groq chat completions."""

    provider_type = RewriteProviderType.GROQ
    DEFAULT_ENDPOINT = "https://api.groq.com/openai/v1/chat/completions"
