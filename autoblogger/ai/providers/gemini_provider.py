"""
Google Gemini Rewrite Provider
==============================

``generateContent`` REST endpoint. Gemini authenticates with an API-key
header rather than a bearer token.
"""

from typing import Any, Optional

from .base import ProviderRequest, RewriteProvider
from ...database.models import RewriteProviderType


class GeminiProvider(RewriteProvider):
    """Gemini generateContent."""

    provider_type = RewriteProviderType.GEMINI
    DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def build_request(self, prompt: str) -> ProviderRequest:
        url = (self.endpoint or self.DEFAULT_ENDPOINT).format(model=self.model_name)
        return ProviderRequest(
            url=url,
            headers={
                "x-goog-api-key": self.api_key,
                "Content-Type": "application/json",
            },
            payload={
                "systemInstruction": {"parts": [{"text": self.system_prompt}]},
                "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                "generationConfig": {
                    "temperature": self.temperature,
                    "maxOutputTokens": self.max_tokens,
                },
            },
        )

    def parse_response(self, data: Any) -> Optional[str]:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            return self._generic_output(data)

        texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
        return "".join(texts) if texts else None
