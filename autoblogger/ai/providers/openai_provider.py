"""
OpenAI Rewrite Provider
=======================

Chat Completions API with bearer-token authentication.
"""

from typing import Any, Optional

from .base import ProviderRequest, RewriteProvider
from ...database.models import RewriteProviderType


class OpenAIProvider(RewriteProvider):
    """OpenAI chat completions."""

    provider_type = RewriteProviderType.OPENAI
    DEFAULT_ENDPOINT = "https://api.openai.com/v1/chat/completions"

    def build_request(self, prompt: str) -> ProviderRequest:
        return ProviderRequest(
            url=self.endpoint or self.DEFAULT_ENDPOINT,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            payload={
                "model": self.model_name,
                "messages": [
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": prompt},
                ],
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
            },
        )

    def parse_response(self, data: Any) -> Optional[str]:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return self._generic_output(data)
        return content if isinstance(content, str) else None
