"""
Base Rewrite Provider Interface
===============================

Each provider variant owns the shape of its request payload and the
parsing of its response; the Rewriter only moves JSON over HTTP.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ...database.models import RewriteProviderType

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant that rewrites articles."


@dataclass
class ProviderRequest:
    """A JSON POST ready to be sent."""
    url: str
    payload: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)


class RewriteProvider(ABC):
    """Abstract base class for rewrite provider implementations."""

    provider_type: RewriteProviderType
    DEFAULT_ENDPOINT: str = ""

    def __init__(
        self,
        api_key: str,
        model_name: str,
        temperature: float = 0.7,
        max_tokens: int = 1200,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        endpoint: Optional[str] = None,
    ):
        """Initialize provider.

        Args:
            api_key: API key for the provider
            model_name: Model to use for requests
            temperature: Sampling temperature
            max_tokens: Maximum tokens in the response
            system_prompt: Instruction sent alongside the user prompt
            endpoint: Override of the provider's API URL
        """
        self.api_key = api_key
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt
        self.endpoint = endpoint

    @property
    def name(self) -> str:
        return self.provider_type.value

    @abstractmethod
    def build_request(self, prompt: str) -> ProviderRequest:
        """Build the HTTP request carrying ``prompt``."""

    @abstractmethod
    def parse_response(self, data: Any) -> Optional[str]:
        """Extract generated text from a decoded JSON response.

        Returns:
            Generated text, or None when the response shape is not recognized
        """

    @staticmethod
    def _generic_output(data: Any) -> Optional[str]:
        """Some gateways answer with a bare ``{"output": "..."}`` object."""
        if isinstance(data, dict) and isinstance(data.get("output"), str):
            return data["output"]
        return None

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.model_name})"
