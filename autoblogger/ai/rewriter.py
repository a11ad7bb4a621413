"""
Rewriter
========

Sends article text through an external text-generation provider.

The rewrite is strictly best-effort: any failure (missing credentials,
transport error, non-2xx status, undecodable JSON, unknown response shape,
empty output) yields the input markup unchanged. ``rewrite`` never raises.
"""

import asyncio
import json
import re
from typing import Any, Dict, Optional, Union

import aiohttp

from ..config.settings import AutobloggerSettings, get_settings
from ..database.models import RewriteProviderType
from ..ingestion.content_cleaner import ContentCleaner
from ..utils.http import http_session
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import RewriteError, ErrorCode
from .providers import PROVIDER_CLASSES, ProviderRequest, RewriteProvider

PLACEHOLDER_PATTERN = re.compile(r"\{(content|title|source_url)\}|\[(content|title|source_url)\]")
ELLIPSIS = "..."


class Rewriter:
    """Provider-agnostic article rewriter."""

    def __init__(
        self,
        settings: Optional[AutobloggerSettings] = None,
        cleaner: Optional[ContentCleaner] = None,
        providers: Optional[Dict[RewriteProviderType, RewriteProvider]] = None,
    ):
        """Initialize rewriter.

        Args:
            settings: Application settings (credentials, models, limits)
            cleaner: Sanitizer applied to provider output
            providers: Pre-built provider instances, overriding the ones
                built from settings
        """
        self.settings = settings or get_settings()
        self.cleaner = cleaner or ContentCleaner()
        self.timeout = self.settings.limits.rewrite_timeout
        self.max_chars = self.settings.limits.rewrite_max_chars
        self._providers: Dict[RewriteProviderType, RewriteProvider] = dict(providers or {})
        self.logger = get_logger_for_component("rewriter")

    def get_provider(self, provider_type: Union[RewriteProviderType, str]) -> RewriteProvider:
        """Provider instance for ``provider_type``.

        Raises:
            RewriteError: If no API key is configured for the provider
        """
        provider_type = RewriteProviderType(provider_type)
        if provider_type in self._providers:
            return self._providers[provider_type]

        ai = self.settings.ai
        api_key = ai.get_api_key(provider_type.value)
        if not api_key:
            raise RewriteError(
                "No API key configured",
                provider=provider_type.value,
                error_code=ErrorCode.REWRITE_MISSING_CREDENTIALS,
            )

        provider = PROVIDER_CLASSES[provider_type](
            api_key=api_key,
            model_name=ai.get_model(provider_type.value),
            temperature=ai.temperature,
            max_tokens=ai.max_tokens,
            system_prompt=ai.system_prompt,
        )
        self._providers[provider_type] = provider
        return provider

    def build_prompt(self, template: str, content: str, title: str = "", source_url: str = "") -> str:
        """Fill ``{content}``, ``{title}`` and ``{source_url}`` (or their ``[...]`` forms).

        The content is reduced to plain text and truncated. A template without
        a content placeholder gets the text appended.
        """
        text = self.cleaner.extract_text_only(content)
        if len(text) > self.max_chars:
            text = text[: self.max_chars] + ELLIPSIS

        values = {"content": text, "title": title or "", "source_url": source_url or ""}
        prompt = PLACEHOLDER_PATTERN.sub(
            lambda m: values[m.group(1) or m.group(2)], template
        )

        if not any(token in template for token in ("{content}", "[content]")):
            prompt = f"{prompt}\n\n{text}"
        return prompt

    async def rewrite(
        self,
        content: str,
        template: str,
        provider: Union[RewriteProviderType, str],
        title: str = "",
        source_url: str = "",
    ) -> str:
        """Rewrite ``content``; returns ``content`` unchanged on any failure."""
        try:
            return await self._rewrite(content, template, provider, title, source_url)
        except RewriteError as e:
            self.logger.warning(f"Rewrite failed, keeping original content: {e}", extra=e.to_dict())
        except Exception as e:
            self.logger.error(f"Unexpected rewrite failure, keeping original content: {e}", exc_info=True)
        return content

    async def _rewrite(self, content, template, provider, title, source_url) -> str:
        provider_impl = self.get_provider(provider)
        prompt = self.build_prompt(template, content, title, source_url)

        data = await self._post_json(provider_impl.build_request(prompt), provider_impl.name)

        output = provider_impl.parse_response(data)
        if not output or not output.strip():
            raise RewriteError(
                "Unrecognized or empty response",
                provider=provider_impl.name,
                error_code=ErrorCode.REWRITE_INVALID_RESPONSE,
            )

        sanitized = self.cleaner.sanitize_html(output)
        if not sanitized:
            raise RewriteError(
                "Response empty after sanitization",
                provider=provider_impl.name,
                error_code=ErrorCode.REWRITE_INVALID_RESPONSE,
            )

        self.logger.info(f"Rewrote content with {provider_impl}")
        return sanitized

    async def _post_json(self, request: ProviderRequest, provider_name: str) -> Any:
        """POST the request and decode the JSON body.

        Raises:
            RewriteError: On transport error, timeout, non-2xx status or invalid JSON
        """
        try:
            async with http_session(self.timeout) as session:
                async with session.post(request.url, json=request.payload, headers=request.headers) as response:
                    body = await response.text()
                    if not 200 <= response.status < 300:
                        raise RewriteError(
                            f"HTTP {response.status}: {body[:300]}",
                            provider=provider_name,
                        )

        except asyncio.TimeoutError as e:
            raise RewriteError(
                f"Request timeout after {self.timeout}s",
                provider=provider_name,
                error_code=ErrorCode.REWRITE_TIMEOUT,
            ) from e
        except aiohttp.ClientError as e:
            raise RewriteError(
                f"Connection error: {e}",
                provider=provider_name,
                error_code=ErrorCode.REWRITE_CONNECTION_ERROR,
            ) from e

        try:
            return json.loads(body)
        except ValueError as e:
            raise RewriteError(
                "Response is not valid JSON",
                provider=provider_name,
                error_code=ErrorCode.REWRITE_INVALID_RESPONSE,
            ) from e
