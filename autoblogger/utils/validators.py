"""
Autoblogger Input Validators
============================

URL validation for campaign configuration. Feed item links are never
normalized here: dedup keys must be derived from the link exactly as the
feed published it.
"""

from typing import Optional
from urllib.parse import urlparse

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """URL validation utilities."""

    ALLOWED_SCHEMES = {"http", "https"}

    @classmethod
    def validate_feed_url(cls, url: str) -> str:
        """Validate a feed URL.

        Args:
            url: URL to validate

        Returns:
            The URL with surrounding whitespace removed

        Raises:
            ValidationError: If URL is invalid
        """
        if not url or not isinstance(url, str):
            raise ValidationError(
                "URL is required and must be a string",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="url",
            )

        url = url.strip()
        parsed = urlparse(url)

        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ValidationError(
                f"URL scheme must be http or https: {url}",
                error_code=ErrorCode.FEED_INVALID_URL,
                field_name="url",
            )

        if not parsed.netloc:
            raise ValidationError(
                "URL must include a hostname",
                error_code=ErrorCode.FEED_INVALID_URL,
                field_name="url",
            )

        return url

    @staticmethod
    def host_of(url: Optional[str]) -> str:
        """Lower-cased host of an absolute URL, empty string when absent."""
        if not url:
            return ""
        try:
            return (urlparse(url).hostname or "").lower()
        except ValueError:
            return ""

    @staticmethod
    def is_http_url(url: Optional[str]) -> bool:
        if not url:
            return False
        return urlparse(url.strip()).scheme.lower() in ("http", "https")
