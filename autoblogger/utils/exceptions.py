"""
Autoblogger Custom Exceptions
=============================

Exception hierarchy for the feed-to-article pipeline with error codes,
context information and structured serialization for logging.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_PARSE_ERROR = "C003"

    # Store errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_SCHEMA = "D002"
    DATABASE_TRANSACTION = "D004"
    DATABASE_ERROR = "D006"

    # Feed errors (F001-F099)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_STATUS = "F005"

    # Article/content errors (P001-P099)
    ARTICLE_FETCH_TIMEOUT = "P001"
    ARTICLE_NETWORK_ERROR = "P002"

    # Rewrite errors (A001-A099)
    REWRITE_API_ERROR = "A001"
    REWRITE_INVALID_RESPONSE = "A003"
    REWRITE_TIMEOUT = "A004"
    REWRITE_MISSING_CREDENTIALS = "A009"
    REWRITE_CONNECTION_ERROR = "A010"

    # Publishing errors (L001-L099)
    PUBLISH_FAILED = "L001"
    PUBLISH_METADATA_FAILED = "L002"

    # Media errors (M001-M099)
    ASSET_DOWNLOAD_FAILED = "M001"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"

    # Resource errors (R001-R099)
    RESOURCE_NOT_FOUND = "R002"


class AutobloggerError(Exception):
    """Base exception for all Autoblogger errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize Autoblogger error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: Human-readable error message for the CLI
            recoverable: Whether a later run may succeed
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


def _with_context(kwargs: Dict[str, Any], **values: Any) -> Dict[str, Any]:
    context = dict(kwargs.pop("context", None) or {})
    for key, value in values.items():
        if value is not None:
            context[key] = value
    return context


class ConfigurationError(AutobloggerError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = _with_context(kwargs, config_key=config_key)
        kwargs.setdefault("error_code", ErrorCode.CONFIG_INVALID)
        kwargs.setdefault("user_message", f"Configuration error: {message}")
        super().__init__(message, context=context, **kwargs)


class ValidationError(AutobloggerError, ValueError):
    """Input validation errors. Also a ValueError so pydantic validators report it."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        context = _with_context(kwargs, field_name=field_name)
        kwargs.setdefault("error_code", ErrorCode.VALIDATION_INVALID_FORMAT)
        super().__init__(message, context=context, **kwargs)


class StoreError(AutobloggerError):
    """Campaign store errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        """Initialize store error.

        Args:
            message: Error message
            query: SQL query that caused the error, when the store is SQL backed
            **kwargs: Additional arguments for AutobloggerError
        """
        context = _with_context(kwargs, query=query)
        kwargs.setdefault("error_code", ErrorCode.DATABASE_ERROR)
        kwargs.setdefault("user_message", "Campaign store operation failed")
        kwargs.setdefault("recoverable", True)
        super().__init__(message, context=context, **kwargs)


class DatabaseError(StoreError):
    """SQLite-specific store errors."""


class CampaignNotFoundError(AutobloggerError):
    """Requested campaign does not exist."""

    def __init__(self, campaign_id: str, **kwargs):
        context = _with_context(kwargs, campaign_id=campaign_id)
        kwargs.setdefault("error_code", ErrorCode.RESOURCE_NOT_FOUND)
        kwargs.setdefault("user_message", f"Unknown campaign: {campaign_id}")
        super().__init__(f"Campaign not found: {campaign_id}", context=context, **kwargs)


class FeedUnavailableError(AutobloggerError):
    """Feed could not be retrieved or parsed."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for AutobloggerError
        """
        context = _with_context(kwargs, feed_url=feed_url)
        kwargs.setdefault("error_code", ErrorCode.FEED_NETWORK_ERROR)
        kwargs.setdefault("user_message", f"Feed unavailable: {message}")
        kwargs.setdefault("recoverable", True)
        super().__init__(message, context=context, **kwargs)


class ArticleUnavailableError(AutobloggerError):
    """Source page could not be retrieved."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        context = _with_context(kwargs, url=url)
        kwargs.setdefault("error_code", ErrorCode.ARTICLE_NETWORK_ERROR)
        kwargs.setdefault("recoverable", True)
        super().__init__(message, context=context, **kwargs)


class RewriteError(AutobloggerError):
    """Rewrite provider call failed. Never escapes the Rewriter."""

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        context = _with_context(kwargs, provider=provider)
        kwargs.setdefault("error_code", ErrorCode.REWRITE_API_ERROR)
        kwargs.setdefault("recoverable", True)
        super().__init__(message, context=context, **kwargs)


class AssetError(AutobloggerError):
    """Asset store could not download or register an image."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        context = _with_context(kwargs, url=url)
        kwargs.setdefault("error_code", ErrorCode.ASSET_DOWNLOAD_FAILED)
        kwargs.setdefault("recoverable", True)
        super().__init__(message, context=context, **kwargs)


class PublishError(AutobloggerError):
    """Publishing target rejected or failed to create a post."""

    def __init__(self, message: str, source_url: Optional[str] = None, **kwargs):
        context = _with_context(kwargs, source_url=source_url)
        kwargs.setdefault("error_code", ErrorCode.PUBLISH_FAILED)
        kwargs.setdefault("user_message", "Publishing failed")
        kwargs.setdefault("recoverable", True)
        super().__init__(message, context=context, **kwargs)


def get_user_friendly_message(exception: Exception) -> str:
    """Get user-friendly error message for any exception."""
    if isinstance(exception, AutobloggerError):
        return exception.user_message
    return "An unexpected error occurred. Please try again later."
