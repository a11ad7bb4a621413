"""
Autoblogger Configuration System
================================

Environment-driven configuration with Pydantic models. Environment variables
(prefix ``AUTOBLOGGER_``, nested delimiter ``__``) override Field defaults.
"""

from pathlib import Path
from typing import Optional
from enum import Enum
from urllib.parse import urlparse

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode
from ..utils.validators import URLValidator


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ProcessingSettings(BaseModel):
    """Campaign processing configuration."""
    max_concurrent_campaigns: int = Field(default=3, ge=1, le=50, description="Campaigns run concurrently by the scheduler")
    default_max_items: int = Field(default=2000, ge=1, description="Feed item cap when a campaign does not set one")
    poll_seconds: int = Field(default=60, ge=5, le=3600, description="Scheduler wake-up interval")


class LimitsSettings(BaseModel):
    """Network timeouts and content limits."""
    feed_timeout: int = Field(default=30, ge=1, le=300, description="Feed download timeout in seconds")
    article_timeout: int = Field(default=15, ge=1, le=300, description="Source page download timeout in seconds")
    rewrite_timeout: int = Field(default=30, ge=1, le=300, description="Rewrite provider call timeout in seconds")
    image_timeout: int = Field(default=30, ge=1, le=300, description="Image download timeout in seconds")
    rewrite_max_chars: int = Field(default=5000, ge=100, le=100000, description="Plain-text characters sent to the rewrite provider")
    user_agent: str = Field(default="Autoblogger/1.0 (+feed ingestion)", description="User-Agent header for outbound requests")


class AISettings(BaseModel):
    """Rewrite provider credentials and generation parameters."""
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    gemini_api_key: Optional[str] = Field(default=None, description="Google Gemini API key")
    groq_api_key: Optional[str] = Field(default=None, description="Groq API key")

    openai_model: str = Field(default="gpt-4", description="OpenAI chat model")
    gemini_model: str = Field(default="gemini-1.5-flash", description="Gemini model")
    groq_model: str = Field(default="llama-3.3-70b-versatile", description="Groq chat model")

    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(default=1200, ge=50, le=8000, description="Maximum tokens per response")
    system_prompt: str = Field(
        default="You are a helpful assistant that rewrites articles.",
        description="System message for chat-style providers",
    )

    def get_api_key(self, provider: str) -> Optional[str]:
        """Get API key for the named provider."""
        return getattr(self, f"{provider}_api_key", None)

    def get_model(self, provider: str) -> Optional[str]:
        """Get model name for the named provider."""
        return getattr(self, f"{provider}_model", None)


class PublishingSettings(BaseModel):
    """Publishing target configuration."""
    site_url: str = Field(default="http://localhost", description="Public URL of the publishing site")
    output_path: str = Field(default="data/posts.jsonl", description="JSON-lines file used by the local publish target")

    @field_validator("site_url")
    @classmethod
    def validate_site_url(cls, v):
        """Require an absolute http(s) URL."""
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("site_url must be an absolute http(s) URL")
        return v

    @property
    def site_host(self) -> str:
        return URLValidator.host_of(self.site_url)


class MediaSettings(BaseModel):
    """Local asset store configuration."""
    asset_dir: str = Field(default="data/media", description="Directory receiving downloaded images")
    recent_assets_window: int = Field(default=5, ge=1, le=50, description="Recent assets inspected when correlating an upload")


class DatabaseSettings(BaseModel):
    """Database configuration."""
    path: str = Field(default="data/autoblogger.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/autoblogger.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging on the console")
    console_logging: bool = Field(default=True, description="Enable console logging")


class AutobloggerSettings(BaseSettings):
    """Main application settings."""

    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)
    limits: LimitsSettings = Field(default_factory=LimitsSettings)
    ai: AISettings = Field(default_factory=AISettings)
    publishing: PublishingSettings = Field(default_factory=PublishingSettings)
    media: MediaSettings = Field(default_factory=MediaSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="Autoblogger", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "AUTOBLOGGER_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate paths that must be writable."""
        errors = []

        for label, raw_path in (
            ("database path", self.database.path),
            ("log file path", self.logging.file_path),
            ("publish output path", self.publishing.output_path),
        ):
            if not raw_path:
                continue
            try:
                Path(raw_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid {label}: {e}")

        try:
            Path(self.media.asset_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Invalid asset directory: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID,
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> AutobloggerSettings:
    """Load settings from environment variables and defaults.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = AutobloggerSettings()
        settings.validate_configuration()
        return settings
    except ConfigurationError:
        raise
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID,
        ) from e
    except Exception as e:
        raise ConfigurationError(
            f"Failed to parse settings: {e}",
            error_code=ErrorCode.CONFIG_PARSE_ERROR,
        ) from e


_settings: Optional[AutobloggerSettings] = None


def get_settings(reload: bool = False) -> AutobloggerSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings


def set_settings(settings: Optional[AutobloggerSettings]) -> None:
    """Replace the global settings instance (used by tests and the CLI)."""
    global _settings
    _settings = settings
