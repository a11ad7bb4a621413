"""
Autoblogger - Feed to Article Pipeline
======================================

Turns RSS/Atom feed items into published articles.

Main Components:
- Processing: feed fetching, deduplication, sanitize/filter chain, campaign runner
- Ingestion: source page extraction and HTML sanitization
- AI: provider-agnostic rewriting (OpenAI, Gemini, Groq)
- Media: candidate image detection and asset resolution
- Storage: SQLite campaign store with append-only dedup keys
"""

__version__ = "1.0.0"
__description__ = "RSS/Atom feed to published article pipeline"

from .config.settings import get_settings
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import AutobloggerError

__all__ = [
    "get_settings",
    "configure_application_logging",
    "get_logger_for_component",
    "AutobloggerError",
]
