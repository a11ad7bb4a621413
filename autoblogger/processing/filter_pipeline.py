"""
Filter Pipeline
===============

Deterministic sanitize-then-filter chain applied to extracted article markup.

Sanitize stage (fixed order):
1. drop non-content elements (script, style, noscript, iframe, aside, form)
2. drop elements carrying a configured class token
3. drop elements with a configured id
4. link policy: strip anchors to text, or add rel="nofollow" to external links
5. optionally drop images
6. allow-list sanitization of the re-serialized markup

Filter stage runs on the plain-text rendering of the sanitized markup.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..config.settings import get_settings
from ..database.models import FilterConfig, RejectionReason
from ..ingestion.content_cleaner import ContentCleaner
from ..utils.logging import get_logger_for_component
from ..utils.validators import URLValidator


@dataclass
class FilterResult:
    """Sanitized markup plus the filter verdict."""
    markup: str
    text: str
    word_count: int
    rejection: Optional[RejectionReason] = None

    @property
    def passed(self) -> bool:
        return self.rejection is None


def _tokens(value) -> List[str]:
    """Multi-valued attribute (class, rel) as a token list."""
    if not value:
        return []
    if isinstance(value, str):
        return value.split()
    return list(value)


class FilterPipeline:
    """Sanitizes article markup and applies per-campaign content filters."""

    NON_CONTENT_TAGS = ("script", "style", "noscript", "iframe", "aside", "form")

    def __init__(self, site_url: Optional[str] = None, cleaner: Optional[ContentCleaner] = None):
        """Initialize filter pipeline.

        Args:
            site_url: Publishing site URL; links to other hosts count as external
            cleaner: Allow-list sanitizer
        """
        if site_url is None:
            site_url = get_settings().publishing.site_url
        self.site_host = URLValidator.host_of(site_url)
        self.cleaner = cleaner or ContentCleaner()
        self.logger = get_logger_for_component("filter_pipeline")
        self.parser = "html.parser"

    def process(self, markup: str, config: FilterConfig) -> FilterResult:
        """Sanitize ``markup`` and evaluate the campaign filters on it."""
        sanitized = self.sanitize(markup, config)
        text = self.cleaner.extract_text_only(sanitized)
        word_count = len(text.split())

        if not sanitized.strip():
            rejection = RejectionReason.EMPTY_CONTENT
        else:
            rejection = self.check(text, config, word_count)

        if rejection:
            self.logger.info(f"Rejected content ({word_count} words): {rejection.value}")

        return FilterResult(markup=sanitized, text=text, word_count=word_count, rejection=rejection)

    def sanitize(self, markup: str, config: FilterConfig) -> str:
        """Run the sanitize stage. Every removal works on a snapshot of matches."""
        if not markup or not markup.strip():
            return ""

        soup = BeautifulSoup(markup, self.parser)

        self._remove(soup.find_all(list(self.NON_CONTENT_TAGS)))

        if config.remove_by_class:
            unwanted = set(config.remove_by_class)
            self._remove(
                soup.find_all(lambda tag: any(t in unwanted for t in _tokens(tag.get("class"))))
            )

        if config.remove_by_id:
            unwanted_ids = set(config.remove_by_id)
            self._remove(soup.find_all(lambda tag: tag.get("id") in unwanted_ids))

        if config.strip_links:
            for anchor in soup.find_all("a"):
                if not anchor.decomposed:
                    anchor.replace_with(anchor.get_text())
        elif config.add_nofollow:
            for anchor in soup.find_all("a", href=True):
                self._add_nofollow(anchor)

        if config.strip_images:
            self._remove(soup.find_all("img"))

        return self.cleaner.sanitize_html(str(soup))

    def check(
        self, text: str, config: FilterConfig, word_count: Optional[int] = None
    ) -> Optional[RejectionReason]:
        """First failing filter in evaluation order, or None if all pass."""
        if word_count is None:
            word_count = len(text.split())

        if config.min_words > 0 and word_count < config.min_words:
            return RejectionReason.TOO_SHORT

        if config.max_words > 0 and word_count > config.max_words:
            return RejectionReason.TOO_LONG

        haystack = text.lower()

        for keyword in config.required_keywords:
            if keyword.lower() not in haystack:
                return RejectionReason.MISSING_REQUIRED_KEYWORD

        for keyword in config.banned_keywords:
            if keyword.lower() in haystack:
                return RejectionReason.BANNED_KEYWORD_PRESENT

        return None

    def _add_nofollow(self, anchor: Tag) -> None:
        host = URLValidator.host_of(anchor.get("href", "").strip())
        if not host or host == self.site_host:
            return

        rel = _tokens(anchor.get("rel"))
        if not any(token.lower() == "nofollow" for token in rel):
            rel.append("nofollow")
        anchor["rel"] = rel

    @staticmethod
    def _remove(elements: Iterable[Tag]) -> None:
        for element in list(elements):
            if not element.decomposed:
                element.decompose()
