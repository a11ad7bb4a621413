"""
Content Extractor
=================

Retrieves a source page and heuristically isolates the article body.

Two strategies:

- ``css``: a comma-separated list of simple selectors (``tag``, ``.class``,
  ``#id``). Anything else in a clause is skipped. The inner markup of every
  match is concatenated, clauses in the order given, matches in document
  order.
- ``auto``: tries well-known article containers in priority order and keeps
  the one with the longest text, falling back to the largest ``div``.
"""

import asyncio
import re
from typing import Callable, List, Optional, Union

import aiohttp
from bs4 import BeautifulSoup
from bs4.element import Tag

from ..config.settings import get_settings
from ..database.models import ExtractionMethod
from ..utils.http import http_session
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ArticleUnavailableError, ErrorCode

CLASS_CLAUSE = re.compile(r"^\.([A-Za-z0-9\-_]+)$")
ID_CLAUSE = re.compile(r"^#([A-Za-z0-9\-_]+)$")
TAG_CLAUSE = re.compile(r"^[A-Za-z0-9]+$")


def _class_attr(tag: Tag) -> str:
    value = tag.get("class")
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def _div_with_class_containing(fragment: str) -> Callable[[Tag], bool]:
    """Substring match on the raw class attribute, so 'content' also hits 'main-content'."""
    def matcher(tag: Tag) -> bool:
        return tag.name == "div" and fragment in _class_attr(tag)
    return matcher


# Priority order matters: the first pattern yielding non-empty text wins.
AUTO_CANDIDATES = [
    ("article", lambda tag: tag.name == "article"),
    ("div.entry-content", _div_with_class_containing("entry-content")),
    ("div.post-content", _div_with_class_containing("post-content")),
    ("div.article-content", _div_with_class_containing("article-content")),
    ("div.content", _div_with_class_containing("content")),
]


class ContentExtractor:
    """Fetches source pages and extracts the main content markup."""

    def __init__(self, timeout: Optional[int] = None, user_agent: Optional[str] = None):
        settings = get_settings()
        self.timeout = timeout or settings.limits.article_timeout
        self.user_agent = user_agent or settings.limits.user_agent
        self.logger = get_logger_for_component("content_extractor")
        self.parser = "html.parser"

    async def extract(
        self,
        url: str,
        method: Union[ExtractionMethod, str] = ExtractionMethod.AUTO,
        selector: str = "",
    ) -> Optional[str]:
        """Fetch ``url`` and extract its main content.

        Returns:
            Inner markup of the extracted content, or None when the page
            answered with a non-2xx status, an empty body, or nothing matched

        Raises:
            ArticleUnavailableError: On transport error or timeout
        """
        body = await self._fetch_page(url)
        if not body:
            return None

        markup = self.extract_from_html(body, method, selector)
        if markup is None:
            self.logger.info(f"No content extracted from {url}")
        return markup

    async def _fetch_page(self, url: str) -> Optional[bytes]:
        """Raw page body, or None for non-2xx responses."""
        headers = {"User-Agent": self.user_agent, "Accept": "text/html,application/xhtml+xml,*/*"}
        try:
            async with http_session(self.timeout, headers=headers) as session:
                async with session.get(url, allow_redirects=True) as response:
                    if not 200 <= response.status < 300:
                        self.logger.info(f"HTTP {response.status} fetching {url}")
                        return None
                    return await response.read()

        except asyncio.TimeoutError as e:
            raise ArticleUnavailableError(
                f"Request timeout after {self.timeout}s",
                url=url,
                error_code=ErrorCode.ARTICLE_FETCH_TIMEOUT,
            ) from e
        except aiohttp.ClientError as e:
            raise ArticleUnavailableError(f"Fetch error: {e}", url=url) from e

    def extract_from_html(
        self,
        html: Union[str, bytes],
        method: Union[ExtractionMethod, str] = ExtractionMethod.AUTO,
        selector: str = "",
    ) -> Optional[str]:
        """Extract main content from an already downloaded page.

        An empty selector in css mode falls back to auto detection.
        """
        if not html:
            return None

        soup = BeautifulSoup(html, self.parser)
        selector = (selector or "").strip()

        if ExtractionMethod(method) == ExtractionMethod.CSS and selector:
            return self._extract_css(soup, selector)
        return self._extract_auto(soup)

    def _extract_css(self, soup: BeautifulSoup, selector: str) -> Optional[str]:
        matches: List[Tag] = []

        for clause in selector.split(","):
            clause = clause.strip()

            class_match = CLASS_CLAUSE.match(clause)
            id_match = ID_CLAUSE.match(clause)

            if class_match:
                token = class_match.group(1)
                matches.extend(
                    soup.find_all(lambda tag: token in _class_attr(tag).split())
                )
            elif id_match:
                matches.extend(soup.find_all(id=id_match.group(1)))
            elif TAG_CLAUSE.match(clause):
                matches.extend(soup.find_all(clause.lower()))
            else:
                self.logger.debug(f"Skipping unsupported selector clause: {clause!r}")

        if not matches:
            return None
        return "".join(node.decode_contents() for node in matches)

    def _extract_auto(self, soup: BeautifulSoup) -> Optional[str]:
        for label, matcher in AUTO_CANDIDATES:
            best = self._longest_text(soup.find_all(matcher))
            if best is not None:
                self.logger.debug(f"Auto extraction matched {label}")
                return best.decode_contents()

        best = self._longest_text(soup.find_all("div"))
        if best is not None:
            return best.decode_contents()
        return None

    @staticmethod
    def _longest_text(nodes: List[Tag]) -> Optional[Tag]:
        """Node with the longest stripped text; earliest wins ties; None if all empty."""
        best, best_len = None, 0
        for node in nodes:
            length = len(node.get_text().strip())
            if length > best_len:
                best, best_len = node, length
        return best
