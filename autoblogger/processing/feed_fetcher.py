"""
RSS Feed Fetcher
================

Downloads an RSS/Atom feed and turns its entries into FeedItem models,
preserving feed order.
"""

import asyncio
import calendar
from datetime import datetime, timezone
from typing import Any, List, Optional

import aiohttp
import feedparser

from ..database.models import FeedItem
from ..config.settings import get_settings
from ..utils.http import http_session
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FeedUnavailableError, ErrorCode
from .dedup_tracker import derive_key

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml, */*"


class FeedFetcher:
    """Fetches and parses a single feed."""

    def __init__(self, timeout: Optional[int] = None, user_agent: Optional[str] = None):
        """Initialize feed fetcher.

        Args:
            timeout: Request timeout in seconds (default from config)
            user_agent: User-Agent header (default from config)
        """
        settings = get_settings()
        self.timeout = timeout or settings.limits.feed_timeout
        self.user_agent = user_agent or settings.limits.user_agent
        self.default_cap = settings.processing.default_max_items
        self.logger = get_logger_for_component("feed_fetcher")

    async def fetch(self, url: str, cap: Optional[int] = None) -> List[FeedItem]:
        """Fetch ``url`` and return at most ``cap`` items in feed order.

        Raises:
            FeedUnavailableError: On transport error, timeout, non-2xx status
                or a body that is not a parsable feed
        """
        body = await self._download(url)
        return self.parse(body, url, cap)

    async def _download(self, url: str) -> bytes:
        headers = {"User-Agent": self.user_agent, "Accept": FEED_ACCEPT}
        self.logger.debug(f"Fetching feed: {url}")

        try:
            async with http_session(self.timeout, headers=headers) as session:
                async with session.get(url, allow_redirects=True) as response:
                    if not 200 <= response.status < 300:
                        raise FeedUnavailableError(
                            f"HTTP {response.status} fetching feed",
                            feed_url=url,
                            error_code=ErrorCode.FEED_HTTP_STATUS,
                        )
                    return await response.read()

        except asyncio.TimeoutError as e:
            raise FeedUnavailableError(
                f"Request timeout after {self.timeout}s",
                feed_url=url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e
        except aiohttp.ClientError as e:
            raise FeedUnavailableError(
                f"Fetch error: {e}",
                feed_url=url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            ) from e

    def parse(self, body: bytes, feed_url: str, cap: Optional[int] = None) -> List[FeedItem]:
        """Parse a raw feed body.

        Raw bytes go to feedparser so that it can honour the declared encoding.
        A malformed feed is accepted as long as it still yields entries.
        """
        cap = cap or self.default_cap
        feed_data = feedparser.parse(body)

        if feed_data.get("bozo"):
            error = feed_data.get("bozo_exception", "invalid XML structure")
            if not feed_data.entries:
                raise FeedUnavailableError(
                    f"Feed parse error: {error}",
                    feed_url=feed_url,
                    error_code=ErrorCode.FEED_PARSE_ERROR,
                )
            self.logger.warning(f"Feed has parse warnings but contains entries: {feed_url} ({error})")

        items: List[FeedItem] = []
        for entry in feed_data.entries:
            if len(items) >= cap:
                break

            link = (entry.get("link") or "").strip()
            if not link:
                self.logger.warning(f"Entry missing link in feed {feed_url}, skipping")
                continue

            items.append(
                FeedItem(
                    key=derive_key(entry.get("id"), link),
                    link=link,
                    title=(entry.get("title") or "").strip(),
                    published_at=self._parse_date(entry),
                    description=self._extract_description(entry),
                )
            )

        self.logger.info(f"Fetched {len(items)} items from {feed_url}")
        return items

    def _extract_description(self, entry: Any) -> Optional[str]:
        """Full content when the feed carries it, else the summary/description."""
        content = entry.get("content")
        if isinstance(content, list):
            for part in content:
                value = part.get("value") if isinstance(part, dict) else None
                if value and value.strip():
                    return value

        for field in ("summary", "description"):
            value = entry.get(field)
            if isinstance(value, str) and value.strip():
                return value

        return None

    def _parse_date(self, entry: Any) -> Optional[datetime]:
        """Publication date in UTC; feedparser normalizes struct times to UTC."""
        for field in ("published_parsed", "updated_parsed", "created_parsed"):
            date_tuple = entry.get(field)
            if date_tuple:
                try:
                    return datetime.fromtimestamp(calendar.timegm(date_tuple), tz=timezone.utc)
                except (ValueError, OverflowError):
                    continue
        return None
