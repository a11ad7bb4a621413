"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and in-process fakes for Autoblogger tests. Every test runs
against settings pointing into its own temporary directory.
"""

import hashlib
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from autoblogger.config.settings import (
    AutobloggerSettings,
    DatabaseSettings,
    LoggingSettings,
    MediaSettings,
    PublishingSettings,
    set_settings,
)
from autoblogger.database.models import Campaign, FeedItem, PublishRequest
from autoblogger.media.asset_store import AssetStore, StoredAsset, url_basename
from autoblogger.publishing.target import PublishTarget
from autoblogger.storage.campaign_store import InMemoryCampaignStore
from autoblogger.utils.exceptions import AssetError, FeedUnavailableError, PublishError

SITE_URL = "https://myblog.example"
FEED_URL = "https://source.example/feed.xml"


# ============================================================================
# Settings
# ============================================================================


@pytest.fixture(autouse=True)
def test_settings(tmp_path):
    """Isolated settings with every path under ``tmp_path``."""
    settings = AutobloggerSettings(
        database=DatabaseSettings(path=str(tmp_path / "autoblogger.db"), pool_size=2),
        logging=LoggingSettings(file_path=None, console_logging=False),
        publishing=PublishingSettings(site_url=SITE_URL, output_path=str(tmp_path / "posts.jsonl")),
        media=MediaSettings(asset_dir=str(tmp_path / "media")),
    )
    set_settings(settings)
    yield settings
    set_settings(None)


# ============================================================================
# Fakes
# ============================================================================


class FakeFeedFetcher:
    """Returns a fixed item list, or raises a configured feed error."""

    def __init__(self, items: Optional[List[FeedItem]] = None, error: Optional[Exception] = None):
        self.items = list(items or [])
        self.error = error
        self.calls: List[str] = []

    async def fetch(self, url: str, cap: Optional[int] = None) -> List[FeedItem]:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.items[:cap] if cap else list(self.items)


class FakeExtractor:
    """Serves page markup from a dict keyed by URL."""

    def __init__(self, pages: Optional[Dict[str, str]] = None, errors: Optional[Dict[str, Exception]] = None):
        self.pages = dict(pages or {})
        self.errors = dict(errors or {})
        self.calls: List[str] = []

    async def extract(self, url, method="auto", selector=""):
        self.calls.append(url)
        if url in self.errors:
            raise self.errors[url]
        return self.pages.get(url)


class RecordingPublishTarget(PublishTarget):
    """Keeps published requests in memory."""

    def __init__(self, fail_urls=(), fail_metadata: bool = False):
        self.fail_urls = set(fail_urls)
        self.fail_metadata = fail_metadata
        self.published: List[PublishRequest] = []
        self.metadata: Dict[str, Dict[str, str]] = {}

    async def publish(self, request: PublishRequest) -> str:
        if request.source_url in self.fail_urls:
            raise PublishError("content store rejected the post", source_url=request.source_url)
        self.published.append(request)
        return f"post-{len(self.published)}"

    async def attach_metadata(self, post_id: str, metadata: Dict[str, str]) -> None:
        if self.fail_metadata:
            raise PublishError(f"cannot update {post_id}")
        self.metadata[post_id] = dict(metadata)


class FakeAssetStore(AssetStore):
    """Registers every stored URL as an asset named after its basename."""

    def __init__(self, fail: bool = False, preexisting: Optional[List[str]] = None,
                 error: Optional[Exception] = None):
        self.fail = fail
        self.error = error
        self.stored: List[str] = []
        self._assets: List[StoredAsset] = []
        for name in preexisting or []:
            self._register(f"https://media.myblog.example/{name}")

    def _register(self, url: str) -> None:
        name = url_basename(url)
        self._assets.append(
            StoredAsset(
                asset_id=f"asset-{len(self._assets) + 1}",
                url=f"https://media.myblog.example/uploads/{name}",
                created_at=datetime.now(timezone.utc),
            )
        )

    async def store_image(self, url: str) -> None:
        if self.error is not None:
            raise self.error
        if self.fail:
            raise AssetError("download failed", url=url)
        self.stored.append(url)
        self._register(url)

    def recent_assets(self, limit: int = 5) -> List[StoredAsset]:
        return list(reversed(self._assets))[:limit]


# ============================================================================
# Domain fixtures
# ============================================================================


@pytest.fixture
def make_item():
    """Factory for feed items with deterministic links and keys."""

    def _make(n: int, guid: Optional[str] = None, published_at: Optional[datetime] = None,
              description: Optional[str] = None, title: Optional[str] = None) -> FeedItem:
        link = f"https://source.example/posts/{n}"
        return FeedItem(
            key=guid or hashlib.md5(link.encode("utf-8")).hexdigest(),
            link=link,
            title=title if title is not None else f"Post number {n}",
            published_at=published_at,
            description=description,
        )

    return _make


@pytest.fixture
def article_markup():
    """Factory for article markup with a given number of words."""

    def _markup(words: int = 120, extra: str = "") -> str:
        body = " ".join(f"word{i}" for i in range(words))
        return f"<p>{body}</p>{extra}"

    return _markup


@pytest.fixture
def campaign():
    return Campaign(id="news", name="News", feed_url=FEED_URL)


@pytest.fixture
def store(campaign):
    return InMemoryCampaignStore([campaign])


@pytest.fixture
def publish_target():
    return RecordingPublishTarget()


@pytest.fixture
def asset_store():
    return FakeAssetStore()


@pytest.fixture
def feed_error():
    return FeedUnavailableError("HTTP 503 fetching feed", feed_url=FEED_URL)


@pytest.fixture
def failing_asset_store():
    return FakeAssetStore(fail=True)


@pytest.fixture
def full_disk_asset_store():
    return FakeAssetStore(error=OSError("disk full"))


@pytest.fixture
def build_runner(store, publish_target, asset_store, test_settings):
    """Factory for a CampaignRunner wired to in-process fakes.

    The fakes are reachable as attributes of the returned runner
    (``runner.fetcher``, ``runner.extractor``, ``runner.publish_target``).
    """
    from autoblogger.media.image_resolver import ImageResolver
    from autoblogger.processing.campaign_runner import CampaignRunner

    def _build(items=(), pages=None, fetch_error=None, extract_errors=None, rewriter=None,
               target=None, assets=None):
        return CampaignRunner(
            store,
            fetcher=FakeFeedFetcher(list(items), error=fetch_error),
            extractor=FakeExtractor(pages, extract_errors),
            rewriter=rewriter,
            image_resolver=ImageResolver(assets or asset_store, recent_window=5),
            publish_target=target or publish_target,
            settings=test_settings,
        )

    return _build


@pytest.fixture
def busy_asset_store():
    """Asset store that already holds five unrelated images."""
    return FakeAssetStore(preexisting=[f"other-{i}.png" for i in range(5)])
