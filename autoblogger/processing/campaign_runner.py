"""
Campaign Runner
===============

Orchestrates one tick of a campaign:

    Idle -> Fetching -> Deduping -> PerItem(Extracting -> Filtering ->
    [Rewriting] -> [ImageResolving] -> Publishing -> Committing) -> Idle

A fetch failure aborts the tick without touching campaign state. Any
failure inside PerItem ends only that item. A key is committed only after
its post was published, so a crash between publish and commit can cause a
duplicate publish on retry but never a lost item.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Set

from ..ai.rewriter import Rewriter
from ..config.settings import AutobloggerSettings, get_settings
from ..database.models import (
    Campaign,
    ExtractedDocument,
    FeedItem,
    ProcessingOutcome,
    PublishRequest,
    RejectionReason,
)
from ..ingestion.content_cleaner import ContentCleaner
from ..ingestion.content_extractor import ContentExtractor
from ..media.asset_store import LocalAssetStore
from ..media.image_resolver import ImageResolver
from ..publishing.target import JsonlPublishTarget, PublishTarget
from ..storage.campaign_store import CampaignStore
from ..utils.logging import get_logger_for_component, PerformanceLogger
from ..utils.exceptions import ArticleUnavailableError, FeedUnavailableError, PublishError
from .dedup_tracker import DedupTracker
from .feed_fetcher import FeedFetcher
from .filter_pipeline import FilterPipeline


class RunState(str, Enum):
    """Runner states, per campaign."""
    IDLE = "idle"
    THROTTLED = "throttled"
    FETCHING = "fetching"
    DEDUPING = "deduping"
    EXTRACTING = "extracting"
    FILTERING = "filtering"
    REWRITING = "rewriting"
    IMAGE_RESOLVING = "image_resolving"
    PUBLISHING = "publishing"
    COMMITTING = "committing"


class ItemStatus(str, Enum):
    """How processing of a single feed item ended."""
    PUBLISHED = "published"
    REJECTED = "rejected"
    UNAVAILABLE = "unavailable"
    PUBLISH_FAILED = "publish_failed"
    ERROR = "error"


@dataclass
class ItemResult:
    key: str
    link: str
    status: ItemStatus
    post_id: Optional[str] = None
    rejection: Optional[RejectionReason] = None
    featured_asset: Optional[str] = None
    error: Optional[str] = None


@dataclass
class CampaignRunResult:
    """Outcome of one campaign tick."""
    campaign_id: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    skipped: bool = False
    skip_reason: Optional[str] = None
    feed_error: Optional[str] = None
    items_fetched: int = 0
    items_new: int = 0
    item_results: List[ItemResult] = field(default_factory=list)
    cancelled: bool = False
    completed: bool = False

    def count(self, status: ItemStatus) -> int:
        return sum(1 for r in self.item_results if r.status == status)

    @property
    def published_count(self) -> int:
        return self.count(ItemStatus.PUBLISHED)

    @property
    def rejected_count(self) -> int:
        return self.count(ItemStatus.REJECTED)

    @property
    def failed_count(self) -> int:
        return len(self.item_results) - self.published_count - self.rejected_count

    @property
    def success(self) -> bool:
        return self.completed and self.feed_error is None


class CampaignRunner:
    """Runs campaign ticks with injected collaborators."""

    def __init__(
        self,
        store: CampaignStore,
        fetcher: Optional[FeedFetcher] = None,
        extractor: Optional[ContentExtractor] = None,
        filter_pipeline: Optional[FilterPipeline] = None,
        rewriter: Optional[Rewriter] = None,
        image_resolver: Optional[ImageResolver] = None,
        publish_target: Optional[PublishTarget] = None,
        dedup: Optional[DedupTracker] = None,
        settings: Optional[AutobloggerSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.fetcher = fetcher or FeedFetcher()
        self.extractor = extractor or ContentExtractor()
        self.filter_pipeline = filter_pipeline or FilterPipeline(self.settings.publishing.site_url)
        self.rewriter = rewriter or Rewriter(self.settings)
        self.image_resolver = image_resolver or ImageResolver(LocalAssetStore())
        self.publish_target = publish_target or JsonlPublishTarget()
        self.dedup = dedup or DedupTracker(store)
        self.cleaner = ContentCleaner()
        self.logger = get_logger_for_component("campaign_runner")

        self._states: Dict[str, RunState] = {}
        self._running: Set[str] = set()
        self._cancel_events: Dict[str, asyncio.Event] = {}

    def state_of(self, campaign_id: str) -> RunState:
        return self._states.get(campaign_id, RunState.IDLE)

    def is_running(self, campaign_id: str) -> bool:
        return campaign_id in self._running

    def cancel(self, campaign_id: str) -> bool:
        """Request cooperative cancellation; honoured before the next item."""
        event = self._cancel_events.get(campaign_id)
        if event is None:
            return False
        event.set()
        self.logger.info("Cancellation requested", extra={"campaign_id": campaign_id})
        return True

    def _transition(self, campaign_id: str, state: RunState) -> None:
        previous = self._states.get(campaign_id, RunState.IDLE)
        self._states[campaign_id] = state
        self.logger.debug(
            f"{previous.value} -> {state.value}",
            extra={"campaign_id": campaign_id, "state": state.value},
        )

    async def run(
        self, campaign_id: str, now: Optional[datetime] = None, force: bool = False
    ) -> CampaignRunResult:
        """Run one tick of a campaign.

        Args:
            campaign_id: Campaign to run
            now: Tick time (defaults to the current UTC time)
            force: On-demand run; bypasses the throttle and the active flag

        Raises:
            CampaignNotFoundError: If the campaign does not exist
        """
        now = now or datetime.now(timezone.utc)
        result = CampaignRunResult(campaign_id=campaign_id, started_at=now)

        if campaign_id in self._running:
            return self._skip(result, "already running")

        campaign = self.store.get_campaign(campaign_id)

        if not campaign.active and not force:
            return self._skip(result, "inactive")

        if not force and not campaign.is_due(now):
            self._transition(campaign_id, RunState.THROTTLED)
            self._transition(campaign_id, RunState.IDLE)
            return self._skip(result, "throttled")

        self._running.add(campaign_id)
        cancel_event = self._cancel_events[campaign_id] = asyncio.Event()
        try:
            with PerformanceLogger(self.logger, f"campaign run {campaign_id}", campaign_id=campaign_id):
                await self._run_tick(campaign, result, cancel_event, now)
        finally:
            self._running.discard(campaign_id)
            self._cancel_events.pop(campaign_id, None)
            self._transition(campaign_id, RunState.IDLE)

        self.logger.info(
            f"Run finished: {result.published_count} published, {result.rejected_count} rejected, "
            f"{result.failed_count} failed of {result.items_new} new items",
            extra={"campaign_id": campaign_id},
        )
        return result

    def _skip(self, result: CampaignRunResult, reason: str) -> CampaignRunResult:
        result.skipped = True
        result.skip_reason = reason
        self.logger.debug(f"Skipping run: {reason}", extra={"campaign_id": result.campaign_id})
        return result

    async def _run_tick(
        self,
        campaign: Campaign,
        result: CampaignRunResult,
        cancel_event: asyncio.Event,
        now: datetime,
    ) -> None:
        self._transition(campaign.id, RunState.FETCHING)
        try:
            items = await self.fetcher.fetch(campaign.feed_url, campaign.max_items)
        except FeedUnavailableError as e:
            result.feed_error = str(e)
            self.logger.warning(
                f"Feed unavailable, aborting run: {e}",
                extra={"campaign_id": campaign.id, **e.to_dict()},
            )
            return
        result.items_fetched = len(items)

        self._transition(campaign.id, RunState.DEDUPING)
        new_items = self.dedup.new_items(campaign.id, items)
        if campaign.check_latest_only:
            new_items = DedupTracker.filter_since(new_items, campaign.last_run_at)
        result.items_new = len(new_items)

        for item in new_items:
            if cancel_event.is_set():
                result.cancelled = True
                self.logger.info("Run cancelled", extra={"campaign_id": campaign.id})
                return
            result.item_results.append(await self._process_item_safely(campaign, item))

        self.store.update_last_run(campaign.id, now)
        result.completed = True

    async def _process_item_safely(self, campaign: Campaign, item: FeedItem) -> ItemResult:
        try:
            return await self.process_item(campaign, item)
        except Exception as e:
            self.logger.error(
                f"Item processing failed for {item.link}: {e}",
                extra={"campaign_id": campaign.id, "item_key": item.key},
                exc_info=True,
            )
            return ItemResult(key=item.key, link=item.link, status=ItemStatus.ERROR, error=str(e))

    async def process_item(self, campaign: Campaign, item: FeedItem) -> ItemResult:
        """Extract, transform, publish and commit a single new item."""
        log = get_logger_for_component("campaign_runner", campaign_id=campaign.id, item_key=item.key)

        self._transition(campaign.id, RunState.EXTRACTING)
        document = await self._extract(campaign, item, log)
        if document is None:
            log.info(f"No content for {item.link}")
            return ItemResult(key=item.key, link=item.link, status=ItemStatus.UNAVAILABLE)

        outcome = await self.process_content(campaign, item, document.markup)
        if not outcome.is_accepted:
            return ItemResult(
                key=item.key, link=item.link, status=ItemStatus.REJECTED, rejection=outcome.rejection
            )

        self._transition(campaign.id, RunState.PUBLISHING)
        request = self._build_request(campaign, item, outcome)
        try:
            post_id = await self.publish_target.publish(request)
        except PublishError as e:
            log.warning(f"Publish failed for {item.link}: {e}", extra=e.to_dict())
            return ItemResult(key=item.key, link=item.link, status=ItemStatus.PUBLISH_FAILED, error=str(e))

        try:
            await self.publish_target.attach_metadata(post_id, request.back_reference())
        except PublishError as e:
            log.warning(f"Metadata not attached to post {post_id}: {e}")

        self._transition(campaign.id, RunState.COMMITTING)
        await self.dedup.commit(campaign.id, item.key)

        log.info(f"Imported post {post_id} from {item.link}")
        return ItemResult(
            key=item.key,
            link=item.link,
            status=ItemStatus.PUBLISHED,
            post_id=post_id,
            featured_asset=outcome.featured_image_ref,
        )

    async def _extract(self, campaign: Campaign, item: FeedItem, log) -> Optional[ExtractedDocument]:
        """Page content, falling back to the feed's own description."""
        markup = None
        try:
            markup = await self.extractor.extract(
                item.link, campaign.extraction.method, campaign.extraction.selector
            )
        except ArticleUnavailableError as e:
            log.warning(f"Article unavailable: {e}")

        if markup:
            return ExtractedDocument(markup=markup, source_url=item.link)
        if item.description:
            log.debug("Using feed description as content")
            return ExtractedDocument(markup=item.description, source_url=item.link, from_description=True)
        return None

    async def process_content(self, campaign: Campaign, item: FeedItem, markup: str) -> ProcessingOutcome:
        """Filter, optionally rewrite and optionally resolve an image."""
        self._transition(campaign.id, RunState.FILTERING)
        filtered = self.filter_pipeline.process(markup, campaign.filters)
        if not filtered.passed:
            return ProcessingOutcome.reject(filtered.rejection)

        final_markup = filtered.markup
        if campaign.rewrite.enabled:
            self._transition(campaign.id, RunState.REWRITING)
            final_markup = await self.rewriter.rewrite(
                final_markup,
                campaign.rewrite.prompt_template,
                campaign.rewrite.provider,
                title=item.title,
                source_url=item.link,
            )

        featured = None
        if campaign.images.download:
            self._transition(campaign.id, RunState.IMAGE_RESOLVING)
            # fall back to the pre-rewrite markup
            candidate = (
                ImageResolver.find_candidate_image(final_markup, item.link)
                or ImageResolver.find_candidate_image(filtered.markup, item.link)
            )
            if candidate:
                asset = await self.image_resolver.resolve_asset(candidate)
                if campaign.images.set_featured:
                    featured = asset

        return ProcessingOutcome.accept(final_markup, featured)

    def _build_request(self, campaign: Campaign, item: FeedItem, outcome: ProcessingOutcome) -> PublishRequest:
        title = self.cleaner.extract_text_only(item.title) or item.link
        return PublishRequest(
            title=title,
            body=outcome.final_markup,
            status=campaign.publish.status,
            author_id=campaign.publish.author_id,
            category_id=campaign.publish.category_id,
            featured_asset_ref=outcome.featured_image_ref,
            source_url=item.link,
            source_key=item.key,
            campaign_id=campaign.id,
        )
