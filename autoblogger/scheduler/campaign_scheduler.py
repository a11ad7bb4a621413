"""
Campaign Scheduler
==================

Periodic trigger: on every poll, run each active campaign through the
CampaignRunner. Throttling per campaign is the runner's job, so polling
more often than the shortest schedule interval is harmless.
"""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional

from ..config.settings import AutobloggerSettings, get_settings
from ..processing.campaign_runner import CampaignRunner, CampaignRunResult
from ..storage.campaign_store import CampaignStore
from ..utils.logging import get_logger_for_component


class CampaignScheduler:
    """Runs due campaigns with bounded concurrency."""

    def __init__(
        self,
        store: CampaignStore,
        runner: CampaignRunner,
        settings: Optional[AutobloggerSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.runner = runner
        self.max_concurrent = self.settings.processing.max_concurrent_campaigns
        self.logger = get_logger_for_component("scheduler")

    async def run_due_campaigns(self, now: Optional[datetime] = None) -> List[CampaignRunResult]:
        """Invoke ``runner.run`` for every active campaign.

        Campaign failures are isolated: an exception from one campaign is
        logged and turned into a result with ``feed_error`` set.
        """
        now = now or datetime.now(timezone.utc)
        campaigns = self.store.list_active_campaigns()
        if not campaigns:
            self.logger.debug("No active campaigns")
            return []

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def run_with_semaphore(campaign_id: str) -> CampaignRunResult:
            async with semaphore:
                return await self.runner.run(campaign_id, now=now)

        ids = [c.id for c in campaigns]
        results = await asyncio.gather(*(run_with_semaphore(cid) for cid in ids), return_exceptions=True)

        final_results: List[CampaignRunResult] = []
        for campaign_id, result in zip(ids, results):
            if isinstance(result, Exception):
                self.logger.error(
                    f"Campaign run failed: {result}",
                    extra={"campaign_id": campaign_id},
                    exc_info=result,
                )
                final_results.append(CampaignRunResult(campaign_id=campaign_id, feed_error=str(result)))
            else:
                final_results.append(result)

        ran = [r for r in final_results if not r.skipped]
        if ran:
            self.logger.info(
                f"Scheduler pass: {len(ran)}/{len(final_results)} campaigns ran, "
                f"{sum(r.published_count for r in ran)} posts published"
            )
        return final_results

    async def run_forever(
        self, poll_seconds: Optional[int] = None, stop_event: Optional[asyncio.Event] = None
    ) -> None:
        """Poll until ``stop_event`` is set."""
        poll_seconds = poll_seconds or self.settings.processing.poll_seconds
        stop_event = stop_event or asyncio.Event()
        self.logger.info(f"Scheduler started, polling every {poll_seconds}s")

        while not stop_event.is_set():
            await self.run_due_campaigns()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=poll_seconds)
            except asyncio.TimeoutError:
                continue

        self.logger.info("Scheduler stopped")
