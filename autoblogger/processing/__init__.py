"""
Processing package: feed fetching, deduplication, filtering and campaign orchestration.
"""

from .feed_fetcher import FeedFetcher
from .dedup_tracker import DedupTracker, derive_key
from .filter_pipeline import FilterPipeline, FilterResult
from .campaign_runner import CampaignRunner, CampaignRunResult, ItemResult, ItemStatus, RunState

__all__ = [
    "FeedFetcher",
    "DedupTracker",
    "derive_key",
    "FilterPipeline",
    "FilterResult",
    "CampaignRunner",
    "CampaignRunResult",
    "ItemResult",
    "ItemStatus",
    "RunState",
]
