"""
Dedup Tracker
=============

Decides which feed items are new for a campaign and records items once they
have been published. Keys are append-only: a committed key is never removed,
so an item is processed again only if it was never successfully published.
"""

import asyncio
import hashlib
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..database.models import FeedItem
from ..storage.campaign_store import CampaignStore
from ..utils.logging import get_logger_for_component


def derive_key(guid: Optional[str], link: str) -> str:
    """Dedup key for a feed entry.

    The feed's own identifier wins when it is non-empty after trimming;
    otherwise the md5 hex digest of the link (as published, not normalized).
    """
    if guid is not None:
        guid = str(guid).strip()
        if guid:
            return guid
    return hashlib.md5((link or "").encode("utf-8")).hexdigest()


class DedupTracker:
    """Filters already-imported items and commits newly published ones."""

    def __init__(self, store: CampaignStore):
        self.store = store
        self.logger = get_logger_for_component("dedup_tracker")
        self._locks: Dict[str, asyncio.Lock] = {}

    @staticmethod
    def filter(items: Iterable[FeedItem], imported_keys: Iterable[str]) -> List[FeedItem]:
        """Items whose key has not been imported, in feed order."""
        seen = set(imported_keys)
        return [item for item in items if item.key not in seen]

    @staticmethod
    def filter_since(items: Iterable[FeedItem], since: Optional[datetime]) -> List[FeedItem]:
        """Items published after ``since``. Undated items are kept."""
        if since is None:
            return list(items)
        return [
            item for item in items
            if item.published_at is None or item.published_at > since
        ]

    def _lock_for(self, campaign_id: str) -> asyncio.Lock:
        lock = self._locks.get(campaign_id)
        if lock is None:
            lock = self._locks[campaign_id] = asyncio.Lock()
        return lock

    def new_items(self, campaign_id: str, items: Iterable[FeedItem]) -> List[FeedItem]:
        """Load the campaign's committed keys and filter ``items`` against them."""
        keys = self.store.get_imported_keys(campaign_id)
        return self.filter(items, keys)

    async def commit(self, campaign_id: str, key: str) -> bool:
        """Record ``key`` as imported for the campaign.

        Commits for one campaign are serialized. Returns False when the key
        was already present.
        """
        async with self._lock_for(campaign_id):
            added = self.store.append_imported_key(campaign_id, key)

        if added:
            self.logger.debug(f"Committed key {key}", extra={"campaign_id": campaign_id})
        else:
            self.logger.debug(f"Key {key} already committed", extra={"campaign_id": campaign_id})
        return added
