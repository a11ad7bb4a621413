"""
Campaign Store
==============

Persistence for campaign configuration and run state. The core pipeline
only ever mutates two things through this interface: the append-only
imported key set and ``last_run_at``.
"""

import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import Campaign
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import CampaignNotFoundError, DatabaseError, ErrorCode


class CampaignStore(ABC):
    """Abstract campaign store."""

    @abstractmethod
    def get_campaign(self, campaign_id: str) -> Campaign:
        """Load a campaign with its run state.

        Raises:
            CampaignNotFoundError: If the campaign does not exist
        """

    @abstractmethod
    def list_campaigns(self, active_only: bool = False) -> List[Campaign]:
        """All campaigns, ordered by id."""

    @abstractmethod
    def save_campaign(self, campaign: Campaign) -> None:
        """Create or replace a campaign's configuration. Run state is preserved."""

    @abstractmethod
    def get_imported_keys(self, campaign_id: str) -> List[str]:
        """Committed keys in commit order."""

    @abstractmethod
    def append_imported_key(self, campaign_id: str, key: str) -> bool:
        """Append a key if absent. Returns True when the key was added."""

    @abstractmethod
    def update_last_run(self, campaign_id: str, when: datetime) -> None:
        """Record the completion time of a run."""

    def list_active_campaigns(self) -> List[Campaign]:
        return self.list_campaigns(active_only=True)


class InMemoryCampaignStore(CampaignStore):
    """Process-local store, used for tests and one-off CLI runs."""

    def __init__(self, campaigns: Optional[List[Campaign]] = None):
        self._lock = threading.Lock()
        self._campaigns: Dict[str, Campaign] = {}
        for campaign in campaigns or []:
            self._campaigns[campaign.id] = campaign.model_copy(deep=True)

    def _require(self, campaign_id: str) -> Campaign:
        campaign = self._campaigns.get(campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(campaign_id)
        return campaign

    def get_campaign(self, campaign_id: str) -> Campaign:
        with self._lock:
            return self._require(campaign_id).model_copy(deep=True)

    def list_campaigns(self, active_only: bool = False) -> List[Campaign]:
        with self._lock:
            return [
                c.model_copy(deep=True)
                for _, c in sorted(self._campaigns.items())
                if c.active or not active_only
            ]

    def save_campaign(self, campaign: Campaign) -> None:
        with self._lock:
            existing = self._campaigns.get(campaign.id)
            stored = campaign.model_copy(deep=True)
            if existing is not None:
                stored.imported_keys = list(existing.imported_keys)
                stored.last_run_at = existing.last_run_at
            self._campaigns[campaign.id] = stored

    def get_imported_keys(self, campaign_id: str) -> List[str]:
        with self._lock:
            return list(self._require(campaign_id).imported_keys)

    def append_imported_key(self, campaign_id: str, key: str) -> bool:
        with self._lock:
            campaign = self._require(campaign_id)
            if key in campaign.imported_keys:
                return False
            campaign.imported_keys.append(key)
            return True

    def update_last_run(self, campaign_id: str, when: datetime) -> None:
        with self._lock:
            self._require(campaign_id).last_run_at = when


class SQLiteCampaignStore(CampaignStore):
    """Campaign store backed by the SQLite schema in ``database.schema``."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize store.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("campaign_store")

    def _row_to_campaign(self, row: sqlite3.Row, keys: List[str]) -> Campaign:
        data = json.loads(row["config_json"])
        data["id"] = row["id"]
        data["active"] = bool(row["active"])
        data["last_run_at"] = (
            datetime.fromisoformat(row["last_run_at"]) if row["last_run_at"] else None
        )
        data["imported_keys"] = keys
        return Campaign.model_validate(data)

    def get_campaign(self, campaign_id: str) -> Campaign:
        try:
            row = self.db.execute_one(
                "SELECT id, config_json, active, last_run_at FROM campaigns WHERE id = ?",
                (campaign_id,),
            )
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to load campaign {campaign_id}: {e}") from e

        if row is None:
            raise CampaignNotFoundError(campaign_id)
        return self._row_to_campaign(row, self.get_imported_keys(campaign_id))

    def list_campaigns(self, active_only: bool = False) -> List[Campaign]:
        query = "SELECT id, config_json, active, last_run_at FROM campaigns"
        if active_only:
            query += " WHERE active = 1"
        query += " ORDER BY id"

        try:
            rows = self.db.execute_query(query)
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to list campaigns: {e}", query=query) from e

        return [self._row_to_campaign(row, self.get_imported_keys(row["id"])) for row in rows]

    def save_campaign(self, campaign: Campaign) -> None:
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO campaigns (id, config_json, active)
                    VALUES (?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        config_json = excluded.config_json,
                        active = excluded.active
                """,
                    (campaign.id, campaign.config_json(), campaign.active),
                )
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to save campaign {campaign.id}: {e}") from e

        self.logger.info(f"Saved campaign {campaign.id}", extra={"campaign_id": campaign.id})

    def get_imported_keys(self, campaign_id: str) -> List[str]:
        try:
            rows = self.db.execute_query(
                "SELECT item_key FROM imported_keys WHERE campaign_id = ? ORDER BY seq",
                (campaign_id,),
            )
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to load imported keys: {e}") from e
        return [row["item_key"] for row in rows]

    def append_imported_key(self, campaign_id: str, key: str) -> bool:
        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    """
                    INSERT OR IGNORE INTO imported_keys (campaign_id, item_key, seq)
                    SELECT ?, ?, COALESCE(MAX(seq), 0) + 1
                    FROM imported_keys WHERE campaign_id = ?
                """,
                    (campaign_id, key, campaign_id),
                )
                return cursor.rowcount == 1
        except sqlite3.IntegrityError as e:
            raise CampaignNotFoundError(campaign_id) from e
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to commit key for {campaign_id}: {e}",
                error_code=ErrorCode.DATABASE_TRANSACTION,
            ) from e

    def update_last_run(self, campaign_id: str, when: datetime) -> None:
        try:
            updated = self.db.execute_update(
                "UPDATE campaigns SET last_run_at = ? WHERE id = ?",
                (when.isoformat(), campaign_id),
            )
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to update last run: {e}") from e

        if updated == 0:
            raise CampaignNotFoundError(campaign_id)
