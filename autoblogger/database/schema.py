"""
Autoblogger Database Schema
===========================

SQLite schema for the campaign store:
- campaigns: campaign configuration (JSON) plus run state
- imported_keys: append-only dedup keys per campaign
"""

import sqlite3
import logging
from contextlib import closing
from pathlib import Path

from ..utils.exceptions import DatabaseError, ErrorCode

logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"campaigns", "imported_keys"}


class DatabaseSchema:
    """Database schema manager for the Autoblogger SQLite database."""

    def __init__(self, db_path: str = "data/autoblogger.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables and indexes.

        Raises:
            DatabaseError: If the schema cannot be created
        """
        try:
            with closing(sqlite3.connect(self.db_path)) as conn:
                conn.execute("PRAGMA foreign_keys = ON")
                self._create_campaigns_table(conn)
                self._create_imported_keys_table(conn)
                self._create_indexes(conn)
                conn.commit()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create schema in {self.db_path}: {e}",
                error_code=ErrorCode.DATABASE_SCHEMA,
            ) from e
        logger.info("Database schema created successfully")

    def _create_campaigns_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS campaigns (
                id TEXT PRIMARY KEY,
                config_json TEXT NOT NULL,
                active BOOLEAN DEFAULT TRUE,
                last_run_at TIMESTAMP,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_imported_keys_table(self, conn: sqlite3.Connection) -> None:
        """Keys are never deleted; the primary key makes appends idempotent."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS imported_keys (
                campaign_id TEXT NOT NULL,
                item_key TEXT NOT NULL,
                imported_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                seq INTEGER NOT NULL,
                PRIMARY KEY (campaign_id, item_key),
                FOREIGN KEY (campaign_id) REFERENCES campaigns(id) ON DELETE CASCADE
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_campaigns_active ON campaigns(active)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_imported_keys_seq ON imported_keys(campaign_id, seq)"
        )

    def drop_tables(self) -> None:
        """Drop all tables (for testing/reset purposes)."""
        with closing(sqlite3.connect(self.db_path)) as conn:
            for table in ("imported_keys", "campaigns"):
                conn.execute(f"DROP TABLE IF EXISTS {table}")
            conn.commit()
            logger.info("All database tables dropped")

    def verify_schema(self) -> bool:
        """Verify all expected tables exist."""
        with closing(sqlite3.connect(self.db_path)) as conn:
            cursor = conn.execute(
                """
                SELECT name FROM sqlite_master
                WHERE type='table' AND name NOT LIKE 'sqlite_%'
            """
            )
            tables = {row[0] for row in cursor.fetchall()}

        missing = EXPECTED_TABLES - tables
        if missing:
            logger.error(f"Missing tables: {sorted(missing)}")
            return False

        logger.info("Database schema verification passed")
        return True


def create_tables(db_path: str = "data/autoblogger.db") -> None:
    """Convenience function to create database tables."""
    DatabaseSchema(db_path).create_tables()
