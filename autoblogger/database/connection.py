"""
Autoblogger Database Connection Management
==========================================

Small SQLite connection pool with transaction helpers.
"""

import sqlite3
import threading
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Generator, List
from queue import Queue, Empty, Full

from ..utils.exceptions import DatabaseError, ErrorCode

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Thread-safe SQLite database connection manager with pooling."""

    def __init__(self, db_path: str = "data/autoblogger.db", pool_size: int = 5):
        """Initialize database connection manager.

        Args:
            db_path: Path to SQLite database file
            pool_size: Maximum number of connections in pool
        """
        self.db_path = Path(db_path)
        self.pool_size = pool_size
        self.pool: Queue = Queue(maxsize=pool_size)
        self.lock = threading.Lock()
        self._total_connections = 0

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        for _ in range(self.pool_size):
            self.pool.put(self._create_connection())

    def _create_connection(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=30.0)
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Cannot open database {self.db_path}: {e}",
                error_code=ErrorCode.DATABASE_CONNECTION,
            ) from e
        conn.row_factory = sqlite3.Row

        with self.lock:
            self._total_connections += 1

        logger.debug(f"Created database connection #{self._total_connections}")
        return conn

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a connection from the pool with automatic return.

        Usage:
            with db.get_connection() as conn:
                rows = conn.execute("SELECT * FROM campaigns").fetchall()
        """
        start_time = time.time()
        try:
            conn = self.pool.get(timeout=10.0)
        except Empty:
            logger.warning("Connection pool exhausted, creating new connection")
            conn = self._create_connection()

        acquisition_time = time.time() - start_time
        if acquisition_time > 1.0:
            logger.warning(f"Database connection acquisition took {acquisition_time:.2f}s")

        try:
            yield conn
        except sqlite3.Error as e:
            logger.error(f"Database connection error: {e}")
            conn.rollback()
            raise
        finally:
            try:
                self.pool.put_nowait(conn)
            except Full:
                conn.close()
                with self.lock:
                    self._total_connections -= 1

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Execute operations within a database transaction.

        Commits on success, rolls back on any exception.
        """
        with self.get_connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(f"Transaction rolled back due to error: {e}")
                raise

    def execute_query(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        """Execute a SELECT query and return all rows."""
        with self.get_connection() as conn:
            return conn.execute(query, params).fetchall()

    def execute_one(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        """Execute a query and return a single row or None."""
        with self.get_connection() as conn:
            return conn.execute(query, params).fetchone()

    def execute_update(self, query: str, params: tuple = ()) -> int:
        """Execute an INSERT/UPDATE/DELETE query and return affected rows."""
        with self.get_connection() as conn:
            cursor = conn.execute(query, params)
            conn.commit()
            return cursor.rowcount

    def close_all_connections(self) -> None:
        """Close all connections in the pool."""
        logger.info("Closing all database connections")
        while True:
            try:
                conn = self.pool.get_nowait()
            except Empty:
                break
            conn.close()

        with self.lock:
            self._total_connections = 0


_db_manager: Optional[DatabaseConnection] = None


def get_db_manager(db_path: Optional[str] = None, pool_size: Optional[int] = None) -> DatabaseConnection:
    """Get global database manager instance (singleton pattern).

    Args:
        db_path: Path to database file (default from settings)
        pool_size: Pool size (default from settings)
    """
    global _db_manager

    if db_path is None or pool_size is None:
        from ..config.settings import get_settings
        settings = get_settings()
        db_path = db_path or settings.database.path
        pool_size = pool_size or settings.database.pool_size

    if _db_manager is None or _db_manager.db_path != Path(db_path):
        if _db_manager is not None:
            _db_manager.close_all_connections()
        _db_manager = DatabaseConnection(db_path, pool_size)

    return _db_manager
