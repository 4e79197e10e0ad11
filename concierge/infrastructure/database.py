"""Pooled SQLite access for the concierge collections

One SQLite file holds every persisted collection (products, orders, widget
records, analytics events). The path comes from ConciergeSettings; a
Database instance is created once at startup and injected into each
repository, so nothing here reads the environment at call time.

Provides:
- Connection pooling (reuses connections, WAL mode)
- db.connection() / db.transaction() context managers
- retry_on_db_lock() for transient SQLITE_BUSY contention
- Pool health stats for /health
"""

from __future__ import annotations

import atexit
import random
import sqlite3
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from functools import wraps
from pathlib import Path
from queue import Empty, Full, Queue
from threading import Lock
from typing import Any, TypeVar

from concierge.config import (
    DB_CONNECT_TIMEOUT,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_RETRY_BASE_DELAY,
    DB_RETRY_JITTER,
    DB_RETRY_MAX,
    DB_RETRY_MAX_DELAY,
    DB_TEMP_CONN_MAX,
)
from concierge.observability.logging import get_logger
from concierge.observability.telemetry import counter

F = TypeVar("F", bound=Callable[..., Any])

logger = get_logger(__name__)


def retry_on_db_lock(
    max_retries: int = DB_RETRY_MAX,
    base_delay: float = DB_RETRY_BASE_DELAY,
    max_delay: float = DB_RETRY_MAX_DELAY,
) -> Callable[[F], F]:
    """
    Retry a database operation on "database is locked" errors.

    Uses exponential backoff with jitter. Any other OperationalError is
    re-raised immediately.

    Usage:
        @retry_on_db_lock()
        def create(self, ...):
            with self.db.transaction() as conn:
                conn.execute("INSERT INTO ...")
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except sqlite3.OperationalError as e:
                    message = str(e).lower()
                    if "locked" not in message and "busy" not in message:
                        raise

                    if attempt >= max_retries:
                        logger.error(
                            "Database lock retry exhausted after %d attempts: %s",
                            max_retries,
                            e,
                        )
                        raise

                    delay = min(base_delay * (2**attempt), max_delay)
                    sleep_time = delay + random.uniform(0, delay * DB_RETRY_JITTER)
                    logger.warning(
                        "Database locked (attempt %d/%d), retrying in %.2fs: %s",
                        attempt + 1,
                        max_retries,
                        sleep_time,
                        e,
                    )
                    time.sleep(sleep_time)
            return None  # unreachable; the loop either returns or raises

        return wrapper  # type: ignore[return-value]

    return decorator


class DatabaseConnectionPool:
    """
    Thread-safe connection pool for SQLite

    Pre-creates pool_size connections. When the pool is exhausted a bounded
    number of temporary connections may be opened; they are closed on return.
    """

    def __init__(self, db_path: Path, pool_size: int = DB_POOL_SIZE):
        self.db_path = db_path
        self.pool_size = pool_size
        self.pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self.lock = Lock()
        self.closed = False
        self.temp_conn_count = 0
        self.temp_conn_max = DB_TEMP_CONN_MAX
        self._initialize_pool()

        atexit.register(self.close_all)

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=DB_CONNECT_TIMEOUT,
            check_same_thread=False,
        )
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.row_factory = sqlite3.Row
        return conn

    def _initialize_pool(self) -> None:
        for _ in range(self.pool_size):
            try:
                self.pool.put(self._create_connection())
            except sqlite3.Error as e:
                logger.warning("Failed to create pooled connection: %s", e)

    def get_connection(self) -> sqlite3.Connection:
        """
        Get connection from pool (or a temporary one if the pool is exhausted)

        Raises:
            RuntimeError: If pool closed or temporary connection limit exceeded
        """
        if self.closed:
            raise RuntimeError("Connection pool has been closed")

        try:
            return self.pool.get(block=True, timeout=DB_POOL_TIMEOUT)
        except Empty:
            with self.lock:
                if self.temp_conn_count >= self.temp_conn_max:
                    logger.critical(
                        "Temporary connection limit reached: %d/%d (pool_size=%d)",
                        self.temp_conn_count,
                        self.temp_conn_max,
                        self.pool_size,
                    )
                    raise RuntimeError(
                        "Database connection pool exhausted and temporary "
                        f"connection limit reached (pool_size={self.pool_size})"
                    ) from None
                self.temp_conn_count += 1
                temp_count = self.temp_conn_count

            logger.error(
                "Connection pool exhausted (pool_size=%d). Creating temporary connection %d/%d.",
                self.pool_size,
                temp_count,
                self.temp_conn_max,
            )
            counter("database.pool_exhausted")

            conn = self._create_connection()
            conn._is_temporary = True  # type: ignore[attr-defined]
            return conn

    def return_connection(self, conn: sqlite3.Connection) -> None:
        is_temp = getattr(conn, "_is_temporary", False)

        if self.closed or is_temp:
            conn.close()
            if is_temp:
                with self.lock:
                    self.temp_conn_count -= 1
            return

        try:
            self.pool.put_nowait(conn)
        except Full:
            logger.warning("Failed to return connection to pool (pool full), closing")
            conn.close()

    def close_all(self) -> None:
        self.closed = True
        while not self.pool.empty():
            try:
                self.pool.get_nowait().close()
            except Empty:
                break


class Database:
    """
    Handle on the concierge SQLite database.

    Lazily opens its connection pool on first use so constructing a
    Database (e.g. in create_app) has no side effects until init() or the
    first query.
    """

    def __init__(self, db_path: Path, pool_size: int = DB_POOL_SIZE) -> None:
        self.db_path = Path(db_path)
        self.pool_size = pool_size
        self._pool: DatabaseConnectionPool | None = None
        self._pool_lock = Lock()

    def init(self) -> None:
        """
        Create schema (idempotent).

        Side Effects:
            - Creates the parent directory and the database file if needed
            - Creates tables and indexes
        """
        from concierge.infrastructure.database_schema import init_schema

        init_schema(self.db_path)

    def _get_pool(self) -> DatabaseConnectionPool:
        with self._pool_lock:
            if self._pool is None:
                self._pool = DatabaseConnectionPool(self.db_path, pool_size=self.pool_size)
            return self._pool

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Pooled connection (context manager)

        Usage:
            with db.connection() as conn:
                rows = conn.execute("SELECT * FROM products").fetchall()

        Raises:
            FileNotFoundError: If the database has not been initialized
        """
        if not self.db_path.exists():
            raise FileNotFoundError(f"Database not found: {self.db_path} (call Database.init())")

        pool = self._get_pool()
        conn = pool.get_connection()
        try:
            yield conn
        finally:
            pool.return_connection(conn)

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Transaction context manager: commits on success, rolls back on error.

        Usage:
            with db.transaction() as conn:
                conn.execute("INSERT INTO return_requests ...")
                conn.execute("UPDATE orders ...")
        """
        with self.connection() as conn:
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def pool_stats(self) -> dict[str, Any]:
        """Connection pool health metrics."""
        if self._pool is None:
            return {"pool_size": self.pool_size, "available": 0, "in_use": 0, "usage_percent": 0.0, "closed": False}

        pool = self._pool
        available = pool.pool.qsize()
        in_use = pool.pool_size - available
        usage_percent = (in_use / pool.pool_size) * 100 if pool.pool_size > 0 else 0
        return {
            "pool_size": pool.pool_size,
            "available": available,
            "in_use": in_use,
            "usage_percent": round(usage_percent, 1),
            "closed": pool.closed,
        }

    def close(self) -> None:
        with self._pool_lock:
            if self._pool is not None:
                self._pool.close_all()
                self._pool = None
