import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

import psycopg2
import psycopg2.extras
from psycopg2.pool import ThreadedConnectionPool

from car_api.config import Settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def create_pool(settings: Settings) -> ThreadedConnectionPool:
    """Create the PostgreSQL connection pool described by the settings."""
    return ThreadedConnectionPool(
        minconn=settings.db_pool_min,
        maxconn=settings.db_pool_max,
        dsn=settings.database_url,
    )


class DBSession:
    """
    One pooled connection owned by a single in-flight request.

    Queries use named placeholders (``%(name)s``) bound from a mapping.
    Every write commits on its own; nothing spans statements.
    """

    def __init__(self, conn) -> None:
        self._conn = conn

    def _dict_cursor(self):
        return self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)

    # PUBLIC_INTERFACE
    def fetch_one(self, query: str, params: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Fetch a single row as a dict, or None."""
        with self._dict_cursor() as cur:
            cur.execute(query, params or {})
            row = cur.fetchone()
            return dict(row) if row else None

    # PUBLIC_INTERFACE
    def fetch_all(self, query: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        """Fetch all rows as dicts."""
        with self._dict_cursor() as cur:
            cur.execute(query, params or {})
            rows = cur.fetchall()
            return [dict(r) for r in rows]

    # PUBLIC_INTERFACE
    def execute(self, query: str, params: Optional[Mapping[str, Any]] = None) -> int:
        """Execute a statement (INSERT/UPDATE/DELETE). Returns affected rowcount."""
        with self._conn.cursor() as cur:
            cur.execute(query, params or {})
            affected = cur.rowcount
            self._conn.commit()
            return affected

    # PUBLIC_INTERFACE
    def execute_returning_one(self, query: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Execute a statement with RETURNING and return the first row as dict."""
        with self._dict_cursor() as cur:
            cur.execute(query, params or {})
            row = cur.fetchone()
            if not row:
                self._conn.rollback()
                raise RuntimeError("Expected one row returned, got none.")
            self._conn.commit()
            return dict(row)


class Database:
    """Connection pool plus the per-checkout session settings."""

    def __init__(self, pool, time_zone: str = "-08:00", statement_timeout_ms: int = 0, max_sessions: int = 10) -> None:
        self.pool = pool
        # getconn() raises once the pool is exhausted; callers wait here instead.
        self._slots = threading.BoundedSemaphore(max_sessions)
        self.time_zone = time_zone
        self.statement_timeout_ms = statement_timeout_ms

    # PUBLIC_INTERFACE
    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Create the pool and wrap it with the configured session settings."""
        return cls(
            create_pool(settings),
            time_zone=settings.db_time_zone,
            statement_timeout_ms=settings.db_statement_timeout_ms,
            max_sessions=settings.db_pool_max,
        )

    def _configure(self, conn) -> None:
        # PostgreSQL rejects invalid input without a strict-mode switch.
        with conn.cursor() as cur:
            cur.execute(
                "SET TIME ZONE INTERVAL %(offset)s HOUR TO MINUTE",
                {"offset": self.time_zone},
            )
            cur.execute(
                "SET statement_timeout = %(timeout)s",
                {"timeout": int(self.statement_timeout_ms)},
            )
        conn.commit()

    def _release(self, conn) -> None:
        try:
            try:
                conn.rollback()
            except psycopg2.Error:
                logger.warning("Rollback failed on release; discarding connection", exc_info=True)
                self.pool.putconn(conn, close=True)
                return
            self.pool.putconn(conn)
        finally:
            self._slots.release()

    # PUBLIC_INTERFACE
    @contextmanager
    def session(self) -> Iterator[DBSession]:
        """Check out one configured connection, waiting for a free one; always return it to the pool."""
        self._slots.acquire()
        try:
            conn = self.pool.getconn()
        except BaseException:
            self._slots.release()
            raise
        try:
            self._configure(conn)
            yield DBSession(conn)
        finally:
            self._release(conn)

    # PUBLIC_INTERFACE
    def close(self) -> None:
        """Close every pooled connection."""
        self.pool.closeall()
