"""
Connection pool abstraction for the SQL backend.

Handlers and repositories only see the ``ConnectionPool`` protocol, so the
PostgreSQL pool can be swapped for an in-memory double in tests.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

import anyio
import anyio.to_thread
import psycopg2
import structlog
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool
from starlette.concurrency import run_in_threadpool

logger = structlog.get_logger(__name__)


@dataclass
class QueryResult:
    """Rows and affected row count of a single statement."""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0


class ConnectionPool(Protocol):
    """Anything that can run a parameterized statement."""

    async def query(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        ...

    async def close(self) -> None:
        ...


class PostgresPool:
    """
    PostgreSQL pool backed by psycopg2's thread-safe pool.

    psycopg2 is blocking, so every checkout and statement runs in
    Starlette's threadpool to keep the event loop free.
    """

    def __init__(self, dsn: str, min_size: int = 1, max_size: int = 10):
        """
        Initialize the pool settings. Connections open in ``open()``.

        Args:
            dsn: PostgreSQL connection string
            min_size: Connections kept open
            max_size: Cap on concurrent database sessions
        """
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[ThreadedConnectionPool] = None
        # Caps threads holding a connection; getconn() raises rather than waits
        self._limiter: Optional[anyio.CapacityLimiter] = None

    async def open(self) -> None:
        """Create the underlying pool."""
        try:
            self._pool = await run_in_threadpool(
                ThreadedConnectionPool, self.min_size, self.max_size, self.dsn
            )
            logger.info("Database connection pool created",
                        min_size=self.min_size, max_size=self.max_size)
        except psycopg2.Error as e:
            logger.error("Failed to create connection pool", error=str(e))
            raise

    async def close(self) -> None:
        """Close every pooled connection."""
        if self._pool is not None:
            await run_in_threadpool(self._pool.closeall)
            self._pool = None
            self._limiter = None
            logger.info("Database connection pool closed")

    async def query(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        """
        Execute one statement on a pooled connection.

        Args:
            sql: Statement with ``%s`` placeholders
            params: Values bound by the driver

        Returns:
            QueryResult with fetched rows (if any) and the affected row count
        """
        if self._pool is None:
            raise RuntimeError("Connection pool is not open")
        if self._limiter is None:
            self._limiter = anyio.CapacityLimiter(self.max_size)
        return await anyio.to_thread.run_sync(
            self._execute, sql, tuple(params), limiter=self._limiter
        )

    def _execute(self, sql: str, params: tuple) -> QueryResult:
        conn = self._pool.getconn()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                rows = [dict(row) for row in cur.fetchall()] if cur.description else []
                row_count = cur.rowcount
            conn.commit()
            return QueryResult(rows=rows, row_count=row_count)
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)
