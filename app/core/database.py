"""Database handle, connection acquisition, and lifecycle helpers.

A single ``Database`` is built at startup from ``Settings``, stored on
``app.state``, and handed to request handlers through ``get_database``.
Pooling is delegated to SQLAlchemy's async engine (aiomysql driver); the
handle adds a bounded wait queue in front of it so overload fails fast
instead of piling up waiters.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, create_async_engine

from app.config import Settings
from app.core.exceptions import (
    DatabaseNotInitializedError,
    DatabaseUnavailableError,
    PoolExhaustedError,
)

logger = logging.getLogger(__name__)

PROBE_QUERY = "SELECT 1"


class Database:
    """Pooled connection resource with an explicit lifecycle.

    ``pool_size`` caps physical connections.  At most ``queue_limit``
    callers may wait for one (``0`` disables the bound); a waiter that
    does not get a connection within ``pool_timeout`` seconds fails.
    """

    def __init__(
        self,
        url: str | URL,
        *,
        pool_size: int = 10,
        queue_limit: int = 50,
        pool_timeout: float = 10.0,
    ) -> None:
        self.url = url
        self.pool_size = pool_size
        self.queue_limit = queue_limit
        self.pool_timeout = pool_timeout

        self._engine: Any = None
        self._slots: asyncio.Semaphore | None = None
        self._waiting = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            queue_limit=settings.db_queue_limit,
            pool_timeout=settings.db_pool_timeout,
        )

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def waiting(self) -> int:
        """Number of callers currently queued for a connection."""
        return self._waiting

    # ------------------------------------------------------------------
    #  Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the async engine.  Called during FastAPI lifespan startup."""
        if self._engine is not None:
            return

        self._engine = create_async_engine(
            self.url,
            pool_size=self.pool_size,
            max_overflow=0,
            pool_timeout=self.pool_timeout,
            pool_pre_ping=True,
            echo=False,
        )
        self._slots = asyncio.Semaphore(self.pool_size)
        logger.info(
            "Database engine initialized",
            extra={"pool_size": self.pool_size, "queue_limit": self.queue_limit},
        )

    async def close(self) -> None:
        """Dispose the engine.  Called during FastAPI lifespan shutdown."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._slots = None
        logger.info("Database engine disposed")

    # ------------------------------------------------------------------
    #  Acquisition
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """Yield a pooled connection, honoring the wait-queue bound."""
        if self._engine is None or self._slots is None:
            raise DatabaseNotInitializedError("Database not initialized: call connect() first")

        engine, slots = self._engine, self._slots
        if slots.locked() and self.queue_limit and self._waiting >= self.queue_limit:
            logger.warning(
                "Connection wait queue full, rejecting caller",
                extra={"waiting": self._waiting, "queue_limit": self.queue_limit},
            )
            raise PoolExhaustedError(queue_limit=self.queue_limit)

        self._waiting += 1
        try:
            await asyncio.wait_for(slots.acquire(), timeout=self.pool_timeout)
        except TimeoutError as exc:
            raise DatabaseUnavailableError(
                f"No connection available within {self.pool_timeout}s"
            ) from exc
        finally:
            self._waiting -= 1

        try:
            # close() may have run while this caller was queued.
            if self._engine is not engine:
                raise DatabaseNotInitializedError("Database closed while waiting for a connection")
            async with engine.connect() as conn:
                yield conn
        finally:
            slots.release()

    async def verify(self) -> None:
        """Issue the liveness probe.

        Raises:
            DatabaseUnavailableError: driver, network or pool-timeout failure.
            PoolExhaustedError: the wait queue is full.
            DatabaseNotInitializedError: the handle is not connected.
        """
        try:
            async with self.connection() as conn:
                await conn.execute(text(PROBE_QUERY))
        except (SQLAlchemyError, OSError) as exc:
            raise DatabaseUnavailableError(str(exc)) from exc


def get_database(request: Request) -> Database | None:
    """FastAPI dependency returning the process-wide database handle.

    ``None`` when the lifespan has not created one.
    """
    return getattr(request.app.state, "database", None)
