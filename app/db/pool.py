# app/db/pool.py
"""
Async Postgres pool behind PostgresStore.

The in-memory store never touches this module; only processes that
configure DATABASE_URL open the pool.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CLOSE_TIMEOUT_SECONDS = 30.0
STATEMENT_TIMEOUT = "60s"


class DatabasePoolManager:
    """Owns one AsyncConnectionPool for the life of the process."""

    def __init__(self, conninfo: str | None = None):
        self.pool: AsyncConnectionPool | None = None
        self._conninfo = conninfo
        self._initialized = False
        self._closed = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized and not self._closed

    async def initialize(self) -> None:
        if self._initialized:
            logger.warning("Store pool already open")
            return
        if self._closed:
            raise RuntimeError("Cannot reopen a closed store pool")

        conninfo = self._conninfo or settings.DATABASE_URL
        if not conninfo:
            raise RuntimeError("DATABASE_URL is not configured")

        options = self._pool_options()
        pool = AsyncConnectionPool(conninfo=conninfo, open=False, **options)
        try:
            await pool.open()
            await pool.wait()
            await self._ping(pool)
        except Exception as e:
            logger.error("Store pool failed to open", error=str(e))
            await pool.close()
            raise RuntimeError(f"Store pool initialization failed: {e}") from e

        self.pool = pool
        self._initialized = True
        logger.info(
            "Store pool open",
            min_size=options["min_size"],
            max_size=options["max_size"],
            environment=settings.environment,
        )

    def _pool_options(self) -> dict[str, Any]:
        options = settings.get_db_pool_config()
        options["check"] = AsyncConnectionPool.check_connection
        options["configure"] = self._configure_connection
        return options

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        # Rows as dicts; each statement commits on its own
        conn.row_factory = dict_row
        await conn.set_autocommit(True)

        app_name = f"creator-match-{settings.environment}"
        await conn.execute(sql.SQL("SET application_name = {}").format(sql.Literal(app_name)))
        await conn.execute("SET timezone = 'UTC'")
        await conn.execute(
            sql.SQL("SET statement_timeout = {}").format(sql.Literal(STATEMENT_TIMEOUT))
        )

    @staticmethod
    async def _ping(pool: AsyncConnectionPool) -> None:
        async with pool.connection() as conn:
            cursor = await conn.execute("SELECT 1 AS ok")
            row = await cursor.fetchone()
        if not row or row["ok"] != 1:
            raise RuntimeError("Store pool health check returned an unexpected row")

    async def close(self) -> None:
        if not self.is_initialized:
            return

        logger.info("Closing store pool")
        try:
            await asyncio.wait_for(self.pool.close(), timeout=CLOSE_TIMEOUT_SECONDS)
        except TimeoutError:
            logger.warning("Store pool close timed out")
        finally:
            self._initialized = False
            self._closed = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[psycopg.AsyncConnection]:
        """
        Borrow a connection.

        Usage:
            async with db_pool.connection() as conn:
                await conn.execute("SELECT 1")
        """
        if self._closed:
            raise RuntimeError("Store pool is closed")
        if not self._initialized:
            raise RuntimeError("Store pool not initialized. Call initialize() first.")

        async with self.pool.connection() as conn:
            yield conn


db_pool = DatabasePoolManager()
