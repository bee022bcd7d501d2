# app/db/helpers.py
"""
Query helpers used by PostgresStore.

Every helper accepts an optional open connection so callers can group
statements in one transaction; otherwise a pooled connection is borrowed
for the single statement.
"""

import asyncio
import functools
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import psycopg

from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger
from app.services.store import StoreError

logger = get_logger(__name__)


class DatabaseError(StoreError):
    """A Postgres statement failed. `recoverable` is False once retries are spent."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message, operation=operation)
        self.recoverable = recoverable


@asynccontextmanager
async def _cursor(
    connection: psycopg.AsyncConnection | None, operation: str, query: str
) -> AsyncIterator[psycopg.AsyncCursor]:
    try:
        if connection is not None:
            async with connection.cursor() as cur:
                yield cur
        else:
            async with db_pool.connection() as conn:
                async with conn.cursor() as cur:
                    yield cur
    except psycopg.Error as e:
        logger.error("Store query failed", operation=operation, query=query[:100], error=str(e))
        raise DatabaseError(f"{operation} failed: {e}", operation=operation) from e


async def fetch_one(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> dict[str, Any] | None:
    """First row of the result as a dict, or None."""
    async with _cursor(connection, "fetch_one", query) as cur:
        await cur.execute(query, params)
        return await cur.fetchone()


async def fetch_all(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    async with _cursor(connection, "fetch_all", query) as cur:
        await cur.execute(query, params)
        return await cur.fetchall()


async def execute_query(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """Run a write and return the affected row count."""
    async with _cursor(connection, "execute", query) as cur:
        await cur.execute(query, params)
        return cur.rowcount


def _is_transient(error: Exception) -> bool:
    if isinstance(error, psycopg.OperationalError):
        return True
    return isinstance(error, DatabaseError) and isinstance(
        error.__cause__, psycopg.OperationalError
    )


def with_db_retry(max_retries: int = 3, base_delay: float = 0.1):
    """
    Retry a store call on dropped connections and timeouts.

    Backoff doubles from `base_delay`. Non-transient store errors such as
    version conflicts are re-raised on the first attempt; other driver errors
    surface as a non-recoverable DatabaseError.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except StoreError as e:
                    if not _is_transient(e):
                        raise
                    last_error: Exception = e
                except psycopg.Error as e:
                    if not _is_transient(e):
                        logger.error(
                            "Store call hit a permanent error",
                            operation=func.__name__,
                            error=str(e),
                        )
                        raise DatabaseError(
                            f"{func.__name__} failed: {e}",
                            operation=func.__name__,
                            recoverable=False,
                        ) from e
                    last_error = e

                if attempt >= max_retries:
                    logger.error(
                        "Store call still failing, giving up",
                        operation=func.__name__,
                        attempts=attempt + 1,
                        error=str(last_error),
                    )
                    raise DatabaseError(
                        f"{func.__name__} failed after {max_retries} retries: {last_error}",
                        operation=func.__name__,
                        recoverable=False,
                    ) from last_error

                delay = base_delay * (2**attempt)
                attempt += 1
                logger.warning(
                    "Transient store failure, retrying",
                    operation=func.__name__,
                    attempt=attempt,
                    delay=delay,
                    error=str(last_error),
                )
                await asyncio.sleep(delay)

        return wrapper

    return decorator
