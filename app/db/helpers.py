# app/db/helpers.py
"""
Database helper functions for the credential store.
Keeps connection handling and error mapping out of repositories.
"""

import asyncio
import functools
from typing import Any

import psycopg

from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Custom exception for database operations."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


async def fetch_one(query: str, params: tuple = ()) -> dict[str, Any] | None:
    """
    Execute query and return single row as dict.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters

    Returns:
        Dict with row data or None if no results
    """
    try:
        async with db_pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                row = await cur.fetchone()
                return row if row else None

    except psycopg.Error as e:
        logger.error("Database fetch_one error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_one") from e


def with_db_retry(max_retries: int = 2, base_delay: float = 0.1):
    """
    Retry a coroutine on transient connection failures with exponential backoff.

    DatabaseError raised by the helpers is retried only while it is recoverable
    and its cause is an OperationalError.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except DatabaseError as e:
                    transient = e.recoverable and isinstance(e.__cause__, psycopg.OperationalError)
                    if not transient or attempt == max_retries:
                        raise
                    delay = base_delay * (2**attempt)
                    logger.warning(
                        "Database operation failed, retrying",
                        operation=func.__name__,
                        attempt=attempt + 1,
                        delay=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
