# app/db/pool.py
"""
PostgreSQL connection pool manager using psycopg_pool.
Backs the credential store (encrypted Telegram sessions) on Supabase.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabasePoolManager:
    """Owns the async pool for the lifetime of the application."""

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Initialize the connection pool on application startup."""
        if self._initialized:
            logger.warning("Database pool already initialized")
            return

        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")

        if not settings.SUPABASE_DB_URL:
            raise RuntimeError("SUPABASE_DB_URL is not configured")

        try:
            pool_config = settings.get_db_pool_config()
            logger.info(
                "Initializing database connection pool",
                min_size=pool_config["min_size"],
                max_size=pool_config["max_size"],
            )

            self.pool = AsyncConnectionPool(
                conninfo=settings.SUPABASE_DB_URL,
                open=False,
                check=AsyncConnectionPool.check_connection,
                configure=self._configure_connection,
                **pool_config,
            )
            await self.pool.open()
            await self.pool.wait()
            self._initialized = True

            logger.info("Database pool initialized successfully")

        except Exception as e:
            logger.error("Failed to initialize database pool", error=str(e))
            self._initialized = False
            if self.pool:
                try:
                    await self.pool.close()
                except Exception as cleanup_error:
                    logger.warning("Error discarding half-open pool", error=str(cleanup_error))
                self.pool = None
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        """Configure each new connection from the pool."""
        conn.row_factory = dict_row
        await conn.set_autocommit(True)

        app_name = f"engagement-stats-{settings.environment}"
        # SET cannot be parameterized; inline safely with Literal
        await conn.execute(sql.SQL("SET application_name = {}").format(sql.Literal(app_name)))
        await conn.execute("SET timezone = 'UTC'")
        await conn.execute("SET statement_timeout = '15s'")

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if not self._initialized or self._closed:
            return

        try:
            logger.info("Closing database connection pool")
            if self.pool:
                await asyncio.wait_for(self.pool.close(), timeout=30.0)
            logger.info("Database pool closed successfully")
        except TimeoutError:
            logger.warning("Database pool close timed out, forcing shutdown")
        finally:
            self._initialized = False
            self._closed = True

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Get a connection from the pool.

        Usage:
            async with db_pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1")
        """
        if not self._initialized:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")

        if self._closed:
            raise RuntimeError("Database pool is closed")

        async with self.pool.connection() as conn:
            yield conn

    async def health_check(self) -> dict[str, Any]:
        """Run SELECT 1 and report latency plus basic pool stats."""
        if not self._initialized:
            return {"healthy": False, "error": "Pool not initialized", "service": "database_pool"}

        start_time = time.time()
        try:
            async with self.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1 AS ok")
                    row = await cur.fetchone()
            if not row or row.get("ok") != 1:
                raise RuntimeError(f"Database test failed - got {row!r}")
        except Exception as e:
            logger.error("Database pool health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "database_pool",
                "error": str(e),
                "error_type": type(e).__name__,
            }

        stats = self.pool.get_stats()
        return {
            "healthy": True,
            "service": "database_pool",
            "connection_time_ms": round((time.time() - start_time) * 1000, 2),
            "pool_stats": {
                "pool_size": stats.get("pool_size", 0),
                "pool_available": stats.get("pool_available", 0),
                "requests_waiting": stats.get("requests_waiting", 0),
            },
        }


# Global pool instance
db_pool = DatabasePoolManager()


async def db_health_check() -> dict[str, Any]:
    """Get database pool health status."""
    return await db_pool.health_check()
