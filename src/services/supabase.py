"""Supabase Postgres connection pool.

Uses ``asyncpg`` for direct database access.  The pool is created lazily by
the Postgres sink at app startup and drained at shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import asyncpg

from src.config import Settings, get_settings

logger = logging.getLogger("pulsewatch.db")

# Module-level connection pool, initialized by the first Postgres write
_pool: asyncpg.Pool | None = None


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool. Call once at app startup."""
    global _pool
    s = settings or get_settings()
    if not s.supabase_db_url:
        raise RuntimeError("SUPABASE_DB_URL is not configured")
    _pool = await asyncpg.create_pool(
        s.supabase_db_url,
        min_size=1,
        max_size=4,
        command_timeout=10,
    )
    logger.info("Database pool initialized (min=1, max=4)")
    return _pool


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def is_pool_ready() -> bool:
    return _pool is not None


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized — call init_pool() first")
    return _pool


@asynccontextmanager
async def get_connection() -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a pooled connection inside a transaction.

    Usage::

        async with get_connection() as conn:
            await conn.execute(query, *args)
    """
    pool = get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            yield conn


async def execute(query: str, *args: Any) -> str:
    """Execute a single statement and return its status."""
    async with get_connection() as conn:
        return await conn.execute(query, *args)
