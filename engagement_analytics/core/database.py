"""
Async PostgreSQL connection pool module for the analytics store.

The feature tables (main_analysis and the user/entity engagement pair tables)
and the result tables (driver tables, conversion_pattern_combinations,
summary_stats) all live in one PostgreSQL database. Every service reaches it
through the pool managed here.

Key Components:
- Global connection pool singleton (_pool)
- init_db(): Initialize the connection pool at application startup
- get_db_pool(): Get the pool instance (initializes if needed)
- close_db(): Gracefully close the pool at application shutdown
- execute_query(): Convenience helper for read-only queries

Connection Pool Configuration:
- min_size: 2 (minimum idle connections kept in pool)
- max_size: 10 (maximum connections in pool)
- command_timeout: 300 seconds (pattern result inserts can be large)

Usage:
    # At application startup (in FastAPI lifespan)
    await init_db()

    # In services
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch("SELECT * FROM main_analysis")

    # At application shutdown
    await close_db()
"""

from typing import Any, List, Optional

import asyncpg
from asyncpg import Pool

from engagement_analytics.core.config import get_settings


# =============================================================================
# Global Pool Singleton
# =============================================================================

# None until init_db() is called
_pool: Optional[Pool] = None


# =============================================================================
# Pool Lifecycle Functions
# =============================================================================

async def init_db() -> Pool:
    """
    Initialize the database connection pool.

    Idempotent: if the pool already exists it is returned unchanged.

    Returns:
        Pool: The asyncpg connection pool instance.

    Raises:
        asyncpg.PostgresError: If connection to the database fails.
        OSError: If the database host is unreachable.
    """
    global _pool

    if _pool is None:
        settings = get_settings()
        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=2,
            max_size=10,
            command_timeout=300,
        )

    return _pool


async def get_db_pool() -> Pool:
    """
    Get the database connection pool, initializing lazily if needed.

    Returns:
        Pool: The asyncpg connection pool instance.
    """
    global _pool

    if _pool is None:
        await init_db()

    assert _pool is not None, "Pool should be initialized after init_db()"

    return _pool


async def close_db() -> None:
    """
    Close the database connection pool gracefully.

    Safe to call when the pool was never initialized. After closing, the next
    get_db_pool() call creates a fresh pool.
    """
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None


# =============================================================================
# Query Execution Helper
# =============================================================================

async def execute_query(query: str, *args: Any) -> List[asyncpg.Record]:
    """
    Execute a single query and return all rows.

    For delete-then-insert result replacement use a connection and an explicit
    transaction instead:
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(...)
                await conn.executemany(...)

    Args:
        query: SQL query string with $1, $2, ... placeholders.
        *args: Positional query parameters.

    Returns:
        List of asyncpg records (dict-like).
    """
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        return await conn.fetch(query, *args)
