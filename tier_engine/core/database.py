"""
Async PostgreSQL connection pool module for the Tier Engine.

This module provides an async PostgreSQL connection pool using asyncpg. All
warehouse reads (period snapshots, activity history), the SNR handler
registry and assignment writes flow through this pool.

Key Components:
- Global connection pool singleton (_pool)
- init_db(): Initialize the connection pool at application startup
- get_db_pool(): Get the pool instance (initializes if needed)
- close_db(): Gracefully close the pool at application shutdown
- STORAGE_ERRORS: exceptions a pooled query can raise on storage failure

Connection Pool Configuration (from Settings):
- db_pool_min_size: minimum idle connections kept in pool
- db_pool_max_size: maximum connections in pool
- db_command_timeout: query timeout in seconds

Usage:
    # At application startup (in FastAPI lifespan)
    await init_db()

    # Services receive the pool and acquire their own connections
    source = PostgresSnapshotSource(await get_db_pool())

    # At application shutdown
    await close_db()
"""

import asyncio
import logging
from typing import Optional

import asyncpg
from asyncpg import Pool

from tier_engine.core.config import get_settings


logger = logging.getLogger(__name__)


# =============================================================================
# Global Pool Singleton
# =============================================================================

# None until init_db() is called
_pool: Optional[Pool] = None

# Failures of a pooled query that services report as RepositoryError.
# asyncio.TimeoutError is the command timeout before Python 3.11.
STORAGE_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)


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
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )
        logger.debug(
            f"Created pool (min={settings.db_pool_min_size}, max={settings.db_pool_max_size})"
        )

    return _pool


async def get_db_pool() -> Pool:
    """
    Get the database connection pool, initializing if needed.

    Returns:
        Pool: The asyncpg connection pool instance.
    """
    if _pool is None:
        return await init_db()
    return _pool


async def close_db() -> None:
    """
    Close the database connection pool.

    Safe to call more than once. After closing, the next get_db_pool() call
    creates a fresh pool.
    """
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
