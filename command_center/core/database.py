"""
asyncpg pool holding Command Center's small amount of persistent state.

Two tables live behind it: task_completion (which generated tasks a user has
checked off) and job_digest_state (which dates already got a Slack digest).
Classification and task generation never read from it.

The pool is a module-level singleton. The API lifespan opens it eagerly;
services call get_db_pool() and open it lazily when the lifespan could not.
Sizes and timeouts come from Settings (DB_POOL_MIN_SIZE, DB_POOL_MAX_SIZE,
DB_COMMAND_TIMEOUT_SECONDS, DB_CONNECT_TIMEOUT_SECONDS).

A failed open is remembered: for DB_RETRY_BACKOFF_SECONDS afterwards,
init_db() raises DatabaseUnavailableError at once instead of reconnecting,
so callers that degrade without the store are not held up on every request.

    pool = await get_db_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow("SELECT completed FROM task_completion WHERE task_id = $1", task_id)
"""

import time
from typing import Optional

import asyncpg
from asyncpg import Pool

from command_center.core.config import get_settings
from command_center.sql.schema import ensure_schema


class DatabaseNotConfiguredError(RuntimeError):
    """Raised when a pool is requested but DATABASE_URL is not set."""


class DatabaseUnavailableError(RuntimeError):
    """Raised while a recent connection failure is inside its backoff window."""


# =============================================================================
# Pool Singleton
# =============================================================================

_pool: Optional[Pool] = None

# time.monotonic() of the last failed init_db(), None after a success
_failed_at: Optional[float] = None


async def init_db() -> Pool:
    """
    Open the pool and create missing tables. A second call is a no-op.

    If table creation fails the fresh pool is closed again and the error
    propagates, so a half-initialized pool is never published.

    Raises:
        DatabaseNotConfiguredError: DATABASE_URL is unset.
        DatabaseUnavailableError: The last attempt failed within the backoff window.
        asyncpg.PostgresError: The server rejected the connection or DDL.
        OSError: The server could not be reached.
        asyncio.TimeoutError: Connecting took longer than the connect timeout.
    """
    global _pool, _failed_at

    if _pool is not None:
        return _pool

    settings = get_settings()
    if not settings.database_url:
        raise DatabaseNotConfiguredError("DATABASE_URL is not configured")

    if _failed_at is not None:
        elapsed = time.monotonic() - _failed_at
        if elapsed < settings.db_retry_backoff_seconds:
            raise DatabaseUnavailableError(
                f"Database connection failed {elapsed:.0f}s ago; "
                f"retrying after {settings.db_retry_backoff_seconds:g}s"
            )

    try:
        pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout_seconds,
            timeout=settings.db_connect_timeout_seconds,
        )
    except Exception:
        _failed_at = time.monotonic()
        raise

    try:
        await ensure_schema(pool)
    except Exception:
        _failed_at = time.monotonic()
        await pool.close()
        raise

    _pool = pool
    _failed_at = None
    return _pool


async def get_db_pool() -> Pool:
    """Return the shared pool, opening it on first use."""
    if _pool is None:
        return await init_db()
    return _pool


async def close_db() -> None:
    """Close the pool if open. Safe to call repeatedly."""
    global _pool, _failed_at

    pool, _pool = _pool, None
    _failed_at = None
    if pool is not None:
        await pool.close()


__all__ = [
    'DatabaseNotConfiguredError',
    'DatabaseUnavailableError',
    'init_db',
    'get_db_pool',
    'close_db',
]
