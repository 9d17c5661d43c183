"""
Table definitions for the state Command Center persists.

- task_completion: completion state per generated task id
- job_digest_state: one row per (job_type, digest_date) for digest idempotency

Statements are idempotent (IF NOT EXISTS) and applied by init_db() on startup.
"""

from typing import List

from asyncpg import Pool


TASK_COMPLETION_TABLE = """
    CREATE TABLE IF NOT EXISTS task_completion (
        task_id       TEXT PRIMARY KEY,
        completed     BOOLEAN NOT NULL,
        completed_at  TIMESTAMPTZ,
        updated_at    TIMESTAMPTZ NOT NULL
    )
"""

JOB_DIGEST_STATE_TABLE = """
    CREATE TABLE IF NOT EXISTS job_digest_state (
        job_type      TEXT NOT NULL,
        digest_date   DATE NOT NULL,
        sent_at       TIMESTAMPTZ NOT NULL,
        digest_count  INTEGER NOT NULL DEFAULT 1,
        PRIMARY KEY (job_type, digest_date)
    )
"""

SCHEMA_STATEMENTS: List[str] = [
    TASK_COMPLETION_TABLE,
    JOB_DIGEST_STATE_TABLE,
]


async def ensure_schema(pool: Pool) -> None:
    """Create any missing tables."""
    async with pool.acquire() as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(statement)


__all__ = [
    'TASK_COMPLETION_TABLE',
    'JOB_DIGEST_STATE_TABLE',
    'SCHEMA_STATEMENTS',
    'ensure_schema',
]
