"""
Task Completion Store

Remembers which generated tasks a user has marked done. Completion state is
kept outside the classification core: tasks are regenerated fresh on every
run with completed=False, and the caller merges the stored state back in by
task id (see services.analysis.apply_completions). Deterministic task ids
make that merge stable across runs.

Backed by the task_completion table:

    task_id       TEXT PRIMARY KEY
    completed     BOOLEAN NOT NULL
    completed_at  TIMESTAMPTZ
    updated_at    TIMESTAMPTZ NOT NULL

Concurrent writers to the same task id are last-write-wins.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Sequence

from command_center.core.database import get_db_pool
from command_center.models.schemas import AnalysisResult, TaskCompletionRecord
from command_center.services.analysis import all_task_ids, apply_completions

logger = logging.getLogger(__name__)


async def fetch_completions(task_ids: Sequence[str]) -> Dict[str, TaskCompletionRecord]:
    """
    Load stored completion state for the given task ids.

    Returns:
        Dict of task id -> record, only for ids that have stored state
    """
    if not task_ids:
        return {}

    pool = await get_db_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch(
            """
            SELECT task_id, completed, completed_at
            FROM task_completion
            WHERE task_id = ANY($1::text[])
            """,
            list(task_ids),
        )

    return {
        row['task_id']: TaskCompletionRecord(
            taskId=row['task_id'],
            completed=row['completed'],
            completedAt=row['completed_at'],
        )
        for row in rows
    }


async def set_task_completion(task_id: str, completed: bool) -> TaskCompletionRecord:
    """
    Mark a task completed or reopen it.

    completedAt is stamped when completing and cleared when reopening.
    """
    now = datetime.now(timezone.utc)
    completed_at = now if completed else None

    pool = await get_db_pool()
    async with pool.acquire() as conn:
        await conn.execute(
            """
            INSERT INTO task_completion (task_id, completed, completed_at, updated_at)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (task_id)
            DO UPDATE SET
                completed = EXCLUDED.completed,
                completed_at = EXCLUDED.completed_at,
                updated_at = EXCLUDED.updated_at
            """,
            task_id,
            completed,
            completed_at,
            now,
        )

    logger.info(f"Task {task_id} marked {'completed' if completed else 'open'}")
    return TaskCompletionRecord(taskId=task_id, completed=completed, completedAt=completed_at)


async def merge_stored_completions(result: AnalysisResult) -> AnalysisResult:
    """
    Apply stored completion state to a fresh analysis result.

    When the store is unconfigured or unreachable the result comes back
    unchanged, with every task open.
    """
    try:
        completions = await fetch_completions(all_task_ids(result))
    except Exception as e:
        logger.warning(f"Completion store unavailable, returning tasks without completion state: {e}")
        return result
    return apply_completions(result, completions)


__all__ = ['fetch_completions', 'set_task_completion', 'merge_stored_completions']
