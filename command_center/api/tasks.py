"""
FastAPI router for task completion and the Slack task digest.

Key Endpoints:
- PATCH /tasks/{task_id} - Mark a generated task completed or reopen it
- POST /tasks/digest - Run the analysis and post the daily digest to Slack

Task ids are deterministic ({clientId}-{daily|weekly}-{n} for client tasks,
{kind}-{date} for portfolio tasks), so completion state written here is
picked up by the next POST /analysis for the same day.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException

from command_center.core.database import DatabaseNotConfiguredError
from command_center.core.dependencies import BenchmarksDep, SettingsDep, WeightsDep
from command_center.jobs.task_digest import send_task_digest
from command_center.models.schemas import (
    DigestRequest,
    TaskCompletionRecord,
    TaskCompletionUpdate,
)
from command_center.services.analysis import run_analysis
from command_center.services.task_completion import merge_stored_completions, set_task_completion

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# PATCH /tasks/{task_id} - Task Completion
# =============================================================================

@router.patch("/{task_id}", response_model=TaskCompletionRecord)
async def update_task_completion(
    task_id: str,
    update: TaskCompletionUpdate,
) -> TaskCompletionRecord:
    """
    Mark a task completed (stamps completedAt) or reopen it (clears completedAt).

    Raises:
        HTTPException 400: If task_id is blank
        HTTPException 503: If the completion store is unavailable
    """
    if not task_id.strip():
        raise HTTPException(status_code=400, detail="task_id is required")

    try:
        return await set_task_completion(task_id, update.completed)
    except DatabaseNotConfiguredError as e:
        logger.warning(f"PATCH /tasks/{task_id} rejected: {e}")
        raise HTTPException(status_code=503, detail="Task completion store is not configured")
    except Exception as e:
        logger.error(f"Failed to update task {task_id}: {e}")
        raise HTTPException(status_code=503, detail=f"Task completion store unavailable: {str(e)}")


# =============================================================================
# POST /tasks/digest - Slack Digest
# =============================================================================

@router.post("/digest")
async def post_task_digest(
    request: DigestRequest,
    settings: SettingsDep,
    benchmarks: BenchmarksDep,
    weights: WeightsDep,
) -> Dict[str, Any]:
    """
    Analyze the submitted snapshot and post the day's open tasks to Slack.

    Stored completion state is merged first, so tasks already done are not
    listed.

    Returns the job outcome dict unchanged: success, and either skipped/reason,
    the sent counts, or error.
    """
    result = run_analysis(
        request,
        benchmarks=benchmarks,
        weights=weights,
        default_inbox_health=settings.default_inbox_health,
    )
    result = await merge_stored_completions(result)
    digest_date = request.asOfDate or result.analyzedAt.date()
    return await send_task_digest(result, digest_date=digest_date, force=request.force)


__all__ = ['router']
