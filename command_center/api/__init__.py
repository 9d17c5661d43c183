"""
Command Center API package.

FastAPI router modules:
- analysis: classification, scoring and task generation over a data snapshot
- terminal: intent-matched reports with generative fallback
- tasks: task completion state and the Slack task digest
"""

from fastapi import APIRouter

from command_center.api.analysis import router as analysis_router
from command_center.api.terminal import router as terminal_router
from command_center.api.tasks import router as tasks_router

api_router = APIRouter()

api_router.include_router(analysis_router, prefix="/analysis", tags=["analysis"])
api_router.include_router(terminal_router, prefix="/terminal", tags=["terminal"])
api_router.include_router(tasks_router, prefix="/tasks", tags=["tasks"])

__all__ = [
    "api_router",
    "analysis_router",
    "terminal_router",
    "tasks_router",
]
