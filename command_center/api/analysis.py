"""
FastAPI router for the analysis pipeline.

POST /analysis takes one snapshot of campaigns, inbox accounts and tag data,
runs classification, scoring and task generation, and returns the full
AnalysisResult. Stored task completion state is merged in by task id when the
completion store is reachable; when it is not, the result is returned with
every task open.
"""

from fastapi import APIRouter

from command_center.core.dependencies import BenchmarksDep, SettingsDep, WeightsDep
from command_center.models.schemas import AnalysisRequest, AnalysisResult
from command_center.services.analysis import run_analysis
from command_center.services.task_completion import merge_stored_completions

router = APIRouter()


@router.post("", response_model=AnalysisResult)
async def analyze(
    request: AnalysisRequest,
    settings: SettingsDep,
    benchmarks: BenchmarksDep,
    weights: WeightsDep,
) -> AnalysisResult:
    """
    Classify every client and generate the day's tasks.

    Example Request:
        POST /analysis
        {
            "campaigns": [{"id": "c1", "name": "Acme - Q1", "analytics": {...}}],
            "accounts": [{"email": "a@acme.io", "healthScore": 97, "tags": ["Acme"]}]
        }
    """
    result = run_analysis(
        request,
        benchmarks=benchmarks,
        weights=weights,
        default_inbox_health=settings.default_inbox_health,
    )
    return await merge_stored_completions(result)


__all__ = ['router']
