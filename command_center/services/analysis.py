"""
Analysis Pipeline Service

Runs the full Classification -> Scoring -> Task-Generation pipeline over one
snapshot of raw outreach data:

    campaigns -> group by client -> attribute inboxes -> ClientMetrics
              -> classify (bucket, severity, health score)
              -> daily/weekly client tasks + portfolio review tasks
              -> portfolio and inbox aggregates

The pipeline is pure: given the same request, benchmarks and clock it always
returns the same result. Task completion state is merged in afterwards by
apply_completions, and the terminal reads the result through
build_query_context.
"""

import logging
from datetime import datetime, timezone
from typing import List, Mapping, Optional

from command_center.models.schemas import (
    AnalysisRequest,
    AnalysisResult,
    AutoTask,
    Benchmarks,
    HealthScoreWeights,
    QueryContext,
    TaskCompletionRecord,
    TaskLists,
)
from command_center.services.classification import classify_batch
from command_center.services.health_scoring import calculate_portfolio_metrics
from command_center.services.metrics_aggregator import (
    aggregate_client_metrics,
    attribute_accounts,
    group_campaigns_by_client,
    summarize_inbox_health,
)
from command_center.services.task_generator import generate_portfolio_tasks, generate_tasks

logger = logging.getLogger(__name__)


def run_analysis(
    request: AnalysisRequest,
    benchmarks: Optional[Benchmarks] = None,
    weights: Optional[HealthScoreWeights] = None,
    default_inbox_health: float = 100.0,
    now: Optional[datetime] = None,
) -> AnalysisResult:
    """
    Classify every client in the request and derive tasks and aggregates.

    Args:
        request: Raw campaigns, inboxes and tag data
        benchmarks: Threshold constants
        weights: Health score weights
        default_inbox_health: Inbox health for clients with no scored inbox
        now: Analysis timestamp; tasks are dated from request.asOfDate or now

    Returns:
        AnalysisResult with classifications ordered lowest health score first
    """
    benchmarks = benchmarks or Benchmarks()
    now = now or datetime.now(timezone.utc)
    as_of = request.asOfDate or now.date()

    grouped = group_campaigns_by_client(request.campaigns)
    attributed = attribute_accounts(
        request.accounts,
        list(grouped.keys()),
        request.customTags,
        request.tagMappings,
    )

    metrics = {
        name: aggregate_client_metrics(
            campaigns,
            attributed.get(name, []),
            benchmarks=benchmarks,
            default_inbox_health=default_inbox_health,
        )
        for name, campaigns in grouped.items()
    }

    classifications = classify_batch(metrics, benchmarks=benchmarks, weights=weights, analyzed_at=now)
    # Clients needing attention surface first on the dashboard
    classifications.sort(key=lambda c: (c.healthScore, c.clientName))

    inbox_health = summarize_inbox_health(request.accounts, benchmarks)
    tasks = generate_tasks(classifications, as_of)
    portfolio_tasks = generate_portfolio_tasks(
        classifications,
        inbox_health,
        trends=request.weeklyTrends,
        benchmarks=benchmarks,
        as_of=as_of,
    )

    logger.info(
        f"Analysis complete: {len(classifications)} clients, "
        f"{len(tasks.daily)} daily and {len(tasks.weekly)} weekly tasks, "
        f"{len(portfolio_tasks)} portfolio tasks"
    )

    return AnalysisResult(
        classifications=classifications,
        tasks=tasks,
        portfolioTasks=portfolio_tasks,
        portfolio=calculate_portfolio_metrics(classifications, request.accounts),
        inboxHealth=inbox_health,
        weeklyTrends=request.weeklyTrends,
        analyzedAt=now,
    )


def _merge(task: AutoTask, completions: Mapping[str, TaskCompletionRecord]) -> AutoTask:
    record = completions.get(task.id)
    if record is None:
        return task
    return task.model_copy(update={
        "completed": record.completed,
        "completedAt": record.completedAt if record.completed else None,
    })


def apply_completions(
    result: AnalysisResult,
    completions: Mapping[str, TaskCompletionRecord],
) -> AnalysisResult:
    """Return a copy of result with stored completion state applied by task id."""
    if not completions:
        return result

    return result.model_copy(update={
        "tasks": TaskLists(
            daily=[_merge(t, completions) for t in result.tasks.daily],
            weekly=[_merge(t, completions) for t in result.tasks.weekly],
        ),
        "portfolioTasks": [_merge(t, completions) for t in result.portfolioTasks],
    })


def all_task_ids(result: AnalysisResult) -> List[str]:
    return [
        t.id for t in
        list(result.tasks.daily) + list(result.tasks.weekly) + list(result.portfolioTasks)
    ]


def build_query_context(
    result: AnalysisResult,
    request: AnalysisRequest,
    benchmarks: Optional[Benchmarks] = None,
) -> QueryContext:
    """Bundle an analysis result into the context the query router reads."""
    return QueryContext(
        classifications=result.classifications,
        accounts=request.accounts,
        inboxHealth=result.inboxHealth,
        weeklyTrends=result.weeklyTrends,
        tasks=TaskLists(
            daily=result.tasks.daily,
            weekly=list(result.tasks.weekly) + list(result.portfolioTasks),
        ),
        portfolio=result.portfolio,
        benchmarks=benchmarks or Benchmarks(),
    )


__all__ = [
    "run_analysis",
    "apply_completions",
    "all_task_ids",
    "build_query_context",
]
