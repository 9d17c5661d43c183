"""
Task Generation Service

Expands classified clients into dated, prioritized task records.

Rules:
- Each bucket has a static list of daily and weekly templates
  (BUCKET_TASK_TEMPLATES)
- Daily tasks are emitted only for high and critical severity
- Weekly tasks are emitted for every client, whatever its severity
- Task priority equals the client's severity, except weekly tasks cap
  critical at high
- Daily tasks are due on the as-of date, weekly tasks 7 days later
- Task ids are {clientId}-{daily|weekly}-{templateIndex}, so regenerating
  from unchanged classifications yields identical tasks

Output lists are sorted by severity (most urgent first), then bucket priority,
client name and template index.

Portfolio-wide weekly reviews (benchmark adherence, meeting ratio, inbox
health, declining trends, portfolio summary) are produced separately by
generate_portfolio_tasks with ids of the form {kind}-{as_of}.
"""

from datetime import date, timedelta
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

from command_center.models.enums import (
    BUCKET_CATEGORIES,
    Bucket,
    Severity,
    TaskCategory,
    TaskType,
    TrendDirection,
)
from command_center.models.schemas import (
    AutoTask,
    Benchmarks,
    ClientClassification,
    InboxHealthSummary,
    TaskLists,
    WeeklyTrendSummary,
)
from command_center.services.metrics_aggregator import round_half_up


WEEKLY_DUE_DAYS = 7

# Names shown in the client column for portfolio-wide tasks
ALL_CLIENTS = "All Clients"
ALL_INBOXES = "All Inboxes"
PORTFOLIO = "Portfolio"

# How many client names to list in a portfolio task description
NAME_PREVIEW_LIMIT = 5

TaskMetrics = Dict[str, Union[int, float, str]]


class TaskTemplate(NamedTuple):
    title: str
    description: str


class BucketTemplates(NamedTuple):
    daily: Tuple[TaskTemplate, ...]
    weekly: Tuple[TaskTemplate, ...]


# =============================================================================
# Bucket Task Templates
# =============================================================================

BUCKET_TASK_TEMPLATES: Dict[Bucket, BucketTemplates] = {
    Bucket.VOLUME_ISSUE: BucketTemplates(
        daily=(
            TaskTemplate("Add more leads to campaign", "Load fresh leads so sending volume can scale"),
        ),
        weekly=(
            TaskTemplate("Review lead sourcing strategy", "Identify sources that can sustain higher volume"),
            TaskTemplate("Check list quality", "Verify new lists match the ICP before they are loaded"),
        ),
    ),
    Bucket.COPY_ISSUE: BucketTemplates(
        daily=(
            TaskTemplate("Review and update email copy", "Rewrite the opener and call to action"),
            TaskTemplate("A/B test subject lines", "Launch at least two subject line variants"),
        ),
        weekly=(
            TaskTemplate("Analyze reply patterns", "Compare replying and silent segments"),
            TaskTemplate("Update email templates", "Roll winning variants into the base templates"),
        ),
    ),
    Bucket.SUBSEQUENCE_ISSUE: BucketTemplates(
        daily=(
            TaskTemplate("Review subsequence emails", "Check the follow-ups sent after a positive reply"),
            TaskTemplate("Check follow-up timing", "Make sure interested leads are answered the same day"),
        ),
        weekly=(
            TaskTemplate("Optimize conversion flow", "Tighten the path from positive reply to booked call"),
            TaskTemplate("Review meeting booking process", "Audit calendar links and booking friction"),
        ),
    ),
    Bucket.DELIVERABILITY_ISSUE: BucketTemplates(
        daily=(
            TaskTemplate("Check inbox health", "Review low-health and disconnected inboxes"),
            TaskTemplate("Warm up inboxes", "Put struggling inboxes back into warmup"),
        ),
        weekly=(
            TaskTemplate("Review bounce rates", "Find lists and domains driving bounces"),
            TaskTemplate("Clean email lists", "Re-verify addresses before the next send"),
        ),
    ),
    Bucket.TAM_EXHAUSTED: BucketTemplates(
        daily=(
            TaskTemplate("Add new lead lists", "Source leads before the campaign runs dry"),
            TaskTemplate("Recycle old leads", "Re-engage non-responders with a new angle"),
        ),
        weekly=(
            TaskTemplate("Expand target market", "Look for adjacent industries or titles"),
            TaskTemplate("Review ICP", "Confirm the ideal customer profile with the client"),
        ),
    ),
    Bucket.NOT_VIABLE: BucketTemplates(
        daily=(
            TaskTemplate("Review campaign viability", "Decide whether the campaign should continue"),
        ),
        weekly=(
            TaskTemplate("Consider pausing campaign", "Pause sending until the offer is reworked"),
            TaskTemplate("Discuss with client", "Align on offer, targeting and expectations"),
        ),
    ),
    Bucket.PERFORMING_WELL: BucketTemplates(
        daily=(),
        weekly=(
            TaskTemplate("Maintenance and scale review", "Keep performance steady and look for room to scale"),
        ),
    ),
    Bucket.TOO_EARLY: BucketTemplates(
        daily=(),
        weekly=(
            TaskTemplate("Monitor initial performance", "Check early signals until there is enough data"),
        ),
    ),
}


# =============================================================================
# Helpers
# =============================================================================

def cap_weekly_severity(severity: Severity) -> Severity:
    """Weekly cadence caps urgency at high."""
    return Severity.HIGH if severity == Severity.CRITICAL else severity


def task_sort_key(task: AutoTask) -> Tuple:
    # Template index is the last id segment for client tasks
    index = task.id.rsplit("-", 1)[-1]
    return (
        -task.severity.rank,
        task.bucket.priority if task.bucket is not None else len(Bucket),
        task.clientName or "",
        int(index) if index.isdigit() else 0,
        task.id,
    )


def snapshot_metrics(classification: ClientClassification) -> TaskMetrics:
    m = classification.metrics
    return {
        "replyRate": m.replyRate,
        "conversionRate": m.conversionRate,
        "posReplyToMeeting": m.posReplyToMeeting,
        "bounceRate": m.bounceRate,
        "uncontactedLeads": m.uncontactedLeads,
        "totalSent": m.totalSent,
        "opportunities": m.opportunities,
        "healthScore": classification.healthScore,
    }


def _preview_names(names: Sequence[str], limit: int = NAME_PREVIEW_LIMIT) -> str:
    shown = ", ".join(names[:limit])
    if len(names) > limit:
        shown += f" and {len(names) - limit} more"
    return shown


# =============================================================================
# Client Tasks
# =============================================================================

def generate_client_tasks(
    classification: ClientClassification,
    as_of: date,
) -> TaskLists:
    """
    Expand one classification into its daily and weekly tasks.

    Args:
        classification: The client's classification
        as_of: The date daily tasks are due; weekly tasks are due 7 days later

    Returns:
        TaskLists for this client, in template order
    """
    templates = BUCKET_TASK_TEMPLATES[classification.bucket]
    category = BUCKET_CATEGORIES[classification.bucket]
    metrics = snapshot_metrics(classification)

    def build(task_type: TaskType, index: int, template: TaskTemplate,
              severity: Severity, due: date) -> AutoTask:
        return AutoTask(
            id=f"{classification.clientId}-{task_type.value}-{index}",
            type=task_type,
            bucket=classification.bucket,
            severity=severity,
            clientId=classification.clientId,
            clientName=classification.clientName,
            title=template.title,
            description=f"{template.description}. {classification.reason}",
            category=category,
            metrics=metrics,
            dueDate=due,
        )

    daily: List[AutoTask] = []
    if classification.severity.is_urgent:
        daily = [
            build(TaskType.DAILY, i, t, classification.severity, as_of)
            for i, t in enumerate(templates.daily)
        ]

    weekly_severity = cap_weekly_severity(classification.severity)
    weekly_due = as_of + timedelta(days=WEEKLY_DUE_DAYS)
    weekly = [
        build(TaskType.WEEKLY, i, t, weekly_severity, weekly_due)
        for i, t in enumerate(templates.weekly)
    ]

    return TaskLists(daily=daily, weekly=weekly)


def generate_tasks(
    classifications: Sequence[ClientClassification],
    as_of: Optional[date] = None,
) -> TaskLists:
    """
    Generate the daily and weekly task lists for all clients.

    Pure and deterministic for a given as_of date: regenerating from the same
    classifications yields identical ids and field values.
    """
    as_of = as_of or date.today()
    daily: List[AutoTask] = []
    weekly: List[AutoTask] = []

    for classification in classifications:
        lists = generate_client_tasks(classification, as_of)
        daily.extend(lists.daily)
        weekly.extend(lists.weekly)

    return TaskLists(
        daily=sorted(daily, key=task_sort_key),
        weekly=sorted(weekly, key=task_sort_key),
    )


# =============================================================================
# Portfolio Tasks
# =============================================================================

def generate_portfolio_tasks(
    classifications: Sequence[ClientClassification],
    inbox_health: InboxHealthSummary,
    trends: Optional[WeeklyTrendSummary] = None,
    benchmarks: Optional[Benchmarks] = None,
    as_of: Optional[date] = None,
) -> List[AutoTask]:
    """
    Generate the portfolio-wide weekly review tasks.

    Emitted when their condition holds:
    - benchmark-check: clients below the reply or conversion benchmark
    - conversion-check: clients with enough replies whose positive-reply to
      meeting ratio is under target
    - inbox-health: disconnected or low-health inboxes exist
    - trends: clients with declining week-over-week reply rates
    - portfolio-summary: always

    Returns:
        Tasks sorted by severity, most urgent first
    """
    benchmarks = benchmarks or Benchmarks()
    as_of = as_of or date.today()
    due = as_of + timedelta(days=WEEKLY_DUE_DAYS)
    stamp = as_of.isoformat()
    tasks: List[AutoTask] = []

    def build(kind: str, bucket: Bucket, severity: Severity, client_name: str,
              title: str, description: str, category: TaskCategory,
              metrics: TaskMetrics) -> AutoTask:
        return AutoTask(
            id=f"{kind}-{stamp}",
            type=TaskType.WEEKLY,
            bucket=bucket,
            severity=severity,
            clientName=client_name,
            title=title,
            description=description,
            category=category,
            metrics=metrics,
            dueDate=due,
        )

    below_benchmark = [
        c.clientName for c in classifications
        if c.metrics.replyRate < benchmarks.good_reply_rate
        or c.metrics.conversionRate < benchmarks.target_conversion
    ]
    if below_benchmark:
        tasks.append(build(
            "benchmark-check", Bucket.COPY_ISSUE, Severity.HIGH, ALL_CLIENTS,
            f"{len(below_benchmark)} clients below benchmarks",
            f"Review: {_preview_names(below_benchmark)}",
            TaskCategory.BENCHMARK,
            {"count": len(below_benchmark), "clients": ", ".join(below_benchmark)},
        ))

    ranked = [
        c for c in classifications
        if c.metrics.totalReplied > benchmarks.min_replies_for_ranking
    ]
    low_meeting = [c for c in ranked if c.metrics.posReplyToMeeting < benchmarks.meeting_ratio_target]
    if low_meeting:
        best = max(ranked, key=lambda c: (c.metrics.posReplyToMeeting, c.clientName))
        avg_ratio = round_half_up(sum(c.metrics.posReplyToMeeting for c in ranked) / len(ranked))
        tasks.append(build(
            "conversion-check", Bucket.SUBSEQUENCE_ISSUE, Severity.MEDIUM, ALL_CLIENTS,
            f"{len(low_meeting)} clients below {benchmarks.meeting_ratio_target:g}% reply-to-meeting",
            f"Best performer: {best.clientName} at {best.metrics.posReplyToMeeting:.1f}%",
            TaskCategory.CONVERSION,
            {"count": len(low_meeting), "avgPosReplyToMeeting": avg_ratio},
        ))

    inbox_issues = inbox_health.disconnected + inbox_health.lowHealth
    if inbox_issues > 0:
        tasks.append(build(
            "inbox-health", Bucket.DELIVERABILITY_ISSUE,
            Severity.CRITICAL if inbox_health.disconnected > 0 else Severity.HIGH,
            ALL_INBOXES,
            f"{inbox_issues} inboxes need attention",
            f"{inbox_health.disconnected} disconnected, {inbox_health.lowHealth} below "
            f"health score {benchmarks.healthy_inbox:g}",
            TaskCategory.DELIVERABILITY,
            {
                "total": inbox_health.total,
                "healthy": inbox_health.healthy,
                "lowHealth": inbox_health.lowHealth,
                "disconnected": inbox_health.disconnected,
                "avgHealth": inbox_health.avgHealthScore,
            },
        ))

    if trends is not None:
        declining = [e for e in trends.clients if e.trend == TrendDirection.DECLINING]
        if declining:
            tasks.append(build(
                "trends", Bucket.COPY_ISSUE, Severity.MEDIUM, ALL_CLIENTS,
                f"{len(declining)} clients with declining reply rates",
                f"Week-over-week decline: {_preview_names([e.name for e in declining], 3)}",
                TaskCategory.TRENDS,
                {
                    "decliningCount": len(declining),
                    "clients": ", ".join(f"{e.name} ({e.change:.1f}%)" for e in declining),
                },
            ))

    performing_well = sum(1 for c in classifications if c.bucket == Bucket.PERFORMING_WELL)
    needs_attention = sum(1 for c in classifications if c.severity.is_urgent)
    avg_reply = (
        round_half_up(sum(c.metrics.replyRate for c in classifications) / len(classifications))
        if classifications else 0.0
    )
    tasks.append(build(
        "portfolio-summary", Bucket.PERFORMING_WELL, Severity.LOW, PORTFOLIO,
        "Weekly Portfolio Health Review",
        f"{performing_well} performing well, {needs_attention} need attention, "
        f"{len(classifications)} total clients",
        TaskCategory.REVIEW,
        {
            "total": len(classifications),
            "performingWell": performing_well,
            "needsAttention": needs_attention,
            "avgReplyRate": avg_reply,
        },
    ))

    # Stable sort keeps emission order within a severity
    return sorted(tasks, key=lambda t: -t.severity.rank)


__all__ = [
    "TaskTemplate",
    "BucketTemplates",
    "BUCKET_TASK_TEMPLATES",
    "WEEKLY_DUE_DAYS",
    "cap_weekly_severity",
    "generate_client_tasks",
    "generate_tasks",
    "generate_portfolio_tasks",
]
