"""
Query Router Service

Answers operational questions typed into the terminal page. The lower-cased
query is tested against an ordered list of keyword predicates; the first match
wins and its report is rendered from the QueryContext. Predicates overlap
("reply rate" also contains "reply"), so the order of INTENT_RULES is part of
the contract and runs from most specific to most general:

 1. benchmark_check       "benchmark" or "hitting"
 2. positive_reply_ratio  "40%" or ("reply" and "meeting")
 3. inbox_issues          "disconnect", "sending error" or "inbox"
 4. reply_trends          "trend" or "downward"
 5. tasks_completed       "tasks done" or ("summary" and "task")
 6. needs_attention       "attention", "today" or "need"
 7. low_reply_rate        "low reply" or "reply rate"
 8. portfolio_summary     "portfolio", "health" or "summary"
 9. best_conversion       "best" and "conversion"
10. tasks_due             "task" or "due"
11. low_leads             "leads" or "volume"
12. performance_compare   "compare" or "performance"

When nothing matches, the router does not improvise an answer: it hands the
raw query and the same context to the configured GenerativeResponder and
passes its answer through unchanged. A responder failure, or no responder at
all, is reported in QueryResult.error.

The router keeps no state between calls; every report is re-derived from the
context it is given.
"""

import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from command_center.models.enums import AccountStatus, QueryIntent, Severity, TrendDirection
from command_center.models.schemas import (
    AutoTask,
    ClientClassification,
    QueryContext,
    QueryResult,
)
from command_center.services.health_scoring import calculate_portfolio_metrics
from command_center.services.responder import GenerativeResponder, ResponderError

logger = logging.getLogger(__name__)


Report = Callable[[QueryContext], QueryResult]


class IntentRule(NamedTuple):
    intent: QueryIntent
    matches: Callable[[str], bool]
    report: Report


# =============================================================================
# Formatting Helpers
# =============================================================================

def format_percentage(value: float) -> str:
    return f"{value:.2f}%"


def format_number(value: int) -> str:
    return f"{value:,}"


def _bullets(lines: List[str]) -> str:
    return "\n".join(f"• {line}" for line in lines)


def _any(*needles: str) -> Callable[[str], bool]:
    return lambda q: any(n in q for n in needles)


def _all(*needles: str) -> Callable[[str], bool]:
    return lambda q: all(n in q for n in needles)


def _result(intent: QueryIntent, response: str, **data: Any) -> QueryResult:
    return QueryResult(response=response, data=data or None, intent=intent)


# =============================================================================
# Reports
# =============================================================================

def report_benchmark_check(ctx: QueryContext) -> QueryResult:
    """Clients below the good reply rate or the target conversion rate."""
    b = ctx.benchmarks
    missing = [
        c for c in ctx.classifications
        if c.metrics.replyRate < b.good_reply_rate or c.metrics.conversionRate < b.target_conversion
    ]
    if not missing:
        return _result(
            QueryIntent.BENCHMARK_CHECK,
            "✅ All clients are currently hitting their benchmarks.",
            clients=[],
        )

    blocks = []
    for c in missing:
        issues = []
        if c.metrics.replyRate < b.good_reply_rate:
            issues.append(f"Reply rate {format_percentage(c.metrics.replyRate)} (target: {b.good_reply_rate:g}%)")
        if c.metrics.conversionRate < b.target_conversion:
            issues.append(f"Conversion {format_percentage(c.metrics.conversionRate)} (target: {b.target_conversion:g}%)")
        blocks.append(f"• {c.clientName}\n  {', '.join(issues)}")

    return _result(
        QueryIntent.BENCHMARK_CHECK,
        f"⚠️ {len(missing)} clients not hitting benchmarks:\n\n" + "\n\n".join(blocks),
        clients=[c.clientName for c in missing],
    )


def report_positive_reply_ratio(ctx: QueryContext) -> QueryResult:
    """Clients whose positive replies convert to meetings below target."""
    target = ctx.benchmarks.meeting_ratio_target
    low = [c for c in ctx.classifications if c.metrics.posReplyToMeeting < target]
    if not low:
        return _result(
            QueryIntent.POSITIVE_REPLY_RATIO,
            f"✅ All clients have a {target:g}%+ positive reply to meeting ratio.",
            clients=[],
        )

    blocks = [
        f"• {c.clientName} - {format_percentage(c.metrics.posReplyToMeeting)} positive reply to meeting\n"
        f"  {c.metrics.meetingsBooked} meetings from {c.metrics.positiveReplies} positive replies"
        for c in sorted(low, key=lambda c: (c.metrics.posReplyToMeeting, c.clientName))
    ]
    return _result(
        QueryIntent.POSITIVE_REPLY_RATIO,
        f"⚠️ {len(low)} clients with sub {target:g}% positive reply to meeting ratio:\n\n"
        + "\n\n".join(blocks)
        + "\n\n📌 Recommended action: Review price, info, and meeting request subsequences. "
        "Keep pricing simple and quote the lowest packages.",
        clients=[c.clientName for c in low],
    )


def report_inbox_issues(ctx: QueryContext) -> QueryResult:
    """Disconnected inboxes and inboxes with sending errors, grouped by tag."""
    disconnected = [a for a in ctx.accounts if a.status == AccountStatus.DISCONNECTED]
    errored = [a for a in ctx.accounts if a.has_error]

    if not disconnected and not errored:
        return _result(
            QueryIntent.INBOX_ISSUES,
            "✅ None - all inboxes are connected and sending normally.",
            disconnected=[],
            sendingErrors=[],
        )

    by_tag: Dict[str, Dict[str, int]] = {}
    for account in {a.email: a for a in disconnected + errored}.values():
        for tag in account.tags:
            counts = by_tag.setdefault(tag, {"disconnected": 0, "errors": 0})
            if account.status == AccountStatus.DISCONNECTED:
                counts["disconnected"] += 1
            if account.has_error:
                counts["errors"] += 1

    lines = [
        "⚠️ Inbox Issues Found:",
        "",
        f"Disconnected inboxes: {len(disconnected)}",
        *(f"  • {a.email} ({a.clientName or 'Unassigned'})" for a in disconnected),
        "",
        f"Sending errors: {len(errored)}",
        *(f"  • {a.email} - {a.errorMessage or 'Error'}" for a in errored),
    ]
    if by_tag:
        lines += ["", "Issues by tag:"]
        lines += [
            f"• {tag}: {counts['disconnected']} disconnected, {counts['errors']} errors"
            for tag, counts in sorted(by_tag.items())
        ]

    return _result(
        QueryIntent.INBOX_ISSUES,
        "\n".join(lines),
        disconnected=[a.email for a in disconnected],
        sendingErrors=[a.email for a in errored],
        byTag=by_tag,
    )


REPLY_DIP_ACTIONS = """📌 Action to resolve reply rate dip:
1. Check inbox health - low health inboxes hurt deliverability
2. Trim down bad variants - remove underperforming copy
3. Check if targeting is too broad - narrow down lists
4. Review copy checklist:
   - First line 12 words max
   - Subject line 3 words max + company name
   - 3-4 sentences max
   - "Open to learning more?" CTA
   - Sub 80 words total"""


def report_reply_trends(ctx: QueryContext) -> QueryResult:
    """Clients whose reply rate declined week over week."""
    if ctx.weeklyTrends is None:
        return _result(
            QueryIntent.REPLY_TRENDS,
            "No weekly trend data is available yet.",
            declining=[],
        )

    declining = [e for e in ctx.weeklyTrends.clients if e.trend == TrendDirection.DECLINING]
    if not declining:
        return _result(
            QueryIntent.REPLY_TRENDS,
            "✅ No clients have declining reply rates. All trends are stable or improving.",
            declining=[],
        )

    declining.sort(key=lambda e: (e.change, e.name))
    lines = [
        f"{e.name}: {e.replyRate:.2f}% ({e.change:.1f}% vs last week)" for e in declining
    ]
    return _result(
        QueryIntent.REPLY_TRENDS,
        f"⚠️ Yes, {len(declining)} clients have declining reply rates:\n\n"
        f"{_bullets(lines)}\n\n{REPLY_DIP_ACTIONS}",
        declining=[e.name for e in declining],
        week=ctx.weeklyTrends.week,
    )


def _all_tasks(ctx: QueryContext) -> List[AutoTask]:
    return list(ctx.tasks.daily) + list(ctx.tasks.weekly)


def report_tasks_completed(ctx: QueryContext) -> QueryResult:
    """Completed tasks grouped by client."""
    completed = [t for t in _all_tasks(ctx) if t.completed]

    if not completed:
        pending = [t for t in ctx.tasks.daily if not t.completed][:5]
        response = "📋 No tasks have been marked as completed yet."
        if pending:
            response += "\n\nPending tasks:\n" + _bullets(
                [f"{t.clientName or 'Portfolio'}: {t.title}" for t in pending]
            )
        return _result(QueryIntent.TASKS_COMPLETED, response, completed=0)

    by_client: Dict[str, List[str]] = {}
    for task in completed:
        by_client.setdefault(task.clientName or "Portfolio", []).append(task.title)

    blocks = [
        f"{client}:\n" + "\n".join(f"  • {title}" for title in titles)
        for client, titles in by_client.items()
    ]
    return _result(
        QueryIntent.TASKS_COMPLETED,
        "📋 Summary of completed tasks:\n\n" + "\n\n".join(blocks),
        completed=len(completed),
        byClient=by_client,
    )


def report_needs_attention(ctx: QueryContext) -> QueryResult:
    """High and critical severity clients, most urgent first."""
    urgent = sorted(
        (c for c in ctx.classifications if c.severity.is_urgent),
        key=lambda c: (-c.severity.rank, c.bucket.priority, c.clientName),
    )
    if not urgent:
        return _result(
            QueryIntent.NEEDS_ATTENTION,
            "🎉 All clients are performing well. No critical issues detected.",
            clients=[],
        )

    blocks = [
        f"• {c.clientName} - {c.bucket.icon} {c.bucket.label} ({c.severity.value})\n  {c.reason}"
        for c in urgent
    ]
    return _result(
        QueryIntent.NEEDS_ATTENTION,
        f"📋 {len(urgent)} clients need attention:\n\n" + "\n\n".join(blocks),
        clients=[c.clientName for c in urgent],
    )


def report_low_reply_rate(ctx: QueryContext) -> QueryResult:
    """Clients below the critical reply rate."""
    threshold = ctx.benchmarks.critical_reply_rate
    low = sorted(
        (c for c in ctx.classifications if c.metrics.replyRate < threshold),
        key=lambda c: (c.metrics.replyRate, c.clientName),
    )
    if not low:
        return _result(
            QueryIntent.LOW_REPLY_RATE,
            f"✅ All clients are above the {threshold:g}% reply rate threshold.",
            clients=[],
        )

    blocks = [
        f"• {c.clientName} - {format_percentage(c.metrics.replyRate)} reply rate\n"
        f"  Sent: {format_number(c.metrics.totalSent)} | Replies: {format_number(c.metrics.totalReplied)}"
        for c in low
    ]
    return _result(
        QueryIntent.LOW_REPLY_RATE,
        f"📉 {len(low)} clients with low reply rates:\n\n" + "\n\n".join(blocks),
        clients=[c.clientName for c in low],
    )


def report_portfolio_summary(ctx: QueryContext) -> QueryResult:
    """Portfolio totals and the distribution of clients across buckets."""
    p = ctx.portfolio or calculate_portfolio_metrics(ctx.classifications, ctx.accounts)

    distribution = [
        f"{bucket.icon} {bucket.label}: {count}"
        for bucket, count in sorted(p.byBucket.items(), key=lambda item: item[0].priority)
    ]
    lines = [
        "📊 Portfolio Health Summary:",
        "",
        _bullets([
            f"Total Clients: {p.totalClients}",
            f"Active Clients: {p.activeClients}",
            f"Portfolio Health Score: {p.avgHealthScore:g}",
            f"Average Reply Rate: {format_percentage(p.avgReplyRate)}",
            f"Average Conversion: {format_percentage(p.avgConversionRate)}",
            f"Total Opportunities: {format_number(p.totalOpportunities)}",
            f"Active Inboxes: {p.activeInboxes} of {p.totalInboxes}",
            f"Avg Inbox Health: {p.avgInboxHealth:g}%",
        ]),
    ]
    if distribution:
        lines += ["", "📌 Issue Distribution:", _bullets(distribution)]

    return _result(
        QueryIntent.PORTFOLIO_SUMMARY,
        "\n".join(lines),
        portfolio=p.model_dump(mode="json"),
    )


def report_best_conversion(ctx: QueryContext) -> QueryResult:
    """Top three clients by conversion rate among those with enough replies."""
    min_replies = ctx.benchmarks.min_replies_for_ranking
    ranked = sorted(
        (c for c in ctx.classifications if c.metrics.totalReplied > min_replies),
        key=lambda c: (-c.metrics.conversionRate, c.clientName),
    )[:3]
    if not ranked:
        return _result(
            QueryIntent.BEST_CONVERSION,
            f"No clients have more than {min_replies} replies yet, so conversion cannot be ranked.",
            clients=[],
        )

    blocks = [
        f"{i}. {c.clientName} - {format_percentage(c.metrics.conversionRate)}\n"
        f"   {c.metrics.opportunities} opportunities from {c.metrics.positiveReplies} positive replies"
        for i, c in enumerate(ranked, start=1)
    ]
    return _result(
        QueryIntent.BEST_CONVERSION,
        f"🏆 Top {len(ranked)} Clients by Conversion Rate:\n\n" + "\n\n".join(blocks),
        clients=[c.clientName for c in ranked],
    )


def report_tasks_due(ctx: QueryContext) -> QueryResult:
    """Pending task counts, with critical tasks listed."""
    pending = [t for t in _all_tasks(ctx) if not t.completed]
    critical = [t for t in pending if t.severity == Severity.CRITICAL]
    daily_pending = sum(1 for t in ctx.tasks.daily if not t.completed)
    weekly_pending = sum(1 for t in ctx.tasks.weekly if not t.completed)

    response = "📝 Task Summary:\n\n" + _bullets([
        f"Total Pending: {len(pending)}",
        f"Critical Tasks: {len(critical)}",
        f"Daily Tasks: {daily_pending}",
        f"Weekly Tasks: {weekly_pending}",
    ])
    if critical:
        response += "\n\n⚠️ Critical Tasks:\n" + _bullets(
            [f"{t.title} ({t.clientName or 'Portfolio'}, due {t.dueDate.isoformat()})" for t in critical]
        )

    return _result(
        QueryIntent.TASKS_DUE,
        response,
        pending=len(pending),
        critical=[t.id for t in critical],
        daily=daily_pending,
        weekly=weekly_pending,
    )


def report_low_leads(ctx: QueryContext) -> QueryResult:
    """Clients whose uncontacted lead inventory is below the warning level."""
    b = ctx.benchmarks
    low = sorted(
        (c for c in ctx.classifications if c.metrics.uncontactedLeads < b.warning_uncontacted),
        key=lambda c: (c.metrics.uncontactedLeads, c.clientName),
    )
    if not low:
        return _result(
            QueryIntent.LOW_LEADS,
            "✅ All clients have sufficient leads. No volume issues detected.",
            clients=[],
        )

    def priority(c: ClientClassification) -> str:
        return "critical" if c.metrics.uncontactedLeads < b.critical_uncontacted else "high"

    blocks = [
        f"• {c.clientName} - {format_number(c.metrics.uncontactedLeads)} leads remaining\n"
        f"  {priority(c)} priority"
        for c in low
    ]
    return _result(
        QueryIntent.LOW_LEADS,
        f"📉 {len(low)} clients running low on leads:\n\n" + "\n\n".join(blocks),
        clients=[c.clientName for c in low],
    )


def report_performance_compare(ctx: QueryContext) -> QueryResult:
    """Table of clients with meaningful volume, best reply rate first."""
    min_sends = ctx.benchmarks.comparison_min_sends
    rows = sorted(
        (c for c in ctx.classifications if c.metrics.totalSent > min_sends),
        key=lambda c: (-c.metrics.replyRate, c.clientName),
    )
    if not rows:
        return _result(
            QueryIntent.PERFORMANCE_COMPARE,
            f"No clients have sent more than {format_number(min_sends)} emails yet.",
            clients=[],
        )

    table = [
        "| Client | Reply Rate | Conversion | Opportunities |",
        "|--------|------------|------------|---------------|",
        *(
            f"| {c.clientName} | {format_percentage(c.metrics.replyRate)} | "
            f"{format_percentage(c.metrics.conversionRate)} | {c.metrics.opportunities} |"
            for c in rows
        ),
    ]
    return _result(
        QueryIntent.PERFORMANCE_COMPARE,
        "📊 Client Performance Comparison:\n\n" + "\n".join(table),
        clients=[c.clientName for c in rows],
    )


# =============================================================================
# Intent Table
# =============================================================================

# Order is precedence: first match wins
INTENT_RULES: List[IntentRule] = [
    IntentRule(QueryIntent.BENCHMARK_CHECK, _any("benchmark", "hitting"), report_benchmark_check),
    IntentRule(
        QueryIntent.POSITIVE_REPLY_RATIO,
        lambda q: "40%" in q or ("reply" in q and "meeting" in q),
        report_positive_reply_ratio,
    ),
    IntentRule(QueryIntent.INBOX_ISSUES, _any("disconnect", "sending error", "inbox"), report_inbox_issues),
    IntentRule(QueryIntent.REPLY_TRENDS, _any("trend", "downward"), report_reply_trends),
    IntentRule(
        QueryIntent.TASKS_COMPLETED,
        lambda q: "tasks done" in q or ("summary" in q and "task" in q),
        report_tasks_completed,
    ),
    IntentRule(QueryIntent.NEEDS_ATTENTION, _any("attention", "today", "need"), report_needs_attention),
    IntentRule(QueryIntent.LOW_REPLY_RATE, _any("low reply", "reply rate"), report_low_reply_rate),
    IntentRule(QueryIntent.PORTFOLIO_SUMMARY, _any("portfolio", "health", "summary"), report_portfolio_summary),
    IntentRule(QueryIntent.BEST_CONVERSION, _all("best", "conversion"), report_best_conversion),
    IntentRule(QueryIntent.TASKS_DUE, _any("task", "due"), report_tasks_due),
    IntentRule(QueryIntent.LOW_LEADS, _any("leads", "volume"), report_low_leads),
    IntentRule(QueryIntent.PERFORMANCE_COMPARE, _any("compare", "performance"), report_performance_compare),
]


def match_intent(query: str) -> Optional[IntentRule]:
    """Return the first rule whose predicate matches the lower-cased query."""
    lowered = query.lower()
    for rule in INTENT_RULES:
        if rule.matches(lowered):
            return rule
    return None


def route_query(
    query: str,
    context: QueryContext,
    responder: Optional[GenerativeResponder] = None,
) -> QueryResult:
    """
    Answer a terminal question.

    Args:
        query: Free-text question
        context: Classifications, accounts, tasks and benchmarks to answer from
        responder: Fallback for queries that match no intent

    Returns:
        QueryResult; error is set when the query is empty or the fallback
        responder is missing or fails
    """
    if not query or not query.strip():
        return QueryResult(error="Query is required")

    rule = match_intent(query)
    if rule is not None:
        logger.info(f"Terminal query matched intent {rule.intent.value}")
        return rule.report(context)

    if responder is None:
        return QueryResult(
            error="No report matches this question and no generative responder is configured",
            intent=QueryIntent.GENERATIVE,
        )

    try:
        answer = responder.respond(query, context)
    except ResponderError as e:
        return QueryResult(error=str(e), intent=QueryIntent.GENERATIVE)
    except Exception as e:
        logger.error(f"Generative responder raised unexpectedly: {e}", exc_info=True)
        return QueryResult(error=f"Generative responder failed: {e}", intent=QueryIntent.GENERATIVE)

    return QueryResult(response=answer, intent=QueryIntent.GENERATIVE)


__all__ = [
    "IntentRule",
    "INTENT_RULES",
    "match_intent",
    "route_query",
    "format_percentage",
    "format_number",
]
