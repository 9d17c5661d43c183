"""
Health Scoring Service

Computes the 0-100 client health score and the portfolio-level aggregate.

Each of five metrics is normalized to a 0-100 sub-score against its benchmark:
- reply:      replyRate / good_reply_rate, capped at 100
- conversion: conversionRate / target_conversion, capped at 100
- bounce:     100 - bounceRate * 10, floored at 0 (inverted penalty)
- inbox:      avgInboxHealth / healthy_inbox, capped at 100
- meeting:    posReplyToMeeting / meeting_ratio_target, capped at 100

The sub-scores are combined with HealthScoreWeights (reference weighting
0.30 / 0.20 / 0.15 / 0.15 / 0.20), clamped to [0, 100] and rounded to the
nearest integer. The portfolio health score is the mean client score.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional, Sequence

from command_center.models.enums import AccountStatus, Bucket, Severity
from command_center.models.schemas import (
    Benchmarks,
    ClientClassification,
    ClientMetrics,
    HealthScoreWeights,
    InboxAccount,
    PortfolioMetrics,
)
from command_center.services.metrics_aggregator import inbox_health_score, percent, round_half_up


def _normalized(value: float, benchmark: float) -> float:
    """Scale value against benchmark into [0, 100]; 0 when the benchmark is not positive."""
    if benchmark <= 0:
        return 0.0
    return max(0.0, min(100.0, value / benchmark * 100))


def calculate_sub_scores(
    metrics: ClientMetrics,
    benchmarks: Optional[Benchmarks] = None,
) -> Dict[str, float]:
    """
    Compute the five normalized sub-scores for a client.

    Returns:
        Dict keyed by weight name (reply, conversion, bounce, inbox, meeting)
    """
    benchmarks = benchmarks or Benchmarks()
    return {
        "reply": _normalized(metrics.replyRate, benchmarks.good_reply_rate),
        "conversion": _normalized(metrics.conversionRate, benchmarks.target_conversion),
        "bounce": max(0.0, min(100.0, 100 - metrics.bounceRate * 10)),
        "inbox": _normalized(metrics.avgInboxHealth, benchmarks.healthy_inbox),
        "meeting": _normalized(metrics.posReplyToMeeting, benchmarks.meeting_ratio_target),
    }


def calculate_health_score(
    metrics: ClientMetrics,
    benchmarks: Optional[Benchmarks] = None,
    weights: Optional[HealthScoreWeights] = None,
) -> int:
    """
    Calculate the weighted 0-100 health score for one client.

    Args:
        metrics: The client's aggregated metrics
        benchmarks: Benchmark constants (defaults to the reference values)
        weights: Sub-score weights (defaults to the reference weighting)

    Returns:
        Integer score in [0, 100]
    """
    weights = weights or HealthScoreWeights()
    sub_scores = calculate_sub_scores(metrics, benchmarks)

    score = sum(sub_scores[name] * getattr(weights, name) for name in sub_scores)
    score = max(0.0, min(100.0, score))

    return int(Decimal(str(score)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_portfolio_metrics(
    classifications: Sequence[ClientClassification],
    accounts: Sequence[InboxAccount] = (),
) -> PortfolioMetrics:
    """
    Aggregate client classifications and inboxes into portfolio metrics.

    avgReplyRate and avgConversionRate are computed from the summed counts
    rather than averaged across clients, so large senders weigh more.
    avgHealthScore is the mean of the client health scores.
    """
    total_clients = len(classifications)

    total_sent = sum(c.metrics.totalSent for c in classifications)
    total_replied = sum(c.metrics.totalReplied for c in classifications)
    total_positive = sum(c.metrics.positiveReplies for c in classifications)
    total_opportunities = sum(c.metrics.opportunities for c in classifications)
    total_meetings = sum(c.metrics.meetingsBooked for c in classifications)

    by_bucket: Dict[Bucket, int] = {}
    by_severity: Dict[Severity, int] = {}
    for c in classifications:
        by_bucket[c.bucket] = by_bucket.get(c.bucket, 0) + 1
        by_severity[c.severity] = by_severity.get(c.severity, 0) + 1

    avg_health = (
        round_half_up(sum(c.healthScore for c in classifications) / total_clients)
        if total_clients else 0.0
    )

    scored = [s for s in map(inbox_health_score, accounts) if s is not None]

    return PortfolioMetrics(
        totalClients=total_clients,
        activeClients=sum(1 for c in classifications if c.metrics.totalSent > 0),
        totalSent=total_sent,
        totalReplied=total_replied,
        totalOpportunities=total_opportunities,
        totalMeetingsBooked=total_meetings,
        avgReplyRate=percent(total_replied, total_sent),
        avgConversionRate=percent(total_opportunities, total_positive),
        avgHealthScore=avg_health,
        activeInboxes=sum(1 for a in accounts if a.status == AccountStatus.CONNECTED),
        totalInboxes=len(accounts),
        avgInboxHealth=round_half_up(sum(scored) / len(scored)) if scored else 0.0,
        byBucket=by_bucket,
        bySeverity=by_severity,
        needsAttention=sum(1 for c in classifications if c.severity.is_urgent),
    )


__all__ = [
    "calculate_sub_scores",
    "calculate_health_score",
    "calculate_portfolio_metrics",
]
