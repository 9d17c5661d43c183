"""
Classification Engine Service

Maps a client's aggregated metrics to exactly one (bucket, severity, reasons)
triple using a first-match-wins rule chain. The order of the rules is part of
the contract:

1. TOO_EARLY             - fewer than min_sends_for_analysis emails sent
2. DELIVERABILITY_ISSUE  - bounce rate above max_bounce_rate, or inbox health
                           below healthy_inbox
3. COPY_ISSUE            - reply rate below critical_reply_rate
4. SUBSEQUENCE_ISSUE     - good reply rate, positive-reply-to-meeting ratio
                           below meeting_ratio_target
5. VOLUME_ISSUE          - good reply rate on fewer than min_sends_for_scale sends
6. TAM_EXHAUSTED         - uncontacted leads below warning_uncontacted
7. PERFORMING_WELL (low) - good reply rate and conversion at target
8. PERFORMING_WELL (medium) - fallback, acceptable but improvable

Deliverability and data sufficiency gate every downstream signal, so they are
checked first. Copy problems come before funnel problems because a weak
top-of-funnel masks everything below it. The final branch is unconditional,
so every metrics tuple lands in a bucket. NOT_VIABLE is never produced here;
it exists for manual review flows and the task templates.

All thresholds come from an injected Benchmarks instance.
"""

import logging
from datetime import datetime, timezone
from typing import List, Mapping, Optional, Tuple

from command_center.models.enums import BUCKET_CATEGORIES, Bucket, Severity
from command_center.models.schemas import (
    AutoTaskStub,
    Benchmarks,
    ClientClassification,
    ClientMetrics,
    HealthScoreWeights,
)
from command_center.services.health_scoring import calculate_health_score
from command_center.services.metrics_aggregator import slugify_client

logger = logging.getLogger(__name__)


# Decision produced by the rule chain: (bucket, severity, ordered reasons)
Decision = Tuple[Bucket, Severity, List[str]]


def determine_deliverability_severity(
    metrics: ClientMetrics,
    benchmarks: Benchmarks,
) -> Severity:
    """Critical when bounce rate or inbox health crosses its critical limit, else high."""
    if (
        metrics.bounceRate > benchmarks.critical_bounce_rate
        or metrics.avgInboxHealth < benchmarks.critical_inbox_health
    ):
        return Severity.CRITICAL
    return Severity.HIGH


def build_deliverability_reasons(
    metrics: ClientMetrics,
    benchmarks: Benchmarks,
) -> List[str]:
    """List every deliverability trigger, bounce first."""
    reasons: List[str] = []
    if metrics.bounceRate > benchmarks.max_bounce_rate:
        reasons.append(
            f"High bounce rate: {metrics.bounceRate:.2f}% "
            f"(limit {benchmarks.max_bounce_rate:g}%)"
        )
    if metrics.avgInboxHealth < benchmarks.healthy_inbox:
        reasons.append(
            f"Low inbox health: {metrics.avgInboxHealth:g} "
            f"(healthy is {benchmarks.healthy_inbox:g}+)"
        )
    return reasons


def determine_bucket(
    metrics: ClientMetrics,
    benchmarks: Optional[Benchmarks] = None,
) -> Decision:
    """
    Run the ordered rule chain over one client's metrics.

    Args:
        metrics: The client's aggregated metrics
        benchmarks: Threshold constants (defaults to the reference values)

    Returns:
        (bucket, severity, reasons) for the first rule that matches
    """
    b = benchmarks or Benchmarks()
    m = metrics

    if m.totalSent < b.min_sends_for_analysis:
        return Bucket.TOO_EARLY, Severity.LOW, [
            f"Only {m.totalSent:,} emails sent; insufficient volume for analysis "
            f"(need {b.min_sends_for_analysis:,})"
        ]

    if m.bounceRate > b.max_bounce_rate or m.avgInboxHealth < b.healthy_inbox:
        return (
            Bucket.DELIVERABILITY_ISSUE,
            determine_deliverability_severity(m, b),
            build_deliverability_reasons(m, b),
        )

    if m.replyRate < b.critical_reply_rate:
        severity = Severity.CRITICAL if m.replyRate < b.copy_critical_reply_rate else Severity.HIGH
        return Bucket.COPY_ISSUE, severity, [
            f"Reply rate {m.replyRate:.2f}% is below critical threshold of "
            f"{b.critical_reply_rate:g}%"
        ]

    if m.replyRate >= b.good_reply_rate and m.posReplyToMeeting < b.meeting_ratio_target:
        severity = Severity.HIGH if m.posReplyToMeeting < b.meeting_ratio_critical else Severity.MEDIUM
        return Bucket.SUBSEQUENCE_ISSUE, severity, [
            f"Good reply rate ({m.replyRate:.2f}%) but only {m.posReplyToMeeting:.2f}% of "
            f"positive replies book meetings (target {b.meeting_ratio_target:g}%)",
            "Subsequence emails may need optimization",
        ]

    if m.totalSent < b.min_sends_for_scale and m.replyRate >= b.good_reply_rate:
        return Bucket.VOLUME_ISSUE, Severity.MEDIUM, [
            f"Good performance on only {m.totalSent:,} emails sent",
            "Consider scaling up sending",
        ]

    if m.uncontactedLeads < b.warning_uncontacted:
        severity = Severity.CRITICAL if m.uncontactedLeads < b.critical_uncontacted else Severity.HIGH
        return Bucket.TAM_EXHAUSTED, severity, [
            f"Only {m.uncontactedLeads:,} uncontacted leads remaining"
        ]

    if m.replyRate >= b.good_reply_rate and m.conversionRate >= b.target_conversion:
        return Bucket.PERFORMING_WELL, Severity.LOW, [
            f"Reply rate {m.replyRate:.2f}% meets target",
            f"Conversion rate {m.conversionRate:.2f}% is healthy",
        ]

    return Bucket.PERFORMING_WELL, Severity.MEDIUM, [
        "Performance is acceptable but improvable"
    ]


def build_auto_task(bucket: Bucket, reasons: List[str]) -> AutoTaskStub:
    """Headline task shown on the client card."""
    return AutoTaskStub(
        title=f"Review {bucket.label}",
        description=reasons[0] if reasons else "Check client metrics",
        category=BUCKET_CATEGORIES[bucket],
    )


def classify_client(
    client_name: str,
    metrics: ClientMetrics,
    benchmarks: Optional[Benchmarks] = None,
    weights: Optional[HealthScoreWeights] = None,
    analyzed_at: Optional[datetime] = None,
) -> ClientClassification:
    """
    Classify one client.

    Args:
        client_name: Display name; the client id is its slug
        metrics: The client's aggregated metrics
        benchmarks: Threshold constants
        weights: Health score weights
        analyzed_at: Timestamp stamped on the result (defaults to now, UTC)

    Returns:
        A fresh ClientClassification
    """
    benchmarks = benchmarks or Benchmarks()
    bucket, severity, reasons = determine_bucket(metrics, benchmarks)

    return ClientClassification(
        clientId=slugify_client(client_name),
        clientName=client_name,
        bucket=bucket,
        severity=severity,
        reason=". ".join(reasons),
        reasons=reasons,
        metrics=metrics,
        healthScore=calculate_health_score(metrics, benchmarks, weights),
        autoTask=build_auto_task(bucket, reasons),
        analyzedAt=analyzed_at or datetime.now(timezone.utc),
    )


def classify_batch(
    clients: Mapping[str, ClientMetrics],
    benchmarks: Optional[Benchmarks] = None,
    weights: Optional[HealthScoreWeights] = None,
    analyzed_at: Optional[datetime] = None,
) -> List[ClientClassification]:
    """
    Classify many clients independently.

    A client whose classification fails is logged and left out; the rest of
    the batch is unaffected. All results share one analyzedAt timestamp.

    Args:
        clients: Client name -> metrics, in the order results should follow

    Returns:
        Classifications in input order, minus any that failed
    """
    analyzed_at = analyzed_at or datetime.now(timezone.utc)
    results: List[ClientClassification] = []

    for client_name, metrics in clients.items():
        try:
            results.append(classify_client(
                client_name,
                metrics,
                benchmarks=benchmarks,
                weights=weights,
                analyzed_at=analyzed_at,
            ))
        except Exception as e:
            logger.error(f"Skipping client '{client_name}': classification failed: {e}", exc_info=True)

    return results


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "Decision",
    "determine_bucket",
    "determine_deliverability_severity",
    "build_deliverability_reasons",
    "build_auto_task",
    "classify_client",
    "classify_batch",
]
