"""
Metrics Aggregation Service

Reduces raw per-campaign records from the outreach platform into one
ClientMetrics tuple per client, and builds the inbox and trend aggregates the
dashboard and terminal read alongside the classifications.

Responsibilities:
- Client attribution: campaign name parsing and explicit clientName overrides
- Inbox attribution: explicit clientName, else a custom tag whose label names
  the client
- Count summation with zero defaults for absent analytics
- Rate computation (percent, half-up rounded to 2 decimals, 0 on a zero
  denominator)
- Inbox health summary and week-over-week reply trends

Negative counts and inbox health scores outside 0..100 from a misbehaving
upstream are clamped and logged; they never raise. Clients are keyed by their
slug, so names differing only in case or spacing are one client.

All functions here are pure apart from logging.
"""

import logging
import math
import re
from collections import OrderedDict
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from command_center.models.enums import AccountStatus, TrendDirection
from command_center.models.schemas import (
    Benchmarks,
    CampaignRecord,
    ClientMetrics,
    CustomTag,
    InboxAccount,
    InboxHealthSummary,
    TagMapping,
    WeeklyTrendEntry,
    WeeklyTrendSummary,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Tried in order; the first capture group is the client name
CLIENT_NAME_PATTERNS = [
    re.compile(r"^(.+?)\s*[-–—|]\s*"),  # "Client - Campaign", "Client | Campaign"
    re.compile(r"^\[(.+?)\]\s*"),        # "[Client] Campaign"
    re.compile(r"^(.+?):\s*"),           # "Client: Campaign"
]

# Analytics field -> ClientMetrics count field
COUNT_FIELDS: Dict[str, str] = {
    "totalSent": "totalSent",
    "totalOpened": "totalOpened",
    "totalReplied": "totalReplied",
    "totalBounced": "totalBounced",
    "leadsCount": "totalLeads",
    "contactedCount": "contactedCount",
    "totalInterested": "positiveReplies",
    "totalOpportunities": "opportunities",
    "totalMeetingsBooked": "meetingsBooked",
}

ACTIVE_CAMPAIGN_STATUS = "active"

_TWO_PLACES = Decimal("0.01")


# =============================================================================
# Numeric Helpers
# =============================================================================

def round_half_up(value: float, places: Decimal = _TWO_PLACES) -> float:
    """Round to 2 decimals with half-up semantics (2.345 -> 2.35)."""
    return float(Decimal(str(value)).quantize(places, rounding=ROUND_HALF_UP))


def percent(numerator: int, denominator: int) -> float:
    """
    Compute numerator/denominator as a percentage, half-up rounded.

    Returns 0.0 when the denominator is 0.
    """
    if denominator <= 0:
        return 0.0
    ratio = Decimal(numerator) * 100 / Decimal(denominator)
    return float(ratio.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def _clamp_count(value: Optional[int], field: str, source: str) -> int:
    if value is None:
        return 0
    if value < 0:
        logger.warning(f"Negative {field}={value} on {source}; clamped to 0")
        return 0
    return int(value)


def inbox_health_score(account: InboxAccount) -> Optional[float]:
    """The account's health score clamped into 0..100; None when unreported or NaN."""
    score = account.healthScore
    if score is None or math.isnan(score):
        return None
    return min(100.0, max(0.0, float(score)))


def _warn_out_of_range_health(accounts: Iterable[InboxAccount]) -> None:
    for account in accounts:
        score = account.healthScore
        if score is not None and (math.isnan(score) or not 0.0 <= score <= 100.0):
            logger.warning(
                f"Inbox {account.email} reported healthScore={score}; "
                f"using {inbox_health_score(account)}"
            )


def slugify_client(name: str) -> str:
    """Client id used in routes and task ids: lowercase, whitespace runs to '-'."""
    return re.sub(r"\s+", "-", name.strip().lower())


# =============================================================================
# Client Attribution
# =============================================================================

def extract_client_name(campaign_name: str) -> str:
    """
    Derive a client name from a campaign name.

    Recognizes "Client - Campaign", "Client | Campaign", "[Client] Campaign"
    and "Client: Campaign". Otherwise falls back to the first two words, or
    the whole name when it is a single word.
    """
    for pattern in CLIENT_NAME_PATTERNS:
        match = pattern.match(campaign_name)
        if match:
            return match.group(1).strip()

    words = campaign_name.split()
    if len(words) >= 2:
        return " ".join(words[:2])
    return campaign_name.strip()


def group_campaigns_by_client(
    campaigns: Iterable[CampaignRecord],
) -> "OrderedDict[str, List[CampaignRecord]]":
    """
    Group campaigns by client, preserving first-seen order.

    An explicit clientName on the record wins over name extraction. Names
    with the same slug ("Acme Corp", "ACME  corp") are one client, shown
    under the first spelling seen.
    """
    grouped: "OrderedDict[str, List[CampaignRecord]]" = OrderedDict()
    display_by_slug: Dict[str, str] = {}
    for campaign in campaigns:
        client_name = (campaign.clientName or "").strip() or extract_client_name(campaign.name)
        if not client_name:
            logger.warning(f"Campaign {campaign.id} has no name or client; skipped")
            continue
        display = display_by_slug.setdefault(slugify_client(client_name), client_name)
        grouped.setdefault(display, []).append(campaign)
    return grouped


def attribute_accounts(
    accounts: Iterable[InboxAccount],
    client_names: Sequence[str],
    tags: Sequence[CustomTag] = (),
    mappings: Sequence[TagMapping] = (),
) -> Dict[str, List[InboxAccount]]:
    """
    Attribute inbox accounts to clients.

    An account belongs to a client when its clientName has the client's slug
    (case and spacing insensitive), or, failing that, when one of its tags
    resolves to a label with that slug. Tags are resolved from the account's own
    tag list (ids or labels) plus any TagMapping whose resourceId is the
    account id or email.

    Returns:
        Dict of client name -> accounts, with an entry for every client name.
        Accounts that match no client are left out.
    """
    by_slug = {slugify_client(name): name for name in client_names}
    label_by_id = {tag.id: tag.label for tag in tags}

    mapped_tags: Dict[str, List[str]] = {}
    for mapping in mappings:
        mapped_tags.setdefault(mapping.resourceId, []).append(mapping.tagId)

    attributed: Dict[str, List[InboxAccount]] = {name: [] for name in client_names}

    for account in accounts:
        owner: Optional[str] = None

        if account.clientName:
            owner = by_slug.get(slugify_client(account.clientName))

        if owner is None:
            tag_refs = list(account.tags)
            if account.id:
                tag_refs.extend(mapped_tags.get(account.id, []))
            tag_refs.extend(mapped_tags.get(account.email, []))

            for ref in tag_refs:
                label = label_by_id.get(ref, ref)
                owner = by_slug.get(slugify_client(label))
                if owner is not None:
                    break

        if owner is not None:
            attributed[owner].append(account)

    return attributed


# =============================================================================
# Client Metrics
# =============================================================================

def aggregate_client_metrics(
    campaigns: Sequence[CampaignRecord],
    accounts: Sequence[InboxAccount] = (),
    benchmarks: Optional[Benchmarks] = None,
    default_inbox_health: float = 100.0,
) -> ClientMetrics:
    """
    Reduce one client's campaigns and inboxes into ClientMetrics.

    Absent analytics contribute zero to every count. avgInboxHealth is the
    mean health score of the client's connected inboxes that report one; a
    client with no such inbox gets default_inbox_health.

    Args:
        campaigns: The client's campaigns (zero or more)
        accounts: Inbox accounts attributed to the client
        benchmarks: Benchmarks used to count low-health inboxes
        default_inbox_health: Health assumed when no inbox reports a score

    Returns:
        ClientMetrics with counts, rates and denormalized inbox counts
    """
    benchmarks = benchmarks or Benchmarks()
    totals: Dict[str, int] = {field: 0 for field in COUNT_FIELDS.values()}
    active_campaigns = 0

    for campaign in campaigns:
        if (campaign.status or "").lower() == ACTIVE_CAMPAIGN_STATUS:
            active_campaigns += 1

        analytics = campaign.analytics
        if analytics is None:
            continue

        for source_field, target_field in COUNT_FIELDS.items():
            totals[target_field] += _clamp_count(
                getattr(analytics, source_field),
                source_field,
                f"campaign {campaign.id}",
            )

    connected = [a for a in accounts if a.status == AccountStatus.CONNECTED]
    connected_scores = [inbox_health_score(a) for a in connected]
    scored = [s for s in connected_scores if s is not None]
    avg_inbox_health = (
        round_half_up(sum(scored) / len(scored)) if scored else float(default_inbox_health)
    )

    sent = totals["totalSent"]
    replied = totals["totalReplied"]
    positive = totals["positiveReplies"]

    return ClientMetrics(
        **totals,
        replyRate=percent(replied, sent),
        openRate=percent(totals["totalOpened"], sent),
        bounceRate=percent(totals["totalBounced"], sent),
        conversionRate=percent(totals["opportunities"], positive),
        positiveReplyRate=percent(positive, replied),
        posReplyToMeeting=percent(totals["meetingsBooked"], positive),
        uncontactedLeads=max(0, totals["totalLeads"] - totals["contactedCount"]),
        avgInboxHealth=avg_inbox_health,
        activeCampaigns=active_campaigns,
        activeInboxes=len(connected),
        disconnectedInboxes=sum(1 for a in accounts if a.status == AccountStatus.DISCONNECTED),
        lowHealthInboxes=sum(1 for s in scored if s < benchmarks.healthy_inbox),
    )


# =============================================================================
# Aggregates
# =============================================================================

def summarize_inbox_health(
    accounts: Sequence[InboxAccount],
    benchmarks: Optional[Benchmarks] = None,
) -> InboxHealthSummary:
    """
    Summarize the full inbox population.

    healthy/lowHealth only count connected inboxes that report a score;
    avgHealthScore averages every inbox that reports one.
    """
    benchmarks = benchmarks or Benchmarks()
    _warn_out_of_range_health(accounts)

    healthy = 0
    low_health = 0
    for account in accounts:
        score = inbox_health_score(account)
        if account.status != AccountStatus.CONNECTED or score is None:
            continue
        if score >= benchmarks.healthy_inbox:
            healthy += 1
        else:
            low_health += 1

    scores = [s for s in map(inbox_health_score, accounts) if s is not None]

    return InboxHealthSummary(
        total=len(accounts),
        healthy=healthy,
        lowHealth=low_health,
        disconnected=sum(1 for a in accounts if a.status == AccountStatus.DISCONNECTED),
        warming=sum(1 for a in accounts if a.status == AccountStatus.WARMUP),
        withErrors=sum(1 for a in accounts if a.has_error),
        avgHealthScore=round_half_up(sum(scores) / len(scores)) if scores else 0.0,
    )


def build_weekly_trends(
    week: str,
    current: Mapping[str, float],
    previous: Mapping[str, float],
) -> WeeklyTrendSummary:
    """
    Compare this week's reply rates with last week's, per client.

    change is the percent delta versus the previous rate (0 when there is no
    previous rate); its sign gives the direction. Clients missing from
    `previous` are reported as stable.
    """
    entries: List[WeeklyTrendEntry] = []

    for name, reply_rate in current.items():
        prev_rate = previous.get(name, 0.0)
        change = round_half_up((reply_rate - prev_rate) / prev_rate * 100) if prev_rate > 0 else 0.0

        if change > 0:
            trend = TrendDirection.IMPROVING
        elif change < 0:
            trend = TrendDirection.DECLINING
        else:
            trend = TrendDirection.STABLE

        entries.append(WeeklyTrendEntry(
            name=name,
            replyRate=reply_rate,
            previousReplyRate=prev_rate,
            change=change,
            trend=trend,
        ))

    return WeeklyTrendSummary(week=week, clients=entries)


__all__ = [
    "CLIENT_NAME_PATTERNS",
    "round_half_up",
    "percent",
    "inbox_health_score",
    "slugify_client",
    "extract_client_name",
    "group_campaigns_by_client",
    "attribute_accounts",
    "aggregate_client_metrics",
    "summarize_inbox_health",
    "build_weekly_trends",
]
