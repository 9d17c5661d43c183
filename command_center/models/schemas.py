"""
Pydantic models for the Command Center backend.

Field names are camelCase to match the JSON contract consumed by the dashboard
and the terminal page. Input records (campaigns, inbox accounts, tags) accept
nullable fields everywhere because the upstream outreach platform omits data
freely; absence always defaults to zero or neutral, never to an error.

Derived models (metrics, classifications, tasks, aggregates) are frozen: they
are recomputed on every run and never mutated in place.

Sections:
- Configuration models: Benchmarks, HealthScoreWeights
- Input records: CampaignAnalytics, CampaignRecord, InboxAccount, CustomTag,
  TagMapping, WeeklyTrendEntry, WeeklyTrendSummary
- Classification models: ClientMetrics, AutoTaskStub, ClientClassification
- Task models: AutoTask, TaskLists, TaskCompletionUpdate, TaskCompletionRecord
- Aggregates: InboxHealthSummary, PortfolioMetrics, AnalysisResult
- Requests/responses: AnalysisRequest, QueryContext, TerminalQueryRequest,
  QueryResult, DigestRequest
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from command_center.models.enums import (
    AccountStatus,
    Bucket,
    QueryIntent,
    Severity,
    TaskCategory,
    TaskType,
    TrendDirection,
)


# =============================================================================
# Configuration Models
# =============================================================================

class Benchmarks(BaseModel):
    """
    Named benchmark constants used by the classifier, health scorer, task
    generator and query router.

    Rates are percentages (2.0 means 2%). Built from Settings by
    get_benchmarks() and injected into every core function, so tests and
    deployments can tune them without touching rule logic.
    """
    model_config = ConfigDict(frozen=True)

    # Reply rate thresholds
    good_reply_rate: float = Field(default=2.0, description="Reply rate considered healthy")
    critical_reply_rate: float = Field(default=0.45, description="Reply rate below which copy is failing")
    copy_critical_reply_rate: float = Field(default=0.3, description="Reply rate that escalates a copy issue to critical")

    # Conversion thresholds
    target_conversion: float = Field(default=15.0, description="Target opportunities per positive reply")
    critical_conversion: float = Field(default=5.0, description="Conversion rate considered critical")

    # Positive reply to meeting ratio
    meeting_ratio_target: float = Field(default=40.0, description="Target meetings per positive reply")
    meeting_ratio_critical: float = Field(default=20.0, description="Meeting ratio that escalates a subsequence issue")

    # Lead inventory
    warning_uncontacted: int = Field(default=10000, description="Uncontacted leads below which TAM is flagged")
    critical_uncontacted: int = Field(default=3000, description="Uncontacted leads below which TAM is critical")

    # Deliverability
    healthy_inbox: float = Field(default=93.0, description="Inbox health score considered healthy")
    critical_inbox_health: float = Field(default=50.0, description="Inbox health that escalates to critical")
    max_bounce_rate: float = Field(default=5.0, description="Bounce rate above which deliverability is flagged")
    critical_bounce_rate: float = Field(default=10.0, description="Bounce rate that escalates to critical")

    # Volume gates
    min_sends_for_analysis: int = Field(default=1000, description="Sends required before classifying")
    min_sends_for_scale: int = Field(default=5000, description="Sends below which a well-replying client needs volume")
    min_replies_for_ranking: int = Field(default=10, description="Replies required to rank a client by conversion")
    comparison_min_sends: int = Field(default=10000, description="Sends required to appear in performance comparisons")


class HealthScoreWeights(BaseModel):
    """Weights for the five health sub-scores; must sum to 1.0."""
    model_config = ConfigDict(frozen=True)

    reply: float = Field(default=0.30, ge=0.0, le=1.0)
    conversion: float = Field(default=0.20, ge=0.0, le=1.0)
    bounce: float = Field(default=0.15, ge=0.0, le=1.0)
    inbox: float = Field(default=0.15, ge=0.0, le=1.0)
    meeting: float = Field(default=0.20, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def check_sum(self) -> "HealthScoreWeights":
        total = self.reply + self.conversion + self.bounce + self.inbox + self.meeting
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Health score weights must sum to 1.0, got {total:.4f}")
        return self


# =============================================================================
# Input Records (from the upstream outreach platform)
# =============================================================================

class CampaignAnalytics(BaseModel):
    """
    Per-campaign analytics counts as reported by the outreach platform.

    Every field is nullable; None is treated as zero by the aggregator.
    """
    leadsCount: Optional[int] = Field(default=None, description="Total leads loaded into the campaign")
    contactedCount: Optional[int] = Field(default=None, description="Leads that received at least one email")
    totalSent: Optional[int] = Field(default=None, description="Emails sent")
    totalOpened: Optional[int] = Field(default=None, description="Unique opens")
    totalReplied: Optional[int] = Field(default=None, description="Unique replies")
    totalBounced: Optional[int] = Field(default=None, description="Bounced emails")
    totalInterested: Optional[int] = Field(default=None, description="Positive (interested) replies")
    totalOpportunities: Optional[int] = Field(default=None, description="Opportunities created")
    totalMeetingsBooked: Optional[int] = Field(default=None, description="Meetings booked")
    completedCount: Optional[int] = Field(default=None, description="Leads that finished the sequence")
    totalOpportunityValue: Optional[float] = Field(default=None, description="Pipeline value of opportunities")


class CampaignRecord(BaseModel):
    """A single outreach campaign with its optional analytics sub-record."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "cmp_123",
                "name": "Acme Corp - Q3 Outbound",
                "status": "active",
                "analytics": {"totalSent": 12000, "totalReplied": 240},
            }
        }
    )

    id: str = Field(..., description="Campaign identifier")
    name: str = Field(default="", description="Campaign display name")
    clientName: Optional[str] = Field(default=None, description="Explicit client attribution")
    status: Optional[str] = Field(default=None, description="active, paused, completed, draft")
    analytics: Optional[CampaignAnalytics] = None


class InboxAccount(BaseModel):
    """A sending inbox with health and connectivity state."""
    email: str
    id: Optional[str] = None
    clientName: Optional[str] = None
    status: AccountStatus = AccountStatus.CONNECTED
    healthScore: Optional[float] = Field(default=None, description="0-100; out-of-range values are clamped during aggregation")
    tags: List[str] = Field(default_factory=list, description="Tag ids or labels")
    sendingError: Optional[bool] = None
    errorMessage: Optional[str] = None

    @field_validator("tags", mode="before")
    @classmethod
    def none_tags_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("status", mode="before")
    @classmethod
    def none_status_to_connected(cls, value: Any) -> Any:
        return AccountStatus.CONNECTED if value is None else value

    @property
    def has_error(self) -> bool:
        return bool(self.sendingError) or self.status == AccountStatus.ERROR


class CustomTag(BaseModel):
    id: str
    label: str


class TagMapping(BaseModel):
    tagId: str
    resourceId: str = Field(..., description="Account id or email the tag is attached to")


class WeeklyTrendEntry(BaseModel):
    """Week-over-week reply rate movement for one client."""
    model_config = ConfigDict(frozen=True)

    name: str
    replyRate: float = 0.0
    previousReplyRate: float = 0.0
    change: float = Field(default=0.0, description="Percent change versus the previous week")
    trend: TrendDirection = TrendDirection.STABLE


class WeeklyTrendSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    week: str = Field(..., description="Label of the reported week, e.g. 2026-W42")
    clients: List[WeeklyTrendEntry] = Field(default_factory=list)


# =============================================================================
# Classification Models
# =============================================================================

class ClientMetrics(BaseModel):
    """
    Normalized metrics for one client, summed across its campaigns.

    Rates are percentages rounded half-up to 2 decimals; every rate is 0 when
    its denominator is 0.
    """
    model_config = ConfigDict(frozen=True)

    # Counts
    totalSent: int = 0
    totalOpened: int = 0
    totalReplied: int = 0
    totalBounced: int = 0
    totalLeads: int = 0
    contactedCount: int = 0
    positiveReplies: int = 0
    opportunities: int = 0
    meetingsBooked: int = 0

    # Rates (percent)
    replyRate: float = 0.0
    openRate: float = 0.0
    bounceRate: float = 0.0
    conversionRate: float = 0.0
    positiveReplyRate: float = 0.0
    posReplyToMeeting: float = 0.0

    uncontactedLeads: int = 0
    avgInboxHealth: float = 0.0

    # Denormalized counts for display
    activeCampaigns: int = 0
    activeInboxes: int = 0
    disconnectedInboxes: int = 0
    lowHealthInboxes: int = 0


class AutoTaskStub(BaseModel):
    """Headline task attached to a classification for the client card."""
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    category: TaskCategory


class ClientClassification(BaseModel):
    """
    One classification per client per run.

    `reasons` holds the ordered justifications for the chosen branch;
    `reason` is the same list joined with ". ".
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "clientId": "acme-corp",
                "clientName": "Acme Corp",
                "bucket": "COPY_ISSUE",
                "severity": "critical",
                "reason": "Reply rate 0.25% is below critical threshold of 0.45%",
                "healthScore": 38,
            }
        },
    )

    clientId: str
    clientName: str
    bucket: Bucket
    severity: Severity
    reason: str
    reasons: List[str] = Field(default_factory=list)
    metrics: ClientMetrics
    healthScore: int = Field(..., ge=0, le=100)
    autoTask: AutoTaskStub
    analyzedAt: datetime


# =============================================================================
# Task Models
# =============================================================================

class AutoTask(BaseModel):
    """
    A dated action item generated from a classification.

    The id is derived from (clientId, type, template index) so regenerating
    from identical classifications yields identical ids.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    type: TaskType
    bucket: Optional[Bucket] = Field(default=None, description="None for portfolio-wide tasks")
    severity: Severity
    clientId: Optional[str] = None
    clientName: Optional[str] = None
    title: str
    description: str
    category: TaskCategory
    metrics: Dict[str, Union[int, float, str]] = Field(default_factory=dict)
    dueDate: date
    completed: bool = False
    completedAt: Optional[datetime] = None


class TaskLists(BaseModel):
    model_config = ConfigDict(frozen=True)

    daily: List[AutoTask] = Field(default_factory=list)
    weekly: List[AutoTask] = Field(default_factory=list)


class TaskCompletionUpdate(BaseModel):
    completed: bool = Field(..., description="New completion state for the task")


class TaskCompletionRecord(BaseModel):
    taskId: str
    completed: bool
    completedAt: Optional[datetime] = None


# =============================================================================
# Aggregates
# =============================================================================

class InboxHealthSummary(BaseModel):
    """Counts over the whole inbox population."""
    model_config = ConfigDict(frozen=True)

    total: int = 0
    healthy: int = 0
    lowHealth: int = 0
    disconnected: int = 0
    warming: int = 0
    withErrors: int = 0
    avgHealthScore: float = 0.0


class PortfolioMetrics(BaseModel):
    """Sums and averages across all classified clients."""
    model_config = ConfigDict(frozen=True)

    totalClients: int = 0
    activeClients: int = 0
    totalSent: int = 0
    totalReplied: int = 0
    totalOpportunities: int = 0
    totalMeetingsBooked: int = 0
    avgReplyRate: float = 0.0
    avgConversionRate: float = 0.0
    avgHealthScore: float = Field(default=0.0, description="Portfolio health score")
    activeInboxes: int = 0
    totalInboxes: int = 0
    avgInboxHealth: float = 0.0
    byBucket: Dict[Bucket, int] = Field(default_factory=dict)
    bySeverity: Dict[Severity, int] = Field(default_factory=dict)
    needsAttention: int = Field(default=0, description="Clients at high or critical severity")


# =============================================================================
# Requests and Responses
# =============================================================================

class AnalysisRequest(BaseModel):
    """Raw data fetched from the outreach platform, submitted for analysis."""
    campaigns: List[CampaignRecord] = Field(default_factory=list)
    accounts: List[InboxAccount] = Field(default_factory=list)
    customTags: List[CustomTag] = Field(default_factory=list)
    tagMappings: List[TagMapping] = Field(default_factory=list)
    weeklyTrends: Optional[WeeklyTrendSummary] = None
    asOfDate: Optional[date] = Field(default=None, description="Defaults to today")

    @field_validator("campaigns", "accounts", "customTags", "tagMappings", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    classifications: List[ClientClassification] = Field(default_factory=list)
    tasks: TaskLists = Field(default_factory=TaskLists)
    portfolioTasks: List[AutoTask] = Field(default_factory=list)
    portfolio: PortfolioMetrics = Field(default_factory=PortfolioMetrics)
    inboxHealth: InboxHealthSummary = Field(default_factory=InboxHealthSummary)
    weeklyTrends: Optional[WeeklyTrendSummary] = None
    analyzedAt: datetime


class QueryContext(BaseModel):
    """Everything the query router may read when answering one question."""
    model_config = ConfigDict(frozen=True)

    classifications: List[ClientClassification] = Field(default_factory=list)
    accounts: List[InboxAccount] = Field(default_factory=list)
    inboxHealth: InboxHealthSummary = Field(default_factory=InboxHealthSummary)
    weeklyTrends: Optional[WeeklyTrendSummary] = None
    tasks: TaskLists = Field(default_factory=TaskLists)
    portfolio: Optional[PortfolioMetrics] = None
    benchmarks: Benchmarks = Field(default_factory=Benchmarks)


class TerminalQueryRequest(BaseModel):
    query: str = Field(..., description="Free-text operational question")
    data: AnalysisRequest = Field(default_factory=AnalysisRequest)


class QueryResult(BaseModel):
    """Router output; the shape is stable whichever intent answered."""
    response: str = ""
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    intent: Optional[QueryIntent] = None


class DigestRequest(AnalysisRequest):
    force: bool = Field(default=False, description="Send even if already sent today")


__all__ = [
    "Benchmarks",
    "HealthScoreWeights",
    "CampaignAnalytics",
    "CampaignRecord",
    "InboxAccount",
    "CustomTag",
    "TagMapping",
    "WeeklyTrendEntry",
    "WeeklyTrendSummary",
    "ClientMetrics",
    "AutoTaskStub",
    "ClientClassification",
    "AutoTask",
    "TaskLists",
    "TaskCompletionUpdate",
    "TaskCompletionRecord",
    "InboxHealthSummary",
    "PortfolioMetrics",
    "AnalysisRequest",
    "AnalysisResult",
    "QueryContext",
    "TerminalQueryRequest",
    "QueryResult",
    "DigestRequest",
]
