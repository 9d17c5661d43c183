"""
Enumeration definitions for the Command Center backend.

All enums inherit from both `str` and `Enum` so they serialize as plain strings
in Pydantic models and JSON responses consumed by the dashboard.

Contents:
- Bucket: mutually exclusive issue category assigned to a client
- Severity: ordered urgency of a classification (low < medium < high < critical)
- TaskType / TaskCategory: cadence and grouping of generated tasks
- AccountStatus: connectivity state of a sending inbox
- TrendDirection: week-over-week reply rate movement
- QueryIntent: recognized categories of terminal questions

Static lookup tables (BUCKET_CONFIGS, BUCKET_CATEGORIES, CATEGORY_LABELS) live
next to the enums they describe; the classifier and the task generator both
read from them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class Bucket(str, Enum):
    """
    Issue bucket assigned to a client by the classification rule chain.

    Exactly one bucket is assigned per client per run. Display label, icon and
    sort priority are looked up in BUCKET_CONFIGS.
    """
    TOO_EARLY = "TOO_EARLY"
    DELIVERABILITY_ISSUE = "DELIVERABILITY_ISSUE"
    COPY_ISSUE = "COPY_ISSUE"
    SUBSEQUENCE_ISSUE = "SUBSEQUENCE_ISSUE"
    VOLUME_ISSUE = "VOLUME_ISSUE"
    TAM_EXHAUSTED = "TAM_EXHAUSTED"
    NOT_VIABLE = "NOT_VIABLE"
    PERFORMING_WELL = "PERFORMING_WELL"

    @property
    def config(self) -> "BucketConfig":
        return BUCKET_CONFIGS[self]

    @property
    def priority(self) -> int:
        """Sort rank; lower values surface first."""
        return BUCKET_CONFIGS[self].priority

    @property
    def label(self) -> str:
        return BUCKET_CONFIGS[self].label

    @property
    def icon(self) -> str:
        return BUCKET_CONFIGS[self].icon


class Severity(str, Enum):
    """
    Urgency of a classification, ordered low < medium < high < critical.

    Severity drives task cadence: only high and critical produce daily tasks.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def is_urgent(self) -> bool:
        """True for severities that warrant same-day action."""
        return self.rank >= _SEVERITY_RANK[Severity.HIGH]


_SEVERITY_RANK: Dict[Severity, int] = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class TaskType(str, Enum):
    """Cadence of a generated task."""
    DAILY = "daily"
    WEEKLY = "weekly"


class TaskCategory(str, Enum):
    """
    Functional grouping of a task, used for filtering on the tasks page.

    The first seven mirror the client buckets; benchmark, conversion and
    trends are produced by the portfolio-wide weekly reviews.
    """
    VOLUME = "volume"
    COPY = "copy"
    SUBSEQUENCE = "subsequence"
    DELIVERABILITY = "deliverability"
    RECYCLE = "recycle"
    REVIEW = "review"
    MONITOR = "monitor"
    BENCHMARK = "benchmark"
    CONVERSION = "conversion"
    TRENDS = "trends"


class AccountStatus(str, Enum):
    """Connectivity state of a sending inbox as reported by the outreach platform."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    WARMUP = "warmup"
    ERROR = "error"


class TrendDirection(str, Enum):
    """Week-over-week reply rate movement."""
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class QueryIntent(str, Enum):
    """
    Recognized terminal question categories.

    Matching order is defined by the router's intent list, not by the order of
    members here.
    """
    BENCHMARK_CHECK = "benchmark_check"
    POSITIVE_REPLY_RATIO = "positive_reply_ratio"
    INBOX_ISSUES = "inbox_issues"
    REPLY_TRENDS = "reply_trends"
    TASKS_COMPLETED = "tasks_completed"
    NEEDS_ATTENTION = "needs_attention"
    LOW_REPLY_RATE = "low_reply_rate"
    PORTFOLIO_SUMMARY = "portfolio_summary"
    BEST_CONVERSION = "best_conversion"
    TASKS_DUE = "tasks_due"
    LOW_LEADS = "low_leads"
    PERFORMANCE_COMPARE = "performance_compare"
    GENERATIVE = "generative"


# =============================================================================
# Bucket display configuration
# =============================================================================

@dataclass(frozen=True)
class BucketConfig:
    label: str
    description: str
    icon: str
    priority: int


BUCKET_CONFIGS: Dict[Bucket, BucketConfig] = {
    Bucket.DELIVERABILITY_ISSUE: BucketConfig(
        label="Deliverability Issue",
        description="Inbox health problems",
        icon="📧",
        priority=0,
    ),
    Bucket.VOLUME_ISSUE: BucketConfig(
        label="Volume Issue",
        description="Good replies, not enough sending volume",
        icon="📉",
        priority=1,
    ),
    Bucket.COPY_ISSUE: BucketConfig(
        label="Copy Issue",
        description="Low reply rate",
        icon="✍️",
        priority=2,
    ),
    Bucket.SUBSEQUENCE_ISSUE: BucketConfig(
        label="Subsequence Issue",
        description="High reply, low meeting conversion",
        icon="🔄",
        priority=3,
    ),
    Bucket.TAM_EXHAUSTED: BucketConfig(
        label="TAM Exhausted",
        description="Need to recycle or source leads",
        icon="♻️",
        priority=4,
    ),
    Bucket.TOO_EARLY: BucketConfig(
        label="Too Early",
        description="Not enough data",
        icon="⏳",
        priority=5,
    ),
    Bucket.NOT_VIABLE: BucketConfig(
        label="Not Viable",
        description="Consider pausing",
        icon="⚠️",
        priority=6,
    ),
    Bucket.PERFORMING_WELL: BucketConfig(
        label="Performing Well",
        description="No action needed",
        icon="✅",
        priority=7,
    ),
}


BUCKET_CATEGORIES: Dict[Bucket, TaskCategory] = {
    Bucket.VOLUME_ISSUE: TaskCategory.VOLUME,
    Bucket.COPY_ISSUE: TaskCategory.COPY,
    Bucket.SUBSEQUENCE_ISSUE: TaskCategory.SUBSEQUENCE,
    Bucket.DELIVERABILITY_ISSUE: TaskCategory.DELIVERABILITY,
    Bucket.TAM_EXHAUSTED: TaskCategory.RECYCLE,
    Bucket.NOT_VIABLE: TaskCategory.REVIEW,
    Bucket.PERFORMING_WELL: TaskCategory.MONITOR,
    Bucket.TOO_EARLY: TaskCategory.MONITOR,
}


CATEGORY_LABELS: Dict[TaskCategory, str] = {
    TaskCategory.VOLUME: "📉 Volume",
    TaskCategory.COPY: "✍️ Copy",
    TaskCategory.SUBSEQUENCE: "🔄 Subsequence",
    TaskCategory.DELIVERABILITY: "📧 Deliverability",
    TaskCategory.RECYCLE: "♻️ Recycle",
    TaskCategory.REVIEW: "🔍 Review",
    TaskCategory.MONITOR: "👁️ Monitor",
    TaskCategory.BENCHMARK: "📊 Benchmark",
    TaskCategory.CONVERSION: "🎯 Conversion",
    TaskCategory.TRENDS: "📈 Trends",
}
