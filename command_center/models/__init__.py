"""
Package initialization for Command Center models.

Re-exports the enumerations from enums.py and the Pydantic schemas from
schemas.py so other modules can import from command_center.models directly.

Usage:
    from command_center.models import (
        Bucket,
        Severity,
        ClientMetrics,
        ClientClassification,
        # ... etc
    )
"""

# =============================================================================
# Enums
# =============================================================================

from command_center.models.enums import (
    Bucket,
    Severity,
    TaskType,
    TaskCategory,
    AccountStatus,
    TrendDirection,
    QueryIntent,
    BucketConfig,
    BUCKET_CONFIGS,
    BUCKET_CATEGORIES,
    CATEGORY_LABELS,
)


# =============================================================================
# Schemas
# =============================================================================

from command_center.models.schemas import (
    # Configuration
    Benchmarks,
    HealthScoreWeights,
    # Input records
    CampaignAnalytics,
    CampaignRecord,
    InboxAccount,
    CustomTag,
    TagMapping,
    WeeklyTrendEntry,
    WeeklyTrendSummary,
    # Classification
    ClientMetrics,
    AutoTaskStub,
    ClientClassification,
    # Tasks
    AutoTask,
    TaskLists,
    TaskCompletionUpdate,
    TaskCompletionRecord,
    # Aggregates
    InboxHealthSummary,
    PortfolioMetrics,
    # Requests / responses
    AnalysisRequest,
    AnalysisResult,
    QueryContext,
    TerminalQueryRequest,
    QueryResult,
    DigestRequest,
)


__all__ = [
    # Enums
    "Bucket",
    "Severity",
    "TaskType",
    "TaskCategory",
    "AccountStatus",
    "TrendDirection",
    "QueryIntent",
    "BucketConfig",
    "BUCKET_CONFIGS",
    "BUCKET_CATEGORIES",
    "CATEGORY_LABELS",
    # Schemas
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
