"""
Command Center Services

Business logic for the command center. The core services are pure and
synchronous; only task_completion touches the database and only responder
calls out to an external API.

Services:
- metrics_aggregator: campaign grouping, inbox attribution, ClientMetrics
- health_scoring: weighted 0-100 client score and portfolio metrics
- classification: ordered rule chain assigning bucket and severity
- task_generator: daily/weekly client tasks and portfolio review tasks
- query_router: intent-matched terminal reports with generative fallback
- responder: Anthropic-backed generative responder
- analysis: end-to-end pipeline and completion merge
- task_completion: asyncpg-backed completion store
"""

# =============================================================================
# Metrics Aggregation
# =============================================================================

from command_center.services.metrics_aggregator import (
    extract_client_name,
    group_campaigns_by_client,
    attribute_accounts,
    aggregate_client_metrics,
    summarize_inbox_health,
    build_weekly_trends,
)

# =============================================================================
# Scoring and Classification
# =============================================================================

from command_center.services.health_scoring import (
    calculate_health_score,
    calculate_portfolio_metrics,
)
from command_center.services.classification import (
    determine_bucket,
    classify_client,
    classify_batch,
)

# =============================================================================
# Tasks
# =============================================================================

from command_center.services.task_generator import (
    BUCKET_TASK_TEMPLATES,
    generate_tasks,
    generate_portfolio_tasks,
)
from command_center.services.task_completion import (
    fetch_completions,
    merge_stored_completions,
    set_task_completion,
)

# =============================================================================
# Terminal
# =============================================================================

from command_center.services.query_router import (
    INTENT_RULES,
    match_intent,
    route_query,
)
from command_center.services.responder import (
    ResponderError,
    GenerativeResponder,
    AnthropicResponder,
    build_responder,
)

# =============================================================================
# Pipeline
# =============================================================================

from command_center.services.analysis import (
    run_analysis,
    apply_completions,
    build_query_context,
)


__all__ = [
    # Metrics aggregation
    "extract_client_name",
    "group_campaigns_by_client",
    "attribute_accounts",
    "aggregate_client_metrics",
    "summarize_inbox_health",
    "build_weekly_trends",
    # Scoring and classification
    "calculate_health_score",
    "calculate_portfolio_metrics",
    "determine_bucket",
    "classify_client",
    "classify_batch",
    # Tasks
    "BUCKET_TASK_TEMPLATES",
    "generate_tasks",
    "generate_portfolio_tasks",
    "fetch_completions",
    "merge_stored_completions",
    "set_task_completion",
    # Terminal
    "INTENT_RULES",
    "match_intent",
    "route_query",
    "ResponderError",
    "GenerativeResponder",
    "AnthropicResponder",
    "build_responder",
    # Pipeline
    "run_analysis",
    "apply_completions",
    "build_query_context",
]
