"""
Generative Responder Service

Fallback for terminal questions that match no known intent. The query router
hands the raw question and the same QueryContext it would have used to a
GenerativeResponder and passes the answer through unchanged.

The default implementation calls the Anthropic Messages API with a system
prompt that summarizes the current classifications, inboxes, tasks and
benchmarks. The call is a single blocking request bounded by
responder_timeout_seconds, with client-side retries disabled; retry policy
belongs to the caller.

Any failure is raised as ResponderError so the router can surface it in the
QueryResult error field.
"""

import logging
from functools import lru_cache
from typing import List, Optional, Protocol

import anthropic

from command_center.core.config import Settings
from command_center.models.enums import TaskType
from command_center.models.schemas import QueryContext
from command_center.services.metrics_aggregator import inbox_health_score

logger = logging.getLogger(__name__)


class ResponderError(Exception):
    """The generative responder could not produce an answer."""


class GenerativeResponder(Protocol):
    def respond(self, query: str, context: QueryContext) -> str:
        """Answer a free-form question; raise ResponderError on failure."""
        ...


def build_system_prompt(context: QueryContext) -> str:
    """Render the context bundle into the system prompt."""
    b = context.benchmarks

    client_lines = [
        f"- {c.clientName}: {c.bucket.value} ({c.severity.value}), "
        f"Reply Rate: {c.metrics.replyRate:.2f}%, Conv: {c.metrics.conversionRate:.2f}%, "
        f"Pos Reply->Meeting: {c.metrics.posReplyToMeeting:.2f}%, "
        f"Opps: {c.metrics.opportunities}, Sent: {c.metrics.totalSent:,}, "
        f"Health: {c.healthScore}"
        for c in context.classifications
    ]

    inbox_lines: List[str] = []
    for a in context.accounts:
        line = f"- {a.email}: {a.status.value}"
        score = inbox_health_score(a)
        if score is not None:
            line += f", Health: {score:g}%"
        if a.tags:
            line += f", Tags: {', '.join(a.tags)}"
        if a.has_error:
            line += f" ERROR: {a.errorMessage or 'sending error'}"
        inbox_lines.append(line)

    tasks = list(context.tasks.daily) + list(context.tasks.weekly)
    task_lines = [
        f"- [{'done' if t.completed else 'open'}] "
        f"{'daily' if t.type == TaskType.DAILY else 'weekly'} "
        f"{t.clientName or 'Portfolio'}: {t.title}"
        for t in tasks
    ]

    trend_lines: List[str] = []
    if context.weeklyTrends is not None:
        trend_lines = [
            f"- {e.name}: {e.replyRate:.2f}% ({e.change:+.1f}%, {e.trend.value})"
            for e in context.weeklyTrends.clients
        ]

    return "\n".join([
        "You are an AI assistant for a cold email agency's Command Center. You analyze "
        "campaign data, client performance, inbox health, and tasks to provide actionable insights.",
        "",
        "BENCHMARKS:",
        f"- Good Reply Rate: {b.good_reply_rate:g}%",
        f"- Critical Reply Rate: {b.critical_reply_rate:g}%",
        f"- Target Conversion: {b.target_conversion:g}%",
        f"- Critical Conversion: {b.critical_conversion:g}%",
        f"- Positive Reply to Meeting Ratio: {b.meeting_ratio_target:g}%",
        "",
        "RESPONSE FORMAT:",
        "- Be concise and actionable",
        "- Use bullet points for lists",
        "- Include specific numbers and percentages",
        "- If asked about issues, suggest concrete next steps",
        "- Format output for terminal display (use line breaks, not markdown)",
        "",
        "CURRENT DATA:",
        f"Clients ({len(client_lines)}):",
        *client_lines,
        "",
        f"Inboxes ({len(inbox_lines)}):",
        *inbox_lines,
        "",
        f"Tasks ({len(task_lines)}):",
        *task_lines,
        *(["", f"Weekly trends ({len(trend_lines)}):", *trend_lines] if trend_lines else []),
    ])


class AnthropicResponder:
    """GenerativeResponder backed by the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 1024,
        timeout: float = 30.0,
        client: Optional[anthropic.Anthropic] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.client = client or anthropic.Anthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
        )

    def respond(self, query: str, context: QueryContext) -> str:
        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=build_system_prompt(context),
                messages=[{"role": "user", "content": query}],
            )
        except anthropic.APIError as e:
            logger.warning(f"Generative responder call failed: {e}")
            raise ResponderError(f"Generative responder failed: {e}") from e

        text = "\n".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise ResponderError("Generative responder returned an empty answer")
        return text


@lru_cache(maxsize=8)
def _cached_responder(api_key: str, model: str, max_tokens: int, timeout: float) -> AnthropicResponder:
    return AnthropicResponder(api_key=api_key, model=model, max_tokens=max_tokens, timeout=timeout)


def build_responder(settings: Settings) -> Optional[GenerativeResponder]:
    """
    Return the configured responder, or None when no API key is set.

    One responder (and one HTTP client) is reused per distinct
    key/model/limits combination.
    """
    if not settings.anthropic_api_key:
        return None
    return _cached_responder(
        settings.anthropic_api_key,
        settings.responder_model,
        settings.responder_max_tokens,
        settings.responder_timeout_seconds,
    )


__all__ = [
    "ResponderError",
    "GenerativeResponder",
    "AnthropicResponder",
    "build_system_prompt",
    "build_responder",
]
