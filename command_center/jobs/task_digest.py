"""
Slack daily task digest job for Command Center.

Posts the day's prioritized task list to Slack: portfolio health, clients
needing attention, and the daily tasks due, formatted as a Block Kit message
and sent through slack_sdk's WebhookClient.

Idempotency:
- One digest per date; sends are recorded in the job_digest_state table
  under job_type 'task_digest'
- force=True bypasses the check for intentional re-sends

Environment Requirements:
- SLACK_WEBHOOK_URL: Slack incoming webhook URL
- DATABASE_URL: needed for idempotency tracking; without it the digest is
  still sent but duplicates are not prevented

Usage:
    result = run_analysis(request)
    outcome = await send_task_digest(result)
    outcome = await send_task_digest(result, force=True)
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from slack_sdk.webhook import WebhookClient

from command_center.core.config import get_settings
from command_center.core.database import get_db_pool
from command_center.models.enums import CATEGORY_LABELS
from command_center.models.schemas import AnalysisResult, AutoTask

logger = logging.getLogger(__name__)

JOB_TYPE = 'task_digest'

# Keep the message within Slack's block limits
MAX_TASKS_LISTED = 15
MAX_CLIENTS_LISTED = 10

SEVERITY_EMOJI = {
    'critical': '🚨',
    'high': '⚠️',
    'medium': '📌',
    'low': '✅',
}


# =============================================================================
# Idempotency
# =============================================================================

async def check_already_sent(digest_date: date) -> bool:
    """Return True if a task digest was already sent for digest_date."""
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            SELECT digest_date, sent_at
            FROM job_digest_state
            WHERE job_type = $1
              AND digest_date = $2
            """,
            JOB_TYPE,
            digest_date,
        )
        return row is not None


async def mark_digest_sent(digest_date: date) -> None:
    """Record a successful send; re-sends increment digest_count."""
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        await conn.execute(
            """
            INSERT INTO job_digest_state (job_type, digest_date, sent_at, digest_count)
            VALUES ($1, $2, $3, 1)
            ON CONFLICT (job_type, digest_date)
            DO UPDATE SET
                sent_at = EXCLUDED.sent_at,
                digest_count = job_digest_state.digest_count + 1
            """,
            JOB_TYPE,
            digest_date,
            datetime.now(timezone.utc),
        )


# =============================================================================
# Slack Message Formatting
# =============================================================================

def _task_line(task: AutoTask) -> str:
    emoji = SEVERITY_EMOJI.get(task.severity.value, '•')
    client = task.clientName or 'Portfolio'
    return f"{emoji} *{client}*: {task.title} _({CATEGORY_LABELS[task.category]})_"


def format_slack_message(digest_date: date, result: AnalysisResult) -> List[Dict[str, Any]]:
    """
    Build the Block Kit blocks for one digest.

    Sections: header, portfolio summary, clients needing attention (if any),
    open daily tasks (if any), context footer.
    """
    blocks: List[Dict[str, Any]] = []
    portfolio = result.portfolio

    blocks.append({
        "type": "header",
        "text": {
            "type": "plain_text",
            "text": f"🎯 Command Center Daily Tasks - {digest_date.strftime('%B %d, %Y')}",
            "emoji": True,
        },
    })
    blocks.append({"type": "divider"})

    summary_text = (
        f"*📊 Portfolio*\n\n"
        f"Clients: *{portfolio.totalClients}*  |  "
        f"Need attention: *{portfolio.needsAttention}*  |  "
        f"Health score: *{portfolio.avgHealthScore:g}*\n"
        f"Reply rate: *{portfolio.avgReplyRate:.2f}%*  |  "
        f"Conversion: *{portfolio.avgConversionRate:.2f}%*  |  "
        f"Inboxes: *{result.inboxHealth.disconnected}* disconnected, "
        f"*{result.inboxHealth.lowHealth}* low health"
    )
    blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": summary_text}})

    urgent = [c for c in result.classifications if c.severity.is_urgent]
    if urgent:
        urgent.sort(key=lambda c: (-c.severity.rank, c.bucket.priority, c.clientName))
        lines = [
            f"{c.bucket.icon} *{c.clientName}* - {c.bucket.label} ({c.severity.value})"
            for c in urgent[:MAX_CLIENTS_LISTED]
        ]
        if len(urgent) > MAX_CLIENTS_LISTED:
            lines.append(f"_...and {len(urgent) - MAX_CLIENTS_LISTED} more_")
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": "*🔥 Needs Attention*\n\n" + "\n".join(lines)},
        })

    open_daily = [t for t in result.tasks.daily if not t.completed]
    if open_daily:
        lines = [_task_line(t) for t in open_daily[:MAX_TASKS_LISTED]]
        if len(open_daily) > MAX_TASKS_LISTED:
            lines.append(f"_...and {len(open_daily) - MAX_TASKS_LISTED} more_")
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f"*📝 Today's Tasks ({len(open_daily)})*\n\n" + "\n".join(lines),
            },
        })
    else:
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": "*📝 Today's Tasks*\n\nNo open daily tasks. 🎉"},
        })

    blocks.append({"type": "divider"})
    blocks.append({
        "type": "context",
        "elements": [{
            "type": "mrkdwn",
            "text": (
                f"Generated {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')} | "
                f"{len(result.tasks.weekly)} weekly tasks open this week"
            ),
        }],
    })

    return blocks


# =============================================================================
# Entry Point
# =============================================================================

async def send_task_digest(
    result: AnalysisResult,
    digest_date: Optional[date] = None,
    force: bool = False,
) -> Dict[str, Any]:
    """
    Send the daily task digest to Slack.

    Steps:
    1. Validate that SLACK_WEBHOOK_URL is configured
    2. Check idempotency (unless force=True)
    3. Format the Block Kit message from the analysis result
    4. Send via the Slack webhook
    5. Record the send for idempotency tracking

    Args:
        result: Analysis result to summarize
        digest_date: Date of the digest (default: result.analyzedAt date)
        force: Send even if a digest was already sent for this date

    Returns:
        Dict with success, and either skipped/reason, the sent counts, or error.
        Never raises.
    """
    settings = get_settings()

    if not settings.slack_webhook_url:
        return {
            'success': False,
            'error': 'SLACK_WEBHOOK_URL not configured. Set this environment variable to enable task digests.',
        }

    target_date = digest_date or result.analyzedAt.date()

    if not force:
        try:
            if await check_already_sent(target_date):
                return {
                    'success': True,
                    'skipped': True,
                    'reason': f'Digest already sent for {target_date}',
                    'date': str(target_date),
                }
        except Exception as e:
            logger.warning(f"Could not check digest state for {target_date}, sending anyway: {e}")

    if not result.classifications:
        return {
            'success': True,
            'skipped': True,
            'reason': f'No clients to report for {target_date}',
            'date': str(target_date),
        }

    blocks = format_slack_message(target_date, result)

    try:
        client = WebhookClient(settings.slack_webhook_url)
        response = client.send(blocks=blocks)
    except Exception as e:
        logger.error(f"Failed to send task digest for {target_date}: {e}")
        return {
            'success': False,
            'error': f'Failed to send Slack message: {str(e)}',
            'date': str(target_date),
        }

    if response.status_code != 200:
        return {
            'success': False,
            'error': f'Slack API returned status {response.status_code}: {response.body}',
            'date': str(target_date),
        }

    try:
        await mark_digest_sent(target_date)
    except Exception as e:
        # The message went out; a retry may duplicate it
        logger.warning(f"Task digest sent but state not recorded for {target_date}: {e}")

    logger.info(f"Task digest sent for {target_date}")
    return {
        'success': True,
        'date': str(target_date),
        'daily_tasks': len(result.tasks.daily),
        'needs_attention': result.portfolio.needsAttention,
    }


__all__ = [
    'check_already_sent',
    'mark_digest_sent',
    'format_slack_message',
    'send_task_digest',
]
