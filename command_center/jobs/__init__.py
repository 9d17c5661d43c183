"""
Daily Automation Jobs for Command Center.

- task_digest: posts the day's prioritized task list to Slack

Idempotency:
- The task digest is never sent twice for the same date. Successful sends are
  recorded in the job_digest_state table; force=True allows an intentional
  re-send.

Environment Requirements:
- SLACK_WEBHOOK_URL: Slack incoming webhook URL
- DATABASE_URL: PostgreSQL connection for idempotency state
"""

from command_center.jobs.task_digest import (
    check_already_sent,
    mark_digest_sent,
    format_slack_message,
    send_task_digest,
)


__all__ = [
    'check_already_sent',
    'mark_digest_sent',
    'format_slack_message',
    'send_task_digest',
]
