"""
SQL layer for Command Center.

Submodules:
    schema: DDL for the task_completion and job_digest_state tables and
            ensure_schema() to apply it.
"""

from command_center.sql.schema import (
    TASK_COMPLETION_TABLE,
    JOB_DIGEST_STATE_TABLE,
    SCHEMA_STATEMENTS,
    ensure_schema,
)

__all__ = [
    'TASK_COMPLETION_TABLE',
    'JOB_DIGEST_STATE_TABLE',
    'SCHEMA_STATEMENTS',
    'ensure_schema',
]
