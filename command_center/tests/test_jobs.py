"""
Slack Task Digest Tests

Covers idempotency (check/mark against job_digest_state), Block Kit
formatting and the send_task_digest workflow, including its error results.
The asyncpg pool, settings and WebhookClient are all mocked.
"""

from datetime import date
from unittest.mock import AsyncMock, Mock, patch

import pytest

from command_center.core.database import DatabaseNotConfiguredError
from command_center.jobs.task_digest import (
    check_already_sent,
    format_slack_message,
    mark_digest_sent,
    send_task_digest,
)
from command_center.models import AnalysisRequest
from command_center.services.analysis import run_analysis
from command_center.tests.conftest import ANALYZED_AT, AS_OF


pytestmark = pytest.mark.asyncio


@pytest.fixture
def result(sample_request, benchmarks):
    return run_analysis(sample_request, benchmarks, now=ANALYZED_AT)


# =============================================================================
# Idempotency
# =============================================================================

class TestDigestIdempotency:

    async def test_check_already_sent_true(self, mock_db_pool: AsyncMock) -> None:
        conn = mock_db_pool.acquire.return_value.__aenter__.return_value
        conn.fetchrow.return_value = {'digest_date': AS_OF, 'sent_at': ANALYZED_AT}

        with patch('command_center.jobs.task_digest.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            assert await check_already_sent(AS_OF) is True

        args = conn.fetchrow.call_args.args
        assert args[1:] == ('task_digest', AS_OF)

    async def test_check_already_sent_false(self, mock_db_pool: AsyncMock) -> None:
        with patch('command_center.jobs.task_digest.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            assert await check_already_sent(AS_OF) is False

    async def test_mark_digest_sent_upserts(self, mock_db_pool: AsyncMock) -> None:
        conn = mock_db_pool.acquire.return_value.__aenter__.return_value

        with patch('command_center.jobs.task_digest.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            await mark_digest_sent(AS_OF)

        args = conn.execute.call_args.args
        assert 'ON CONFLICT (job_type, digest_date)' in args[0]
        assert args[1:3] == ('task_digest', AS_OF)


# =============================================================================
# Formatting
# =============================================================================

class TestFormatSlackMessage:

    async def test_blocks(self, result) -> None:
        blocks = format_slack_message(AS_OF, result)

        assert blocks[0]['type'] == 'header'
        assert 'March 02, 2026' in blocks[0]['text']['text']
        assert blocks[-1]['type'] == 'context'

        text = "\n".join(b['text']['text'] for b in blocks if b['type'] == 'section')
        assert 'Globex' in text
        assert "Today's Tasks (2)" in text
        assert 'Review and update email copy' in text

    async def test_no_open_daily_tasks(self, sample_campaigns, benchmarks) -> None:
        healthy_only = AnalysisRequest(campaigns=sample_campaigns[:2], asOfDate=AS_OF)
        blocks = format_slack_message(AS_OF, run_analysis(healthy_only, benchmarks, now=ANALYZED_AT))

        text = "\n".join(b['text']['text'] for b in blocks if b['type'] == 'section')
        assert 'No open daily tasks' in text
        assert 'Needs Attention' not in text


# =============================================================================
# send_task_digest
# =============================================================================

class TestSendTaskDigest:

    async def test_skips_when_already_sent(
        self,
        result,
        mock_db_pool: AsyncMock,
        mock_settings: Mock,
        mock_slack_client: Mock,
    ) -> None:
        conn = mock_db_pool.acquire.return_value.__aenter__.return_value
        conn.fetchrow.return_value = {'digest_date': AS_OF, 'sent_at': ANALYZED_AT}

        with patch('command_center.jobs.task_digest.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            outcome = await send_task_digest(result, digest_date=AS_OF)

        assert outcome['success'] is True
        assert outcome['skipped'] is True
        assert 'already sent' in outcome['reason'].lower()
        mock_slack_client.send.assert_not_called()

    async def test_sends_and_marks_when_not_sent(
        self,
        result,
        mock_db_pool: AsyncMock,
        mock_settings: Mock,
        mock_slack_client: Mock,
    ) -> None:
        conn = mock_db_pool.acquire.return_value.__aenter__.return_value

        with patch('command_center.jobs.task_digest.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            outcome = await send_task_digest(result, digest_date=AS_OF)

        assert outcome == {
            'success': True,
            'date': '2026-03-02',
            'daily_tasks': 2,
            'needs_attention': 1,
        }
        mock_slack_client.send.assert_called_once()
        assert 'blocks' in mock_slack_client.send.call_args.kwargs
        conn.execute.assert_called_once()

    async def test_force_bypasses_idempotency(
        self,
        result,
        mock_db_pool: AsyncMock,
        mock_settings: Mock,
        mock_slack_client: Mock,
    ) -> None:
        conn = mock_db_pool.acquire.return_value.__aenter__.return_value
        conn.fetchrow.return_value = {'digest_date': AS_OF, 'sent_at': ANALYZED_AT}

        with patch('command_center.jobs.task_digest.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            outcome = await send_task_digest(result, digest_date=AS_OF, force=True)

        assert outcome['success'] is True
        assert 'skipped' not in outcome
        conn.fetchrow.assert_not_called()
        mock_slack_client.send.assert_called_once()

    async def test_defaults_to_analysis_date(
        self,
        result,
        mock_db_pool: AsyncMock,
        mock_settings: Mock,
        mock_slack_client: Mock,
    ) -> None:
        with patch('command_center.jobs.task_digest.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            outcome = await send_task_digest(result)
        assert outcome['date'] == ANALYZED_AT.date().isoformat()


class TestDigestEdgeCases:

    async def test_missing_webhook(self, result) -> None:
        settings = Mock()
        settings.slack_webhook_url = None

        with patch('command_center.jobs.task_digest.get_settings', return_value=settings):
            outcome = await send_task_digest(result)

        assert outcome['success'] is False
        assert 'SLACK_WEBHOOK_URL' in outcome['error']

    async def test_no_clients(self, benchmarks, mock_db_pool, mock_settings, mock_slack_client) -> None:
        empty = run_analysis(AnalysisRequest(), benchmarks, now=ANALYZED_AT)

        with patch('command_center.jobs.task_digest.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            outcome = await send_task_digest(empty, digest_date=AS_OF)

        assert outcome['skipped'] is True
        mock_slack_client.send.assert_not_called()

    async def test_slack_error_status(self, result, mock_db_pool, mock_settings, mock_slack_client) -> None:
        mock_slack_client.send.return_value = Mock(status_code=500, body='internal_error')
        conn = mock_db_pool.acquire.return_value.__aenter__.return_value

        with patch('command_center.jobs.task_digest.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            outcome = await send_task_digest(result, digest_date=AS_OF)

        assert outcome['success'] is False
        assert '500' in outcome['error']
        conn.execute.assert_not_called()

    async def test_slack_exception(self, result, mock_db_pool, mock_settings, mock_slack_client) -> None:
        mock_slack_client.send.side_effect = OSError("connection reset")

        with patch('command_center.jobs.task_digest.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
            outcome = await send_task_digest(result, digest_date=AS_OF)

        assert outcome['success'] is False
        assert 'connection reset' in outcome['error']

    async def test_sends_without_database(self, result, mock_settings, mock_slack_client) -> None:
        unavailable = AsyncMock(side_effect=DatabaseNotConfiguredError("DATABASE_URL is not configured"))

        with patch('command_center.jobs.task_digest.get_db_pool', new=unavailable):
            outcome = await send_task_digest(result, digest_date=AS_OF)

        assert outcome['success'] is True
        mock_slack_client.send.assert_called_once()
