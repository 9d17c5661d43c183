"""
Analysis Pipeline Tests

Runs the full pipeline over the shared sample data and checks ordering,
task generation, completion merging and the terminal context.
"""

from datetime import date, datetime, timezone

import pytest

from command_center.models import (
    AnalysisRequest,
    Bucket,
    CampaignAnalytics,
    CampaignRecord,
    Severity,
    TaskCompletionRecord,
)
from command_center.services.analysis import (
    all_task_ids,
    apply_completions,
    build_query_context,
    run_analysis,
)
from command_center.tests.conftest import ANALYZED_AT, AS_OF


@pytest.mark.integration
class TestRunAnalysis:

    def test_classifications(self, sample_request, benchmarks):
        result = run_analysis(sample_request, benchmarks, now=ANALYZED_AT)
        by_name = {c.clientName: c for c in result.classifications}

        assert (by_name["Acme Corp"].bucket, by_name["Acme Corp"].severity) == (
            Bucket.PERFORMING_WELL, Severity.LOW,
        )
        assert (by_name["Globex"].bucket, by_name["Globex"].severity) == (
            Bucket.COPY_ISSUE, Severity.CRITICAL,
        )
        assert by_name["Initech"].bucket == Bucket.TOO_EARLY
        assert by_name["Acme Corp"].metrics.avgInboxHealth == 97.0
        assert by_name["Initech"].metrics.avgInboxHealth == 100.0

    def test_lowest_health_first(self, sample_request, benchmarks):
        result = run_analysis(sample_request, benchmarks, now=ANALYZED_AT)
        scores = [c.healthScore for c in result.classifications]
        assert scores == sorted(scores)
        assert result.classifications[0].clientName == "Globex"

    def test_tasks_and_aggregates(self, sample_request, benchmarks):
        result = run_analysis(sample_request, benchmarks, now=ANALYZED_AT)

        assert [t.id for t in result.tasks.daily] == ["globex-daily-0", "globex-daily-1"]
        assert len(result.tasks.weekly) == 4
        assert {t.id for t in result.portfolioTasks} == {
            "inbox-health-2026-03-02",
            "benchmark-check-2026-03-02",
            "conversion-check-2026-03-02",
            "portfolio-summary-2026-03-02",
        }
        assert all(t.dueDate == AS_OF for t in result.tasks.daily)
        assert result.portfolio.totalClients == 3
        assert result.portfolio.needsAttention == 1
        assert result.inboxHealth.disconnected == 1
        assert result.analyzedAt == ANALYZED_AT

    def test_deterministic(self, sample_request, benchmarks):
        first = run_analysis(sample_request, benchmarks, now=ANALYZED_AT)
        second = run_analysis(sample_request, benchmarks, now=ANALYZED_AT)
        assert first == second

    def test_as_of_defaults_to_analysis_date(self, sample_campaigns, benchmarks):
        request = AnalysisRequest(campaigns=sample_campaigns)
        result = run_analysis(request, benchmarks, now=ANALYZED_AT)
        assert result.tasks.daily[0].dueDate == ANALYZED_AT.date()

    def test_empty_request(self, benchmarks):
        result = run_analysis(AnalysisRequest(campaigns=None, accounts=None), benchmarks, now=ANALYZED_AT)
        assert result.classifications == []
        assert result.tasks.daily == []
        assert [t.id for t in result.portfolioTasks] == [f"portfolio-summary-{ANALYZED_AT.date().isoformat()}"]

    def test_mixed_case_client_names_share_one_client(self, benchmarks):
        analytics = CampaignAnalytics(
            totalSent=20000, totalReplied=50, totalBounced=200,
            totalInterested=10, totalOpportunities=1, totalMeetingsBooked=2,
        )
        request = AnalysisRequest(campaigns=[
            CampaignRecord(id="c1", name="Globex - Enterprise", analytics=analytics),
            CampaignRecord(id="c2", name="GLOBEX - SMB", analytics=analytics),
        ])
        result = run_analysis(request, benchmarks, now=ANALYZED_AT)

        assert [c.clientName for c in result.classifications] == ["Globex"]
        assert result.classifications[0].metrics.totalSent == 40000
        ids = all_task_ids(result)
        assert result.tasks.daily
        assert len(ids) == len(set(ids))

    def test_out_of_range_inbox_health_does_not_block_analysis(self, sample_request, benchmarks):
        accounts = [
            a.model_copy(update={"healthScore": 101.0}) if a.email == "a1@acme.io" else a
            for a in sample_request.accounts
        ]
        request = sample_request.model_copy(update={"accounts": accounts})
        result = run_analysis(request, benchmarks, now=ANALYZED_AT)

        by_name = {c.clientName: c for c in result.classifications}
        assert by_name["Acme Corp"].bucket == Bucket.PERFORMING_WELL
        assert by_name["Acme Corp"].metrics.avgInboxHealth == 98.0
        assert by_name["Globex"].bucket == Bucket.COPY_ISSUE


class TestCompletions:

    def test_apply_completions(self, sample_request, benchmarks):
        result = run_analysis(sample_request, benchmarks, now=ANALYZED_AT)
        done_at = datetime(2026, 3, 2, 11, 0, tzinfo=timezone.utc)

        merged = apply_completions(result, {
            "globex-daily-0": TaskCompletionRecord(taskId="globex-daily-0", completed=True, completedAt=done_at),
            "portfolio-summary-2026-03-02": TaskCompletionRecord(
                taskId="portfolio-summary-2026-03-02", completed=False, completedAt=done_at,
            ),
        })

        daily = {t.id: t for t in merged.tasks.daily}
        assert daily["globex-daily-0"].completed is True
        assert daily["globex-daily-0"].completedAt == done_at
        assert daily["globex-daily-1"].completed is False

        summary = next(t for t in merged.portfolioTasks if t.id.startswith("portfolio-summary"))
        assert summary.completed is False
        assert summary.completedAt is None

        # Original result untouched
        assert all(not t.completed for t in result.tasks.daily)

    def test_no_completions_returns_same_result(self, sample_request, benchmarks):
        result = run_analysis(sample_request, benchmarks, now=ANALYZED_AT)
        assert apply_completions(result, {}) is result

    def test_all_task_ids(self, sample_request, benchmarks):
        result = run_analysis(sample_request, benchmarks, now=ANALYZED_AT)
        ids = all_task_ids(result)
        assert len(ids) == len(set(ids)) == 10


class TestQueryContext:

    def test_portfolio_tasks_join_weekly(self, sample_request, benchmarks):
        result = run_analysis(sample_request, benchmarks, now=ANALYZED_AT)
        ctx = build_query_context(result, sample_request, benchmarks)

        assert len(ctx.tasks.daily) == 2
        assert len(ctx.tasks.weekly) == 8
        assert ctx.accounts == sample_request.accounts
        assert ctx.benchmarks == benchmarks
