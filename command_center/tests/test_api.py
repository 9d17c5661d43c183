"""
HTTP API Tests

Exercises the FastAPI routers through TestClient. The completion store
is patched where the service looks it up, the other database-backed
collaborators at their import location in each router, and the
generative responder is swapped with app.dependency_overrides. The client is
not used as a context manager, so the lifespan (database pool) never runs.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Generator
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from command_center.core.database import DatabaseNotConfiguredError
from command_center.core.dependencies import get_responder_dependency
from command_center.main import app
from command_center.models import TaskCompletionRecord


COMPLETION_STORE = 'command_center.services.task_completion.fetch_completions'


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_responder_dependency] = lambda: None
    with patch(COMPLETION_STORE, new=AsyncMock(return_value={})):
        yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def globex_done() -> Dict[str, TaskCompletionRecord]:
    return {
        "globex-daily-0": TaskCompletionRecord(
            taskId="globex-daily-0",
            completed=True,
            completedAt=datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc),
        ),
    }


@pytest.fixture
def payload(sample_request) -> Dict[str, Any]:
    return sample_request.model_dump(mode="json")


class TestServiceEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root(self, client):
        body = client.get("/").json()
        assert body["name"] == "Command Center API"
        assert body["docs"] == "/docs"


@pytest.mark.integration
class TestAnalysisEndpoint:

    def test_returns_classifications_and_tasks(self, client, payload):
        with patch(COMPLETION_STORE, new=AsyncMock(return_value={})):
            response = client.post("/analysis", json=payload)

        assert response.status_code == 200
        body = response.json()
        assert [c["clientName"] for c in body["classifications"]][0] == "Globex"
        assert body["classifications"][0]["bucket"] == "COPY_ISSUE"
        assert body["classifications"][0]["severity"] == "critical"
        assert [t["id"] for t in body["tasks"]["daily"]] == ["globex-daily-0", "globex-daily-1"]

    def test_merges_stored_completions(self, client, payload, globex_done):
        with patch(COMPLETION_STORE, new=AsyncMock(return_value=globex_done)):
            body = client.post("/analysis", json=payload).json()

        daily = {t["id"]: t for t in body["tasks"]["daily"]}
        assert daily["globex-daily-0"]["completed"] is True
        assert daily["globex-daily-1"]["completed"] is False

    def test_store_unavailable_still_returns_analysis(self, client, payload):
        unavailable = AsyncMock(side_effect=DatabaseNotConfiguredError("DATABASE_URL is not configured"))
        with patch(COMPLETION_STORE, new=unavailable):
            response = client.post("/analysis", json=payload)

        assert response.status_code == 200
        assert all(not t["completed"] for t in response.json()["tasks"]["daily"])

    def test_invalid_body(self, client):
        response = client.post("/analysis", json={"campaigns": [{"name": "missing id"}]})
        assert response.status_code == 422

    def test_out_of_range_inbox_health_is_accepted(self, client, payload):
        payload["accounts"][0]["healthScore"] = 101
        response = client.post("/analysis", json=payload)

        assert response.status_code == 200
        by_name = {c["clientName"]: c for c in response.json()["classifications"]}
        assert by_name["Acme Corp"]["bucket"] == "PERFORMING_WELL"
        assert by_name["Globex"]["bucket"] == "COPY_ISSUE"


class TestTerminalEndpoint:

    def test_empty_query_is_rejected(self, client, payload):
        response = client.post("/terminal/query", json={"query": "  ", "data": payload})
        assert response.status_code == 400

    def test_matched_intent(self, client, payload):
        response = client.post("/terminal/query", json={"query": "who needs attention?", "data": payload})

        assert response.status_code == 200
        body = response.json()
        assert body["intent"] == "needs_attention"
        assert body["data"]["clients"] == ["Globex"]
        assert body["error"] is None

    def test_unmatched_without_responder_reports_error(self, client, payload):
        response = client.post("/terminal/query", json={"query": "tell me a joke", "data": payload})

        assert response.status_code == 200
        body = response.json()
        assert body["intent"] == "generative"
        assert body["error"]

    def test_unmatched_uses_responder(self, client, payload):
        responder = Mock()
        responder.respond.return_value = "Start with Globex."
        app.dependency_overrides[get_responder_dependency] = lambda: responder

        body = client.post("/terminal/query", json={"query": "where do I start", "data": payload}).json()

        assert body["response"] == "Start with Globex."
        assert body["intent"] == "generative"

    def test_completed_tasks_reflect_stored_state(self, client, payload, globex_done):
        with patch(COMPLETION_STORE, new=AsyncMock(return_value=globex_done)):
            body = client.post("/terminal/query", json={"query": "tasks done", "data": payload}).json()

        assert body["intent"] == "tasks_completed"
        assert body["data"]["completed"] == 1
        assert "Globex" in body["response"]

    def test_store_unavailable_still_answers(self, client, payload):
        unavailable = AsyncMock(side_effect=OSError("connection refused"))
        with patch(COMPLETION_STORE, new=unavailable):
            response = client.post("/terminal/query", json={"query": "tasks done", "data": payload})

        assert response.status_code == 200
        assert response.json()["data"]["completed"] == 0


class TestTaskEndpoints:

    def test_complete_task(self, client):
        record = TaskCompletionRecord(
            taskId="globex-daily-0",
            completed=True,
            completedAt=datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc),
        )
        store = AsyncMock(return_value=record)
        with patch('command_center.api.tasks.set_task_completion', new=store):
            response = client.patch("/tasks/globex-daily-0", json={"completed": True})

        assert response.status_code == 200
        assert response.json()["completed"] is True
        store.assert_awaited_once_with("globex-daily-0", True)

    def test_store_not_configured(self, client):
        store = AsyncMock(side_effect=DatabaseNotConfiguredError("DATABASE_URL is not configured"))
        with patch('command_center.api.tasks.set_task_completion', new=store):
            response = client.patch("/tasks/globex-daily-0", json={"completed": True})

        assert response.status_code == 503

    def test_missing_completed_field(self, client):
        assert client.patch("/tasks/globex-daily-0", json={}).status_code == 422

    def test_digest(self, client, payload):
        job = AsyncMock(return_value={'success': True, 'date': '2026-03-02'})
        with patch('command_center.api.tasks.send_task_digest', new=job):
            response = client.post("/tasks/digest", json={**payload, "force": True})

        assert response.status_code == 200
        assert response.json()["success"] is True
        kwargs = job.call_args.kwargs
        assert kwargs["force"] is True
        assert kwargs["digest_date"].isoformat() == "2026-03-02"

    def test_digest_leaves_out_completed_tasks(self, client, payload, globex_done):
        job = AsyncMock(return_value={'success': True, 'date': '2026-03-02'})
        with patch(COMPLETION_STORE, new=AsyncMock(return_value=globex_done)):
            with patch('command_center.api.tasks.send_task_digest', new=job):
                client.post("/tasks/digest", json=payload)

        result = job.call_args.args[0]
        daily = {t.id: t.completed for t in result.tasks.daily}
        assert daily == {"globex-daily-0": True, "globex-daily-1": False}
