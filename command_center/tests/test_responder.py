"""
Generative Responder Tests

The Anthropic client is replaced with a Mock; no network calls are made.
"""

from unittest.mock import Mock

import anthropic
import httpx
import pytest

from command_center.core.config import Settings
from command_center.models import QueryContext
from command_center.services.responder import (
    AnthropicResponder,
    ResponderError,
    build_responder,
    build_system_prompt,
)


def _message(*texts: str) -> Mock:
    return Mock(content=[Mock(type="text", text=t) for t in texts])


@pytest.fixture
def client() -> Mock:
    client = Mock()
    client.messages.create.return_value = _message("Globex needs new copy.")
    return client


class TestAnthropicResponder:

    def test_respond_returns_text(self, client, make_classification):
        ctx = QueryContext(classifications=[make_classification("Globex", replyRate=0.25)])
        responder = AnthropicResponder(api_key="test", model="test-model", max_tokens=256, client=client)

        answer = responder.respond("what should I fix?", ctx)

        assert answer == "Globex needs new copy."
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["max_tokens"] == 256
        assert kwargs["messages"] == [{"role": "user", "content": "what should I fix?"}]
        assert "Globex" in kwargs["system"]

    def test_api_error_is_wrapped(self, client):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client.messages.create.side_effect = anthropic.APIConnectionError(request=request)
        responder = AnthropicResponder(api_key="test", model="test-model", client=client)

        with pytest.raises(ResponderError):
            responder.respond("hello", QueryContext())

    def test_empty_answer_is_an_error(self, client):
        client.messages.create.return_value = _message("   ")
        responder = AnthropicResponder(api_key="test", model="test-model", client=client)

        with pytest.raises(ResponderError):
            responder.respond("hello", QueryContext())


class TestBuildResponder:

    def test_none_without_api_key(self):
        assert build_responder(Settings(_env_file=None, anthropic_api_key=None)) is None

    def test_configured(self):
        settings = Settings(_env_file=None, anthropic_api_key="sk-test", responder_model="m")
        responder = build_responder(settings)
        assert isinstance(responder, AnthropicResponder)
        assert responder.model == "m"

    def test_reused_across_requests(self):
        settings = Settings(_env_file=None, anthropic_api_key="sk-test", responder_model="m")
        first = build_responder(settings)
        second = build_responder(Settings(_env_file=None, anthropic_api_key="sk-test", responder_model="m"))
        other = build_responder(Settings(_env_file=None, anthropic_api_key="sk-other", responder_model="m"))

        assert first is second
        assert other is not first


class TestSystemPrompt:

    def test_includes_benchmarks_and_data(self, sample_accounts, make_classification):
        ctx = QueryContext(
            classifications=[make_classification("Acme")],
            accounts=sample_accounts,
        )
        prompt = build_system_prompt(ctx)

        assert "Good Reply Rate: 2%" in prompt
        assert "- Acme: PERFORMING_WELL (low)" in prompt
        assert "x1@spare.io: error" in prompt
        assert "SMTP auth failed" in prompt
