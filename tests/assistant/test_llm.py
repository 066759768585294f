"""Tests for LLM providers."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from focusphere.assistant.action_parser import parse_response
from focusphere.assistant.actions import CreateTaskAction
from focusphere.assistant.llm import LLMError, StubLLMProvider, get_llm_provider
from focusphere.assistant.llm.openai_provider import OpenAILLMProvider
from focusphere.config import AssistantConfig


def _completion(text: str):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def _status_error(error_cls, status_code: int, headers=None):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(status_code, request=request, headers=headers or {})
    return error_cls("failure", response=response, body=None)


class TestStubProvider:
    """Test the offline stub provider."""

    def test_create_task_message_gets_actions(self) -> None:
        provider = StubLLMProvider()
        text = provider.generate("[TASKS]:\nNone\n\nUser Message: Create a task for tomorrow")

        parsed = parse_response(text)
        assert len(parsed.actions) == 1
        assert isinstance(parsed.actions[0], CreateTaskAction)
        assert parsed.actions[0].title == "Mock Task"
        assert parsed.message == "I'll create that task for you. Say 'yes' to confirm."

    def test_context_words_do_not_trigger_actions(self) -> None:
        provider = StubLLMProvider()
        text = provider.generate("ID:1|T:create task docs\n\nUser Message: how am I doing")
        assert parse_response(text).actions == []

    def test_records_prompts(self) -> None:
        provider = StubLLMProvider()
        provider.generate("User Message: hello")
        assert provider.prompts == ["User Message: hello"]


class TestOpenAIProvider:
    """Test failover behavior with a mocked client."""

    def test_returns_first_success(self) -> None:
        client = MagicMock()
        client.chat.completions.create.return_value = _completion("Hello!")
        provider = OpenAILLMProvider(client=client, model="gpt-4o-mini")

        assert provider.generate("User Message: hi", system_instruction="sys") == "Hello!"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
        assert kwargs["messages"][1] == {"role": "user", "content": "User Message: hi"}

    def test_fails_over_on_rate_limit(self) -> None:
        client = MagicMock()
        client.chat.completions.create.side_effect = [
            _status_error(openai.RateLimitError, 429, {"retry-after": "20"}),
            _completion("From fallback"),
        ]
        provider = OpenAILLMProvider(
            client=client, model="gpt-4o-mini", fallback_models=["gpt-4o"]
        )

        assert provider.generate("hi") == "From fallback"
        models = [c.kwargs["model"] for c in client.chat.completions.create.call_args_list]
        assert models == ["gpt-4o-mini", "gpt-4o"]

    def test_exhaustion_raises_llm_error(self) -> None:
        client = MagicMock()
        client.chat.completions.create.side_effect = [
            _status_error(openai.RateLimitError, 429, {"retry-after": "20"}),
            _status_error(openai.NotFoundError, 404),
        ]
        provider = OpenAILLMProvider(
            client=client, model="gpt-4o-mini", fallback_models=["gpt-4o"]
        )

        with pytest.raises(LLMError) as exc_info:
            provider.generate("hi")
        assert exc_info.value.retry_after_seconds == 20.0
        assert exc_info.value.model == "gpt-4o"

    def test_non_failover_error_raises_immediately(self) -> None:
        client = MagicMock()
        client.chat.completions.create.side_effect = _status_error(
            openai.AuthenticationError, 401
        )
        provider = OpenAILLMProvider(
            client=client, model="gpt-4o-mini", fallback_models=["gpt-4o"]
        )

        with pytest.raises(LLMError):
            provider.generate("hi")
        assert client.chat.completions.create.call_count == 1

    def test_missing_api_key(self, monkeypatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            OpenAILLMProvider()


class TestProviderFactory:
    """Test provider selection from configuration."""

    def test_stub_by_default(self) -> None:
        assert isinstance(get_llm_provider(AssistantConfig()), StubLLMProvider)

    def test_openai_without_key_falls_back_to_stub(self, monkeypatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        provider = get_llm_provider(AssistantConfig(llm_provider="openai"))
        assert isinstance(provider, StubLLMProvider)

    def test_openai_with_key(self, monkeypatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test-0000000000000000")
        provider = get_llm_provider(
            AssistantConfig(llm_provider="openai", llm_fallback_models=("gpt-4o",))
        )
        assert isinstance(provider, OpenAILLMProvider)
        assert provider.models == ["gpt-4o-mini", "gpt-4o"]
