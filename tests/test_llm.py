from unittest.mock import MagicMock

from core.config import LLMConfig
from llm.client import LLMClient
from llm.prompts import build_system_prompt


def test_build_system_prompt_base():
    prompt = build_system_prompt("AuthWise", "your security expert.", "Security", "vulnerability")
    assert "You are AuthWise, your security expert." in prompt
    assert '"vulnerability"' in prompt
    assert "Recent Requests" not in prompt


def test_build_system_prompt_with_history():
    prompt = build_system_prompt(
        "AuthWise", "t", "Security", "general", history=[("vulnerability", "scan my app")]
    )
    assert "## Recent Requests" in prompt
    assert "- (vulnerability) scan my app" in prompt


def test_client_api_backend(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    client = LLMClient(LLMConfig(enabled=True))
    assert client.model == "gpt-4o-mini"
    assert client.client.max_retries == 0


def test_client_local_backend():
    client = LLMClient(LLMConfig(enabled=True, backend="local"))
    assert client.model == "mistralai/Mistral-Nemo-Instruct-2407"


def test_chat_simple_returns_content(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    client = LLMClient(LLMConfig(enabled=True))
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = "Hello!"
    client.client = MagicMock()
    client.client.chat.completions.create.return_value = response

    assert client.chat_simple([{"role": "user", "content": "hi"}]) == "Hello!"
    kwargs = client.client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["max_tokens"] == 800


def test_health_reports_error(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    client = LLMClient(LLMConfig(enabled=True))
    client.client = MagicMock()
    client.client.models.list.side_effect = RuntimeError("unreachable")
    assert client.health() == {"status": "error", "error": "unreachable"}
