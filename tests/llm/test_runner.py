"""Tests for the chat-completion runner."""

from __future__ import annotations

import io
import json
from urllib.error import HTTPError, URLError

import pytest

from erdcheck.llm.runner import GeneratorError, LLMRunner, strip_code_fences


class FakeResponse:
    def __init__(self, payload):
        self._payload = payload

    def read(self):
        if isinstance(self._payload, bytes):
            return self._payload
        return json.dumps(self._payload).encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def test_llm_runner_constructs_request() -> None:
    captured = {}

    def fake_runner(request):
        captured["prompt"] = request.prompt
        captured["model"] = request.model
        captured["temperature"] = request.temperature
        captured["base_url"] = request.base_url
        captured["api_key"] = request.api_key
        captured["request_timeout"] = request.request_timeout
        return "```mermaid\nerDiagram\n  USER { int id }\n```"

    runner = LLMRunner(
        "gpt-4o-mini",
        api_key="sk-test",
        base_url="https://gateway.example.com/v1/",
        runner=fake_runner,
    )
    result = runner.run("Draw the ERD")

    assert result == "erDiagram\n  USER { int id }"
    assert captured == {
        "prompt": "Draw the ERD",
        "model": "gpt-4o-mini",
        "temperature": 0.0,
        "base_url": "https://gateway.example.com/v1",
        "api_key": "sk-test",
        "request_timeout": None,
    }


def test_llm_runner_http_posts_payload(monkeypatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["method"] = request.get_method()
        captured["headers"] = {k.lower(): v for k, v in request.header_items()}
        captured["payload"] = json.loads(request.data.decode("utf-8"))
        captured["timeout"] = timeout
        return FakeResponse({"choices": [{"message": {"content": "  NO_CHANGE \n"}}]})

    monkeypatch.setattr("erdcheck.llm.runner.urlopen", fake_urlopen)

    runner = LLMRunner("gpt-4o", api_key="sk-live", request_timeout=30.0)
    result = runner.run("Compare the ERD")

    assert result == "NO_CHANGE"
    assert captured["url"] == "https://api.openai.com/v1/chat/completions"
    assert captured["method"] == "POST"
    assert captured["headers"]["content-type"] == "application/json"
    assert captured["headers"]["authorization"] == "Bearer sk-live"
    assert captured["payload"] == {
        "model": "gpt-4o",
        "temperature": 0.0,
        "messages": [{"role": "user", "content": "Compare the ERD"}],
    }
    assert captured["timeout"] == 30.0


def test_llm_runner_raises_with_status_and_body(monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise HTTPError(
            request.full_url,
            429,
            "Too Many Requests",
            {},
            io.BytesIO(b'{"error": "rate limited"}'),
        )

    monkeypatch.setattr("erdcheck.llm.runner.urlopen", fake_urlopen)

    with pytest.raises(GeneratorError) as excinfo:
        LLMRunner("gpt-4o", api_key="sk").run("prompt")

    assert excinfo.value.status == 429
    assert excinfo.value.body == '{"error": "rate limited"}'
    assert "429" in str(excinfo.value)
    assert "rate limited" in str(excinfo.value)


def test_llm_runner_wraps_transport_failure(monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise URLError("connection refused")

    monkeypatch.setattr("erdcheck.llm.runner.urlopen", fake_urlopen)

    with pytest.raises(GeneratorError) as excinfo:
        LLMRunner("gpt-4o", api_key="sk").run("prompt")

    assert excinfo.value.status is None
    assert "connection refused" in str(excinfo.value)


def test_llm_runner_rejects_invalid_json(monkeypatch) -> None:
    monkeypatch.setattr(
        "erdcheck.llm.runner.urlopen",
        lambda request, timeout=None: FakeResponse(b"<html>gateway</html>"),
    )

    with pytest.raises(GeneratorError, match="invalid JSON"):
        LLMRunner("gpt-4o", api_key="sk").run("prompt")


def test_llm_runner_rejects_empty_choices(monkeypatch) -> None:
    monkeypatch.setattr(
        "erdcheck.llm.runner.urlopen",
        lambda request, timeout=None: FakeResponse({"choices": []}),
    )

    with pytest.raises(GeneratorError, match="empty response"):
        LLMRunner("gpt-4o", api_key="sk").run("prompt")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("erDiagram\n  A { int id }", "erDiagram\n  A { int id }"),
        ("```mermaid\nerDiagram\n  A { int id }\n```", "erDiagram\n  A { int id }"),
        ("```MERMAID\nerDiagram\n```", "erDiagram"),
        ("```\nNO_CHANGE\n```", "NO_CHANGE"),
        ("  ```mermaid\nerDiagram\n", "erDiagram"),
        ("erDiagram\n  A { int id }\n```", "erDiagram\n  A { int id }"),
        ("```NO_CHANGE```", "NO_CHANGE"),
        ("```no_change```", "no_change"),
        ("```erDiagram\n  A { int id }\n```", "erDiagram\n  A { int id }"),
        ("```sql\nerDiagram\n```", "erDiagram"),
        ("", ""),
    ],
)
def test_strip_code_fences(raw: str, expected: str) -> None:
    assert strip_code_fences(raw) == expected


@pytest.mark.parametrize("reply", ["", "```mermaid\n```", "```\n\n```", "   "])
def test_llm_runner_rejects_reply_that_is_only_a_fence(reply: str) -> None:
    runner = LLMRunner("gpt-4o", api_key="sk", runner=lambda request: reply)

    with pytest.raises(GeneratorError, match="empty response"):
        runner.run("prompt")


def test_llm_runner_keeps_keyword_on_fence_line() -> None:
    runner = LLMRunner(
        "gpt-4o", api_key="sk", runner=lambda request: "```erDiagram\n  A { int id }\n```"
    )

    assert runner.run("prompt") == "erDiagram\n  A { int id }"
