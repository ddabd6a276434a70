from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from diarscribe.errors import SummaryError
from diarscribe.services.summary import (
    PROMPT_TEMPLATES,
    build_summary_prompt,
    get_template,
    summarize_transcript,
)

TRANSCRIPT = "[00:00:01] [Speaker 1]\nLet's ship on Friday.\n"


@pytest.fixture
def summary_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUMMARY_ENABLED", "true")
    monkeypatch.setenv("SUMMARY_API_KEY", "sk-test")
    monkeypatch.setenv("SUMMARY_API_URL", "https://llm.example/v1/chat/completions")
    monkeypatch.setenv("SUMMARY_MODEL", "test-model")
    monkeypatch.setenv("SUMMARY_MAX_TOKENS", "256")


def test_templates_are_listed_in_order() -> None:
    assert [t.name for t in PROMPT_TEMPLATES] == [
        "General Summary",
        "Action Items Only",
        "User Interview",
        "Code/Bug Report",
    ]
    assert get_template("Action Items Only") is PROMPT_TEMPLATES[1]
    assert get_template("nope") is None


def test_build_summary_prompt_appends_transcript() -> None:
    template = PROMPT_TEMPLATES[0]
    prompt = build_summary_prompt(template, TRANSCRIPT)
    assert prompt.startswith(template.prompt)
    assert prompt.endswith("Let's ship on Friday.")


def test_summarize_sends_chat_request(summary_env) -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "  Ship Friday.  "}}]})

    result = asyncio.run(
        summarize_transcript(TRANSCRIPT, "Action Items Only", transport=httpx.MockTransport(handler))
    )

    assert result == "Ship Friday."
    assert seen["url"] == "https://llm.example/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    body = seen["body"]
    assert body["model"] == "test-model"
    assert body["max_tokens"] == 256
    assert len(body["messages"]) == 1
    assert body["messages"][0]["role"] == "user"
    assert "Extract only the Action Items" in body["messages"][0]["content"]
    assert "Let's ship on Friday." in body["messages"][0]["content"]


def test_summarize_http_error_propagates(summary_env) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"error": "bad key"}))
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(summarize_transcript(TRANSCRIPT, transport=transport))


def test_summarize_empty_response_is_an_error(summary_env) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"choices": []}))
    with pytest.raises(SummaryError):
        asyncio.run(summarize_transcript(TRANSCRIPT, transport=transport))


def test_summarize_requires_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUMMARY_API_KEY", "")
    with pytest.raises(SummaryError):
        asyncio.run(summarize_transcript(TRANSCRIPT))


def test_summarize_disabled(summary_env, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUMMARY_ENABLED", "false")
    with pytest.raises(ValueError):
        asyncio.run(summarize_transcript(TRANSCRIPT))


def test_summarize_rejects_unknown_template_and_empty_text(summary_env) -> None:
    with pytest.raises(SummaryError):
        asyncio.run(summarize_transcript(TRANSCRIPT, "Poem"))
    with pytest.raises(SummaryError):
        asyncio.run(summarize_transcript("   "))
