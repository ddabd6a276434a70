"""
Transcript summarization via an OpenAI-compatible chat completions endpoint.

- Prompt templates pick what to extract (summary, action items, interview notes, bug report).
- The rendered plain-text transcript is appended to the template prompt as a single user message.
- Send text, get text: no streaming, no conversation state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from diarscribe.config import get_settings
from diarscribe.errors import SummaryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    prompt: str


DEFAULT_TEMPLATE = "General Summary"

PROMPT_TEMPLATES: tuple[PromptTemplate, ...] = (
    PromptTemplate(
        name="General Summary",
        prompt="""You are an expert meeting notetaker. Analyze the transcript and provide:
1. An Executive Summary (2-3 sentences).
2. Key Discussion Points (bullet points).
3. Action Items with assignees.""",
    ),
    PromptTemplate(
        name="Action Items Only",
        prompt="""Extract only the Action Items from this transcript.
Format as a checklist:
- [ ] Task (Assignee) - Context""",
    ),
    PromptTemplate(
        name="User Interview",
        prompt="""Analyze this user interview transcript.
Identify:
1. User Pain Points.
2. Feature Requests / Desires.
3. Positive Feedback.
4. Direct Quotes (sentiment analysis).""",
    ),
    PromptTemplate(
        name="Code/Bug Report",
        prompt="""This is a technical discussion. Extract:
1. The bug or issue described.
2. The steps to reproduce (if mentioned).
3. Proposed solutions or next steps.
4. Code snippets or specific files mentioned.""",
    ),
)


def get_template(name: str) -> Optional[PromptTemplate]:
    for template in PROMPT_TEMPLATES:
        if template.name == name:
            return template
    return None


def build_summary_prompt(template: PromptTemplate, transcript_text: str) -> str:
    return f"{template.prompt}\n\nTranscript:\n{transcript_text.strip()}"


def _extract_content(data: dict[str, Any]) -> str:
    """choices[0].message.content, or '' when the response has no such field."""
    choices = data.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message") or {}
    return (message.get("content") or "").strip()


async def summarize_transcript(
    transcript_text: str,
    template_name: str = DEFAULT_TEMPLATE,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """
    Ask the configured chat model to summarize transcript_text using the named template.
    Raises SummaryError if disabled, key missing, template unknown, transcript empty or
    the model returned nothing; httpx.HTTPStatusError on API errors.
    """
    settings = get_settings()
    if not settings.SUMMARY_ENABLED:
        raise SummaryError("Summarization is disabled (SUMMARY_ENABLED=false)")
    api_key = (settings.SUMMARY_API_KEY or "").strip()
    if not api_key:
        raise SummaryError("SUMMARY_API_KEY is required for summarization")

    template = get_template(template_name)
    if template is None:
        raise SummaryError(f"Unknown prompt template: {template_name}")
    if not transcript_text.strip():
        raise SummaryError("Transcript is empty")

    payload = {
        "model": settings.SUMMARY_MODEL,
        "messages": [{"role": "user", "content": build_summary_prompt(template, transcript_text)}],
        "max_tokens": settings.SUMMARY_MAX_TOKENS,
    }
    logger.info("Requesting summary (%s) from %s", template.name, settings.SUMMARY_API_URL)

    async with httpx.AsyncClient(timeout=settings.SUMMARY_TIMEOUT_SECONDS, transport=transport) as client:
        resp = await client.post(
            settings.SUMMARY_API_URL,
            json=payload,
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
        )
        resp.raise_for_status()
        data = resp.json()

    content = _extract_content(data if isinstance(data, dict) else {})
    if not content:
        raise SummaryError("Summary endpoint returned an empty response")
    return content
