"""Application services (e.g. LLM summarization of a finished transcript)."""
from diarscribe.services.summary import (
    PROMPT_TEMPLATES,
    PromptTemplate,
    build_summary_prompt,
    get_template,
    summarize_transcript,
)

__all__ = [
    "PROMPT_TEMPLATES",
    "PromptTemplate",
    "build_summary_prompt",
    "get_template",
    "summarize_transcript",
]
