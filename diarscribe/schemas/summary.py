"""Schemas for transcript summarization (POST /api/summary, GET /api/templates)."""
from __future__ import annotations

from pydantic import BaseModel, Field

from diarscribe.services.summary import DEFAULT_TEMPLATE


class SummaryRequest(BaseModel):
    template: str = Field(DEFAULT_TEMPLATE, description="Prompt template name (see GET /api/templates)")


class SummaryResponse(BaseModel):
    template: str
    summary: str


class TemplateOut(BaseModel):
    name: str
    prompt: str
