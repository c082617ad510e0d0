from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

SUMMARY_MAX_CHARS = 100


class Mood(StrEnum):
    """Ordered five-level mood scale, saddest first."""

    VERY_SAD = "very_sad"
    SAD = "sad"
    NEUTRAL = "neutral"
    HAPPY = "happy"
    VERY_HAPPY = "very_happy"


class JournalEntry(BaseModel):
    id: str = Field(..., description="Entry identifier generated by the store")
    owner_id: str = Field(..., description="Identifier of the owning user")
    content: str = Field(..., min_length=1, description="Markdown entry body")
    summary: str | None = Field(default=None, max_length=SUMMARY_MAX_CHARS, description="Short scannable label")
    entry_date: date = Field(..., description="Calendar day the entry belongs to")
    mood: Mood | None = Field(default=None, description="Detected mood level")
    tags: list[str] = Field(default_factory=list, description="Lowercase category labels")
    created_at: datetime
    updated_at: datetime


class EntryCreate(BaseModel):
    content: str = Field(..., min_length=1)
    summary: str | None = Field(default=None, max_length=SUMMARY_MAX_CHARS)
    entry_date: date | None = Field(default=None, description="Defaults to today when omitted")
    mood: Mood | None = None
    tags: list[str] = Field(default_factory=list)


class EntryUpdate(BaseModel):
    """Partial update; only fields explicitly set are written."""

    content: str | None = Field(default=None, min_length=1)
    summary: str | None = Field(default=None, max_length=SUMMARY_MAX_CHARS)
    entry_date: date | None = None
    mood: Mood | None = None
    tags: list[str] | None = None

    @field_validator("content", "entry_date", "tags")
    @classmethod
    def _reject_explicit_null(cls, value):
        if value is None:
            raise ValueError("field cannot be null")
        return value

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_unset=True)


class EntryFilters(BaseModel):
    """Conjunctive filters for entry listing."""

    since: date | None = Field(default=None, description="Inclusive entry_date lower bound")
    search: str | None = Field(default=None, description="Case-insensitive substring of content")
    tag: str | None = Field(default=None, description="Exact tag membership")
    limit: int | None = Field(default=None, ge=1)
