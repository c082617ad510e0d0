from datetime import date, datetime

from pydantic import BaseModel, Field

from journal_assistant.models.journal import JournalEntry, Mood


class EntryResponse(BaseModel):
    id: str = Field(..., description="Entry identifier")
    content: str = Field(..., description="Markdown entry body")
    summary: str | None = Field(default=None, description="One-line summary")
    entry_date: date = Field(..., description="Calendar day of the entry")
    mood: Mood | None = Field(default=None, description="Mood level")
    tags: list[str] = Field(default_factory=list, description="Category tags")
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entry(cls, entry: JournalEntry) -> "EntryResponse":
        return cls.model_validate(entry.model_dump(exclude={"owner_id"}))
