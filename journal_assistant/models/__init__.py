"""Domain models shared by stores, services, tools, and API schemas."""

from journal_assistant.models.chat import (
    ChatMessage,
    ChatSession,
    ChatSessionSummary,
    InvalidTranscriptError,
    TextPart,
    ToolInvocationPart,
    validate_transcript,
)
from journal_assistant.models.journal import EntryCreate, EntryFilters, EntryUpdate, JournalEntry, Mood

__all__ = [
    "ChatMessage",
    "ChatSession",
    "ChatSessionSummary",
    "EntryCreate",
    "EntryFilters",
    "EntryUpdate",
    "InvalidTranscriptError",
    "JournalEntry",
    "Mood",
    "TextPart",
    "ToolInvocationPart",
    "validate_transcript",
]
