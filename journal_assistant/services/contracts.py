from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol

import asyncpg

from journal_assistant.agents.base import AgentTurn
from journal_assistant.api.schemas.auth import UnifiedPrincipal
from journal_assistant.models.chat import ChatMessage, ChatSession, ChatSessionSummary
from journal_assistant.models.journal import EntryCreate, EntryFilters, EntryUpdate, JournalEntry
from journal_assistant.services.chat_stream import ChatStreamEvent
from journal_assistant.services.entry_cache_store import CachedEntry


class DatabaseServiceProtocol(Protocol):
    """Abstraction for async SQL execution against the journal Postgres store."""

    async def connect(self) -> None:
        """Initialize underlying DB resources before request handling begins."""

    async def disconnect(self) -> None:
        """Release open DB resources during application shutdown."""

    async def apply_schema(self) -> None:
        """Create journal tables and indexes when they do not exist yet."""

    async def fetchrow(self, query: str, *args: object) -> asyncpg.Record | None:
        """Execute a query and return a single row, or ``None`` when no row matches."""

    async def fetch(self, query: str, *args: object) -> Sequence[asyncpg.Record]:
        """Execute a query and return all matching rows."""

    async def execute(self, query: str, *args: object) -> str:
        """Execute a write statement and return the backend status string."""


class EntryStoreProtocol(Protocol):
    """Owner-scoped journal entry persistence.

    Every method filters by ``owner_id``; rows owned by someone else behave exactly like
    rows that do not exist.
    """

    async def create(self, owner_id: str, fields: EntryCreate) -> JournalEntry:
        """Insert a new entry, defaulting ``entry_date`` to today."""

    async def get(self, owner_id: str, entry_id: str) -> JournalEntry | None:
        """Load one entry, or ``None`` when missing or not owned."""

    async def list(self, owner_id: str, filters: EntryFilters | None = None) -> list[JournalEntry]:
        """List entries newest ``entry_date`` first, then newest ``created_at`` first."""

    async def update(self, owner_id: str, entry_id: str, changes: EntryUpdate) -> JournalEntry | None:
        """Merge supplied fields, refresh ``updated_at``, and return the row or ``None``."""

    async def delete(self, owner_id: str, entry_id: str) -> bool:
        """Delete one entry; ``False`` when missing or not owned."""


class ChatSessionStoreProtocol(Protocol):
    """Owner-scoped chat transcript persistence."""

    async def create(
        self,
        owner_id: str,
        messages: Sequence[ChatMessage | dict[str, Any]],
        title: str | None = None,
    ) -> ChatSession:
        """Validate and insert a transcript."""

    async def get(self, owner_id: str, session_id: str) -> ChatSession | None:
        """Load one session with its full transcript."""

    async def list(self, owner_id: str) -> list[ChatSessionSummary]:
        """List session summaries by ``updated_at`` descending, capped at 50."""

    async def update(
        self,
        owner_id: str,
        session_id: str,
        *,
        messages: Sequence[ChatMessage | dict[str, Any]] | None = None,
        title: str | None = None,
    ) -> ChatSession | None:
        """Replace the transcript and/or title wholesale."""

    async def delete(self, owner_id: str, session_id: str) -> bool:
        """Delete one session; ``False`` when missing or not owned."""


class EntryCacheProtocol(Protocol):
    """Read cache for an owner's entries, invalidated per owner."""

    async def ping(self) -> bool:
        """Probe cache availability during startup checks."""

    async def get_entries(self, owner_id: str) -> list[JournalEntry] | None:
        """Return the cached entry list, or ``None`` on miss."""

    async def set_entries(self, owner_id: str, entries: list[JournalEntry]) -> None:
        """Cache the owner's full entry list."""

    async def get_entry(self, owner_id: str, entry_id: str) -> CachedEntry | None:
        """Return the cached lookup result, or ``None`` on miss."""

    async def set_entry(self, owner_id: str, entry_id: str, entry: JournalEntry | None) -> None:
        """Cache a lookup result; ``None`` remembers that the entry was not found."""

    async def invalidate_owner(self, owner_id: str) -> None:
        """Drop every cached read of the owner."""

    async def close(self) -> None:
        """Release underlying network resources during shutdown."""


class EntryServiceProtocol(Protocol):
    """Owner-scoped entry operations shared by the entries API and the journal tools."""

    async def list_entries(self, owner_id: str) -> list[JournalEntry]:
        """List every entry of the owner (cached)."""

    async def query_entries(self, owner_id: str, filters: EntryFilters) -> list[JournalEntry]:
        """Run a filtered entry query (uncached)."""

    async def get_entry(self, owner_id: str, entry_id: str) -> JournalEntry | None:
        """Load one entry (cached, including negative lookups)."""

    async def create_entry(self, owner_id: str, fields: EntryCreate) -> JournalEntry:
        """Create an entry and invalidate the owner's cached reads."""

    async def update_entry(self, owner_id: str, entry_id: str, changes: EntryUpdate) -> JournalEntry | None:
        """Update an entry and invalidate the owner's cached reads."""

    async def delete_entry(self, owner_id: str, entry_id: str) -> bool:
        """Delete an entry and invalidate the owner's cached reads."""


class TitleServiceProtocol(Protocol):
    """Best-effort short title generation for new chat sessions."""

    async def generate_title(self, user_message: str, assistant_message: str) -> str | None:
        """Return a 3-5 word label, or ``None`` when no title could be produced."""


class ChatSessionServiceProtocol(Protocol):
    """Chat session CRUD used by the chat client."""

    async def list_sessions(self, owner_id: str) -> list[ChatSessionSummary]:
        """List session summaries newest-updated first."""

    async def get_session(self, owner_id: str, session_id: str) -> ChatSession | None:
        """Load one session with its transcript."""

    async def create_session(
        self,
        owner_id: str,
        messages: Sequence[ChatMessage | dict[str, Any]],
        title: str | None = None,
    ) -> ChatSession:
        """Create a session and schedule title generation when no title is given."""

    async def update_session(
        self,
        owner_id: str,
        session_id: str,
        *,
        messages: Sequence[ChatMessage | dict[str, Any]] | None = None,
        title: str | None = None,
    ) -> ChatSession | None:
        """Replace messages and/or title."""

    async def delete_session(self, owner_id: str, session_id: str) -> bool:
        """Delete a session."""

    async def wait_for_titles(self) -> None:
        """Wait for scheduled title generation to settle."""


class AuthServiceProtocol(Protocol):
    """Identity resolution contract for bearer tokens and cookie-carried tokens."""

    def principal_from_bearer(self, bearer_token: str | None) -> UnifiedPrincipal | None:
        """Validate and decode an access token into a principal."""

    def issue_access_token(self, principal: UnifiedPrincipal, ttl_seconds: int = 900) -> str:
        """Sign an access token for local development and tests."""


class ChatServiceProtocol(Protocol):
    """Chat-turn orchestration contract used by the SSE endpoint."""

    async def prepare_turn(
        self,
        *,
        principal: UnifiedPrincipal,
        message: str,
        history: Sequence[ChatMessage],
    ) -> AgentTurn:
        """Resolve live context and build the turn before any streaming starts."""

    def stream_turn(self, turn: AgentTurn) -> AsyncIterator[ChatStreamEvent]:
        """Run a prepared turn and yield its stream events."""
