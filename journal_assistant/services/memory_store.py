"""In-process stores used by the offline backend and by tests.

They honor the same owner scoping, ordering, and validation rules as the Postgres
stores so the rest of the application cannot tell them apart.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any
import uuid

from journal_assistant.core.dates import Clock
from journal_assistant.models.chat import ChatMessage, ChatSession, ChatSessionSummary, validate_transcript
from journal_assistant.models.journal import EntryCreate, EntryFilters, EntryUpdate, JournalEntry
from journal_assistant.services.chat_session_store import SESSION_LIST_LIMIT

Now = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _touch(now: datetime, previous: datetime) -> datetime:
    # updated_at never moves backward, even with a coarse clock.
    return now if now > previous else previous


class InMemoryEntryStore:
    def __init__(self, clock: Clock, now: Now = _utcnow) -> None:
        self._clock = clock
        self._now = now
        self._entries: dict[str, JournalEntry] = {}
        self._lock = asyncio.Lock()

    async def create(self, owner_id: str, fields: EntryCreate) -> JournalEntry:
        async with self._lock:
            timestamp = self._now()
            entry = JournalEntry(
                id=str(uuid.uuid4()),
                owner_id=owner_id,
                content=fields.content,
                summary=fields.summary,
                entry_date=fields.entry_date or self._clock(),
                mood=fields.mood,
                tags=list(fields.tags),
                created_at=timestamp,
                updated_at=timestamp,
            )
            self._entries[entry.id] = entry
            return entry.model_copy(deep=True)

    async def get(self, owner_id: str, entry_id: str) -> JournalEntry | None:
        entry = self._entries.get(entry_id)
        if entry is None or entry.owner_id != owner_id:
            return None
        return entry.model_copy(deep=True)

    async def list(self, owner_id: str, filters: EntryFilters | None = None) -> list[JournalEntry]:
        filters = filters or EntryFilters()
        needle = filters.search.lower() if filters.search else None

        matches = [
            entry
            for entry in self._entries.values()
            if entry.owner_id == owner_id
            and (filters.since is None or entry.entry_date >= filters.since)
            and (needle is None or needle in entry.content.lower())
            and (not filters.tag or filters.tag in entry.tags)
        ]
        matches.sort(key=lambda entry: (entry.entry_date, entry.created_at), reverse=True)
        if filters.limit is not None:
            matches = matches[: filters.limit]
        return [entry.model_copy(deep=True) for entry in matches]

    async def update(self, owner_id: str, entry_id: str, changes: EntryUpdate) -> JournalEntry | None:
        async with self._lock:
            current = self._entries.get(entry_id)
            if current is None or current.owner_id != owner_id:
                return None
            updated = current.model_copy(
                update={**changes.changes(), "updated_at": _touch(self._now(), current.updated_at)},
                deep=True,
            )
            self._entries[entry_id] = updated
            return updated.model_copy(deep=True)

    async def delete(self, owner_id: str, entry_id: str) -> bool:
        async with self._lock:
            current = self._entries.get(entry_id)
            if current is None or current.owner_id != owner_id:
                return False
            del self._entries[entry_id]
            return True


class InMemoryChatSessionStore:
    def __init__(self, now: Now = _utcnow) -> None:
        self._now = now
        self._sessions: dict[str, ChatSession] = {}
        self._lock = asyncio.Lock()

    async def create(
        self,
        owner_id: str,
        messages: Sequence[ChatMessage | dict[str, Any]],
        title: str | None = None,
    ) -> ChatSession:
        transcript = validate_transcript(messages)
        async with self._lock:
            timestamp = self._now()
            session = ChatSession(
                id=str(uuid.uuid4()),
                owner_id=owner_id,
                title=title,
                messages=transcript,
                created_at=timestamp,
                updated_at=timestamp,
            )
            self._sessions[session.id] = session
            return session.model_copy(deep=True)

    async def get(self, owner_id: str, session_id: str) -> ChatSession | None:
        session = self._sessions.get(session_id)
        if session is None or session.owner_id != owner_id:
            return None
        return session.model_copy(deep=True)

    async def list(self, owner_id: str) -> list[ChatSessionSummary]:
        owned = [session for session in self._sessions.values() if session.owner_id == owner_id]
        owned.sort(key=lambda session: session.updated_at, reverse=True)
        return [
            ChatSessionSummary(
                id=session.id,
                title=session.title,
                created_at=session.created_at,
                updated_at=session.updated_at,
            )
            for session in owned[:SESSION_LIST_LIMIT]
        ]

    async def update(
        self,
        owner_id: str,
        session_id: str,
        *,
        messages: Sequence[ChatMessage | dict[str, Any]] | None = None,
        title: str | None = None,
    ) -> ChatSession | None:
        transcript = validate_transcript(messages) if messages is not None else None
        async with self._lock:
            current = self._sessions.get(session_id)
            if current is None or current.owner_id != owner_id:
                return None
            update: dict[str, Any] = {"updated_at": _touch(self._now(), current.updated_at)}
            if transcript is not None:
                update["messages"] = transcript
            if title is not None:
                update["title"] = title
            updated = current.model_copy(update=update, deep=True)
            self._sessions[session_id] = updated
            return updated.model_copy(deep=True)

    async def delete(self, owner_id: str, session_id: str) -> bool:
        async with self._lock:
            current = self._sessions.get(session_id)
            if current is None or current.owner_id != owner_id:
                return False
            del self._sessions[session_id]
            return True
