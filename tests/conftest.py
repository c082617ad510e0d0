"""Shared test utilities and fixtures for journal assistant tests."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from datetime import UTC, date, datetime, timedelta
import json
from pathlib import Path
from types import SimpleNamespace
from typing import Any

from langchain_core.messages import AIMessageChunk, BaseMessage
import punq
import pytest

from journal_assistant.core.settings import Settings
from journal_assistant.models.journal import JournalEntry
from journal_assistant.services.entry_cache_store import CachedEntry
from journal_assistant.services.entry_service import EntryService
from journal_assistant.services.memory_store import InMemoryChatSessionStore, InMemoryEntryStore

TODAY = date(2026, 3, 14)
MOCK_MESSAGES_FILE = Path(__file__).resolve().parents[1] / "mock-data" / "main-agent-messages.md"


class FakeDatabaseService:
    """Shared fake DB service used at the external DB boundary in unit tests."""

    def __init__(self) -> None:
        self.fetchrow_calls: list[tuple[str, tuple]] = []
        self.fetch_calls: list[tuple[str, tuple]] = []
        self.execute_calls: list[tuple[str, tuple]] = []
        self.fetchrow_result: dict[str, Any] | None = None
        self.fetch_result: list[dict[str, Any]] = []

    async def connect(self) -> None:
        return None

    async def disconnect(self) -> None:
        return None

    async def apply_schema(self) -> None:
        return None

    async def fetchrow(self, query: str, *args):
        self.fetchrow_calls.append((query, args))
        return self.fetchrow_result

    async def fetch(self, query: str, *args):
        self.fetch_calls.append((query, args))
        return self.fetch_result

    async def execute(self, query: str, *args):
        self.execute_calls.append((query, args))
        return "UPDATE 1"


class FakeEntryCache:
    """Dict-backed fake implementing the entry cache protocol."""

    def __init__(self) -> None:
        self.lists: dict[str, list[JournalEntry]] = {}
        self.entries: dict[tuple[str, str], CachedEntry] = {}
        self.fail_invalidation = False

    async def ping(self) -> bool:
        return True

    async def get_entries(self, owner_id: str) -> list[JournalEntry] | None:
        return self.lists.get(owner_id)

    async def set_entries(self, owner_id: str, entries: list[JournalEntry]) -> None:
        self.lists[owner_id] = list(entries)

    async def get_entry(self, owner_id: str, entry_id: str) -> CachedEntry | None:
        return self.entries.get((owner_id, entry_id))

    async def set_entry(self, owner_id: str, entry_id: str, entry: JournalEntry | None) -> None:
        self.entries[(owner_id, entry_id)] = CachedEntry(entry=entry)

    async def invalidate_owner(self, owner_id: str) -> None:
        if self.fail_invalidation:
            raise ConnectionError("redis unavailable")
        self.lists.pop(owner_id, None)
        for key in [key for key in self.entries if key[0] == owner_id]:
            del self.entries[key]

    async def close(self) -> None:
        return None


class ScriptedEngine:
    """Completion engine fake that replays one scripted chunk list per completion round."""

    def __init__(self, rounds: Sequence[Sequence[AIMessageChunk]], *, repeat_last: bool = False) -> None:
        self._rounds = [list(round_) for round_ in rounds]
        self._repeat_last = repeat_last
        self.calls: list[dict[str, Any]] = []
        self.closed_rounds = 0

    async def astream(
        self,
        *,
        system_prompt: str,
        messages: Sequence[BaseMessage],
        tools: list[dict[str, Any]],
    ) -> AsyncIterator[AIMessageChunk]:
        self.calls.append({"system_prompt": system_prompt, "messages": list(messages), "tools": tools})
        index = len(self.calls) - 1
        if index >= len(self._rounds):
            if not self._repeat_last:
                raise AssertionError("engine called more often than scripted")
            index = len(self._rounds) - 1
        try:
            for chunk in self._rounds[index]:
                yield chunk
        finally:
            self.closed_rounds += 1


class FailingEngine:
    def __init__(self, *, after_chunks: Sequence[AIMessageChunk] = ()) -> None:
        self._after_chunks = list(after_chunks)

    async def astream(self, **kwargs: Any) -> AsyncIterator[AIMessageChunk]:
        del kwargs
        for chunk in self._after_chunks:
            yield chunk
        raise RuntimeError("model provider unavailable")


def text_round(*texts: str) -> list[AIMessageChunk]:
    return [AIMessageChunk(content=text) for text in texts]


def tool_round(*calls: tuple[str, str, dict[str, Any] | str], text: str = "") -> list[AIMessageChunk]:
    """One completion that requests tools; ``calls`` are ``(call_id, tool_name, args)``."""

    chunks: list[AIMessageChunk] = [AIMessageChunk(content=text)] if text else []
    for index, (call_id, name, args) in enumerate(calls):
        chunks.append(
            AIMessageChunk(
                content="",
                tool_call_chunks=[
                    {
                        "id": call_id,
                        "name": name,
                        "args": args if isinstance(args, str) else json.dumps(args),
                        "index": index,
                    }
                ],
            )
        )
    return chunks


class TickingNow:
    """Deterministic ``now`` provider that advances one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self._current = start or datetime(2026, 3, 14, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self._current += timedelta(seconds=1)
        return self._current


@pytest.fixture
def fake_database_service() -> FakeDatabaseService:
    return FakeDatabaseService()


@pytest.fixture
def fake_entry_cache() -> FakeEntryCache:
    return FakeEntryCache()


@pytest.fixture
def fixed_clock():
    return lambda: TODAY


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        APP_ENV="test",
        MAIN_AGENT_USE_MOCK=True,
        MAIN_AGENT_MOCK_MESSAGES_FILE=str(MOCK_MESSAGES_FILE),
        ASSISTANT_STORE_BACKEND="memory",
        ASSISTANT_CACHE_REDIS_URL=None,
        AUTH_JWT_SECRET="test-secret-with-enough-length-for-hs256",
    )


@pytest.fixture
def entry_store(fixed_clock) -> InMemoryEntryStore:
    return InMemoryEntryStore(clock=fixed_clock, now=TickingNow())


@pytest.fixture
def session_store() -> InMemoryChatSessionStore:
    return InMemoryChatSessionStore(now=TickingNow())


@pytest.fixture
def entry_service(entry_store: InMemoryEntryStore) -> EntryService:
    return EntryService(store=entry_store)


def build_test_request(container: punq.Container, *, headers: dict[str, str] | None = None, cookies: dict[str, str] | None = None):
    """Build a request-shaped object using a real punq container in app state."""

    return SimpleNamespace(
        app=SimpleNamespace(state=SimpleNamespace(container=container)),
        headers=headers or {},
        cookies=cookies or {},
    )


def build_test_container(bindings: dict[object, object]) -> punq.Container:
    """Create a punq container and bind protocol/service keys to test doubles."""

    container = punq.Container()
    for key, value in bindings.items():
        container.register(key, instance=value)
    return container
