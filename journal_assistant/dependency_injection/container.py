from __future__ import annotations

import punq
from fastapi import Request

from journal_assistant.agents.base import ChatAgent
from journal_assistant.agents.factory import build_chat_model, build_main_agent
from journal_assistant.core.dates import make_clock
from journal_assistant.core.settings import Settings
from journal_assistant.services.auth_service import AuthService
from journal_assistant.services.chat_service import ChatService
from journal_assistant.services.chat_session_service import ChatSessionService
from journal_assistant.services.chat_session_store import PostgresChatSessionStore
from journal_assistant.services.contracts import (
    AuthServiceProtocol,
    ChatServiceProtocol,
    ChatSessionServiceProtocol,
    ChatSessionStoreProtocol,
    DatabaseServiceProtocol,
    EntryCacheProtocol,
    EntryServiceProtocol,
    EntryStoreProtocol,
    TitleServiceProtocol,
)
from journal_assistant.services.database_service import DatabaseService
from journal_assistant.services.entry_cache_store import RedisEntryCacheStore
from journal_assistant.services.entry_service import EntryService
from journal_assistant.services.entry_store import PostgresEntryStore
from journal_assistant.services.memory_store import InMemoryChatSessionStore, InMemoryEntryStore
from journal_assistant.services.title_service import TitleService


def build_container(settings: Settings) -> punq.Container:
    container = punq.Container()
    container.register(Settings, instance=settings)
    clock = make_clock(settings.journal_timezone)

    if settings.assistant_store_backend == "postgres":
        container.register(
            DatabaseServiceProtocol,
            factory=lambda: DatabaseService(dsn=settings.assistant_db_dsn),
            scope=punq.Scope.singleton,
        )
        container.register(
            EntryStoreProtocol,
            factory=lambda: PostgresEntryStore(database=container.resolve(DatabaseServiceProtocol), clock=clock),
            scope=punq.Scope.singleton,
        )
        container.register(
            ChatSessionStoreProtocol,
            factory=lambda: PostgresChatSessionStore(database=container.resolve(DatabaseServiceProtocol)),
            scope=punq.Scope.singleton,
        )
    else:
        container.register(EntryStoreProtocol, instance=InMemoryEntryStore(clock=clock))
        container.register(ChatSessionStoreProtocol, instance=InMemoryChatSessionStore())

    if settings.entry_cache_enabled:
        container.register(
            EntryCacheProtocol,
            factory=lambda: RedisEntryCacheStore(
                redis_url=settings.assistant_cache_redis_url or "",
                key_prefix=settings.assistant_entry_cache_key_prefix,
                entry_ttl_seconds=settings.assistant_entry_cache_ttl_seconds,
                list_ttl_seconds=settings.assistant_entry_cache_list_ttl_seconds,
                negative_ttl_seconds=settings.assistant_entry_cache_negative_ttl_seconds,
                jitter_max_seconds=settings.assistant_entry_cache_jitter_max_seconds,
            ),
            scope=punq.Scope.singleton,
        )
        container.register(
            EntryServiceProtocol,
            factory=lambda: EntryService(
                store=container.resolve(EntryStoreProtocol),
                cache=container.resolve(EntryCacheProtocol),
            ),
            scope=punq.Scope.singleton,
        )
    else:
        container.register(
            EntryServiceProtocol,
            factory=lambda: EntryService(store=container.resolve(EntryStoreProtocol)),
            scope=punq.Scope.singleton,
        )

    container.register(AuthServiceProtocol, factory=lambda: AuthService(settings), scope=punq.Scope.singleton)
    container.register(
        TitleServiceProtocol,
        factory=lambda: TitleService(
            model=build_chat_model(settings, model_name=settings.title_model),
            max_words=settings.title_max_words,
        ),
        scope=punq.Scope.singleton,
    )
    container.register(
        ChatSessionServiceProtocol,
        factory=lambda: ChatSessionService(
            store=container.resolve(ChatSessionStoreProtocol),
            title_service=container.resolve(TitleServiceProtocol),
        ),
        scope=punq.Scope.singleton,
    )
    container.register(ChatAgent, factory=lambda: build_main_agent(settings), scope=punq.Scope.singleton)
    container.register(
        ChatServiceProtocol,
        factory=lambda: ChatService(
            agent=container.resolve(ChatAgent),
            entry_service=container.resolve(EntryServiceProtocol),
            settings=settings,
            clock=clock,
        ),
        scope=punq.Scope.singleton,
    )

    return container


def register_chat_agent(container: punq.Container, agent: ChatAgent) -> None:
    container.register(ChatAgent, instance=agent)


def get_container(request: Request) -> punq.Container:
    return request.app.state.container
