from __future__ import annotations

import asyncio
from collections.abc import Sequence
import logging
from typing import Any

from journal_assistant.models.chat import ChatMessage, ChatSession, ChatSessionSummary
from journal_assistant.services.contracts import ChatSessionStoreProtocol, TitleServiceProtocol

logger = logging.getLogger(__name__)


def _first_text(messages: Sequence[ChatMessage], role: str) -> str:
    for message in messages:
        if message.role == role and (text := message.text().strip()):
            return text
    return ""


class ChatSessionService:
    """Chat session CRUD; untitled new sessions get a generated title in the background."""

    def __init__(self, store: ChatSessionStoreProtocol, title_service: TitleServiceProtocol) -> None:
        self._store = store
        self._title_service = title_service
        self._title_tasks: set[asyncio.Task[None]] = set()

    async def list_sessions(self, owner_id: str) -> list[ChatSessionSummary]:
        return await self._store.list(owner_id)

    async def get_session(self, owner_id: str, session_id: str) -> ChatSession | None:
        return await self._store.get(owner_id, session_id)

    async def create_session(
        self,
        owner_id: str,
        messages: Sequence[ChatMessage | dict[str, Any]],
        title: str | None = None,
    ) -> ChatSession:
        session = await self._store.create(owner_id, messages, title)
        if session.title is None and _first_text(session.messages, "user"):
            task = asyncio.create_task(self._generate_title(owner_id, session))
            self._title_tasks.add(task)
            task.add_done_callback(self._title_tasks.discard)
        return session

    async def update_session(
        self,
        owner_id: str,
        session_id: str,
        *,
        messages: Sequence[ChatMessage | dict[str, Any]] | None = None,
        title: str | None = None,
    ) -> ChatSession | None:
        return await self._store.update(owner_id, session_id, messages=messages, title=title)

    async def delete_session(self, owner_id: str, session_id: str) -> bool:
        deleted = await self._store.delete(owner_id, session_id)
        if deleted:
            logger.info("chat session deleted", extra={"session_id": session_id})
        return deleted

    async def wait_for_titles(self) -> None:
        if self._title_tasks:
            await asyncio.gather(*self._title_tasks, return_exceptions=True)

    async def _generate_title(self, owner_id: str, session: ChatSession) -> None:
        title = await self._title_service.generate_title(
            _first_text(session.messages, "user"),
            _first_text(session.messages, "assistant"),
        )
        if title is None:
            logger.info("chat session left untitled", extra={"session_id": session.id})
            return
        try:
            await self._store.update(owner_id, session.id, title=title)
        except Exception:
            logger.exception("saving generated title failed", extra={"session_id": session.id})
            return
        logger.debug("chat session titled", extra={"session_id": session.id})


