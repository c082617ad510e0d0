from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from datetime import date
import logging
import uuid

from langchain_core.messages import HumanMessage

from journal_assistant.agents.base import AgentTurn, ChatAgent
from journal_assistant.agents.prompts import build_system_prompt
from journal_assistant.agents.tools.journal import JournalToolbox
from journal_assistant.agents.transcript import AssistantTurnBuilder, to_model_messages
from journal_assistant.api.schemas.auth import UnifiedPrincipal
from journal_assistant.core.dates import Clock, days_ago
from journal_assistant.core.settings import Settings
from journal_assistant.models.chat import ChatMessage
from journal_assistant.models.journal import EntryFilters, JournalEntry
from journal_assistant.services.chat_stream import ChatStreamEvent
from journal_assistant.services.contracts import EntryServiceProtocol

logger = logging.getLogger(__name__)

_SENTINEL = object()


class ChatService:
    """Use-case service for one chat turn: context preparation and event streaming."""

    def __init__(
        self,
        agent: ChatAgent,
        entry_service: EntryServiceProtocol,
        settings: Settings,
        clock: Clock,
    ) -> None:
        self._agent = agent
        self._entry_service = entry_service
        self._settings = settings
        self._clock = clock
        self._producers: set[asyncio.Task[None]] = set()

    async def prepare_turn(
        self,
        *,
        principal: UnifiedPrincipal,
        message: str,
        history: Sequence[ChatMessage],
    ) -> AgentTurn:
        owner_id = principal.user_id
        today = self._clock()
        recent_entries = await self._recent_entries(owner_id, today)
        logger.debug(
            "chat turn prepared",
            extra={"user_id": owner_id, "history_count": len(history), "recent_entries": len(recent_entries)},
        )
        return AgentTurn(
            owner_id=owner_id,
            system_prompt=build_system_prompt(
                self._settings.main_agent_system_prompt,
                today=today,
                recent_entries=recent_entries,
            ),
            messages=[*to_model_messages(history), HumanMessage(content=message)],
            tools=JournalToolbox(entry_service=self._entry_service, owner_id=owner_id, clock=self._clock),
        )

    async def stream_turn(self, turn: AgentTurn) -> AsyncIterator[ChatStreamEvent]:
        queue: asyncio.Queue[ChatStreamEvent | object] = asyncio.Queue()
        producer = asyncio.create_task(self._produce(turn, queue))
        self._producers.add(producer)
        producer.add_done_callback(self._producers.discard)

        try:
            while True:
                event = await queue.get()
                if event is _SENTINEL:
                    return
                yield event  # type: ignore[misc]
        finally:
            if not producer.done():
                # Tools already running finish; no further completion round starts.
                logger.info("chat stream consumer went away", extra={"user_id": turn.owner_id})
                turn.cancelled.set()

    async def _produce(self, turn: AgentTurn, queue: asyncio.Queue[ChatStreamEvent | object]) -> None:
        builder = AssistantTurnBuilder(message_id=str(uuid.uuid4()))
        try:
            async for event in self._agent.astream(turn):
                if event["type"] == "done":
                    event = {"type": "done", "data": {**event["data"], "message": builder.dump()}}
                else:
                    builder.apply(event)
                await queue.put(event)
        except Exception:
            logger.exception("chat stream failed", extra={"user_id": turn.owner_id})
            await queue.put({"type": "error", "data": {"message": "Assistant stream failed"}})
            await queue.put({"type": "done", "data": {"reason": "error", "message": builder.dump()}})
        finally:
            await queue.put(_SENTINEL)

    async def _recent_entries(self, owner_id: str, today: date) -> list[JournalEntry]:
        filters = EntryFilters(
            since=days_ago(self._settings.journal_context_days, reference=today),
            limit=self._settings.journal_context_limit,
        )
        try:
            return await self._entry_service.query_entries(owner_id, filters)
        except Exception:
            logger.exception("loading recent entries for context failed", extra={"user_id": owner_id})
            return []
