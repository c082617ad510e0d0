from __future__ import annotations

import asyncio
from datetime import timedelta

from langchain_core.messages import AIMessage, HumanMessage, ToolMessage
import pytest

from journal_assistant.agents.base import AgentTurn
from journal_assistant.agents.journal_agent import JournalAgent
from journal_assistant.agents.prompts import NO_RECENT_ENTRIES
from journal_assistant.api.schemas.auth import UnifiedPrincipal
from journal_assistant.core.settings import Settings
from journal_assistant.models.chat import ChatMessage
from journal_assistant.models.journal import EntryCreate, Mood
from journal_assistant.services.chat_service import ChatService
from journal_assistant.services.entry_service import EntryService
from tests.conftest import TODAY, FailingEngine, ScriptedEngine, text_round, tool_round

PRINCIPAL = UnifiedPrincipal(user_id="user-1")


class BrokenEntryService:
    async def query_entries(self, owner_id, filters):
        raise ConnectionError("database unavailable")


class BlockingAgent:
    """Emits one chunk, then waits until released."""

    def __init__(self) -> None:
        self.release = asyncio.Event()

    async def astream(self, turn: AgentTurn):
        yield {"type": "message_chunk", "data": {"text": "Hi"}}
        await self.release.wait()
        reason = "cancelled" if turn.cancelled.is_set() else "complete"
        yield {"type": "done", "data": {"reason": reason, "steps": 1}}


def _service(agent, entry_service, settings: Settings) -> ChatService:
    return ChatService(agent=agent, entry_service=entry_service, settings=settings, clock=lambda: TODAY)


async def _events(service: ChatService, turn: AgentTurn) -> list[dict]:
    return [event async for event in service.stream_turn(turn)]


@pytest.mark.asyncio
async def test_prepare_turn_injects_recent_entries(entry_service: EntryService, test_settings: Settings) -> None:
    await entry_service.create_entry(
        "user-1",
        EntryCreate(content="Ran 5k", summary="Morning run", entry_date=TODAY - timedelta(days=1), mood=Mood.HAPPY),
    )
    await entry_service.create_entry(
        "user-1",
        EntryCreate(content="Old news", summary="Long ago", entry_date=TODAY - timedelta(days=10)),
    )
    await entry_service.create_entry(
        "user-2",
        EntryCreate(content="Not mine", summary="Other user", entry_date=TODAY),
    )
    service = _service(JournalAgent(ScriptedEngine([])), entry_service, test_settings)

    turn = await service.prepare_turn(principal=PRINCIPAL, message="hello", history=[])

    assert "[Context: Today is 2026-03-14]" in turn.system_prompt
    assert "• 2026-03-13: Morning run (happy)" in turn.system_prompt
    assert "Long ago" not in turn.system_prompt
    assert "Other user" not in turn.system_prompt
    assert turn.owner_id == "user-1"
    assert isinstance(turn.messages[-1], HumanMessage)
    assert turn.messages[-1].content == "hello"


@pytest.mark.asyncio
async def test_prepare_turn_uses_configured_prompt(entry_service: EntryService, test_settings: Settings) -> None:
    settings = test_settings.model_copy(update={"main_agent_system_prompt": "Be brief."})
    service = _service(JournalAgent(ScriptedEngine([])), entry_service, settings)

    turn = await service.prepare_turn(principal=PRINCIPAL, message="hello", history=[])

    assert turn.system_prompt.startswith("Be brief.\n\n[Context: Today is 2026-03-14]")
    assert turn.system_prompt.endswith(NO_RECENT_ENTRIES)


@pytest.mark.asyncio
async def test_prepare_turn_survives_context_failure(test_settings: Settings) -> None:
    service = _service(JournalAgent(ScriptedEngine([])), BrokenEntryService(), test_settings)

    turn = await service.prepare_turn(principal=PRINCIPAL, message="hello", history=[])

    assert turn.system_prompt.endswith(f"Recent entries:\n{NO_RECENT_ENTRIES}")


@pytest.mark.asyncio
async def test_prepare_turn_replays_history(entry_service: EntryService, test_settings: Settings) -> None:
    history = [
        ChatMessage.model_validate({"role": "user", "parts": [{"type": "text", "text": "I slept badly"}]}),
        ChatMessage.model_validate(
            {
                "role": "assistant",
                "parts": [
                    {
                        "type": "tool-invocation",
                        "tool_call_id": "call-1",
                        "tool_name": "query_entries",
                        "input": {"days": 1},
                        "state": "output-available",
                        "output": {"success": True, "entries": [], "count": 0},
                    },
                    {"type": "text", "text": "Sorry to hear that."},
                ],
            }
        ),
    ]
    service = _service(JournalAgent(ScriptedEngine([])), entry_service, test_settings)

    turn = await service.prepare_turn(principal=PRINCIPAL, message="still tired", history=history)

    assert [type(message) for message in turn.messages] == [HumanMessage, AIMessage, ToolMessage, AIMessage, HumanMessage]


@pytest.mark.asyncio
async def test_stream_turn_attaches_assembled_assistant_message(
    entry_service: EntryService,
    test_settings: Settings,
) -> None:
    engine = ScriptedEngine(
        [
            tool_round(("call-1", "analyze_journal", {"period": "week"}), text="Let me look. "),
            text_round("You have no entries yet."),
        ]
    )
    service = _service(JournalAgent(engine), entry_service, test_settings)
    turn = await service.prepare_turn(principal=PRINCIPAL, message="how was my week", history=[])

    events = await _events(service, turn)

    done = events[-1]
    assert done["type"] == "done"
    assert done["data"]["reason"] == "complete"
    message = ChatMessage.model_validate(done["data"]["message"])
    assert message.role == "assistant"
    assert [part.type for part in message.parts] == ["text", "tool-invocation", "text"]
    assert message.parts[1].state == "output-available"
    assert message.parts[1].input == {"period": "week"}
    assert message.text() == "Let me look. You have no entries yet."


@pytest.mark.asyncio
async def test_stream_turn_reports_engine_failure(entry_service: EntryService, test_settings: Settings) -> None:
    service = _service(JournalAgent(FailingEngine(after_chunks=text_round("partial"))), entry_service, test_settings)
    turn = await service.prepare_turn(principal=PRINCIPAL, message="hello", history=[])

    events = await _events(service, turn)

    assert [event["type"] for event in events] == ["message_chunk", "error", "done"]
    assert events[1]["data"] == {"message": "Assistant stream failed"}
    assert events[2]["data"]["reason"] == "error"
    assert events[2]["data"]["message"]["parts"] == [{"type": "text", "text": "partial"}]


@pytest.mark.asyncio
async def test_consumer_disconnect_cancels_turn(entry_service: EntryService, test_settings: Settings) -> None:
    agent = BlockingAgent()
    service = _service(agent, entry_service, test_settings)
    turn = await service.prepare_turn(principal=PRINCIPAL, message="hello", history=[])

    stream = service.stream_turn(turn)
    first = await stream.__anext__()
    await stream.aclose()

    assert first["type"] == "message_chunk"
    assert turn.cancelled.is_set()

    agent.release.set()
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_first_turn_checks_today_then_saves(entry_service: EntryService, test_settings: Settings) -> None:
    engine = ScriptedEngine(
        [
            tool_round(("call-q", "query_entries", {"days": 1})),
            tool_round(
                (
                    "call-s",
                    "save_entry",
                    {"content": "Great day at work.", "summary": "Great work day", "mood": "happy", "tags": ["work"]},
                )
            ),
            text_round("Saved it. What made today great?"),
        ]
    )
    service = _service(JournalAgent(engine), entry_service, test_settings)
    turn = await service.prepare_turn(principal=PRINCIPAL, message="I had a great day at work today", history=[])

    events = await _events(service, turn)

    entries = await entry_service.list_entries("user-1")
    assert len(entries) == 1
    assert entries[0].entry_date == TODAY
    assert entries[0].mood == Mood.HAPPY
    assistant = ChatMessage.model_validate(events[-1]["data"]["message"])
    tool_parts = [part for part in assistant.parts if part.type == "tool-invocation"]
    assert [part.tool_call_id for part in tool_parts] == ["call-q", "call-s"]
    assert events[-1]["data"]["steps"] == 3
