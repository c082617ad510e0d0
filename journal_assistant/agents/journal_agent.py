from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import aclosing
from enum import StrEnum
import json
import logging
from typing import Any
import uuid

from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage, ToolMessage

from journal_assistant.agents.base import AgentTurn, ChatAgent
from journal_assistant.agents.engine import CompletionEngine
from journal_assistant.agents.tools.contracts import ToolCallRequest, ToolOutcome
from journal_assistant.agents.transcript import tool_result_content
from journal_assistant.services.chat_stream import ChatStreamEvent

logger = logging.getLogger(__name__)


class LoopState(StrEnum):
    PREPARING_CONTEXT = "preparing_context"
    AWAITING_COMPLETION = "awaiting_completion"
    EXECUTING_TOOL = "executing_tool"
    DONE = "done"
    STEP_LIMIT_REACHED = "step_limit_reached"
    CANCELLED = "cancelled"


_DONE_REASONS = {
    LoopState.DONE: "complete",
    LoopState.STEP_LIMIT_REACHED: "step_limit",
    LoopState.CANCELLED: "cancelled",
}


def _chunk_texts(chunk: AIMessageChunk) -> list[str]:
    content = chunk.content
    if isinstance(content, str):
        return [content] if content else []

    parsed: list[str] = []
    for item in content:
        if isinstance(item, str):
            if item:
                parsed.append(item)
            continue
        if item.get("type") == "text" and item.get("text"):
            parsed.append(str(item["text"]))
    return parsed


def _strict_arguments(raw: str | None) -> dict[str, Any] | None:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _tool_requests(response: AIMessageChunk) -> list[ToolCallRequest]:
    # Merged chunks carry the raw argument text; the parsed tool_calls view repairs truncated JSON.
    if not response.tool_call_chunks:
        return [
            ToolCallRequest(id=call.get("id") or f"call_{uuid.uuid4().hex}", name=call["name"], args=dict(call["args"]))
            for call in response.tool_calls
        ]

    requests: list[ToolCallRequest] = []
    for chunk in response.tool_call_chunks:
        call_id = chunk.get("id") or f"call_{uuid.uuid4().hex}"
        name = chunk.get("name") or ""
        args = _strict_arguments(chunk.get("args"))
        if args is None:
            requests.append(ToolCallRequest(id=call_id, name=name, parse_error="malformed arguments"))
        else:
            requests.append(ToolCallRequest(id=call_id, name=name, args=args))
    return requests


def _assistant_message(response: AIMessageChunk | None, calls: list[ToolCallRequest]) -> AIMessage:
    content: Any = response.content if response is not None else ""
    return AIMessage(
        content=content,
        tool_calls=[{"name": call.name, "args": call.args, "id": call.id, "type": "tool_call"} for call in calls],
    )


class JournalAgent(ChatAgent):
    """Bounded tool-calling loop.

    Each step is one streamed completion. When the completion requests tools they run
    concurrently, their results are appended as tool messages, and the loop asks for
    another completion. The loop ends when a completion requests no tools, when the
    step budget is spent, or when the turn is cancelled between steps.
    """

    def __init__(self, engine: CompletionEngine, *, max_steps: int = 10) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self._engine = engine
        self._max_steps = max_steps

    async def astream(self, turn: AgentTurn) -> AsyncIterator[ChatStreamEvent]:
        messages: list[BaseMessage] = list(turn.messages)
        tool_definitions = turn.tools.definitions()
        steps = 0
        state = self._transition(LoopState.PREPARING_CONTEXT, LoopState.AWAITING_COMPLETION, turn, steps)

        while state in (LoopState.AWAITING_COMPLETION, LoopState.EXECUTING_TOOL):
            if turn.cancelled.is_set():
                state = self._transition(state, LoopState.CANCELLED, turn, steps)
                break
            if steps >= self._max_steps:
                state = self._transition(state, LoopState.STEP_LIMIT_REACHED, turn, steps)
                break

            steps += 1
            response: AIMessageChunk | None = None
            announced: set[str] = set()
            stream = self._engine.astream(system_prompt=turn.system_prompt, messages=messages, tools=tool_definitions)
            async with aclosing(stream):
                async for chunk in stream:
                    response = chunk if response is None else response + chunk
                    for text in _chunk_texts(chunk):
                        yield {"type": "message_chunk", "data": {"text": text}}
                    for call_chunk in chunk.tool_call_chunks:
                        call_id, name = call_chunk.get("id"), call_chunk.get("name")
                        if call_id and name and call_id not in announced:
                            announced.add(call_id)
                            yield self._tool_call_event(turn, call_id, name)
                    if turn.cancelled.is_set():
                        break

            if turn.cancelled.is_set():
                state = self._transition(state, LoopState.CANCELLED, turn, steps)
                break

            calls = _tool_requests(response) if response is not None else []
            messages.append(_assistant_message(response, calls))
            if not calls:
                state = self._transition(state, LoopState.DONE, turn, steps)
                break

            state = self._transition(state, LoopState.EXECUTING_TOOL, turn, steps)
            for call in calls:
                if call.id not in announced:
                    yield self._tool_call_event(turn, call.id, call.name)
                yield {"type": "tool_input", "data": {"tool_call_id": call.id, "tool_name": call.name, "input": call.args}}

            outcomes = await asyncio.gather(*(turn.tools.run(call) for call in calls))
            for outcome in outcomes:
                yield self._outcome_event(outcome)
                messages.append(
                    ToolMessage(
                        content=tool_result_content(outcome.result),
                        tool_call_id=outcome.call.id,
                        status="success" if outcome.ok else "error",
                    )
                )
            state = self._transition(state, LoopState.AWAITING_COMPLETION, turn, steps)

        logger.info("agent turn finished", extra={"state": state.value, "steps": steps, "user_id": turn.owner_id})
        yield {"type": "done", "data": {"reason": _DONE_REASONS[state], "steps": steps}}

    @staticmethod
    def _transition(current: LoopState, target: LoopState, turn: AgentTurn, steps: int) -> LoopState:
        logger.debug(
            "agent loop transition",
            extra={"from_state": current.value, "to_state": target.value, "steps": steps, "user_id": turn.owner_id},
        )
        return target

    @staticmethod
    def _tool_call_event(turn: AgentTurn, call_id: str, name: str) -> ChatStreamEvent:
        return {
            "type": "tool_call",
            "data": {"tool_call_id": call_id, "tool_name": name, "title": turn.tools.title_for(name)},
        }

    @staticmethod
    def _outcome_event(outcome: ToolOutcome) -> ChatStreamEvent:
        if outcome.ok:
            return {
                "type": "tool_response",
                "data": {"tool_call_id": outcome.call.id, "tool_name": outcome.call.name, "output": outcome.result},
            }
        return {
            "type": "tool_error",
            "data": {
                "tool_call_id": outcome.call.id,
                "tool_name": outcome.call.name,
                "error": outcome.error or "tool failed",
                "output": outcome.result,
            },
        }
