"""Conversion between stored transcripts and model messages.

Stored turns carry ordered text and tool-invocation parts. The model sees the same
history as assistant messages with tool calls, each followed by its tool result.
"""

from __future__ import annotations

from collections.abc import Sequence
import json
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage

from journal_assistant.models.chat import ChatMessage, TextPart, ToolInvocationPart
from journal_assistant.services.chat_stream import ChatStreamEvent


def tool_result_content(result: Any) -> str:
    return json.dumps(result, default=str, ensure_ascii=False)


def _flush_assistant_segment(texts: list[str], tools: list[ToolInvocationPart]) -> list[BaseMessage]:
    # Calls without a result cannot be replayed; the model would expect a reply for them.
    answered = [part for part in tools if part.state != "input-available"]
    content = "".join(texts)
    if not content and not answered:
        return []

    messages: list[BaseMessage] = [
        AIMessage(
            content=content,
            tool_calls=[
                {"name": part.tool_name, "args": part.input, "id": part.tool_call_id, "type": "tool_call"}
                for part in answered
            ],
        )
    ]
    for part in answered:
        if part.state == "output-error":
            result = part.output if part.output is not None else {"success": False, "error": part.error or "tool failed"}
            messages.append(ToolMessage(content=tool_result_content(result), tool_call_id=part.tool_call_id, status="error"))
        else:
            messages.append(ToolMessage(content=tool_result_content(part.output), tool_call_id=part.tool_call_id))
    return messages


def to_model_messages(history: Sequence[ChatMessage]) -> list[BaseMessage]:
    """Convert a validated transcript into LangChain messages, dropping system turns."""
    messages: list[BaseMessage] = []
    for turn in history:
        if turn.role == "system":
            continue
        if turn.role == "user":
            messages.append(HumanMessage(content=turn.text()))
            continue

        texts: list[str] = []
        tools: list[ToolInvocationPart] = []
        for part in turn.parts:
            if isinstance(part, TextPart):
                if tools:
                    messages.extend(_flush_assistant_segment(texts, tools))
                    texts, tools = [], []
                texts.append(part.text)
            else:
                tools.append(part)
        messages.extend(_flush_assistant_segment(texts, tools))
    return messages


class AssistantTurnBuilder:
    """Folds stream events into the assistant turn a client would persist."""

    def __init__(self, message_id: str) -> None:
        self._message_id = message_id
        self._parts: list[TextPart | ToolInvocationPart] = []
        self._tools: dict[str, ToolInvocationPart] = {}

    def apply(self, event: ChatStreamEvent) -> None:
        data: dict[str, Any] = dict(event["data"])
        match event["type"]:
            case "message_chunk":
                last = self._parts[-1] if self._parts else None
                if isinstance(last, TextPart):
                    last.text += data["text"]
                else:
                    self._parts.append(TextPart(text=data["text"]))
            case "tool_call":
                part = ToolInvocationPart(
                    tool_call_id=data["tool_call_id"],
                    tool_name=data["tool_name"],
                    state="input-available",
                )
                self._tools[part.tool_call_id] = part
                self._parts.append(part)
            case "tool_input":
                if (part := self._tools.get(data["tool_call_id"])) is not None:
                    part.input = dict(data["input"])
            case "tool_response":
                if (part := self._tools.get(data["tool_call_id"])) is not None:
                    part.state = "output-available"
                    part.output = data["output"]
            case "tool_error":
                if (part := self._tools.get(data["tool_call_id"])) is not None:
                    part.state = "output-error"
                    part.error = data["error"]
                    part.output = data.get("output")
            case _:
                pass

    def build(self) -> ChatMessage | None:
        if not self._parts:
            return None
        return ChatMessage(id=self._message_id, role="assistant", parts=list(self._parts))

    def dump(self) -> dict[str, Any] | None:
        message = self.build()
        return message.model_dump(mode="json", exclude_none=True) if message is not None else None
