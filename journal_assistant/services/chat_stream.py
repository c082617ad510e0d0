from __future__ import annotations

import json
from typing import Any, Literal, TypedDict


class MessageChunkEventData(TypedDict):
    text: str


class ToolCallEventData(TypedDict):
    tool_call_id: str
    tool_name: str
    title: str


class ToolInputEventData(TypedDict):
    tool_call_id: str
    tool_name: str
    input: dict[str, Any]


class ToolResponseEventData(TypedDict):
    tool_call_id: str
    tool_name: str
    output: Any


class ToolErrorEventData(TypedDict):
    tool_call_id: str
    tool_name: str
    error: str
    output: Any


class ErrorEventData(TypedDict):
    message: str


class DoneEventData(TypedDict, total=False):
    reason: str
    steps: int
    message: dict[str, Any] | None


ChatStreamEventType = Literal[
    "message_chunk",
    "tool_call",
    "tool_input",
    "tool_response",
    "tool_error",
    "error",
    "done",
]


class ChatStreamEvent(TypedDict):
    type: ChatStreamEventType
    data: (
        MessageChunkEventData
        | ToolCallEventData
        | ToolInputEventData
        | ToolResponseEventData
        | ToolErrorEventData
        | ErrorEventData
        | DoneEventData
    )


def encode_sse_event(event: ChatStreamEvent) -> str:
    return f"event: {event['type']}\ndata: {json.dumps(event['data'], default=str)}\n\n"
