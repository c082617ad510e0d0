from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator


class InvalidTranscriptError(ValueError):
    """Raised when a chat transcript does not match the accepted turn/part shapes."""


class TextPart(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["text"] = "text"
    text: str


class ToolInvocationPart(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["tool-invocation"] = "tool-invocation"
    tool_call_id: str = Field(..., min_length=1)
    tool_name: str = Field(..., min_length=1)
    input: dict[str, Any] = Field(default_factory=dict)
    state: Literal["input-available", "output-available", "output-error"] = "output-available"
    output: Any = None
    error: str | None = None


MessagePart = Annotated[TextPart | ToolInvocationPart, Field(discriminator="type")]


class ChatMessage(BaseModel):
    """One conversation turn made of ordered content parts."""

    model_config = ConfigDict(extra="forbid")

    id: str | None = None
    role: Literal["system", "user", "assistant"]
    parts: list[MessagePart] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _tool_parts_belong_to_assistant(self) -> ChatMessage:
        if self.role != "assistant" and any(isinstance(part, ToolInvocationPart) for part in self.parts):
            raise ValueError(f"{self.role} turns cannot contain tool invocations")
        return self

    def text(self) -> str:
        return "".join(part.text for part in self.parts if isinstance(part, TextPart))


_TRANSCRIPT_ADAPTER = TypeAdapter(list[ChatMessage])


def validate_transcript(messages: Sequence[ChatMessage | dict[str, Any]]) -> list[ChatMessage]:
    """Validate a raw transcript, raising ``InvalidTranscriptError`` instead of truncating."""
    raw = [message.model_dump() if isinstance(message, ChatMessage) else message for message in messages]
    try:
        return _TRANSCRIPT_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise InvalidTranscriptError(f"invalid transcript: {exc.error_count()} problem(s)") from exc


def dump_transcript(messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
    return [message.model_dump(mode="json", exclude_none=True) for message in messages]


class ChatSessionSummary(BaseModel):
    id: str
    title: str | None = None
    created_at: datetime
    updated_at: datetime


class ChatSession(ChatSessionSummary):
    owner_id: str
    messages: list[ChatMessage] = Field(default_factory=list)
