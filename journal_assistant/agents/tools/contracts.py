from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class ToolCallRequest:
    """A tool invocation requested by the completion engine."""

    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)
    parse_error: str | None = None


@dataclass(frozen=True)
class ToolOutcome:
    """Result of one tool call, always data and never an exception."""

    call: ToolCallRequest
    result: dict[str, Any]

    @property
    def ok(self) -> bool:
        return bool(self.result.get("success"))

    @property
    def error(self) -> str | None:
        error = self.result.get("error")
        return str(error) if error is not None else None


class ToolRunner(Protocol):
    """Owner-scoped tool set bound to one conversation turn."""

    def definitions(self) -> list[dict[str, Any]]:
        """Return tool declarations in OpenAI function-calling format."""
        ...

    def title_for(self, tool_name: str) -> str:
        """Human-readable activity label for a tool name."""
        ...

    async def run(self, call: ToolCallRequest) -> ToolOutcome:
        """Validate arguments and execute the tool, converting every failure into data."""
        ...
