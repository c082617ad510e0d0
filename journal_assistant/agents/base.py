from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Protocol

from langchain_core.messages import BaseMessage

from journal_assistant.agents.tools.contracts import ToolRunner
from journal_assistant.services.chat_stream import ChatStreamEvent


@dataclass
class AgentTurn:
    """Everything one chat turn needs, resolved before streaming starts."""

    owner_id: str
    system_prompt: str
    messages: list[BaseMessage]
    tools: ToolRunner
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)


class ChatAgent(Protocol):
    """Contract for chat agents that stream typed chat events."""

    def astream(self, turn: AgentTurn) -> AsyncIterator[ChatStreamEvent]:
        """Stream assistant events for one prepared turn."""
        ...
