from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator, Sequence
import logging
from typing import Any, Protocol

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessageChunk, BaseMessage, SystemMessage

logger = logging.getLogger(__name__)


class CompletionEngine(Protocol):
    """One streamed model completion over the running conversation."""

    def astream(
        self,
        *,
        system_prompt: str,
        messages: Sequence[BaseMessage],
        tools: list[dict[str, Any]],
    ) -> AsyncGenerator[AIMessageChunk, None]:
        ...


class LangChainCompletionEngine:
    """Completion engine backed by a LangChain chat model.

    Models that cannot call tools (the file-driven fake model) are used unbound; the
    loop then simply never sees a tool call.
    """

    def __init__(self, model: BaseChatModel, *, supports_tools: bool = True) -> None:
        self._model = model
        self._supports_tools = supports_tools

    async def astream(
        self,
        *,
        system_prompt: str,
        messages: Sequence[BaseMessage],
        tools: list[dict[str, Any]],
    ) -> AsyncIterator[AIMessageChunk]:
        runnable: Any = self._model.bind_tools(tools) if tools and self._supports_tools else self._model
        logger.debug("requesting completion", extra={"messages_count": len(messages), "tools_count": len(tools)})
        async for chunk in runnable.astream([SystemMessage(content=system_prompt), *messages]):
            if isinstance(chunk, AIMessageChunk):
                yield chunk
