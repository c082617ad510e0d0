from __future__ import annotations

import logging
import re

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

logger = logging.getLogger(__name__)

_TITLE_INSTRUCTIONS = (
    "Write a 3-5 word title for this journaling conversation. Use the language of the user's message. "
    "Reply with the title only: no quotes, no trailing punctuation."
)
_MAX_CONTEXT_CHARS = 1000


def normalize_title(raw: str, max_words: int) -> str | None:
    first_line = next((line for line in raw.strip().splitlines() if line.strip()), "")
    cleaned = re.sub(r"\s+", " ", first_line.strip().strip("\"'`*#")).rstrip(".!?:;,")
    words = cleaned.split(" ")
    title = " ".join(words[:max_words]).strip()
    return title or None


class TitleService:
    """Best-effort short session titles produced by the chat model."""

    def __init__(self, model: BaseChatModel, max_words: int = 5) -> None:
        self._model = model
        self._max_words = max_words

    async def generate_title(self, user_message: str, assistant_message: str) -> str | None:
        prompt = f"User: {user_message[:_MAX_CONTEXT_CHARS]}"
        if assistant_message:
            prompt += f"\nAssistant: {assistant_message[:_MAX_CONTEXT_CHARS]}"
        try:
            response = await self._model.ainvoke([SystemMessage(content=_TITLE_INSTRUCTIONS), HumanMessage(content=prompt)])
        except Exception:
            logger.warning("title generation failed", exc_info=True)
            return None
        content = response.content
        if not isinstance(content, str):
            content = "".join(
                block if isinstance(block, str) else str(block.get("text", "")) for block in content
            )
        return normalize_title(content, self._max_words)
