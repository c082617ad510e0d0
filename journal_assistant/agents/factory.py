from __future__ import annotations

import logging
from pathlib import Path

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_openai import ChatOpenAI

from journal_assistant.agents.base import ChatAgent
from journal_assistant.agents.engine import LangChainCompletionEngine
from journal_assistant.agents.journal_agent import JournalAgent
from journal_assistant.core.settings import Settings

logger = logging.getLogger(__name__)

_MOCK_MESSAGE_DELIMITER = "\n\n--- message ---\n\n"


def _load_mock_messages(messages_file: str) -> list[str]:
    path = Path(messages_file)
    raw_content = path.read_text(encoding="utf-8")
    parsed_messages = [chunk.strip() for chunk in raw_content.split(_MOCK_MESSAGE_DELIMITER)]
    messages = [message for message in parsed_messages if message]
    if not messages:
        raise ValueError(
            f"No mock messages found in {path}. Use delimiter {_MOCK_MESSAGE_DELIMITER!r} between messages."
        )
    return messages


def build_chat_model(settings: Settings, *, model_name: str | None = None) -> BaseChatModel:
    """Create the chat model: OpenAI-compatible provider, or the file-driven fake."""

    if settings.main_agent_use_mock:
        fake_responses = _load_mock_messages(messages_file=settings.main_agent_mock_messages_file)
        logger.info("using FakeListChatModel", extra={"responses_count": len(fake_responses)})
        return FakeListChatModel(responses=fake_responses)

    model = model_name or settings.main_agent_model
    logger.info("using model-provider chat model", extra={"model_alias": model})
    return ChatOpenAI(
        model=model,
        base_url=settings.main_agent_model_provider_base_url,
        api_key=settings.main_agent_model_provider_api_key,
        temperature=settings.main_agent_temperature,
        streaming=True,
    )


def build_main_agent(settings: Settings, model: BaseChatModel | None = None) -> ChatAgent:
    """Create the journal agent loop over a real or fake model backend."""

    engine = LangChainCompletionEngine(
        model if model is not None else build_chat_model(settings),
        supports_tools=not settings.main_agent_use_mock,
    )
    return JournalAgent(engine, max_steps=settings.main_agent_max_steps)
