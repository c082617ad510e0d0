"""Dependency injection container assembly utilities."""

from journal_assistant.dependency_injection.container import build_container, get_container, register_chat_agent

__all__ = ["build_container", "get_container", "register_chat_agent"]
