from journal_assistant.api.schemas.auth import UnifiedPrincipal
from journal_assistant.api.schemas.chat import ChatTurnRequest, PromptPresetResponse
from journal_assistant.api.schemas.entries import EntryResponse
from journal_assistant.api.schemas.sessions import SessionCreateRequest, SessionUpdateRequest

__all__ = [
    "ChatTurnRequest",
    "EntryResponse",
    "PromptPresetResponse",
    "SessionCreateRequest",
    "SessionUpdateRequest",
    "UnifiedPrincipal",
]
