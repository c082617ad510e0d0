from collections.abc import AsyncIterator
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from journal_assistant.agents.base import AgentTurn
from journal_assistant.agents.prompts import JOURNAL_PRESETS
from journal_assistant.api.dependencies.auth import get_required_auth_context
from journal_assistant.api.schemas.auth import UnifiedPrincipal
from journal_assistant.api.schemas.chat import ChatTurnRequest, PromptPresetResponse
from journal_assistant.dependency_injection import get_container
from journal_assistant.services.chat_stream import encode_sse_event
from journal_assistant.services.contracts import ChatServiceProtocol

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/chat", tags=["chat"])


async def _sse_stream(chat_service: ChatServiceProtocol, turn: AgentTurn) -> AsyncIterator[str]:
    async for event in chat_service.stream_turn(turn):
        yield encode_sse_event(event)


@router.post(
    "",
    summary="Run one chat turn and stream assistant events",
    description=(
        "Accepts the prior transcript plus a new user message and answers with a server-sent event "
        "stream of text deltas, tool activity and a terminal done event."
    ),
)
async def chat_turn(
    payload: ChatTurnRequest,
    request: Request,
    auth_context: UnifiedPrincipal = Depends(get_required_auth_context),
) -> StreamingResponse:
    logger.info(
        "assistant chat request",
        extra={"user_id": auth_context.user_id, "history_count": len(payload.messages)},
    )
    chat_service = get_container(request).resolve(ChatServiceProtocol)

    # Context is loaded before the response starts so failures surface as plain request errors.
    turn = await chat_service.prepare_turn(
        principal=auth_context,
        message=payload.message,
        history=payload.messages,
    )
    return StreamingResponse(
        _sse_stream(chat_service, turn),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/presets", response_model=list[PromptPresetResponse], summary="List conversation starters")
async def list_presets() -> list[PromptPresetResponse]:
    return [PromptPresetResponse.model_validate(preset.model_dump()) for preset in JOURNAL_PRESETS]
