from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from journal_assistant.api.dependencies.auth import get_required_auth_context
from journal_assistant.api.schemas.auth import UnifiedPrincipal
from journal_assistant.api.schemas.sessions import SessionCreateRequest, SessionUpdateRequest
from journal_assistant.dependency_injection import get_container
from journal_assistant.models.chat import ChatSession, ChatSessionSummary, InvalidTranscriptError
from journal_assistant.services.contracts import ChatSessionServiceProtocol

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _session_service(request: Request) -> ChatSessionServiceProtocol:
    return get_container(request).resolve(ChatSessionServiceProtocol)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="chat session not found")


def _invalid_transcript(exc: InvalidTranscriptError) -> HTTPException:
    return HTTPException(status_code=422, detail=str(exc))


@router.get("", response_model=list[ChatSessionSummary], summary="List recent chat sessions")
async def list_sessions(
    request: Request,
    principal: UnifiedPrincipal = Depends(get_required_auth_context),
) -> list[ChatSessionSummary]:
    return await _session_service(request).list_sessions(principal.user_id)


@router.post("", response_model=ChatSession, status_code=status.HTTP_201_CREATED, summary="Store a new chat session")
async def create_session(
    payload: SessionCreateRequest,
    request: Request,
    principal: UnifiedPrincipal = Depends(get_required_auth_context),
) -> ChatSession:
    try:
        return await _session_service(request).create_session(principal.user_id, payload.messages, payload.title)
    except InvalidTranscriptError as exc:
        raise _invalid_transcript(exc) from exc


@router.get("/{session_id}", response_model=ChatSession, summary="Get one chat session with its transcript")
async def get_session(
    session_id: str,
    request: Request,
    principal: UnifiedPrincipal = Depends(get_required_auth_context),
) -> ChatSession:
    session = await _session_service(request).get_session(principal.user_id, session_id)
    if session is None:
        raise _not_found()
    return session


@router.patch("/{session_id}", response_model=ChatSession, summary="Replace transcript and/or title")
async def update_session(
    session_id: str,
    payload: SessionUpdateRequest,
    request: Request,
    principal: UnifiedPrincipal = Depends(get_required_auth_context),
) -> ChatSession:
    try:
        session = await _session_service(request).update_session(
            principal.user_id,
            session_id,
            messages=payload.messages,
            title=payload.title,
        )
    except InvalidTranscriptError as exc:
        raise _invalid_transcript(exc) from exc
    if session is None:
        raise _not_found()
    return session


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a chat session")
async def delete_session(
    session_id: str,
    request: Request,
    principal: UnifiedPrincipal = Depends(get_required_auth_context),
) -> Response:
    if not await _session_service(request).delete_session(principal.user_id, session_id):
        raise _not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
