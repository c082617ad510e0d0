from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from journal_assistant.api.dependencies.auth import get_required_auth_context
from journal_assistant.api.schemas.auth import UnifiedPrincipal
from journal_assistant.api.schemas.entries import EntryResponse
from journal_assistant.dependency_injection import get_container
from journal_assistant.models.journal import EntryCreate, EntryUpdate
from journal_assistant.services.contracts import EntryServiceProtocol

router = APIRouter(prefix="/entries", tags=["entries"])


def _entry_service(request: Request) -> EntryServiceProtocol:
    return get_container(request).resolve(EntryServiceProtocol)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="journal entry not found")


@router.get("", response_model=list[EntryResponse], summary="List all entries, newest day first")
async def list_entries(
    request: Request,
    principal: UnifiedPrincipal = Depends(get_required_auth_context),
) -> list[EntryResponse]:
    entries = await _entry_service(request).list_entries(principal.user_id)
    return [EntryResponse.from_entry(entry) for entry in entries]


@router.post("", response_model=EntryResponse, status_code=status.HTTP_201_CREATED, summary="Create an entry")
async def create_entry(
    payload: EntryCreate,
    request: Request,
    principal: UnifiedPrincipal = Depends(get_required_auth_context),
) -> EntryResponse:
    entry = await _entry_service(request).create_entry(principal.user_id, payload)
    return EntryResponse.from_entry(entry)


@router.get("/{entry_id}", response_model=EntryResponse, summary="Get one entry")
async def get_entry(
    entry_id: str,
    request: Request,
    principal: UnifiedPrincipal = Depends(get_required_auth_context),
) -> EntryResponse:
    entry = await _entry_service(request).get_entry(principal.user_id, entry_id)
    if entry is None:
        raise _not_found()
    return EntryResponse.from_entry(entry)


@router.patch("/{entry_id}", response_model=EntryResponse, summary="Update supplied entry fields")
async def update_entry(
    entry_id: str,
    payload: EntryUpdate,
    request: Request,
    principal: UnifiedPrincipal = Depends(get_required_auth_context),
) -> EntryResponse:
    entry = await _entry_service(request).update_entry(principal.user_id, entry_id, payload)
    if entry is None:
        raise _not_found()
    return EntryResponse.from_entry(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete an entry")
async def delete_entry(
    entry_id: str,
    request: Request,
    principal: UnifiedPrincipal = Depends(get_required_auth_context),
) -> Response:
    if not await _entry_service(request).delete_entry(principal.user_id, entry_id):
        raise _not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
