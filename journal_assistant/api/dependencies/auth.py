import logging

from fastapi import HTTPException, Request, status

from journal_assistant.api.schemas.auth import UnifiedPrincipal
from journal_assistant.core.settings import Settings
from journal_assistant.dependency_injection import get_container
from journal_assistant.services.contracts import AuthServiceProtocol

logger = logging.getLogger(__name__)


async def get_optional_auth_context(request: Request) -> UnifiedPrincipal | None:
    container = get_container(request)
    auth_service = container.resolve(AuthServiceProtocol)

    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        principal = auth_service.principal_from_bearer(auth_header.split(" ", 1)[1].strip())
        if principal is not None:
            logger.debug("authenticated via bearer token", extra={"user_id": principal.user_id})
            return principal

    settings = container.resolve(Settings)
    principal = auth_service.principal_from_bearer(request.cookies.get(settings.auth_cookie_name))
    if principal is not None:
        logger.debug("authenticated via cookie token", extra={"user_id": principal.user_id})
    return principal


async def get_required_auth_context(request: Request) -> UnifiedPrincipal:
    principal = await get_optional_auth_context(request)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="authentication required")
    return principal
