from fastapi import APIRouter, Request

from journal_assistant.core.settings import Settings
from journal_assistant.dependency_injection import get_container

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz(request: Request) -> dict[str, str]:
    settings = get_container(request).resolve(Settings)
    return {"status": "ok", "store_backend": settings.assistant_store_backend}
