from fastapi import APIRouter

from journal_assistant.api.routers.chat import router as chat_router
from journal_assistant.api.routers.entries import router as entries_router
from journal_assistant.api.routers.sessions import router as sessions_router

api_router = APIRouter()
api_router.include_router(chat_router)
api_router.include_router(entries_router)
api_router.include_router(sessions_router)
