from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from journal_assistant.api.router import api_router
from journal_assistant.api.routers.health import router as health_router
from journal_assistant.core.logging import configure_logging
from journal_assistant.core.settings import Settings, get_settings
from journal_assistant.dependency_injection import build_container
from journal_assistant.services.contracts import (
    ChatSessionServiceProtocol,
    DatabaseServiceProtocol,
    EntryCacheProtocol,
)

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.effective_log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "starting journal assistant backend",
            extra={"app_env": settings.app_env, "store_backend": settings.assistant_store_backend},
        )
        container = build_container(settings)
        app.state.container = container

        database_service: DatabaseServiceProtocol | None = None
        if settings.assistant_store_backend == "postgres":
            database_service = container.resolve(DatabaseServiceProtocol)
            await database_service.connect()
            logger.info("database connection pool initialized")
            if settings.assistant_db_apply_schema:
                await database_service.apply_schema()
        else:
            logger.info("using in-memory journal stores; data is lost on restart")

        cache: EntryCacheProtocol | None = None
        if settings.entry_cache_enabled:
            cache = container.resolve(EntryCacheProtocol)
            await cache.ping()
            logger.info("entry cache connection initialized")

        try:
            yield
        finally:
            # Pending title tasks still write through the store and the pool.
            await container.resolve(ChatSessionServiceProtocol).wait_for_titles()
            if cache is not None:
                await cache.close()
            if database_service is not None:
                await database_service.disconnect()
            logger.info("journal assistant backend shutdown complete")

    app = FastAPI(
        title="Journal Assistant Backend",
        version="0.1.0",
        docs_url="/docs" if settings.enable_swagger else None,
        redoc_url="/redoc" if settings.enable_swagger else None,
        openapi_url="/openapi.json" if settings.enable_swagger else None,
        lifespan=lifespan,
    )
    app.include_router(health_router)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()
