from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signdesk.api.routes import auth, documents, health, users
from signdesk.core.config import settings
from signdesk.core.logging_setup import logger
from signdesk.db.session import init_db
from signdesk.services.storage import resolve_storage_root


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncGenerator[None, None]:
    init_db()
    storage_root = resolve_storage_root()
    for area in (settings.uploads_dir, settings.signed_dir):
        (storage_root / area).mkdir(parents=True, exist_ok=True)
    logger.info("Storage ready at %s", storage_root)
    yield


def _normalize_origin(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = value.strip().rstrip("/")
    return cleaned or None


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.project_name,
        debug=settings.debug,
        lifespan=lifespan,
    )

    origins: list[str] = []
    for item in settings.allowed_origins:
        normalized = _normalize_origin(item)
        if normalized and normalized not in origins:
            origins.append(normalized)

    logger.info("CORS configured with origins: %s", origins)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(health.router, prefix="/health")
    application.include_router(auth.router, prefix=settings.api_v1_str)
    application.include_router(users.router, prefix=settings.api_v1_str)
    application.include_router(documents.router, prefix=settings.api_v1_str)

    @application.get("/")
    def root():
        return {"service": settings.project_name}

    logger.info("SignDesk API initialized")
    return application


app = create_app()
