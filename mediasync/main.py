"""Application entry point for the realtime sync gateway."""
from __future__ import annotations

import logging
from typing import Iterable

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .database import init_db
from .exceptions import NotFoundError, PermissionDeniedError, SyncError, TransientIOError, ValidationFailure
from .logging_config import setup_logging
from .routers import chats_router, directory_router, posts_router, realtime_router
from .services.migrations import run_migrations_if_needed

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title=settings.app_name, version=settings.api_version)

if settings.cors_origins:
    origins: Iterable[str] = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
else:
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chats_router)
app.include_router(directory_router)
app.include_router(posts_router)
app.include_router(realtime_router)

_STATUS_BY_ERROR: tuple[tuple[type[SyncError], int], ...] = (
    (ValidationFailure, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (TransientIOError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


@app.exception_handler(SyncError)
async def _sync_error_handler(request: Request, exc: SyncError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in _STATUS_BY_ERROR if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.on_event("startup")
async def _startup() -> None:
    """Ensure logging and the database schema are ready before serving."""

    setup_logging(settings.log_level)
    try:
        if not run_migrations_if_needed(database_url=settings.database_url):
            init_db()
    except Exception:  # pragma: no cover
        logger.exception("Database initialisation failed")
        raise
    logger.info("%s %s ready", settings.app_name, settings.api_version)


__all__ = ["app"]
