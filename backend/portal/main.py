"""FastAPI application factory for the resource-request portal."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portal.api.resource_requests import router as resource_requests_router
from portal.api.users import router as users_router
from portal.core.config import settings
from portal.core.errors import (
    ExportFailed,
    InvalidTransition,
    NotFound,
    PortalError,
    RemoteUnavailable,
    ValidationError,
)
from portal.core.logging import configure_logging, get_logger
from portal.db.seed import seed_directory
from portal.db.session import async_session_maker, init_db

logger = get_logger(__name__)

_ERROR_STATUS: dict[type[PortalError], int] = {
    ValidationError: 422,
    InvalidTransition: status.HTTP_409_CONFLICT,
    NotFound: status.HTTP_404_NOT_FOUND,
    RemoteUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    ExportFailed: status.HTTP_502_BAD_GATEWAY,
}


def _status_for(exc: PortalError) -> int:
    for error_type, code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def _portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    code = _status_for(exc)
    logger.info(
        "api.request.failed",
        extra={
            "path": request.url.path,
            "status_code": code,
            "error": type(exc).__name__,
        },
    )
    return JSONResponse(
        status_code=code,
        content={
            "detail": exc.message,
            "error": type(exc).__name__,
            "transient": exc.transient,
        },
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    if settings.db_auto_create:
        await init_db()
    if settings.db_seed_directory:
        async with async_session_maker() as session:
            await seed_directory(session)
    yield


def create_app() -> FastAPI:
    """Build the portal API application."""
    configure_logging()
    app = FastAPI(title="Resource Request Portal", lifespan=lifespan)

    origins = settings.allowed_cors_origins()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(resource_requests_router)
    api_v1.include_router(users_router)
    app.include_router(api_v1)
    app.add_exception_handler(PortalError, _portal_error_handler)  # type: ignore[arg-type]

    @app.get("/healthz")
    async def healthz() -> dict[str, bool]:
        return {"ok": True}

    return app


app = create_app()
