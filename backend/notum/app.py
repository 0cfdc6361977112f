"""FastAPI application setup for Notum."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from notum.api.routes_admin import router as admin_router
from notum.api.routes_flashcards import router as flashcards_router
from notum.api.routes_resources import router as resources_router
from notum.api.routes_tracks import router as tracks_router
from notum.container import Notum
from notum.core.config import Settings, get_settings
from notum.core.errors import (
    ConstraintViolationError,
    InvalidInputError,
    NotATemplateError,
    NotFoundError,
    NotOpenError,
    NotumError,
    RemoteError,
    RequestTimeoutError,
    TransportError,
)
from notum.core.logging import configure_logging

ERROR_STATUS: tuple[tuple[type[NotumError], int], ...] = (
    (NotFoundError, 404),
    (InvalidInputError, 400),
    (NotATemplateError, 400),
    (ConstraintViolationError, 409),
    (NotOpenError, 503),
    (TransportError, 503),
    (RemoteError, 502),
    (RequestTimeoutError, 504),
)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        notum = Notum(settings)
        await notum.start()
        app.state.notum = notum
        try:
            yield
        finally:
            await notum.stop()

    app = FastAPI(
        title="Notum",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://127.0.0.1:5180",
            "http://localhost:5180",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(resources_router, prefix="", tags=["resources"])
    app.include_router(tracks_router, prefix="", tags=["tracks"])
    app.include_router(flashcards_router, prefix="", tags=["flashcards"])
    app.include_router(admin_router, prefix="", tags=["admin"])

    @app.exception_handler(NotumError)
    async def handle_notum_error(request: Request, exc: NotumError) -> JSONResponse:
        status = next((code for error, code in ERROR_STATUS if isinstance(exc, error)), 500)
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        detail = exc.errors(include_url=False, include_context=False, include_input=False)
        return JSONResponse(status_code=400, content={"detail": detail})

    @app.get("/health", tags=["admin"])
    def health() -> dict[str, bool]:
        """Simple liveness check."""
        return {"ok": True}

    return app


__all__ = ["create_app"]
