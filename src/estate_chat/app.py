from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from estate_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from estate_chat.api.middleware.metrics import RequestTimingMiddleware
from estate_chat.api.v1.routers import (
    conversations,
    health,
    messages,
    ws,
)
from estate_chat.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from estate_chat.config import settings
from estate_chat.infrastructure.db.session import engine
from estate_chat.infrastructure.db.uow import uow_scope
from estate_chat.infrastructure.ws.registry import ConnectionRegistry
from estate_chat.infrastructure.ws.relay import MessageRelay

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    logger.info("Chat relay ready (heartbeat=%ss)", settings.WS_HEARTBEAT_SECONDS)

    yield

    logger.info("Shutting down with %d live connections", len(app.state.relay.registry))
    await engine.dispose()
    logger.info("Database engine disposed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Estate Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.relay = MessageRelay(
        ConnectionRegistry(),
        uow_scope,
        error_frames=settings.RELAY_ERROR_FRAMES,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(StoreError)
    async def _store(_req: Request, exc: StoreError) -> JSONResponse:
        logger.warning("Store error: %s", exc.detail)
        return JSONResponse(status_code=503, content={"detail": exc.detail})
