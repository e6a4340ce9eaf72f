"""FastAPI application for the classroom session broker."""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .core.config import settings
from .core.logging_config import setup_logging
from .db.clients import create_http_client, create_redis
from .routers import sessions as sessions_router

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the shared Redis and HTTP clients for the lifetime of the process."""

    app.state.redis = create_redis(settings)
    app.state.http = create_http_client(settings)
    logger.info(
        "Session broker starting (env=%s, redis=%s:%s)",
        settings.app_env,
        settings.redis_host,
        settings.redis_port,
    )
    try:
        yield
    finally:
        await app.state.http.aclose()
        await app.state.redis.aclose()
        logger.info("Session broker stopped")


app = FastAPI(title="Classroom Session Broker API", version="0.1.0", lifespan=lifespan)

if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(sessions_router.router, prefix="/api/session", tags=["session"])


@app.get("/api/health", tags=["meta"])
async def health() -> dict[str, str]:
    """Simple liveness probe."""

    return {"status": "ok"}


@app.head("/api/health", tags=["meta"])
async def health_head() -> Response:
    """Allow HEAD for uptime monitors that only need the status code."""

    return Response(status_code=200)
