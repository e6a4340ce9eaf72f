"""Redis and outbound HTTP client management."""
from __future__ import annotations

import httpx
from fastapi import Request
from redis.asyncio import Redis

from ..core.config import Settings


def create_redis(settings: Settings) -> Redis:
    """Build the process-wide Redis client; connections are opened lazily."""

    return Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password or None,
        db=settings.redis_db,
        ssl=settings.redis_ssl,
        decode_responses=True,
    )


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.http_timeout_seconds)


def get_redis(request: Request) -> Redis:
    """FastAPI dependency returning the client opened in the app lifespan."""

    return request.app.state.redis


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http
