"""Classroom session endpoints."""
from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status
from redis.asyncio import Redis

from ..core.config import Settings, get_settings
from ..db.clients import get_http_client, get_redis
from ..schemas import sessions as schemas
from ..services.sessions import (
    NO_SESSION_MESSAGE,
    SessionExpiredError,
    SessionNotFoundError,
    SessionService,
)
from ..services.upstream import UpstreamError
from ..services.wechat import WeChatClient
from ..services.whiteboard import NetlessClient

router = APIRouter()


def get_session_service(
    client: Redis = Depends(get_redis),
    http: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> SessionService:
    """Wire a service around the shared Redis and HTTP clients."""

    whiteboard = NetlessClient(http, api_base=settings.netless_api_base, sdk_token=settings.netless_sdk_token)
    wechat = WeChatClient(
        http,
        api_base=settings.we_chat_api_base,
        app_id=settings.we_chat_app_id,
        app_secret=settings.we_chat_app_secret,
    )
    return SessionService(client, settings, whiteboard, wechat)


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, SessionNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, SessionExpiredError):
        return HTTPException(status_code=status.HTTP_410_GONE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


# Declared before "/{uid}" so the literal path wins.
@router.get("/wx-sign", response_model=schemas.PlatformConfigResponse)
async def get_wechat_sign(
    url: str = Query(..., description="Page URL the JS-SDK will be configured on"),
    service: SessionService = Depends(get_session_service),
) -> schemas.PlatformConfigResponse:
    """Return the WeChat JS-SDK config signature for ``url``."""

    try:
        return await service.get_platform_config(url)
    except UpstreamError as exc:
        raise _to_http_error(exc) from exc


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: schemas.SessionUsernameRequest,
    service: SessionService = Depends(get_session_service),
) -> int:
    """Open a new session and return the creator's uid."""

    try:
        return await service.create_session(payload.username)
    except UpstreamError as exc:
        raise _to_http_error(exc) from exc


@router.get("/{uid}", response_model=schemas.SessionResponse)
async def get_session(
    uid: str,
    service: SessionService = Depends(get_session_service),
) -> schemas.SessionResponse:
    """Return the session credentials held by ``uid``."""

    # int() alone also accepts "1_000" and surrounding whitespace.
    if not (uid.isascii() and uid.isdigit()):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NO_SESSION_MESSAGE)
    parsed_uid = int(uid)

    try:
        return await service.get_session(parsed_uid)
    except (SessionNotFoundError, SessionExpiredError) as exc:
        raise _to_http_error(exc) from exc


@router.put("/{session_id}")
async def join_session(
    session_id: str,
    payload: schemas.SessionUsernameRequest,
    service: SessionService = Depends(get_session_service),
) -> int:
    """Join an existing session as a writer and return the new uid."""

    try:
        return await service.join_session(session_id, payload.username)
    except (SessionNotFoundError, SessionExpiredError, UpstreamError) as exc:
        raise _to_http_error(exc) from exc
