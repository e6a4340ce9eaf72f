"""Classroom session lifecycle and credential issuance."""
from __future__ import annotations

import logging
import secrets
import time
from typing import Callable
from uuid import uuid4

from redis.asyncio import Redis

from ..core.config import Settings
from ..repositories import sessions as sessions_repo
from ..schemas import sessions as schemas
from .rtc import RtcTokenBuilderFn, build_rtc_token
from .upstream import UpstreamError
from .wechat import WeChatClient, build_nonce, build_signature
from .whiteboard import PROVIDER, NetlessClient, WhiteboardRole

logger = logging.getLogger(__name__)

UID_MIN = 100_000_000
UID_MAX = 999_999_999

Clock = Callable[[], float]


class SessionNotFoundError(LookupError):
    """Raised when a uid or session id has no stored record."""


class SessionExpiredError(RuntimeError):
    """Raised when a session is read or joined after its expiry."""

    def __init__(self, session_id: str, expired_at: int) -> None:
        super().__init__(f"Session {session_id} expired at {expired_at}.")
        self.session_id = session_id
        self.expired_at = expired_at


NO_SESSION_MESSAGE = "You don't have joined or created any session."


def build_uid() -> int:
    """Draw a 9-digit uid, usable directly as an Agora numeric uid."""

    return UID_MIN + secrets.randbelow(UID_MAX - UID_MIN + 1)


def build_session_id() -> str:
    return uuid4().hex


class SessionService:
    """Create, read and join sessions backed by Redis.

    Every request reads and writes the store directly; nothing is cached in
    process. Provider failures raise ``UpstreamError`` before any participant
    key is written.
    """

    def __init__(
        self,
        client: Redis,
        settings: Settings,
        whiteboard: NetlessClient,
        wechat: WeChatClient,
        *,
        rtc_token_builder: RtcTokenBuilderFn = build_rtc_token,
        clock: Clock = time.time,
    ) -> None:
        self._client = client
        self._settings = settings
        self._whiteboard = whiteboard
        self._wechat = wechat
        self._build_rtc_token = rtc_token_builder
        self._clock = clock

    @property
    def eta(self) -> int:
        return self._settings.session_eta_seconds

    async def create_session(self, username: str) -> int:
        """Open a new session with ``username`` as its admin and return the admin's uid."""

        uid = build_uid()
        session_id = build_session_id()
        expired_at = int(self._clock()) + self.eta

        rtc_token = self._rtc_token(session_id, uid, expired_at)
        room_id = await self._whiteboard.create_room()
        room_token = await self._whiteboard.create_room_token(room_id, self.eta * 1000, WhiteboardRole.ADMIN)

        expire_at = self._key_expiry(expired_at)
        await sessions_repo.put_session(self._client, session_id, expired_at, room_id, expire_at=expire_at)
        await sessions_repo.put_participant(
            self._client,
            uid,
            session_id,
            username,
            rtc_token,
            room_token,
            WhiteboardRole.ADMIN.value,
            expire_at=expire_at,
        )

        logger.info("Created session %s for uid %s (expires at %s)", session_id, uid, expired_at)
        return uid

    async def get_session(self, uid: int) -> schemas.SessionResponse:
        """Assemble the credentials a participant needs to enter their session."""

        participant = await sessions_repo.get_participant(self._client, uid)
        if participant is None:
            raise SessionNotFoundError(NO_SESSION_MESSAGE)

        meta = await sessions_repo.get_session_meta(self._client, participant.session_id)
        if meta is None:
            raise SessionNotFoundError(NO_SESSION_MESSAGE)
        self._ensure_live(meta)

        return schemas.SessionResponse(
            id=meta.session_id,
            uid=participant.uid,
            username=participant.username,
            expired_at=meta.expired_at,
            agora=schemas.AgoraSession(
                app_id=self._settings.agora_app_id,
                channel=meta.session_id,
                uid=participant.uid,
                token=participant.rtc_token,
            ),
            netless=schemas.NetlessSession(
                uuid=meta.whiteboard_room_id,
                token=participant.whiteboard_token,
                app_identifier=self._settings.netless_app_identifier,
                role=participant.role,
                sdk_token=self._settings.netless_sdk_token,
            ),
        )

    async def join_session(self, session_id: str, username: str) -> int:
        """Add a writer to an existing session and return the new uid.

        The joiner inherits the session's original expiry, so a late joiner
        gets whatever is left of the window.
        """

        uid = build_uid()
        meta = await sessions_repo.get_session_meta(self._client, session_id)
        if meta is None:
            raise SessionNotFoundError(f"Session {session_id} does not exist.")
        self._ensure_live(meta)
        if not meta.whiteboard_room_id:
            logger.error("Session %s has no whiteboard room; refusing join", session_id)
            raise UpstreamError(PROVIDER, f"session {session_id} has no whiteboard room")

        rtc_token = self._rtc_token(session_id, uid, meta.expired_at)
        room_token = await self._whiteboard.create_room_token(
            meta.whiteboard_room_id, self.eta * 1000, WhiteboardRole.WRITER
        )

        await sessions_repo.put_participant(
            self._client,
            uid,
            session_id,
            username,
            rtc_token,
            room_token,
            WhiteboardRole.WRITER.value,
            expire_at=self._key_expiry(meta.expired_at),
        )

        logger.info("uid %s joined session %s", uid, session_id)
        return uid

    async def get_platform_config(self, url: str) -> schemas.PlatformConfigResponse:
        """Sign ``url`` for the WeChat JS-SDK."""

        access_token = await self._wechat.fetch_access_token()
        ticket = await self._wechat.fetch_ticket(access_token)
        timestamp = int(self._clock())
        nonce = build_nonce()

        return schemas.PlatformConfigResponse(
            app_id=self._settings.we_chat_app_id,
            timestamp=timestamp,
            nonce_str=nonce,
            signature=build_signature(ticket, nonce, timestamp, url),
        )

    def _rtc_token(self, channel: str, uid: int, expired_at: int) -> str:
        return self._build_rtc_token(
            self._settings.agora_app_id,
            self._settings.agora_app_certificate,
            channel,
            uid,
            expired_at,
        )

    def _key_expiry(self, expired_at: int) -> int:
        return expired_at + self._settings.session_key_retention_seconds

    def _ensure_live(self, meta: sessions_repo.SessionMeta) -> None:
        if not self._settings.session_expiry_enforced:
            return
        if self._clock() > meta.expired_at:
            raise SessionExpiredError(meta.session_id, meta.expired_at)
