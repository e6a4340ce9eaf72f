"""Redis-backed registry for sessions and their participants.

Key schema (all values are strings):

    s:<id>:ea    session expiry, unix epoch seconds
    s:<id>:nru   whiteboard room uuid shared by the whole session
    u:<uid>:uid  participant existence marker
    u:<uid>:sid  session the participant belongs to
    u:<uid>:um   display name
    u:<uid>:at   RTC token
    u:<uid>:nrt  whiteboard room token
    u:<uid>:nr   whiteboard role

Session-level facts live under ``s:`` and are shared by every participant,
while each participant keeps its own separately expiring credentials under ``u:``.
"""
from __future__ import annotations

from dataclasses import dataclass

from redis.asyncio import Redis


def session_expired_at_key(session_id: str) -> str:
    return f"s:{session_id}:ea"


def session_room_key(session_id: str) -> str:
    return f"s:{session_id}:nru"


def user_marker_key(uid: int) -> str:
    return f"u:{uid}:uid"


def user_session_key(uid: int) -> str:
    return f"u:{uid}:sid"


def user_name_key(uid: int) -> str:
    return f"u:{uid}:um"


def user_rtc_token_key(uid: int) -> str:
    return f"u:{uid}:at"


def user_room_token_key(uid: int) -> str:
    return f"u:{uid}:nrt"


def user_role_key(uid: int) -> str:
    return f"u:{uid}:nr"


@dataclass(slots=True)
class SessionMeta:
    session_id: str
    expired_at: int
    whiteboard_room_id: str


@dataclass(slots=True)
class ParticipantRecord:
    uid: int
    session_id: str
    username: str
    rtc_token: str
    whiteboard_token: str
    role: str


async def put_session(
    client: Redis,
    session_id: str,
    expired_at: int,
    whiteboard_room_id: str,
    *,
    expire_at: int | None = None,
) -> None:
    """Write the room-level facts of a session.

    ``expire_at`` is the absolute epoch second at which Redis drops the keys.
    """

    await client.set(session_expired_at_key(session_id), str(expired_at), exat=expire_at)
    await client.set(session_room_key(session_id), whiteboard_room_id, exat=expire_at)


async def get_session_meta(client: Redis, session_id: str) -> SessionMeta | None:
    """Return the room-level facts of a session, or ``None`` when unknown."""

    expired_at = await client.get(session_expired_at_key(session_id))
    if expired_at is None:
        return None
    room_id = await client.get(session_room_key(session_id))
    return SessionMeta(
        session_id=session_id,
        expired_at=int(float(expired_at)),
        whiteboard_room_id=room_id or "",
    )


async def put_participant(
    client: Redis,
    uid: int,
    session_id: str,
    username: str,
    rtc_token: str,
    whiteboard_token: str,
    role: str,
    *,
    expire_at: int | None = None,
) -> None:
    """Write every participant key, replacing whatever the uid held before."""

    await client.set(user_marker_key(uid), str(uid), exat=expire_at)
    await client.set(user_session_key(uid), session_id, exat=expire_at)
    await client.set(user_name_key(uid), username, exat=expire_at)
    await client.set(user_rtc_token_key(uid), rtc_token, exat=expire_at)
    await client.set(user_room_token_key(uid), whiteboard_token, exat=expire_at)
    await client.set(user_role_key(uid), role, exat=expire_at)


async def get_participant(client: Redis, uid: int) -> ParticipantRecord | None:
    """Return a participant record, or ``None`` when the existence marker is absent."""

    marker = await client.get(user_marker_key(uid))
    if not marker:
        return None

    return ParticipantRecord(
        uid=uid,
        session_id=await client.get(user_session_key(uid)) or "",
        username=await client.get(user_name_key(uid)) or "",
        rtc_token=await client.get(user_rtc_token_key(uid)) or "",
        whiteboard_token=await client.get(user_room_token_key(uid)) or "",
        role=await client.get(user_role_key(uid)) or "",
    )
