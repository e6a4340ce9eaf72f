"""Schemas for classroom session endpoints."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serialise field names in camelCase, as the web client expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionUsernameRequest(BaseModel):
    username: str = Field(..., description="Display name chosen by the participant")


class AgoraSession(CamelModel):
    app_id: str
    channel: str
    uid: int
    token: str


class NetlessSession(CamelModel):
    uuid: str
    token: str
    app_identifier: str
    role: str
    sdk_token: str


class SessionResponse(CamelModel):
    id: str
    uid: int
    username: str
    expired_at: int = Field(..., description="Session expiry as unix epoch seconds")
    agora: AgoraSession
    netless: NetlessSession


class PlatformConfigResponse(CamelModel):
    app_id: str
    timestamp: int
    nonce_str: str
    signature: str
