"""Endpoint tests for the session router."""
from __future__ import annotations

import json

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from session_broker.core.config import Settings, get_settings
from session_broker.db.clients import get_http_client, get_redis
from session_broker.main import app
from session_broker.routers.sessions import get_session_service
from session_broker.schemas import sessions as schemas
from session_broker.services import rtc
from session_broker.services.sessions import NO_SESSION_MESSAGE, SessionExpiredError, SessionNotFoundError
from session_broker.services.upstream import UpstreamError


class StubService:
    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.error: Exception | None = None

    def _maybe_fail(self) -> None:
        if self.error is not None:
            raise self.error

    async def create_session(self, username: str) -> int:
        self.calls.append(("create", username))
        self._maybe_fail()
        return 123456789

    async def get_session(self, uid: int) -> schemas.SessionResponse:
        self.calls.append(("get", uid))
        self._maybe_fail()
        if uid != 123456789:
            raise SessionNotFoundError(NO_SESSION_MESSAGE)
        return schemas.SessionResponse(
            id="abc",
            uid=uid,
            username="alice",
            expired_at=1_700_003_600,
            agora=schemas.AgoraSession(app_id="agora-app", channel="abc", uid=uid, token="rtc"),
            netless=schemas.NetlessSession(
                uuid="room-1",
                token="wb",
                app_identifier="netless-app",
                role="admin",
                sdk_token="sdk",
            ),
        )

    async def join_session(self, session_id: str, username: str) -> int:
        self.calls.append(("join", session_id, username))
        self._maybe_fail()
        return 987654321

    async def get_platform_config(self, url: str) -> schemas.PlatformConfigResponse:
        self.calls.append(("sign", url))
        self._maybe_fail()
        return schemas.PlatformConfigResponse(app_id="wx-app", timestamp=1000, nonce_str="def", signature="sig")


@pytest.fixture
def stub_service():
    service = StubService()
    app.dependency_overrides[get_session_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_session_service, None)


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.asyncio
async def test_create_session_returns_uid(stub_service):
    async with _client() as client:
        response = await client.post("/api/session", json={"username": "alice"})

    assert response.status_code == 201
    assert response.json() == 123456789
    assert stub_service.calls == [("create", "alice")]


@pytest.mark.asyncio
async def test_get_session_serialises_camel_case(stub_service):
    async with _client() as client:
        response = await client.get("/api/session/123456789")

    assert response.status_code == 200
    body = response.json()
    assert body["expiredAt"] == 1_700_003_600
    assert body["agora"] == {"appId": "agora-app", "channel": "abc", "uid": 123456789, "token": "rtc"}
    assert body["netless"]["appIdentifier"] == "netless-app"
    assert body["netless"]["sdkToken"] == "sdk"
    assert body["netless"]["role"] == "admin"


@pytest.mark.asyncio
async def test_get_session_unknown_and_malformed_uid_are_not_found(stub_service):
    async with _client() as client:
        unknown = await client.get("/api/session/111111111")
        malformed = await client.get("/api/session/not-a-number")

    assert unknown.status_code == 404
    assert unknown.json()["detail"] == NO_SESSION_MESSAGE
    assert malformed.status_code == 404
    assert ("get", 111111111) in stub_service.calls
    assert all(call[0] != "get" or call[1] != "not-a-number" for call in stub_service.calls)


@pytest.mark.asyncio
async def test_get_session_expired_is_gone(stub_service):
    stub_service.error = SessionExpiredError("abc", 1_700_003_600)

    async with _client() as client:
        response = await client.get("/api/session/123456789")

    assert response.status_code == 410


@pytest.mark.asyncio
async def test_join_session_returns_new_uid(stub_service):
    async with _client() as client:
        response = await client.put("/api/session/abc", json={"username": "bob"})

    assert response.status_code == 200
    assert response.json() == 987654321
    assert stub_service.calls == [("join", "abc", "bob")]


@pytest.mark.asyncio
async def test_join_unknown_session_is_not_found(stub_service):
    stub_service.error = SessionNotFoundError("Session abc does not exist.")

    async with _client() as client:
        response = await client.put("/api/session/abc", json={"username": "bob"})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_upstream_failure_maps_to_bad_gateway(stub_service):
    stub_service.error = UpstreamError("netless", "room down")

    async with _client() as client:
        response = await client.post("/api/session", json={"username": "alice"})

    assert response.status_code == 502
    assert "netless" in response.json()["detail"]


@pytest.mark.asyncio
async def test_wx_sign_route_is_not_shadowed_by_uid(stub_service):
    async with _client() as client:
        response = await client.get("/api/session/wx-sign", params={"url": "http://x"})

    assert response.status_code == 200
    assert response.json() == {"appId": "wx-app", "timestamp": 1000, "nonceStr": "def", "signature": "sig"}
    assert stub_service.calls == [("sign", "http://x")]


@pytest.mark.asyncio
async def test_get_session_rejects_non_canonical_digits(stub_service):
    async with _client() as client:
        underscored = await client.get("/api/session/1_000")
        padded = await client.get("/api/session/%2012%20")

    assert underscored.status_code == 404
    assert padded.status_code == 404
    assert not any(call[0] == "get" for call in stub_service.calls)


class FakeRedis:
    def __init__(self) -> None:
        self.values: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def set(self, key: str, value: str, exat: int | None = None) -> bool:
        self.values[key] = value
        return True


def _upstream(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/v5/rooms":
        return httpx.Response(201, json={"uuid": "room-uuid"})
    if path == "/v5/tokens/rooms/room-uuid":
        role = json.loads(request.content)["role"]
        return httpx.Response(201, json=f"wb-token:{role}")
    if path == "/cgi-bin/token":
        return httpx.Response(200, json={"access_token": "access-1"})
    if path == "/cgi-bin/ticket/getticket":
        return httpx.Response(200, json={"ticket": "abc"})
    return httpx.Response(404)


@pytest.fixture
def wired_app(monkeypatch):
    class StubBuilder:
        @staticmethod
        def buildTokenWithUid(app_id, cert, channel, uid, role, expire_ts):  # noqa: N802 - SDK name
            return f"rtc:{channel}:{uid}"

    monkeypatch.setattr(rtc, "RtcTokenBuilder", StubBuilder)

    store = FakeRedis()
    http = httpx.AsyncClient(transport=httpx.MockTransport(_upstream))
    settings = Settings(
        _env_file=None,
        agora_app_id="agora-app",
        netless_api_base="https://netless.test",
        netless_app_identifier="netless-app",
        netless_sdk_token="sdk",
        we_chat_api_base="https://wechat.test",
        we_chat_app_id="wx-app",
    )
    app.dependency_overrides[get_redis] = lambda: store
    app.dependency_overrides[get_http_client] = lambda: http
    app.dependency_overrides[get_settings] = lambda: settings
    yield store
    for dependency in (get_redis, get_http_client, get_settings):
        app.dependency_overrides.pop(dependency, None)


@pytest.mark.asyncio
async def test_real_service_wiring_create_join_and_sign(wired_app):
    async with _client() as client:
        created = await client.post("/api/session", json={"username": "alice"})
        admin_uid = created.json()
        admin = (await client.get(f"/api/session/{admin_uid}")).json()

        joined = await client.put(f"/api/session/{admin['id']}", json={"username": "bob"})
        writer = (await client.get(f"/api/session/{joined.json()}")).json()

        signed = await client.get("/api/session/wx-sign", params={"url": "http://x"})

    assert created.status_code == 201
    assert admin["username"] == "alice"
    assert admin["agora"] == {"appId": "agora-app", "channel": admin["id"], "uid": admin_uid, "token": f"rtc:{admin['id']}:{admin_uid}"}
    assert admin["netless"]["uuid"] == "room-uuid"
    assert admin["netless"]["role"] == "admin"
    assert admin["netless"]["appIdentifier"] == "netless-app"

    assert joined.status_code == 200
    assert writer["id"] == admin["id"]
    assert writer["expiredAt"] == admin["expiredAt"]
    assert writer["netless"]["role"] == "writer"
    assert writer["netless"]["token"] == "wb-token:writer"

    assert signed.status_code == 200
    body = signed.json()
    assert body["appId"] == "wx-app"
    assert len(body["signature"]) == 40
    assert wired_app.values[f"s:{admin['id']}:nru"] == "room-uuid"
