"""Netless whiteboard room provisioning client."""
from __future__ import annotations

import enum
import logging

import httpx

from .upstream import UpstreamError

logger = logging.getLogger(__name__)

PROVIDER = "netless"


class WhiteboardRole(str, enum.Enum):
    ADMIN = "admin"
    WRITER = "writer"
    # Not assigned by any flow yet; kept for read-only observers.
    READER = "reader"


class NetlessClient:
    """Create Netless rooms and room tokens over the shared HTTP client."""

    def __init__(self, http: httpx.AsyncClient, *, api_base: str, sdk_token: str) -> None:
        self._http = http
        self._api_base = api_base.rstrip("/")
        self._sdk_token = sdk_token

    async def create_room(self) -> str:
        """Provision a new room and return its UUID."""

        payload = await self._post("/v5/rooms", json=None)
        uuid = payload.get("uuid") if isinstance(payload, dict) else None
        if not uuid:
            logger.error("Netless room response missing uuid: %r", payload)
            raise UpstreamError(PROVIDER, "room response did not include a uuid")
        logger.debug("Netless room uuid: %s", uuid)
        return str(uuid)

    async def create_room_token(self, room_uuid: str, lifespan_ms: int, role: WhiteboardRole) -> str:
        """Return a room token for ``role`` valid for ``lifespan_ms`` milliseconds."""

        if not room_uuid:
            raise UpstreamError(PROVIDER, "cannot issue a room token without a room uuid")

        payload = await self._post(
            f"/v5/tokens/rooms/{room_uuid}",
            json={"lifespan": lifespan_ms, "role": role.value},
        )
        if not isinstance(payload, str) or not payload:
            logger.error("Netless room token response was not a token string: %r", payload)
            raise UpstreamError(PROVIDER, "room token response was empty")
        logger.debug("Netless room token issued for room %s (%s)", room_uuid, role.value)
        return payload

    async def _post(self, path: str, *, json: dict | None) -> object:
        url = f"{self._api_base}{path}"
        try:
            response = await self._http.post(url, json=json, headers={"token": self._sdk_token})
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Netless request %s failed with %s: %s",
                path,
                exc.response.status_code,
                exc.response.text,
            )
            raise UpstreamError(PROVIDER, f"HTTP {exc.response.status_code} from {path}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.exception("Netless request %s failed: %s", path, exc)
            raise UpstreamError(PROVIDER, f"request to {path} failed") from exc
