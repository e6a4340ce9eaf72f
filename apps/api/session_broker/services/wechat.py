"""WeChat JS-SDK signing support.

The JS-SDK ``wx.config`` call needs a signature over the page URL derived from
a short-lived jsapi ticket. Fetching the ticket takes two calls: an app access
token first, then the ticket itself."""
from __future__ import annotations

import hashlib
import logging
import secrets
import string

import httpx

from .upstream import UpstreamError

logger = logging.getLogger(__name__)

PROVIDER = "wechat"
NONCE_ALPHABET = string.ascii_lowercase + string.digits
NONCE_LENGTH = 15


def build_signature(ticket: str, nonce: str, timestamp: int, url: str) -> str:
    """Return the SHA-1 hex signature of the canonical jsapi string.

    Fields are joined in this exact order and the URL is used verbatim,
    without any encoding.
    """

    canonical = f"jsapi_ticket={ticket}&noncestr={nonce}&timestamp={timestamp}&url={url}"
    return hashlib.sha1(canonical.encode("utf-8")).hexdigest()


def build_nonce(length: int = NONCE_LENGTH) -> str:
    return "".join(secrets.choice(NONCE_ALPHABET) for _ in range(length))


class WeChatClient:
    """Fetch WeChat access tokens and jsapi tickets."""

    def __init__(self, http: httpx.AsyncClient, *, api_base: str, app_id: str, app_secret: str) -> None:
        self._http = http
        self._api_base = api_base.rstrip("/")
        self._app_id = app_id
        self._app_secret = app_secret

    async def fetch_access_token(self) -> str:
        payload = await self._get(
            "/cgi-bin/token",
            {"grant_type": "client_credential", "appid": self._app_id, "secret": self._app_secret},
        )
        return self._require(payload, "access_token")

    async def fetch_ticket(self, access_token: str) -> str:
        payload = await self._get(
            "/cgi-bin/ticket/getticket",
            {"access_token": access_token, "type": "jsapi"},
        )
        return self._require(payload, "ticket")

    def _require(self, payload: dict, field: str) -> str:
        value = payload.get(field)
        if not value:
            # WeChat reports failures as 200 responses carrying errcode/errmsg.
            logger.error(
                "Can not retrieve WeChat %s (errcode=%s, errmsg=%s)",
                field,
                payload.get("errcode"),
                payload.get("errmsg"),
            )
            raise UpstreamError(PROVIDER, f"response did not include {field}")
        return str(value)

    async def _get(self, path: str, params: dict[str, str]) -> dict:
        url = f"{self._api_base}{path}"
        try:
            response = await self._http.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("WeChat request %s failed with %s", path, exc.response.status_code)
            raise UpstreamError(PROVIDER, f"HTTP {exc.response.status_code} from {path}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.exception("WeChat request %s failed: %s", path, exc)
            raise UpstreamError(PROVIDER, f"request to {path} failed") from exc

        if not isinstance(payload, dict):
            raise UpstreamError(PROVIDER, f"unexpected payload from {path}")
        return payload
