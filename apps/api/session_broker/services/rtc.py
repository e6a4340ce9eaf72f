"""Agora RTC token issuance.

Tokens are signed locally with the app certificate; no network call is made."""
from __future__ import annotations

from typing import Protocol

from agora_token_builder import RtcTokenBuilder

# Agora role value for participants allowed to publish audio/video streams.
ROLE_PUBLISHER = 1


class RtcTokenBuilderFn(Protocol):
    def __call__(
        self,
        app_id: str,
        app_certificate: str,
        channel: str,
        uid: int,
        expire_ts: int,
    ) -> str: ...


def build_rtc_token(
    app_id: str,
    app_certificate: str,
    channel: str,
    uid: int,
    expire_ts: int,
) -> str:
    """Return a publisher token for ``uid`` on ``channel`` valid until ``expire_ts`` (epoch seconds)."""

    return RtcTokenBuilder.buildTokenWithUid(
        app_id,
        app_certificate,
        channel,
        uid,
        ROLE_PUBLISHER,
        expire_ts,
    )
