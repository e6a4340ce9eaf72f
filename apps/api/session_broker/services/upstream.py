"""Shared error type for third-party credential providers."""
from __future__ import annotations


class UpstreamError(RuntimeError):
    """Raised when a credential provider call fails or returns an unusable payload."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
