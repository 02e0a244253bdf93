"""Exception types raised by provider adapters."""

from __future__ import annotations


class ProviderError(RuntimeError):
    """A text, image or search provider call failed (network, rate limit, auth)."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
