"""Exception types raised by the network and parsing layers."""
from __future__ import annotations

from typing import Optional


class SimpleCiteError(Exception):
    """Base class for citation engine errors."""


class NetworkFailure(SimpleCiteError):
    """A fetch raised, returned a non-OK status, or returned non-textual content."""

    def __init__(self, url: str, detail: str, status_code: Optional[int] = None):
        super().__init__(f"{detail} ({url})")
        self.url = url
        self.detail = detail
        self.status_code = status_code


class UnparseableResponse(SimpleCiteError):
    """A response body could not be turned into usable metadata fields."""


__all__ = ["SimpleCiteError", "NetworkFailure", "UnparseableResponse"]
