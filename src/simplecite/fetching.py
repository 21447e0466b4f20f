"""Async HTTP helpers shared by every network-backed resolution stage."""
from __future__ import annotations

import logging
import re
from typing import Awaitable, Dict, Optional, Protocol
from urllib.parse import quote

import httpx

from .errors import NetworkFailure

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "simplecite/0.1"
HTML_ACCEPT = "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8"
TEXTUAL_CONTENT = re.compile(r"^(text/|application/(json|xml|xhtml\+xml|ld\+json))", re.IGNORECASE)
SCHEME_PATTERN = re.compile(r"^(https?:)?//", re.IGNORECASE)


class Fetcher(Protocol):
    def __call__(
        self, url: str, timeout: float, headers: Optional[Dict[str, str]] = None
    ) -> Awaitable[str]:
        ...


async def http_get(
    url: str,
    timeout: float,
    headers: Optional[Dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """GET ``url`` and return its decoded body.

    Raises NetworkFailure for malformed URLs, transport errors, non-2xx
    statuses and binary content types.
    """
    request_headers = {"User-Agent": DEFAULT_USER_AGENT}
    if headers:
        request_headers.update(headers)
    try:
        async with httpx.AsyncClient(
            timeout=timeout, follow_redirects=True, transport=transport
        ) as client:
            response = await client.get(url, headers=request_headers)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise NetworkFailure(
            url, f"HTTP {exc.response.status_code}", status_code=exc.response.status_code
        ) from exc
    except httpx.RequestError as exc:
        raise NetworkFailure(url, f"request failed: {exc.__class__.__name__}") from exc
    except httpx.InvalidURL as exc:
        raise NetworkFailure(url, f"invalid URL: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    if content_type and not TEXTUAL_CONTENT.match(content_type):
        raise NetworkFailure(url, f"unsupported content type {content_type}")
    logger.debug("Fetched %s (%d bytes)", url, len(response.content))
    return response.text


def ensure_scheme(url: str) -> str:
    value = url.strip()
    if not value or SCHEME_PATTERN.match(value):
        return value
    return f"https://{value}"


def proxied_url(proxy_url: str, target: str) -> str:
    return f"{proxy_url}?url={quote(target, safe='')}"


__all__ = ["Fetcher", "http_get", "ensure_scheme", "proxied_url", "HTML_ACCEPT"]
