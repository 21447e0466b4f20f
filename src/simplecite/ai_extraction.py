"""AI-assisted metadata extraction from readable-text page mirrors."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

from .config import Settings
from .errors import NetworkFailure, UnparseableResponse
from .fetching import Fetcher, http_get
from .models import FailureReason, Metadata
from .normalization import is_sufficient, merge, normalize

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

FENCED_BLOCK = re.compile(r"```[\s\S]*?```")
HTML_TAG = re.compile(r"<[^>]+>")
JSON_FENCE = re.compile(r"```json([\s\S]*?)```", re.IGNORECASE)
ANY_FENCE = re.compile(r"```([\s\S]*?)```")
BRACE_SPAN = re.compile(r"\{[\s\S]*\}")

FAILURE_MESSAGES = {
    FailureReason.READER_UNAVAILABLE: "Could not load a readable version of the page. Try the manual option.",
    FailureReason.NO_READABLE_CONTENT: "Could not find readable content. Try the manual option.",
    FailureReason.UNPARSEABLE_AI_RESPONSE: "The metadata service response could not be understood. Try again or switch to manual.",
    FailureReason.NETWORK_ERROR: "Could not reach the metadata service. Try again in a bit.",
}


def sanitize_context(value: str) -> str:
    """Strip fenced code blocks and HTML tags, then collapse whitespace."""
    text = FENCED_BLOCK.sub(" ", value)
    text = HTML_TAG.sub(" ", text)
    return re.sub(r"\s+", " ", text).strip()


def split_context(value: str, size: int) -> List[str]:
    """Return at most two chunks: the first and last ``size`` characters."""
    sanitized = sanitize_context(value)
    if not sanitized:
        return []
    if len(sanitized) <= size:
        return [sanitized]
    first, last = sanitized[:size], sanitized[-size:]
    if first == last:
        return [first]
    return [first, last]


def build_metadata_prompt(context: str, url: str) -> str:
    return "\n".join(
        [
            "You are a meticulous citation metadata extractor.",
            'Return ONLY strict JSON with keys "title","author","year","publisher","site","accessed". '
            "Empty or missing values must be null.",
            "Never include prose, explanations, or markdown fences. Respond with JSON only.",
            f"Context: {context}",
            f"URL: {url}",
        ]
    )


def parse_metadata_payload(payload: str) -> Optional[Dict[str, Any]]:
    """Best-effort JSON object extraction from free-text model output.

    Tries a fenced ```json block, any fenced block, the outermost brace span and
    finally the raw text. Returns None when nothing parses to a JSON object.
    """
    trimmed = payload.strip()
    candidates: List[str] = []
    fence = JSON_FENCE.search(trimmed) or ANY_FENCE.search(trimmed)
    if fence and fence.group(1):
        candidates.append(fence.group(1))
    braces = BRACE_SPAN.search(trimmed)
    if braces:
        candidates.append(braces.group(0))
    candidates.append(trimmed)
    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def metadata_from_completion(payload: str) -> Metadata:
    parsed = parse_metadata_payload(payload)
    if parsed is None:
        raise UnparseableResponse("no JSON object in metadata response")
    record = normalize(parsed)
    if record.is_empty():
        raise UnparseableResponse("metadata response had no usable fields")
    return record


@dataclass
class AiExtractionOutcome:
    metadata: Optional[Metadata]
    failure: Optional[FailureReason] = None

    @property
    def message(self) -> str:
        return FAILURE_MESSAGES.get(self.failure, "") if self.failure else ""


class AiMetadataExtractor:
    """Fetch a readable mirror of a page and ask a text model for metadata."""

    def __init__(self, settings: Settings, fetcher: Optional[Fetcher] = None):
        self.settings = settings
        self.fetcher = fetcher or http_get

    def mirror_urls(self, target: str) -> List[str]:
        encoded = quote(target, safe="")
        return [
            template.format(url=target, encoded=encoded)
            for template in self.settings.reader_mirrors[:3]
        ]

    async def fetch_readable_text(self, target: str) -> Optional[str]:
        for mirror in self.mirror_urls(target):
            try:
                text = await self.fetcher(mirror, self.settings.request_timeout, self._headers())
            except NetworkFailure as exc:
                logger.warning("Reader mirror failed: %s", exc)
                continue
            if text:
                return text
        return None

    def completion_url(self, prompt: str) -> str:
        endpoint = self.settings.text_endpoint.rstrip("/")
        model = quote(self.settings.text_model, safe="")
        return f"{endpoint}/{quote(prompt, safe='')}?model={model}"

    async def complete(self, prompt: str) -> str:
        headers = self._headers()
        headers["Accept"] = "text/plain"
        if self.settings.text_api_key:
            headers["Authorization"] = f"Bearer {self.settings.text_api_key}"
        return await self.fetcher(self.completion_url(prompt), self.settings.request_timeout, headers)

    async def extract(
        self,
        target: str,
        on_progress: Optional[ProgressCallback] = None,
        require_author: bool = True,
    ) -> AiExtractionOutcome:
        text = await self.fetch_readable_text(target)
        if not text:
            return AiExtractionOutcome(None, FailureReason.READER_UNAVAILABLE)
        chunks = split_context(text, self.settings.chunk_size)
        if not chunks:
            return AiExtractionOutcome(None, FailureReason.NO_READABLE_CONTENT)

        result: Optional[Metadata] = None
        failure: Optional[FailureReason] = None
        for index, chunk in enumerate(chunks, start=1):
            label = f" ({index}/{len(chunks)})" if len(chunks) > 1 else ""
            if on_progress:
                on_progress(f"Extracting metadata with AI...{label}")
            try:
                raw = await self.complete(build_metadata_prompt(chunk, target))
            except NetworkFailure as exc:
                logger.warning("Text service request failed: %s", exc)
                failure = FailureReason.NETWORK_ERROR
                continue
            try:
                parsed = metadata_from_completion(raw)
            except UnparseableResponse as exc:
                logger.warning("Unparseable metadata response for %s (chunk %d): %s", target, index, exc)
                failure = FailureReason.UNPARSEABLE_AI_RESPONSE
                continue
            result = merge(result, parsed)
            if is_sufficient(result, require_author=require_author):
                break
        return AiExtractionOutcome(result, failure)

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": self.settings.user_agent}


__all__ = [
    "sanitize_context",
    "split_context",
    "build_metadata_prompt",
    "parse_metadata_payload",
    "metadata_from_completion",
    "AiExtractionOutcome",
    "AiMetadataExtractor",
]
