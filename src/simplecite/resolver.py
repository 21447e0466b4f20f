"""Layered metadata resolution: direct fetch, proxied fetch, then AI extraction.

Stages run strictly in order and the first stage that produces a sufficient
record ends the run. Network failures never abort a run; they only mark the
stage as unproductive and the pipeline moves on.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Callable, List, Optional, Tuple

from .ai_extraction import AiMetadataExtractor, ProgressCallback
from .config import Settings, get_settings
from .errors import NetworkFailure
from .fetching import HTML_ACCEPT, Fetcher, ensure_scheme, http_get, proxied_url
from .models import FailureReason, Metadata, MetadataSource, ResolutionResult, Stage
from .normalization import (
    finalize,
    has_meaningful_metadata,
    hostname_from_url,
    is_sufficient,
    merge,
)
from .web_metadata import PageMetadataExtractor

logger = logging.getLogger(__name__)

STAGE_MESSAGES = {
    Stage.DIRECT: "Getting metadata...",
    Stage.PROXY: "Retrying via proxy...",
    Stage.AI: "Metadata still missing key details. Asking AI...",
}
PROXY_REASONS = {
    FailureReason.BLOCKED: "Metadata blocked by the site. Retrying via proxy...",
    FailureReason.EMPTY_RESPONSE: "Metadata looked empty. Retrying via proxy...",
    None: "Metadata looked incomplete. Retrying via proxy...",
}
SUCCESS_MESSAGES = {
    MetadataSource.RESOLVED: "Metadata loaded. Double-check the fields before saving.",
    MetadataSource.AI_RESOLVED: "Metadata loaded via AI. Double-check the fields before saving.",
}
MANUAL_FALLBACK_MESSAGE = "Could not auto-extract. Fill in the details manually."


class MetadataResolver:
    """Drive the resolution state machine for one URL at a time.

    The resolver holds no per-request state, so a single instance can serve
    concurrent resolutions.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        fetcher: Optional[Fetcher] = None,
        extractor: Optional[PageMetadataExtractor] = None,
        ai_extractor: Optional[AiMetadataExtractor] = None,
        today: Callable[[], date] = date.today,
    ):
        self.settings = settings or get_settings()
        self.fetcher = fetcher or http_get
        self.extractor = extractor or PageMetadataExtractor()
        self.ai_extractor = ai_extractor or AiMetadataExtractor(self.settings, self.fetcher)
        self.today = today

    async def resolve(
        self, url: str, on_progress: Optional[ProgressCallback] = None
    ) -> ResolutionResult:
        target = ensure_scheme(url)
        accumulator: Optional[Metadata] = None
        attempted: List[Stage] = []
        failure: Optional[FailureReason] = None
        ai_message = ""
        stage = Stage.DIRECT

        while stage not in (Stage.DONE, Stage.FAILED):
            attempted.append(stage)
            logger.info("Resolving %s: stage %s", target, stage.value)

            if stage in (Stage.DIRECT, Stage.PROXY):
                if on_progress:
                    message = STAGE_MESSAGES[stage]
                    if stage == Stage.PROXY:
                        message = PROXY_REASONS.get(failure, PROXY_REASONS[None])
                    on_progress(message)
                candidate, failure = await self._gather_from_page(target, stage == Stage.PROXY)
                accumulator = merge(accumulator, candidate)
                if is_sufficient(accumulator):
                    return self._finish(accumulator, target, MetadataSource.RESOLVED, attempted)
                stage = Stage.PROXY if stage == Stage.DIRECT else Stage.AI
                continue

            if on_progress:
                on_progress(STAGE_MESSAGES[Stage.AI])
            outcome = await self.ai_extractor.extract(target, on_progress, require_author=True)
            accumulator = merge(accumulator, outcome.metadata)
            if is_sufficient(accumulator):
                return self._finish(accumulator, target, MetadataSource.AI_RESOLVED, attempted)
            failure = outcome.failure or failure
            ai_message = outcome.message
            stage = Stage.FAILED

        record = accumulator or Metadata()
        record = replace(record, url=record.url or target, source=MetadataSource.MANUAL)
        message = ai_message or MANUAL_FALLBACK_MESSAGE
        logger.info("Resolution of %s fell back to manual entry (%s)", target, failure)
        if on_progress:
            on_progress(message)
        return ResolutionResult(
            metadata=record,
            source=MetadataSource.MANUAL,
            stage=Stage.FAILED,
            message=message,
            failure=failure,
            attempted=attempted,
        )

    async def redo_with_ai(
        self, metadata: Metadata, on_progress: Optional[ProgressCallback] = None
    ) -> ResolutionResult:
        """Force the AI stage for an existing record, requiring an author."""
        if not metadata.url:
            return ResolutionResult(
                metadata=metadata,
                source=metadata.source or MetadataSource.MANUAL,
                stage=Stage.FAILED,
                message="Need a saved URL to redo this citation with AI.",
            )
        outcome = await self.ai_extractor.extract(metadata.url, on_progress, require_author=True)
        refreshed = merge(metadata, outcome.metadata)
        if outcome.metadata is None or not is_sufficient(refreshed, require_author=True):
            return ResolutionResult(
                metadata=metadata,
                source=metadata.source or MetadataSource.MANUAL,
                stage=Stage.FAILED,
                message=outcome.message or "AI could not refresh this citation.",
                failure=outcome.failure,
                attempted=[Stage.AI],
            )
        return self._finish(refreshed, metadata.url, MetadataSource.AI_RESOLVED, [Stage.AI])

    async def _gather_from_page(
        self, target: str, use_proxy: bool
    ) -> Tuple[Optional[Metadata], Optional[FailureReason]]:
        source = proxied_url(self.settings.proxy_url, target) if use_proxy else target
        headers = {"Accept": HTML_ACCEPT, "User-Agent": self.settings.user_agent}
        try:
            html = await self.fetcher(source, self.settings.request_timeout, headers)
        except NetworkFailure as exc:
            logger.warning("Page fetch failed: %s", exc)
            return None, FailureReason.BLOCKED
        if not html.strip():
            return None, FailureReason.EMPTY_RESPONSE
        parsed = self.extractor.extract(html, target)
        # the hostname fallback for site is not a page signal
        signals = replace(parsed, site="") if parsed.site == hostname_from_url(target) else parsed
        if not has_meaningful_metadata(signals):
            return None, FailureReason.EMPTY_RESPONSE
        return parsed, None

    def _finish(
        self,
        accumulator: Metadata,
        target: str,
        source: MetadataSource,
        attempted: List[Stage],
    ) -> ResolutionResult:
        completed = replace(
            accumulator,
            url=accumulator.url or target,
            accessed=accumulator.accessed or self.today().isoformat(),
            source=source,
        )
        logger.info("Resolved %s as %s after %d stage(s)", target, source.value, len(attempted))
        return ResolutionResult(
            metadata=finalize(completed),
            source=source,
            stage=Stage.DONE,
            message=SUCCESS_MESSAGES[source],
            attempted=attempted,
        )


__all__ = ["MetadataResolver"]
