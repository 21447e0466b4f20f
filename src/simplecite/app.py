"""High-level orchestrator for resolving, formatting and saving citations."""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, replace
from typing import Any, List, Mapping, Optional, Union

from .ai_extraction import ProgressCallback
from .formatter import CitationFormatter, needs_manual_input
from .models import (
    CitationRecord,
    CitationResult,
    CitationStyle,
    Metadata,
    MetadataSource,
    ResolutionResult,
    Stage,
)
from .normalization import normalize
from .resolver import MetadataResolver
from .store import add_citation, delete_citation, get_citation, list_citations, update_citation

logger = logging.getLogger(__name__)

StyleArg = Union[CitationStyle, str]


@dataclass
class CitationDraft:
    """A formatted citation plus the resolution that produced it."""

    resolution: ResolutionResult
    citation: CitationResult
    style: CitationStyle

    @property
    def metadata(self) -> Metadata:
        return self.resolution.metadata

    @property
    def offers_ai_redo(self) -> bool:
        return bool(self.metadata.url) and self.resolution.source != MetadataSource.MANUAL


class CitationApp:
    """Coordinates resolution, formatting and the citation store."""

    def __init__(
        self,
        conn: Optional[sqlite3.Connection] = None,
        resolver: Optional[MetadataResolver] = None,
        formatter: Optional[CitationFormatter] = None,
    ):
        self.conn = conn
        self._resolver = resolver
        self.formatter = formatter or CitationFormatter()

    @property
    def resolver(self) -> MetadataResolver:
        if self._resolver is None:
            self._resolver = MetadataResolver()
        return self._resolver

    async def cite_url(
        self,
        url: str,
        style: StyleArg = CitationStyle.APA7,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CitationDraft:
        style_key = CitationStyle.parse(style)
        resolution = await self.resolver.resolve(url, on_progress)
        citation = self.formatter.format(resolution.metadata, style_key)
        return CitationDraft(resolution=resolution, citation=citation, style=style_key)

    def cite_manual(
        self, fields: Union[Metadata, Mapping[str, Any]], style: StyleArg = CitationStyle.APA7
    ) -> CitationResult:
        meta = replace(normalize(fields), source=MetadataSource.MANUAL)
        return self.formatter.format(meta, CitationStyle.parse(style))

    def save(
        self, meta: Metadata, style: StyleArg, record_id: Optional[int] = None
    ) -> CitationRecord:
        style_key = CitationStyle.parse(style)
        citation = self.formatter.format(meta, style_key)
        if needs_manual_input(meta):
            raise ValueError("Fill in at least a title or URL before saving.")
        payload = replace(meta, source=meta.source or MetadataSource.MANUAL).to_json()
        if record_id is not None:
            return update_citation(self._store(), record_id, citation.text, payload, style_key)
        record = CitationRecord(style=style_key, text=citation.text, meta=payload)
        return add_citation(self._store(), record)

    def list_citations(self) -> List[CitationRecord]:
        return list_citations(self._store())

    def delete(self, record_id: int) -> None:
        delete_citation(self._store(), record_id)

    async def redo_with_ai(
        self, record_id: int, on_progress: Optional[ProgressCallback] = None
    ) -> tuple[CitationRecord, ResolutionResult]:
        record = get_citation(self._store(), record_id)
        meta = record.metadata()
        if meta is None or not record.supports_ai_redo():
            resolution = ResolutionResult(
                metadata=meta or Metadata(),
                source=MetadataSource.MANUAL,
                stage=Stage.FAILED,
                message="Need a saved, non-manual URL to redo this citation with AI.",
            )
            return record, resolution
        resolution = await self.resolver.redo_with_ai(meta, on_progress)
        if resolution.needs_manual:
            logger.info("AI redo for citation %d did not complete: %s", record_id, resolution.message)
            return record, resolution
        citation = self.formatter.format(resolution.metadata, record.style)
        updated = update_citation(
            self._store(), record_id, citation.text, resolution.metadata.to_json()
        )
        return updated, resolution

    def _store(self) -> sqlite3.Connection:
        if self.conn is None:
            raise RuntimeError("CitationApp was created without a citation store connection")
        return self.conn


__all__ = ["CitationApp", "CitationDraft"]
