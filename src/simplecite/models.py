"""Data models for citation resolution and formatting workflows."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field


class MetadataSource(str, Enum):
    """Provenance tag recording where a record's metadata came from."""

    MANUAL = "manual"
    RESOLVED = "resolved"
    AI_RESOLVED = "ai-resolved"


class CitationStyle(str, Enum):
    APA7 = "apa7"
    MLA9 = "mla9"
    IEEE = "ieee"
    CHICAGO17 = "chicago17"

    @property
    def label(self) -> str:
        return _STYLE_LABELS[self][0]

    @property
    def helper(self) -> str:
        return _STYLE_LABELS[self][1]

    @classmethod
    def parse(cls, value: Optional[str], strict: bool = False) -> "CitationStyle":
        """Decode a stored or user-supplied style key, defaulting to APA."""
        key = (value or "").strip().lower()
        for style in cls:
            if style.value == key:
                return style
        if strict:
            raise ValueError(f"Unsupported citation style: {value!r}")
        return cls.APA7


_STYLE_LABELS = {
    CitationStyle.APA7: ("APA (7th)", "Best for psychology, education, and other social sciences."),
    CitationStyle.MLA9: ("MLA (9th)", "Humanities, language arts, and cultural studies."),
    CitationStyle.IEEE: ("IEEE", "Engineering and technical documentation."),
    CitationStyle.CHICAGO17: ("Chicago (17th)", "History, journalism, and publishing."),
}


class Stage(str, Enum):
    """Resolution pipeline states."""

    DIRECT = "direct"
    PROXY = "proxy"
    AI = "ai"
    DONE = "done"
    FAILED = "failed"


class FailureReason(str, Enum):
    BLOCKED = "blocked"
    EMPTY_RESPONSE = "empty-response"
    READER_UNAVAILABLE = "reader-unavailable"
    NO_READABLE_CONTENT = "no-readable-content"
    UNPARSEABLE_AI_RESPONSE = "unparseable-ai-response"
    NETWORK_ERROR = "network-error"


METADATA_FIELDS = ("title", "author", "year", "publisher", "site", "url", "accessed")


@dataclass
class Metadata:
    """Best current knowledge about one citable work.

    Every bibliographic field is a string; an empty string means "unknown".
    """

    title: str = ""
    author: str = ""
    year: str = ""
    site: str = ""
    publisher: str = ""
    url: str = ""
    accessed: str = ""
    source: Optional[MetadataSource] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["source"] = self.source.value if self.source else None
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Metadata":
        known = {f.name for f in fields(cls)} - {"source"}
        values = {key: str(data[key]) for key in known if data.get(key) is not None}
        source = data.get("source")
        return cls(**values, source=MetadataSource(source) if source else None)

    @classmethod
    def from_json(cls, payload: Optional[str]) -> Optional["Metadata"]:
        """Parse serialized metadata; returns None for missing or malformed payloads."""
        if not payload:
            return None
        try:
            data = json.loads(payload)
            if not isinstance(data, dict):
                return None
            return cls.from_dict(data)
        except ValueError:
            return None

    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in METADATA_FIELDS)


@dataclass
class CitationResult:
    """Parallel plain-text and HTML renderings of one citation."""

    text: str
    html: str


@dataclass
class ResolutionResult:
    """Outcome of a resolution run, including provenance and diagnostics."""

    metadata: Metadata
    source: MetadataSource
    stage: Stage
    message: str = ""
    failure: Optional[FailureReason] = None
    attempted: list[Stage] = field(default_factory=list)

    @property
    def needs_manual(self) -> bool:
        return self.stage == Stage.FAILED

    @property
    def resolved_by(self) -> Optional[Stage]:
        """The stage whose output completed the record, if any."""
        if self.stage != Stage.DONE or not self.attempted:
            return None
        return self.attempted[-1]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CitationRecord(BaseModel):
    """A saved citation as persisted by the citation store."""

    id: Optional[int] = None
    style: CitationStyle = CitationStyle.APA7
    text: str
    meta: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def metadata(self) -> Optional[Metadata]:
        return Metadata.from_json(self.meta)

    def supports_ai_redo(self) -> bool:
        meta = self.metadata()
        if not meta or not meta.url:
            return False
        return meta.source != MetadataSource.MANUAL
