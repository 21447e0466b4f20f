"""Citation metadata resolution and formatting engine."""

from .app import CitationApp, CitationDraft
from .formatter import CitationFormatter
from .models import (
    CitationRecord,
    CitationResult,
    CitationStyle,
    FailureReason,
    Metadata,
    MetadataSource,
    ResolutionResult,
    Stage,
)
from .resolver import MetadataResolver
from .web_metadata import PageMetadataExtractor

__all__ = [
    "CitationApp",
    "CitationDraft",
    "CitationFormatter",
    "CitationRecord",
    "CitationResult",
    "CitationStyle",
    "FailureReason",
    "Metadata",
    "MetadataSource",
    "ResolutionResult",
    "Stage",
    "MetadataResolver",
    "PageMetadataExtractor",
]
