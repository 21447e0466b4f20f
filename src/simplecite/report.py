"""Resolution reporting utilities."""
from __future__ import annotations

from typing import List

from .app import CitationDraft
from .models import CitationRecord, METADATA_FIELDS


def render_report(draft: CitationDraft) -> str:
    """Return a human-readable summary of a resolution and its citation."""

    resolution = draft.resolution
    lines = ["Citation Resolution Report"]
    lines.append(f"Style: {draft.style.label}")
    lines.append(f"Provenance: {resolution.source.value}")
    lines.append(f"Stages tried: {', '.join(stage.value for stage in resolution.attempted) or 'none'}")
    if resolution.failure:
        lines.append(f"Failure: {resolution.failure.value}")
    if resolution.message:
        lines.append(f"Status: {resolution.message}")

    lines.append("Metadata:")
    for name in METADATA_FIELDS:
        value = getattr(draft.metadata, name)
        lines.append(f"  {name}: {value or '-'}")

    if resolution.needs_manual:
        lines.append("Manual completion needed before saving.")
    lines.append("Citation:")
    lines.append(f"  {draft.citation.text}")
    return "\n".join(lines)


def render_saved(records: List[CitationRecord]) -> str:
    if not records:
        return "No saved citations."
    lines = []
    for record in records:
        lines.append(f"[{record.id}] ({record.style.label}) {record.text}")
    return "\n".join(lines)
