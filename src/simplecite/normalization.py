"""Normalization helpers for cleaning, merging and finalizing metadata records."""
from __future__ import annotations

import re
from dataclasses import replace
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlparse

from .models import METADATA_FIELDS, Metadata, MetadataSource

DOMAIN_PATTERN = re.compile(r"^[a-z0-9.-]+\.[a-z]{2,}$", re.IGNORECASE)

Candidate = Union[Metadata, Mapping[str, Any], None]


def normalize_whitespace(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


def hostname_from_url(value: str | None) -> str:
    """Extract the hostname of a URL without a leading ``www.``."""
    if not value:
        return ""
    raw = value.strip()
    if not raw:
        return ""
    try:
        parsed = urlparse(raw)
    except ValueError:
        return ""
    host = parsed.hostname or ""
    if host.startswith("www."):
        host = host[4:]
    return host


def looks_like_hostname(value: str | None, url: str | None = None) -> bool:
    if not value:
        return False
    normalized = value.strip().lower()
    if not normalized:
        return False
    if DOMAIN_PATTERN.match(normalized):
        return True
    host = hostname_from_url(url)
    return bool(host) and host.lower() == normalized


def _coerce(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        return "; ".join(part for part in (_coerce(item) for item in value) if part)
    if isinstance(value, dict):
        return _coerce(value.get("name"))
    return str(value).strip()


def normalize(candidate: Candidate) -> Metadata:
    """Trim every field and coerce non-string values; empty values become ``""``."""
    if candidate is None:
        return Metadata()
    if isinstance(candidate, Metadata):
        data: Mapping[str, Any] = candidate.to_dict()
        source = candidate.source
    else:
        data = candidate
        raw_source = data.get("source")
        source = MetadataSource(raw_source) if raw_source in {s.value for s in MetadataSource} else None
    values = {name: _coerce(data.get(name)) for name in METADATA_FIELDS}
    return Metadata(**values, source=source)


def merge(current: Optional[Metadata], incoming: Optional[Metadata]) -> Metadata:
    """Overlay ``incoming`` onto ``current`` field-by-field.

    A field is replaced only when the incoming value is non-empty after trimming,
    so later stages can refine earlier guesses without wiping them out.
    """
    merged = replace(current) if current else Metadata()
    if incoming is None:
        return merged
    for name in METADATA_FIELDS:
        value = getattr(incoming, name)
        if isinstance(value, str) and value.strip():
            setattr(merged, name, value.strip())
    if incoming.source:
        merged.source = incoming.source
    return merged


def has_meaningful_metadata(record: Optional[Metadata]) -> bool:
    if not record:
        return False
    return bool(record.title or record.author or record.site or record.publisher)


def is_sufficient(record: Optional[Metadata], require_author: bool = False) -> bool:
    """A record can stop the pipeline once it has a title and an origin."""
    if not record:
        return False
    has_title = bool(record.title)
    has_origin = bool(record.site or record.publisher or record.url)
    if require_author:
        return has_title and has_origin and bool(record.author)
    return has_title and has_origin


def promote_origin_fields(record: Metadata) -> Metadata:
    result = replace(record)
    host = hostname_from_url(result.url)
    site_is_host = looks_like_hostname(result.site, result.url)
    publisher_is_host = looks_like_hostname(result.publisher, result.url)

    if (not result.site or site_is_host) and result.publisher:
        result.site = result.publisher
    elif not result.site and host:
        result.site = host

    if result.publisher and (
        (publisher_is_host and result.site) or result.publisher.lower() == result.site.lower()
    ):
        result.publisher = ""
    return result


def scrub_organizational_author(record: Metadata) -> Metadata:
    if not record.author:
        return record
    conflicts = [record.site, record.publisher, hostname_from_url(record.url)]
    author = record.author.strip().lower()
    if any(value and value.strip().lower() == author for value in conflicts):
        return replace(record, author="")
    return record


def finalize(record: Metadata) -> Metadata:
    return scrub_organizational_author(promote_origin_fields(record))


__all__ = [
    "normalize_whitespace",
    "hostname_from_url",
    "looks_like_hostname",
    "normalize",
    "merge",
    "has_meaningful_metadata",
    "is_sufficient",
    "promote_origin_fields",
    "scrub_organizational_author",
    "finalize",
]
