"""Render metadata records into APA, MLA, IEEE and Chicago citations."""
from __future__ import annotations

import re
from datetime import date, datetime
from html import escape
from typing import List, Optional, Union

from .models import CitationResult, CitationStyle, Metadata
from .names import (
    format_authors_apa,
    format_authors_chicago,
    format_authors_ieee,
    format_authors_mla,
    parse_authors,
)
from .normalization import normalize_whitespace

UNTITLED = "Untitled work"

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

TEXT_DATE_FORMATS = ["%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%d %b %Y", "%Y/%m/%d", "%m/%d/%Y"]
COMPACT_OFFSET = re.compile(r"(T.*[+-]\d{2})(\d{2})$")


def _parse_date(value: str) -> Optional[date]:
    raw = value.strip()
    iso = raw[:-1] + "+00:00" if raw.endswith("Z") else COMPACT_OFFSET.sub(r"\1:\2", raw)
    try:
        return datetime.fromisoformat(iso).date()
    except ValueError:
        pass
    for fmt in TEXT_DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def _month_day_year(value: date) -> str:
    return f"{MONTH_NAMES[value.month - 1]} {value.day}, {value.year}"


def format_accessed_date(value: str | None) -> str:
    if not value:
        return ""
    parsed = _parse_date(value)
    return _month_day_year(parsed) if parsed else value


def format_published_date(value: str | None) -> str:
    if not value:
        return ""
    trimmed = value.strip()
    if re.fullmatch(r"\d{4}", trimmed):
        return trimmed
    parsed = _parse_date(trimmed)
    return _month_day_year(parsed) if parsed else trimmed


def link_html(url: str) -> str:
    return f'<a href="{escape(url)}" target="_blank" rel="noreferrer">{escape(url)}</a>'


def ensure_trailing_period(value: str) -> str:
    trimmed = value.strip()
    return trimmed if trimmed.endswith(".") else f"{trimmed}."


class _Parts:
    """Parallel text/HTML fragment lists; empty fragments are skipped."""

    def __init__(self) -> None:
        self.text: List[str] = []
        self.html: List[str] = []

    def push(self, text: str, html: Optional[str] = None) -> None:
        if not text or not text.strip():
            return
        self.text.append(text.strip())
        self.html.append(html or escape(text.strip()))

    def build(self, fallback_text: str, fallback_html: str) -> CitationResult:
        text = normalize_whitespace(" ".join(self.text))
        html = normalize_whitespace(" ".join(self.html))
        return CitationResult(text=text or fallback_text, html=html or fallback_html)


class CitationFormatter:
    """Format metadata records into target citation styles.

    Every style assembles an ordered list of optional fragments and produces a
    plain-text and an HTML rendering side by side.
    """

    SUPPORTED_STYLES = {style.value for style in CitationStyle}

    def format(self, meta: Metadata, style: Union[CitationStyle, str] = CitationStyle.APA7) -> CitationResult:
        style_key = CitationStyle.parse(style.value if isinstance(style, CitationStyle) else style)
        formatter = getattr(self, f"format_{style_key.value}")
        return formatter(meta)

    def format_apa7(self, meta: Metadata) -> CitationResult:
        parts = _Parts()
        title = self._display_title(meta)
        accessed = format_accessed_date(meta.accessed)
        published = format_published_date(meta.year)

        authors = format_authors_apa(parse_authors(meta.author))
        if authors:
            parts.push(ensure_trailing_period(authors))
        parts.push(f"({published})." if published else "(n.d.).")
        parts.push(f"{title}.", f"<i>{escape(title)}</i>.")
        if meta.site:
            parts.push(f"{meta.site}.")
        if meta.publisher and meta.publisher != meta.site:
            parts.push(f"{meta.publisher}.")
        if meta.url:
            if accessed:
                parts.push(
                    f"Retrieved {accessed} from {meta.url}.",
                    f"Retrieved {escape(accessed)} from {link_html(meta.url)}.",
                )
            else:
                parts.push(meta.url, link_html(meta.url))
        return self._build(parts, meta)

    def format_mla9(self, meta: Metadata) -> CitationResult:
        parts = _Parts()
        title = self._display_title(meta)
        accessed = format_accessed_date(meta.accessed)
        published = format_published_date(meta.year)

        authors = format_authors_mla(parse_authors(meta.author))
        if authors:
            parts.push(ensure_trailing_period(authors))
        parts.push(f'"{title}."', f"&ldquo;{escape(title)}.&rdquo;")
        if meta.site:
            parts.push(f"{meta.site},", f"<i>{escape(meta.site)}</i>,")
        if meta.publisher:
            parts.push(f"{meta.publisher},")
        if published:
            parts.push(f"{published},")
        if meta.url:
            parts.push(f"{meta.url}.", f"{link_html(meta.url)}.")
        if accessed:
            parts.push(f"Accessed {accessed}.", f"Accessed {escape(accessed)}.")
        return self._build(parts, meta)

    def format_ieee(self, meta: Metadata) -> CitationResult:
        parts = _Parts()
        title = self._display_title(meta)
        accessed = format_accessed_date(meta.accessed)
        published = format_published_date(meta.year)

        authors = format_authors_ieee(parse_authors(meta.author))
        if authors:
            parts.push(f"{authors},")
        parts.push(f'"{title},"', f"&ldquo;{escape(title)},&rdquo;")
        if meta.site:
            parts.push(f"{meta.site},", f"<i>{escape(meta.site)}</i>,")
        if published:
            parts.push(f"{published}.")
        parts.push("[Online].")
        if meta.url:
            parts.push(f"Available: {meta.url}.", f"Available: {link_html(meta.url)}.")
        if accessed:
            parts.push(f"Accessed: {accessed}.", f"Accessed: {escape(accessed)}.")
        return self._build(parts, meta)

    def format_chicago17(self, meta: Metadata) -> CitationResult:
        parts = _Parts()
        title = self._display_title(meta)
        accessed = format_accessed_date(meta.accessed)
        published = format_published_date(meta.year)

        authors = format_authors_chicago(parse_authors(meta.author))
        if authors:
            parts.push(f"{authors},")
        parts.push(f'"{title},"', f"&ldquo;{escape(title)},&rdquo;")
        if meta.site:
            parts.push(f"{meta.site}.", f"<i>{escape(meta.site)}</i>.")
        if published:
            parts.push(f"{published}.")
        if meta.publisher:
            parts.push(f"{meta.publisher},")
        if meta.url:
            parts.push(meta.url, link_html(meta.url))
        if accessed:
            parts.push(f"Accessed {accessed}.", f"Accessed {escape(accessed)}.")
        return self._build(parts, meta)

    @staticmethod
    def _display_title(meta: Metadata) -> str:
        return meta.title or meta.site or meta.publisher or meta.url or UNTITLED

    def _build(self, parts: _Parts, meta: Metadata) -> CitationResult:
        fallback = meta.url or self._display_title(meta)
        fallback_html = link_html(meta.url) if meta.url else escape(fallback)
        return parts.build(fallback, fallback_html)


def needs_manual_input(meta: Metadata) -> bool:
    """True when a record has neither a URL nor any title-like field."""
    return not meta.url and CitationFormatter._display_title(meta) == UNTITLED


__all__ = [
    "CitationFormatter",
    "format_accessed_date",
    "format_published_date",
    "needs_manual_input",
    "UNTITLED",
]
