"""HTML scraper that turns a fetched page into a raw metadata candidate."""
from __future__ import annotations

import json
import logging
from html.parser import HTMLParser
from typing import Any, Dict, Iterable, List, Optional

from .models import Metadata
from .normalization import hostname_from_url, merge, normalize

logger = logging.getLogger(__name__)

ARTICLE_TYPES = {"article", "newsarticle", "blogposting", "webpage", "creativework"}

TITLE_KEYS = ["og:title", "twitter:title", "citation_title", "dc.title", "title", "headline"]
AUTHOR_KEYS = ["author", "article:author", "byl", "dc.creator", "citation_author"]
PUBLISHER_KEYS = ["publisher", "article:publisher", "citation_publisher", "organization"]
SITE_KEYS = ["og:site_name", "application-name"]
DATE_KEYS = [
    "article:published_time",
    "pubdate",
    "date",
    "dcterms.created",
    "citation_publication_date",
    "citation_date",
    "datepublished",
]


class _MetaParser(HTMLParser):
    """Lightweight HTML parser that captures meta tags, headings and JSON-LD."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.meta_tags: list[dict[str, str]] = []
        self.title: Optional[str] = None
        self.heading: Optional[str] = None
        self.time_datetime: Optional[str] = None
        self.json_ld: list[str] = []
        self._in_title = False
        self._in_heading = False
        self._heading_done = False
        self._heading_parts: list[str] = []
        self._ld_parts: Optional[list[str]] = None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        attributes = {k.lower(): v for k, v in attrs if v is not None}
        if tag == "meta":
            self.meta_tags.append(attributes)
        elif tag == "title" and self.title is None:
            self._in_title = True
        elif tag == "h1" and not self._heading_done:
            self._in_heading = True
        elif tag == "time" and self.time_datetime is None and attributes.get("datetime", "").strip():
            self.time_datetime = attributes["datetime"].strip()
        elif tag == "script" and attributes.get("type", "").strip().lower() == "application/ld+json":
            self._ld_parts = []

    def handle_endtag(self, tag: str) -> None:
        if tag == "title":
            self._in_title = False
        elif tag == "h1" and self._in_heading:
            self._in_heading = False
            text = " ".join("".join(self._heading_parts).split())
            if text:
                self.heading = text
                self._heading_done = True
            self._heading_parts = []
        elif tag == "script" and self._ld_parts is not None:
            self.json_ld.append("".join(self._ld_parts))
            self._ld_parts = None

    def handle_data(self, data: str) -> None:
        if self._ld_parts is not None:
            self._ld_parts.append(data)
        elif self._in_title:
            self.title = (self.title or "") + data
        elif self._in_heading:
            self._heading_parts.append(data)

    def meta(self, keys: Iterable[str]) -> str:
        """First non-empty meta value matching any key, in key priority order."""
        for key in keys:
            for tag in self.meta_tags:
                names = {
                    (tag.get(attr) or "").strip().lower() for attr in ("name", "property", "itemprop")
                }
                if key not in names:
                    continue
                value = (tag.get("content") or tag.get("value") or "").strip()
                if value:
                    return value
        return ""


def _flatten_nodes(value: Any) -> List[Dict[str, Any]]:
    entries: List[Dict[str, Any]] = []

    def visit(node: Any) -> None:
        if isinstance(node, list):
            for item in node:
                visit(item)
        elif isinstance(node, dict):
            entries.append(node)
            if node.get("@graph"):
                visit(node["@graph"])

    visit(value)
    return entries


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _authors(value: Any) -> str:
    nodes = value if isinstance(value, list) else [value] if value else []
    names = []
    for node in nodes:
        if isinstance(node, str):
            names.append(node.strip())
        elif isinstance(node, dict):
            names.append(_text(node.get("name")) or _text(node.get("@name")))
    return "; ".join(name for name in names if name)


def _is_article(node: Dict[str, Any]) -> bool:
    types = node.get("@type")
    values = types if isinstance(types, list) else [types] if types else []
    return any(isinstance(value, str) and value.lower() in ARTICLE_TYPES for value in values)


def parse_json_ld(blocks: Iterable[str], page_url: str) -> Metadata:
    """Extract metadata from the first article-like JSON-LD node."""
    for block in blocks:
        content = block.strip()
        if not content:
            continue
        try:
            parsed = json.loads(content)
        except ValueError:
            logger.debug("Skipping malformed JSON-LD block on %s", page_url)
            continue
        candidate = next((node for node in _flatten_nodes(parsed) if _is_article(node)), None)
        if candidate is None:
            continue

        title = (
            _text(candidate.get("headline"))
            or _text(candidate.get("name"))
            or _text(candidate.get("alternativeHeadline"))
        )
        publisher_node = candidate.get("publisher")
        if isinstance(publisher_node, dict):
            publisher = _text(publisher_node.get("name")) or _text(publisher_node.get("legalName"))
        else:
            publisher = _text(publisher_node)
        part_of = candidate.get("isPartOf")
        site = _text(part_of.get("name")) if isinstance(part_of, dict) else ""

        return normalize(
            {
                "title": title,
                "author": _authors(candidate.get("author") or candidate.get("creator")),
                "publisher": publisher,
                "site": site or publisher,
                "year": _text(candidate.get("datePublished")) or _text(candidate.get("dateModified")),
                "url": _text(candidate.get("url")) or page_url,
            }
        )
    return Metadata()


class PageMetadataExtractor:
    """Parse meta tags and JSON-LD from an HTML document."""

    def extract(self, html: str, page_url: str) -> Metadata:
        parser = _MetaParser()
        parser.feed(html)
        parser.close()

        title = parser.meta(TITLE_KEYS) or (parser.title or "").strip() or (parser.heading or "")
        publisher = parser.meta(PUBLISHER_KEYS) or parser.meta(["application-name"])
        site = parser.meta(SITE_KEYS) or hostname_from_url(page_url)
        year = parser.meta(DATE_KEYS) or (parser.time_datetime or "")

        from_meta = normalize(
            {
                "title": title,
                "author": parser.meta(AUTHOR_KEYS),
                "publisher": publisher,
                "site": site,
                "year": year,
                "url": page_url,
            }
        )
        return merge(from_meta, parse_json_ld(parser.json_ld, page_url))


__all__ = ["PageMetadataExtractor", "parse_json_ld"]
