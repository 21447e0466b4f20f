"""Author name parsing and style-specific author list rendering."""
from __future__ import annotations

import re
from typing import List, NamedTuple

AUTHOR_SEPARATOR = re.compile(r"\s*(?:[;\n&]|\band\b)\s*", re.IGNORECASE)


class NameParts(NamedTuple):
    first: str
    last: str


def parse_authors(raw: str | None) -> List[str]:
    """Split a free-text author field on ``;``, ``&`` and whole-word ``and``."""
    if not raw:
        return []
    return [name.strip() for name in AUTHOR_SEPARATOR.split(raw) if name.strip()]


def decompose_name(name: str) -> NameParts:
    trimmed = name.strip()
    if not trimmed:
        return NameParts("", "")
    if "," in trimmed:
        last, _, first = trimmed.partition(",")
        return NameParts(first.strip(), last.strip())
    parts = trimmed.split()
    if len(parts) == 1:
        return NameParts("", parts[0])
    return NameParts(" ".join(parts[:-1]), parts[-1])


def initials(first: str) -> str:
    return " ".join(f"{part[0].upper()}." for part in first.split())


def _apa_name(name: str) -> str:
    first, last = decompose_name(name)
    if not last:
        return name
    letters = initials(first)
    return f"{last}, {letters}" if letters else last


def _natural_name(name: str, invert: bool) -> str:
    first, last = decompose_name(name)
    if not last:
        return name
    if invert and first:
        return f"{last}, {first}"
    return f"{first} {last}".strip()


def format_authors_apa(authors: List[str]) -> str:
    formatted = [_apa_name(name) for name in authors]
    if not formatted:
        return ""
    if len(formatted) == 1:
        return formatted[0]
    if len(formatted) == 2:
        return f"{formatted[0]} & {formatted[1]}"
    return f"{', '.join(formatted[:-1])}, & {formatted[-1]}"


def format_authors_mla(authors: List[str]) -> str:
    if not authors:
        return ""
    lead = _natural_name(authors[0], invert=True)
    if len(authors) == 1:
        return lead
    if len(authors) == 2:
        return f"{lead}, and {_natural_name(authors[1], invert=False)}"
    return f"{lead}, et al."


def format_authors_chicago(authors: List[str]) -> str:
    if not authors:
        return ""
    lead = _natural_name(authors[0], invert=True)
    if len(authors) == 1:
        return lead
    if len(authors) == 2:
        return f"{lead} and {_natural_name(authors[1], invert=False)}"
    return f"{lead}, et al."


def format_authors_ieee(authors: List[str]) -> str:
    formatted = []
    for name in authors:
        first, last = decompose_name(name)
        if not last:
            formatted.append(name)
            continue
        formatted.append(f"{initials(first)} {last}".strip())
    return ", ".join(formatted)


__all__ = [
    "NameParts",
    "parse_authors",
    "decompose_name",
    "initials",
    "format_authors_apa",
    "format_authors_mla",
    "format_authors_chicago",
    "format_authors_ieee",
]
