"""Command line interface for resolving and formatting citations."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from .app import CitationApp, CitationDraft
from .config import get_settings
from .models import CitationStyle
from .report import render_report, render_saved
from .store import get_connection, init_db

logger = logging.getLogger(__name__)


def _build_result(draft: CitationDraft) -> Dict[str, Any]:
    resolution = draft.resolution
    return {
        "style": draft.style.value,
        "text": draft.citation.text,
        "html": draft.citation.html,
        "source": resolution.source.value,
        "stages": [stage.value for stage in resolution.attempted],
        "failure": resolution.failure.value if resolution.failure else None,
        "message": resolution.message,
        "meta": draft.metadata.to_dict(),
    }


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Resolve a URL into a formatted citation")
    parser.add_argument("url", nargs="?", help="Page URL to cite (https:// is assumed)")
    parser.add_argument(
        "--style",
        default=CitationStyle.APA7.value,
        choices=[style.value for style in CitationStyle],
        help="Citation style to render",
    )
    parser.add_argument(
        "--json-output",
        type=Path,
        help="Write the citation, provenance and metadata to a JSON file",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Save the formatted citation to the citation store",
    )
    parser.add_argument("--db", type=Path, help="Path to the citation store database")
    parser.add_argument("--list", action="store_true", help="List saved citations and exit")
    parser.add_argument("--verbose", action="store_true", help="Log pipeline progress")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    conn = None
    if args.save or args.list:
        conn = get_connection(args.db or get_settings().database_path)
        init_db(conn)
    app = CitationApp(conn=conn)

    if args.list:
        print(render_saved(app.list_citations()))
        return 0

    if not args.url:
        parser.error("a URL is required unless --list is given")

    draft = asyncio.run(app.cite_url(args.url, args.style, on_progress=logger.info))
    print(render_report(draft))

    if args.json_output:
        args.json_output.write_text(json.dumps(_build_result(draft), indent=2))

    if args.save:
        record = app.save(draft.metadata, draft.style)
        print(f"Saved citation {record.id}.")

    return 0 if not draft.resolution.needs_manual else 1


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    raise SystemExit(main())
