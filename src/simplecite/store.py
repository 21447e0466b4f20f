"""SQLite-backed persistence for saved citations."""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .models import CitationRecord, CitationStyle

logger = logging.getLogger(__name__)

DB_PATH = Path("data/simplecite.db")


def get_connection(db_path: Path = DB_PATH) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS citations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            style TEXT NOT NULL,
            text TEXT NOT NULL,
            meta TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_citations_created_at ON citations (created_at);
        """
    )
    conn.commit()


def _row_to_record(row: sqlite3.Row) -> CitationRecord:
    return CitationRecord(
        id=row["id"],
        style=CitationStyle.parse(row["style"]),
        text=row["text"],
        meta=row["meta"] or "",
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def add_citation(conn: sqlite3.Connection, record: CitationRecord) -> CitationRecord:
    now = datetime.now(timezone.utc)
    cursor = conn.execute(
        "INSERT INTO citations (style, text, meta, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
        (record.style.value, record.text, record.meta, now.isoformat(), now.isoformat()),
    )
    conn.commit()
    logger.info("Saved citation %d (%s)", cursor.lastrowid, record.style.value)
    return record.model_copy(update={"id": int(cursor.lastrowid), "created_at": now, "updated_at": now})


def update_citation(
    conn: sqlite3.Connection,
    citation_id: int,
    text: str,
    meta: str,
    style: Optional[CitationStyle] = None,
) -> CitationRecord:
    existing = get_citation(conn, citation_id)
    now = datetime.now(timezone.utc)
    conn.execute(
        "UPDATE citations SET style = ?, text = ?, meta = ?, updated_at = ? WHERE id = ?",
        ((style or existing.style).value, text, meta, now.isoformat(), citation_id),
    )
    conn.commit()
    return get_citation(conn, citation_id)


def get_citation(conn: sqlite3.Connection, citation_id: int) -> CitationRecord:
    row = conn.execute("SELECT * FROM citations WHERE id = ?", (citation_id,)).fetchone()
    if row is None:
        raise KeyError(citation_id)
    return _row_to_record(row)


def list_citations(conn: sqlite3.Connection) -> List[CitationRecord]:
    rows = conn.execute("SELECT * FROM citations ORDER BY created_at DESC, id DESC").fetchall()
    return [_row_to_record(row) for row in rows]


def delete_citation(conn: sqlite3.Connection, citation_id: int) -> None:
    cursor = conn.execute("DELETE FROM citations WHERE id = ?", (citation_id,))
    conn.commit()
    if cursor.rowcount == 0:
        raise KeyError(citation_id)


__all__ = [
    "get_connection",
    "init_db",
    "add_citation",
    "update_citation",
    "get_citation",
    "list_citations",
    "delete_citation",
]
