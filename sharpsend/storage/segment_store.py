# segment_store.py
"""Persistence of mapped segments.

If a database URL is configured, rows are written through SQLAlchemy (for
example a Postgres instance shared by all API workers).  Otherwise a local
SQLite file is used.

Table::

  segment_mappings(publisher_id, fingerprint, raw_segment, taxonomy_mapping,
                   platform_tags, confidence, created_at)

``(publisher_id, fingerprint)`` is unique; saving an existing pair is a
no-op.  Mappings and tags are stored as JSON text so both backends share one
schema.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import os
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from sharpsend.segmentation.segment import MappedSegment

BASE_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = BASE_DIR / "data"
SEGMENTS_DB = DATA_DIR / "segments.db"

LOGGER = logging.getLogger(__name__)

_CREATE_TABLE = """
    CREATE TABLE IF NOT EXISTS segment_mappings (
        publisher_id TEXT NOT NULL,
        fingerprint BIGINT NOT NULL,
        raw_segment TEXT NOT NULL,
        taxonomy_mapping TEXT NOT NULL,
        platform_tags TEXT NOT NULL,
        confidence REAL NOT NULL,
        created_at TEXT NOT NULL,
        PRIMARY KEY (publisher_id, fingerprint)
    )
"""

_INSERT = """
    INSERT INTO segment_mappings
    (publisher_id, fingerprint, raw_segment, taxonomy_mapping,
     platform_tags, confidence, created_at)
    VALUES (:publisher_id, :fingerprint, :raw_segment, :taxonomy_mapping,
            :platform_tags, :confidence, :created_at)
    ON CONFLICT (publisher_id, fingerprint) DO NOTHING
"""

_COLUMNS = (
    "publisher_id, fingerprint, raw_segment, taxonomy_mapping, "
    "platform_tags, confidence, created_at"
)


def _row_to_segment(row: Dict[str, Any]) -> MappedSegment:
    return MappedSegment(
        raw_segment=row["raw_segment"],
        taxonomy_tags=json.loads(row["taxonomy_mapping"]),
        fingerprint=int(row["fingerprint"]),
        platform_tags=json.loads(row["platform_tags"]),
        confidence=float(row["confidence"]),
    )


class SegmentStore:
    """Store mapped segments in SQLite or in any SQLAlchemy database."""

    def __init__(self, db_path: Optional[Path] = None, database_url: Optional[str] = None) -> None:
        self._engine: Engine | None = None
        self._db_path = Path(db_path or SEGMENTS_DB)
        url = (database_url or "").strip()
        if url:
            self._engine = create_engine(url, pool_pre_ping=True)
            LOGGER.info("Segment store using %s", self._engine.url.render_as_string(hide_password=True))
        else:
            LOGGER.info("Segment store using SQLite file %s", self._db_path)
        self._init_db()

    @property
    def uses_engine(self) -> bool:
        return self._engine is not None

    # ---------------------- low level ----------------------
    def _init_db(self) -> None:
        if self._engine is not None:
            with self._engine.begin() as con:
                con.execute(text(_CREATE_TABLE))
            return
        os.makedirs(self._db_path.parent, exist_ok=True)
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(_CREATE_TABLE)
            conn.commit()

    def _execute(self, sql: str, params: Dict[str, Any]) -> int:
        if self._engine is not None:
            with self._engine.begin() as con:
                return con.execute(text(sql), params).rowcount
        with sqlite3.connect(self._db_path) as conn:
            cur = conn.execute(sql, params)
            conn.commit()
            return cur.rowcount

    def _fetch(self, sql: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        if self._engine is not None:
            with self._engine.connect() as con:
                return [dict(r) for r in con.execute(text(sql), params).mappings().all()]
        with sqlite3.connect(self._db_path) as conn:
            conn.row_factory = sqlite3.Row
            return [dict(r) for r in conn.execute(sql, params).fetchall()]

    # ---------------------- public API ----------------------
    def save(self, publisher_id: str, segment: MappedSegment) -> bool:
        """Insert ``segment`` for ``publisher_id``; return False if it already existed."""
        inserted = self._execute(
            _INSERT,
            {
                "publisher_id": publisher_id,
                "fingerprint": segment.fingerprint,
                "raw_segment": segment.raw_segment,
                "taxonomy_mapping": json.dumps(segment.taxonomy_tags),
                "platform_tags": json.dumps(segment.platform_tags),
                "confidence": float(segment.confidence),
                "created_at": dt.datetime.now(dt.timezone.utc).isoformat(),
            },
        )
        if inserted == 0:
            LOGGER.debug("Segment %s already stored for %s", segment.fingerprint, publisher_id)
        return inserted > 0

    def get_by_fingerprint(self, fingerprint: int, publisher_id: Optional[str] = None) -> Optional[MappedSegment]:
        params: Dict[str, Any] = {"fingerprint": fingerprint}
        query = f"SELECT {_COLUMNS} FROM segment_mappings WHERE fingerprint = :fingerprint"
        if publisher_id is not None:
            query += " AND publisher_id = :publisher_id"
            params["publisher_id"] = publisher_id
        query += " ORDER BY created_at LIMIT 1"
        rows = self._fetch(query, params)
        return _row_to_segment(rows[0]) if rows else None

    def list_for_publisher(self, publisher_id: str) -> List[MappedSegment]:
        rows = self._fetch(
            f"SELECT {_COLUMNS} FROM segment_mappings "
            "WHERE publisher_id = :publisher_id ORDER BY created_at DESC, fingerprint",
            {"publisher_id": publisher_id},
        )
        return [_row_to_segment(r) for r in rows]

    def update_platform_tags(
        self, publisher_id: str, fingerprint: int, platform_tags: Dict[str, List[str]]
    ) -> bool:
        updated = self._execute(
            "UPDATE segment_mappings SET platform_tags = :platform_tags "
            "WHERE publisher_id = :publisher_id AND fingerprint = :fingerprint",
            {
                "platform_tags": json.dumps(platform_tags),
                "publisher_id": publisher_id,
                "fingerprint": fingerprint,
            },
        )
        return updated > 0

    def load_frame(self, publisher_id: Optional[str] = None) -> pd.DataFrame:
        """Return stored rows as a DataFrame with JSON columns decoded."""
        query = f"SELECT {_COLUMNS} FROM segment_mappings"
        params: Dict[str, Any] = {}
        if publisher_id is not None:
            query += " WHERE publisher_id = :publisher_id"
            params["publisher_id"] = publisher_id
        query += " ORDER BY publisher_id, fingerprint"

        if self._engine is not None:
            df = pd.read_sql_query(text(query), con=self._engine, params=params)
        else:
            with sqlite3.connect(self._db_path) as conn:
                df = pd.read_sql_query(query, conn, params=params)

        for col in ("taxonomy_mapping", "platform_tags"):
            if col in df.columns:
                df[col] = df[col].map(json.loads)
        if "created_at" in df.columns:
            df["created_at"] = pd.to_datetime(df["created_at"], errors="coerce", utc=True)
        return df


__all__ = ["SegmentStore", "SEGMENTS_DB"]
