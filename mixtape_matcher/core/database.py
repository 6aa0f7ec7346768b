"""
Thread-safe SQLite store backing the durable cache tier.

Each unique (artist, track) pair is stored once in `youtube_cache`, keyed by
the lowercased artist and track names. The original spelling is kept in
separate columns for display.

Schema:
    schema_version:  Single row with DATABASE_VERSION
    youtube_cache:   One row per cached resolution, UNIQUE(artist_key, track_key)

The table is append-only: rows are never updated or evicted. A second insert
for an existing key raises DuplicateCacheEntry, which callers treat as success.

Usage:
    db = CacheDatabase(Path("~/.mixtape-matcher/cache.db").expanduser())

    row = db.find("rick astley", "never gonna give you up")
    if row is None:
        db.insert(record)
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from mixtape_matcher.core.exceptions import (
    CacheUnavailable,
    DatabaseError,
    DuplicateCacheEntry,
)


DATABASE_VERSION = 1


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS youtube_cache (
    id INTEGER PRIMARY KEY AUTOINCREMENT,

    -- Query as received
    track_name TEXT NOT NULL,
    artist_name TEXT NOT NULL,
    duration_ms INTEGER,

    -- Normalized lookup key
    track_key TEXT NOT NULL,
    artist_key TEXT NOT NULL,

    -- Resolved video
    video_id TEXT NOT NULL,
    video_title TEXT,
    video_duration INTEGER,
    thumbnail_url TEXT,
    channel_title TEXT,

    created_at TEXT,
    UNIQUE(artist_key, track_key)
);

CREATE INDEX IF NOT EXISTS idx_youtube_cache_key ON youtube_cache(artist_key, track_key);
"""

_RECORD_COLUMNS = (
    "track_name",
    "artist_name",
    "duration_ms",
    "track_key",
    "artist_key",
    "video_id",
    "video_title",
    "video_duration",
    "thumbnail_url",
    "channel_title",
)


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class CacheDatabase:
    """
    Thread-safe SQLite database holding durable cache records.

    Uses a single persistent connection with thread locking for safety.
    All public methods acquire self._lock before executing.

    Runtime read/write failures raise CacheUnavailable; failures while
    opening or validating the file raise DatabaseError.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DatabaseError(
                f"Cannot create cache directory: {db_path.parent}",
                details={"path": str(db_path.parent), "original_error": str(e)}
            ) from e

        try:
            self._init_database()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to initialize cache database: {e}",
                details={"path": str(db_path)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get the persistent database connection as a context manager.

        The connection is created once and reused for all operations.
        """
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # We handle thread safety with _lock
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL")
        yield self._conn

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _init_database(self) -> None:
        with self._get_connection() as conn:
            conn.executescript(_SCHEMA_SQL)

            cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
            row = cursor.fetchone()

            if row is None:
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
            elif row[0] != DATABASE_VERSION:
                raise DatabaseError(
                    f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                    details={"expected": DATABASE_VERSION, "actual": row[0]}
                )
            conn.commit()

    def _now_iso(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    # =========================================================================
    # Lookups
    # =========================================================================

    def find(self, artist_key: str, track_key: str, substring: bool = False) -> dict[str, Any] | None:
        """
        Find a cached record by normalized key.

        Args:
            artist_key: Lowercased artist name.
            track_key: Lowercased track name.
            substring: If True, match rows whose keys contain the given
                       parts instead of equal to them. The oldest matching
                       row wins.

        Returns:
            Row as a dict, or None when nothing matches.

        Raises:
            CacheUnavailable: If the query fails.
        """
        if substring:
            sql = """
                SELECT * FROM youtube_cache
                WHERE artist_key LIKE ? ESCAPE '\\' AND track_key LIKE ? ESCAPE '\\'
                ORDER BY id LIMIT 1
            """
            params = (f"%{_escape_like(artist_key)}%", f"%{_escape_like(track_key)}%")
        else:
            sql = "SELECT * FROM youtube_cache WHERE artist_key = ? AND track_key = ? LIMIT 1"
            params = (artist_key, track_key)

        with self._lock:
            try:
                with self._get_connection() as conn:
                    row = conn.execute(sql, params).fetchone()
            except sqlite3.Error as e:
                raise CacheUnavailable(
                    f"Cache lookup failed: {e}",
                    details={"artist_key": artist_key, "track_key": track_key}
                ) from e

        return dict(row) if row else None

    def count(self) -> int:
        """Number of cached records."""
        with self._lock:
            try:
                with self._get_connection() as conn:
                    return conn.execute("SELECT COUNT(*) FROM youtube_cache").fetchone()[0]
            except sqlite3.Error as e:
                raise CacheUnavailable(f"Cache count failed: {e}") from e

    # =========================================================================
    # Writes
    # =========================================================================

    def insert(self, record: dict[str, Any]) -> None:
        """
        Insert a cache record.

        Args:
            record: Dict with the keys in _RECORD_COLUMNS. Missing optional
                    keys are stored as NULL.

        Raises:
            DuplicateCacheEntry: If a row with the same key already exists.
            CacheUnavailable: For any other database failure.
        """
        values = tuple(record.get(column) for column in _RECORD_COLUMNS)
        placeholders = ", ".join("?" for _ in range(len(_RECORD_COLUMNS) + 1))

        with self._lock:
            try:
                with self._get_connection() as conn:
                    conn.execute(
                        f"INSERT INTO youtube_cache ({', '.join(_RECORD_COLUMNS)}, created_at) "
                        f"VALUES ({placeholders})",
                        values + (self._now_iso(),)
                    )
                    conn.commit()
            except sqlite3.IntegrityError as e:
                if self._conn is not None:
                    self._conn.rollback()
                raise DuplicateCacheEntry(
                    "Cache entry already exists",
                    details={
                        "artist_key": record.get("artist_key"),
                        "track_key": record.get("track_key"),
                    }
                ) from e
            except sqlite3.Error as e:
                raise CacheUnavailable(
                    f"Cache write failed: {e}",
                    details={"artist_key": record.get("artist_key")}
                ) from e
