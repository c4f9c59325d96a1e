"""
Thread-safe SQLite storage for the playlist sync server.

Every user's playlists are stored as rows, replaced wholesale on save.

Schema:
    playlist:       One row per playlist (id, user_id, name, "order")
    playlist_item:  Items of a playlist in "order"; cascades on playlist delete
    user_settings:  One row per user (active playlist, loop mode, shuffle)
    pinned_songs:   Pinned video ids, ordered by pinned_at

Usage:
    db = Database(data_dir / "server.db")

    db.save_user_playlists(user_id, snapshot)
    snapshot = db.load_user_playlists(user_id)   # None for unknown users
"""

import sqlite3
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator, Sequence

from ..core.constants import DEFAULT_LOOP_MODE
from ..core.exceptions import DatabaseError
from ..core.logger import get_logger
from ..models import Playlist, PlaylistItem, UserPlaylistData


logger = get_logger(__name__)


DATABASE_VERSION = 1

# SQLite builds used by the hosted database cap bound parameters at 100
MAX_BOUND_PARAMETERS = 100
PLAYLIST_ITEM_PARAMETER_COUNT = 5
PLAYLIST_ITEM_CHUNK_SIZE = max(1, MAX_BOUND_PARAMETERS // PLAYLIST_ITEM_PARAMETER_COUNT)


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS playlist (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    "order" INTEGER NOT NULL,
    created_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS playlist_item (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    playlist_id TEXT NOT NULL,
    video_id TEXT NOT NULL,
    title TEXT,
    "order" INTEGER NOT NULL,
    created_at TEXT,
    FOREIGN KEY (playlist_id) REFERENCES playlist(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT UNIQUE NOT NULL,
    active_playlist_id TEXT,
    loop_mode TEXT NOT NULL DEFAULT 'all',
    is_shuffle INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS pinned_songs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    video_id TEXT NOT NULL,
    pinned_at INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_playlist_user ON playlist(user_id);
CREATE INDEX IF NOT EXISTS idx_playlist_item_playlist ON playlist_item(playlist_id);
CREATE INDEX IF NOT EXISTS idx_pinned_songs_user ON pinned_songs(user_id);
"""


class Database:
    """
    Thread-safe SQLite database.

    Uses a single persistent connection with thread locking for safety.
    All public methods acquire self._lock before executing.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

        if not db_path.parent.exists():
            raise DatabaseError(
                f"Parent directory does not exist: {db_path.parent}",
                details={"path": str(db_path.parent)}
            )

        try:
            self._init_database()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to initialize database: {e}",
                details={"path": str(db_path)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get the persistent connection, opening it on first use."""
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # Thread safety comes from _lock
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.execute("PRAGMA journal_mode = WAL")
        yield self._conn

    @contextmanager
    def _transaction(self, operation: str, user_id: str) -> Generator[sqlite3.Connection, None, None]:
        """Run a block of statements atomically, rolling back on any sqlite error."""
        with self._get_connection() as conn:
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise DatabaseError(
                    f"Failed to {operation}: {e}",
                    details={"user_id": user_id, "original_error": str(e)}
                ) from e

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
    # Playlist Operations
    # =========================================================================

    def load_user_playlists(self, user_id: str) -> UserPlaylistData | None:
        """
        Load a user's snapshot.

        Returns:
            The snapshot, or None if the user has neither playlists nor
            settings stored. Empty titles come back as None; a missing
            active playlist falls back to the first playlist.
        """
        with self._lock:
            with self._get_connection() as conn:
                try:
                    playlist_rows = conn.execute(
                        'SELECT id, name FROM playlist WHERE user_id = ? ORDER BY "order"',
                        (user_id,)
                    ).fetchall()
                    item_rows = conn.execute(
                        """
                        SELECT i.playlist_id, i.video_id, i.title
                        FROM playlist_item i
                        JOIN playlist p ON p.id = i.playlist_id
                        WHERE p.user_id = ?
                        ORDER BY i."order"
                        """,
                        (user_id,)
                    ).fetchall()
                    settings = conn.execute(
                        "SELECT active_playlist_id, loop_mode, is_shuffle FROM user_settings WHERE user_id = ? LIMIT 1",
                        (user_id,)
                    ).fetchone()
                except sqlite3.Error as e:
                    raise DatabaseError(
                        f"Failed to load playlists: {e}",
                        details={"user_id": user_id, "original_error": str(e)}
                    ) from e

        if not playlist_rows and settings is None:
            return None

        items_by_playlist: dict[str, list[PlaylistItem]] = {}
        for row in item_rows:
            items_by_playlist.setdefault(row["playlist_id"], []).append(
                PlaylistItem(id=row["video_id"], title=row["title"] or None)
            )

        playlists = tuple(
            Playlist(id=row["id"], name=row["name"], items=tuple(items_by_playlist.get(row["id"], ())))
            for row in playlist_rows
        )

        active_playlist_id = (settings["active_playlist_id"] if settings else None) \
            or (playlists[0].id if playlists else "")

        return UserPlaylistData(
            playlists=playlists,
            active_playlist_id=active_playlist_id,
            loop_mode=(settings["loop_mode"] if settings else None) or DEFAULT_LOOP_MODE,
            is_shuffle=bool(settings["is_shuffle"]) if settings else False,
        )

    def save_user_playlists(self, user_id: str, data: UserPlaylistData) -> None:
        """
        Replace a user's playlists, items and settings in one transaction.

        Raises:
            DatabaseError: On any sqlite failure (nothing is written)
        """
        now = self._now_iso()
        item_rows = [
            (playlist.id, item.id, item.title or None, index, now)
            for playlist in data.playlists
            for index, item in enumerate(playlist.items)
        ]

        with self._lock:
            with self._transaction("save playlists", user_id) as conn:
                conn.execute("DELETE FROM playlist WHERE user_id = ?", (user_id,))

                if data.playlists:
                    conn.executemany(
                        'INSERT INTO playlist (id, user_id, name, "order", created_at, updated_at) '
                        "VALUES (?, ?, ?, ?, ?, ?)",
                        [
                            (playlist.id, user_id, playlist.name, index, now, now)
                            for index, playlist in enumerate(data.playlists)
                        ]
                    )

                for start in range(0, len(item_rows), PLAYLIST_ITEM_CHUNK_SIZE):
                    chunk = item_rows[start:start + PLAYLIST_ITEM_CHUNK_SIZE]
                    placeholders = ", ".join(["(?, ?, ?, ?, ?)"] * len(chunk))
                    conn.execute(
                        f'INSERT INTO playlist_item (playlist_id, video_id, title, "order", created_at) '
                        f"VALUES {placeholders}",
                        [value for row in chunk for value in row]
                    )

                conn.execute("""
                    INSERT INTO user_settings (user_id, active_playlist_id, loop_mode, is_shuffle, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(user_id) DO UPDATE SET
                        active_playlist_id = excluded.active_playlist_id,
                        loop_mode = excluded.loop_mode,
                        is_shuffle = excluded.is_shuffle,
                        updated_at = excluded.updated_at
                """, (user_id, data.active_playlist_id, data.loop_mode, 1 if data.is_shuffle else 0, now))

        logger.debug(
            f"Saved {len(data.playlists)} playlists ({len(item_rows)} items) for user {user_id}"
        )

    # =========================================================================
    # Pinned Songs
    # =========================================================================

    def load_pinned_songs(self, user_id: str) -> list[str]:
        """Pinned video ids in pinned order."""
        with self._lock:
            with self._get_connection() as conn:
                try:
                    cursor = conn.execute(
                        "SELECT video_id FROM pinned_songs WHERE user_id = ? ORDER BY pinned_at, id",
                        (user_id,)
                    )
                    return [row["video_id"] for row in cursor.fetchall()]
                except sqlite3.Error as e:
                    raise DatabaseError(
                        f"Failed to load pinned songs: {e}",
                        details={"user_id": user_id, "original_error": str(e)}
                    ) from e

    def save_pinned_songs(self, user_id: str, pinned_order: Sequence[str]) -> None:
        """Replace a user's pinned songs; order is kept with sequential pinned_at values."""
        base = int(time.time() * 1000)
        with self._lock:
            with self._transaction("save pinned songs", user_id) as conn:
                conn.execute("DELETE FROM pinned_songs WHERE user_id = ?", (user_id,))
                if pinned_order:
                    conn.executemany(
                        "INSERT INTO pinned_songs (user_id, video_id, pinned_at) VALUES (?, ?, ?)",
                        [(user_id, video_id, base + index) for index, video_id in enumerate(pinned_order)]
                    )
