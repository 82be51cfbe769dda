"""
SQLite database access for the Mood Journal service.

This module owns the schema and hands out short-lived connections. Every
connection enforces foreign keys, commits on success, rolls back on failure
and is always closed. Engine errors are translated into the service's error
taxonomy.
"""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from .errors import ForeignKeyViolation, StorageError
from .logger import logger
from .models import Emotion, MediaKind

_EMOTIONS_SQL = ", ".join(f"'{emotion.value}'" for emotion in Emotion)
_MEDIA_KINDS_SQL = ", ".join(f"'{kind.value}'" for kind in MediaKind)

SCHEMA = f"""
CREATE TABLE IF NOT EXISTS entries (
    id TEXT PRIMARY KEY,
    emotion TEXT NOT NULL CHECK (emotion IN ({_EMOTIONS_SQL})),
    notes TEXT,
    date TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_entries_date ON entries(date DESC);
CREATE INDEX IF NOT EXISTS idx_entries_emotion ON entries(emotion);
CREATE INDEX IF NOT EXISTS idx_entries_created_at ON entries(created_at DESC);

CREATE TABLE IF NOT EXISTS media_files (
    id TEXT PRIMARY KEY,
    entry_id TEXT NOT NULL,
    file_path TEXT NOT NULL,
    file_type TEXT NOT NULL CHECK (file_type IN ({_MEDIA_KINDS_SQL})),
    file_size INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    FOREIGN KEY (entry_id) REFERENCES entries (id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_media_files_entry_id ON media_files(entry_id);
CREATE INDEX IF NOT EXISTS idx_media_files_type ON media_files(file_type);

CREATE TABLE IF NOT EXISTS user_settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class Database:
    """
    Handle on a single local SQLite database file.

    Creating a Database does not touch the disk; call ``initialize()`` once at
    process start to create the directory and the schema.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def initialize(self) -> None:
        """Create the database file and schema if they do not exist yet."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.connect() as conn:
            conn.executescript(SCHEMA)
        logger.info(f"Database initialized at {self.path}")

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """
        Open a connection for the duration of one operation.

        Yields:
            A connection with foreign keys enabled and dict-like rows

        Raises:
            ForeignKeyViolation: A foreign key constraint failed
            StorageError: Any other engine failure
        """
        try:
            conn = sqlite3.connect(self.path)
        except sqlite3.Error as e:
            logger.error(f"Could not open database {self.path}: {e}")
            raise StorageError(f"Could not open database: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            if "FOREIGN KEY" in str(e):
                raise ForeignKeyViolation("Referenced entry does not exist") from e
            logger.error(f"Integrity error: {e}")
            raise StorageError(f"Integrity error: {e}") from e
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Database error: {e}")
            raise StorageError(f"Database error: {e}") from e
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def execute(self, query: str, params: tuple = ()) -> int:
        """
        Execute a write statement.

        Returns:
            Number of affected rows
        """
        with self.connect() as conn:
            cursor = conn.execute(query, params)
            return cursor.rowcount

    def fetch_one(self, query: str, params: tuple = ()) -> dict[str, Any] | None:
        with self.connect() as conn:
            row = conn.execute(query, params).fetchone()
            return dict(row) if row else None

    def fetch_all(self, query: str, params: tuple = ()) -> list[dict[str, Any]]:
        with self.connect() as conn:
            rows = conn.execute(query, params).fetchall()
            return [dict(row) for row in rows]
