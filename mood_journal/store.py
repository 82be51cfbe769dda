"""
Entry storage for the Mood Journal service.

This module provides the store that exclusively owns mood entries and their
attached media files. Every mutating operation is a direct synchronous write
against the SQLite database.
"""

import uuid
from collections.abc import Callable
from typing import Any

from .database import Database
from .errors import NotFoundError, ValidationError
from .logger import logger
from .models import (
    EntryUpdate,
    MediaFile,
    MediaKind,
    MoodEntry,
    canonical_timestamp,
    parse_emotion,
    utc_now,
    validate_notes,
)


def new_id() -> str:
    """Random 128-bit identifier as 32 lowercase hex characters."""
    return uuid.uuid4().hex


class EntryStore:
    """
    SQLite-backed storage of mood entries and media files.

    Date-range queries compare the stored ``date`` text lexicographically.
    Callers wanting calendar-day semantics must pass normalized boundaries,
    e.g. ``2024-12-20T00:00:00.000Z`` and ``2024-12-20T23:59:59.999Z``.
    """

    def __init__(self, database: Database, clock: Callable[[], str] = utc_now) -> None:
        self._db = database
        self._clock = clock

    # MARK: - Entries

    def create(self, emotion: str, date: str, notes: str | None = None) -> MoodEntry:
        """
        Record a new mood entry.

        Args:
            emotion: One of the known emotion labels
            date: When the mood was experienced (ISO-8601, stored as UTC)
            notes: Optional free-text notes

        Returns:
            The stored entry with its generated id and timestamps

        Raises:
            ValidationError: Unknown emotion, unparseable date or oversized notes
        """
        parsed_emotion = parse_emotion(emotion)
        date = canonical_timestamp(date)
        validate_notes(notes)

        entry_id = new_id()
        now = self._clock()
        self._db.execute(
            """
            INSERT INTO entries (id, emotion, notes, date, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (entry_id, parsed_emotion.value, notes, date, now, now),
        )
        logger.info(f"Created entry {entry_id} ({parsed_emotion.value})")
        return self.get(entry_id)

    def get(self, entry_id: str) -> MoodEntry:
        """
        Fetch one entry.

        Raises:
            NotFoundError: No entry has this id
        """
        row = self._db.fetch_one("SELECT * FROM entries WHERE id = ?", (entry_id,))
        if row is None:
            raise NotFoundError(f"Entry not found: {entry_id}")
        return MoodEntry.model_validate(row)

    def list_entries(self, limit: int = 20, offset: int = 0) -> list[MoodEntry]:
        """Entries ordered by date, most recent first."""
        rows = self._db.fetch_all(
            "SELECT * FROM entries ORDER BY date DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        return _to_entries(rows)

    def list_all(self) -> list[MoodEntry]:
        rows = self._db.fetch_all("SELECT * FROM entries ORDER BY date DESC")
        return _to_entries(rows)

    def count(self) -> int:
        row = self._db.fetch_one("SELECT COUNT(*) AS total FROM entries")
        return row["total"] if row else 0

    def list_by_date_range(self, start: str, end: str) -> list[MoodEntry]:
        """
        Entries whose ``date`` text lies within ``[start, end]``.

        The comparison is on strings, not timestamps: an entry dated
        ``2024-12-20T23:59:59Z`` is excluded by an end boundary of
        ``2024-12-20``.
        """
        rows = self._db.fetch_all(
            """
            SELECT * FROM entries
            WHERE date BETWEEN ? AND ?
            ORDER BY date DESC
            """,
            (start, end),
        )
        return _to_entries(rows)

    def list_by_emotion(self, emotion: str) -> list[MoodEntry]:
        parsed = parse_emotion(emotion)
        rows = self._db.fetch_all(
            "SELECT * FROM entries WHERE emotion = ? ORDER BY date DESC",
            (parsed.value,),
        )
        return _to_entries(rows)

    def emotion_counts(self) -> list[tuple[str, int]]:
        """Entry count per emotion across the whole store, largest first."""
        rows = self._db.fetch_all(
            """
            SELECT emotion, COUNT(*) AS total FROM entries
            GROUP BY emotion
            ORDER BY total DESC, emotion ASC
            """
        )
        return [(row["emotion"], row["total"]) for row in rows]

    def update(self, entry_id: str, changes: EntryUpdate) -> MoodEntry:
        """
        Apply a partial update and refresh ``updated_at``.

        Only fields explicitly set on ``changes`` are merged; ``emotion`` and
        ``date`` set to None leave the stored value untouched, while ``notes``
        set to None clears the notes.

        Raises:
            NotFoundError: No entry has this id
            ValidationError: A supplied field is invalid
        """
        existing = self.get(entry_id)
        fields = changes.model_dump(exclude_unset=True)

        emotion = existing.emotion
        if fields.get("emotion") is not None:
            emotion = parse_emotion(fields["emotion"])

        date = existing.date
        if fields.get("date") is not None:
            date = canonical_timestamp(fields["date"])

        notes = validate_notes(fields["notes"]) if "notes" in fields else existing.notes

        affected = self._db.execute(
            """
            UPDATE entries
            SET emotion = ?, notes = ?, date = ?, updated_at = ?
            WHERE id = ?
            """,
            (emotion.value, notes, date, self._clock(), entry_id),
        )
        if affected == 0:
            raise NotFoundError(f"Entry not found: {entry_id}")

        logger.info(f"Updated entry {entry_id}: {sorted(fields)}")
        return self.get(entry_id)

    def delete(self, entry_id: str) -> None:
        """
        Delete an entry and, by cascade, all of its media rows.

        Raises:
            NotFoundError: No row was affected
        """
        affected = self._db.execute("DELETE FROM entries WHERE id = ?", (entry_id,))
        if affected == 0:
            raise NotFoundError(f"Entry not found: {entry_id}")
        logger.info(f"Deleted entry {entry_id}")

    # MARK: - Media

    def attach_media(
        self, entry_id: str, path: str, kind: str | MediaKind, size: int
    ) -> MediaFile:
        """
        Record a media file for an entry.

        Raises:
            ForeignKeyViolation: The entry does not exist
            ValidationError: Unknown media kind or negative size
        """
        try:
            media_kind = MediaKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown media kind: {kind!r}") from None
        if size < 0:
            raise ValidationError("File size cannot be negative")

        media_id = new_id()
        self._db.execute(
            """
            INSERT INTO media_files (id, entry_id, file_path, file_type, file_size, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (media_id, entry_id, path, media_kind.value, size, self._clock()),
        )
        logger.info(f"Attached {media_kind.value} {media_id} to entry {entry_id}")
        return self.get_media(media_id)

    def get_media(self, media_id: str) -> MediaFile:
        row = self._db.fetch_one("SELECT * FROM media_files WHERE id = ?", (media_id,))
        if row is None:
            raise NotFoundError(f"Media file not found: {media_id}")
        return MediaFile.model_validate(row)

    def list_media(self, entry_id: str) -> list[MediaFile]:
        rows = self._db.fetch_all(
            "SELECT * FROM media_files WHERE entry_id = ? ORDER BY created_at ASC",
            (entry_id,),
        )
        return [MediaFile.model_validate(row) for row in rows]

    def delete_media(self, media_id: str) -> MediaFile:
        """
        Delete one media row.

        Removing the file from disk is the caller's responsibility.

        Returns:
            The deleted record, so the caller can locate the file

        Raises:
            NotFoundError: No media file has this id
        """
        media = self.get_media(media_id)
        affected = self._db.execute("DELETE FROM media_files WHERE id = ?", (media_id,))
        if affected == 0:
            raise NotFoundError(f"Media file not found: {media_id}")
        logger.info(f"Deleted media file {media_id}")
        return media


def _to_entries(rows: list[dict[str, Any]]) -> list[MoodEntry]:
    return [MoodEntry.model_validate(row) for row in rows]
