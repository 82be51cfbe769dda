"""
Tests for the EntryStore implementation.

These tests verify entry and media persistence against a throwaway SQLite
database, including the cascade on delete and the string-based date range.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from mood_journal.database import Database
from mood_journal.errors import (
    ForeignKeyViolation,
    NotFoundError,
    StorageError,
    ValidationError,
)
from mood_journal.models import Emotion, EntryUpdate, MediaKind
from mood_journal.store import EntryStore


def make_clock():
    """Clock returning strictly increasing timestamps."""
    ticks = iter(range(10_000))

    def clock() -> str:
        tick = next(ticks)
        return f"2024-12-01T00:{tick // 60:02d}:{tick % 60:02d}.000000Z"

    return clock


class TestEntryStore:
    """Test suite for EntryStore functionality."""

    def setup_method(self):
        """Set up a fresh database and store for each test."""
        self.tmpdir = tempfile.mkdtemp()
        self.database = Database(Path(self.tmpdir) / "journal.db")
        self.database.initialize()
        self.store = EntryStore(self.database, clock=make_clock())

    def teardown_method(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_create_and_get(self):
        """Test that a created entry reads back with server-assigned fields."""
        created = self.store.create(
            "happy", "2024-12-20T10:30:00.000Z", notes="Sunny walk"
        )

        assert len(created.id) == 32
        assert created.emotion == Emotion.HAPPY
        assert created.notes == "Sunny walk"
        assert created.date == "2024-12-20T10:30:00.000Z"
        assert created.created_at == created.updated_at

        fetched = self.store.get(created.id)
        assert fetched == created

    def test_create_normalizes_date_to_utc(self):
        entry = self.store.create("calm", "2024-12-20T12:00:00+02:00")
        assert entry.date == "2024-12-20T10:00:00.000Z"

        bare = self.store.create("calm", "2024-12-20T23:59:59Z")
        assert bare.date == "2024-12-20T23:59:59.000Z"

    def test_create_rejects_invalid_input(self):
        with pytest.raises(ValidationError):
            self.store.create("ecstatic", "2024-12-20T10:00:00Z")
        with pytest.raises(ValidationError):
            self.store.create("happy", "not a date")
        with pytest.raises(ValidationError):
            self.store.create("happy", "2024-12-20T10:00:00Z", notes="x" * 501)

        assert self.store.count() == 0

    def test_create_rejects_dates_outside_utc_range(self):
        """Test that offsets pushing a date past year 1 or 9999 are rejected."""
        for when in ("0001-01-01T00:00:00+01:00", "9999-12-31T23:00:00-05:00"):
            with pytest.raises(ValidationError):
                self.store.create("happy", when)

        assert self.store.count() == 0

    def test_create_accepts_fractional_seconds_and_compact_offsets(self):
        short = self.store.create("calm", "2024-12-20T10:00:00.5Z")
        assert short.date == "2024-12-20T10:00:00.500Z"

        compact = self.store.create("calm", "2024-12-20T12:00:00+0200")
        assert compact.date == "2024-12-20T10:00:00.000Z"

    def test_engine_failure_raises_storage_error(self):
        with self.database.connect() as conn:
            conn.execute("DROP TABLE media_files")
            conn.execute("DROP TABLE entries")

        with pytest.raises(StorageError):
            self.store.count()
        with pytest.raises(StorageError):
            self.store.create("happy", "2024-12-20T10:00:00Z")

    def test_unopenable_database_raises_storage_error(self):
        store = EntryStore(Database(self.tmpdir))
        with pytest.raises(StorageError):
            store.count()

    def test_get_missing_entry(self):
        with pytest.raises(NotFoundError):
            self.store.get("does-not-exist")

    def test_list_orders_by_date_and_paginates(self):
        for day in (3, 1, 2):
            self.store.create("calm", f"2024-12-0{day}T09:00:00Z")

        dates = [entry.date[:10] for entry in self.store.list_entries()]
        assert dates == ["2024-12-03", "2024-12-02", "2024-12-01"]

        page = self.store.list_entries(limit=1, offset=1)
        assert [entry.date[:10] for entry in page] == ["2024-12-02"]
        assert self.store.count() == 3

    def test_date_range_is_inclusive_string_comparison(self):
        """Test the lexicographic boundary behavior of date ranges."""
        late = self.store.create("sad", "2024-12-20T23:59:59Z")
        self.store.create("happy", "2024-12-21T08:00:00Z")

        within = self.store.list_by_date_range(
            "2024-12-20T00:00:00.000Z", "2024-12-20T23:59:59.999Z"
        )
        assert [entry.id for entry in within] == [late.id]

        # A date-only end boundary sorts before any timestamp on that day
        assert self.store.list_by_date_range("2024-12-01", "2024-12-20") == []

        both = self.store.list_by_date_range(
            "2024-12-20T00:00:00.000Z", "2024-12-21T23:59:59.999Z"
        )
        assert [entry.emotion for entry in both] == [Emotion.HAPPY, Emotion.SAD]

    def test_list_by_emotion(self):
        self.store.create("happy", "2024-12-01T10:00:00Z")
        self.store.create("sad", "2024-12-02T10:00:00Z")
        self.store.create("happy", "2024-12-03T10:00:00Z")

        happy = self.store.list_by_emotion("happy")
        assert [entry.date[:10] for entry in happy] == ["2024-12-03", "2024-12-01"]

        with pytest.raises(ValidationError):
            self.store.list_by_emotion("bored")

    def test_partial_update_only_changes_supplied_fields(self):
        """Test that updating notes leaves emotion and date untouched."""
        entry = self.store.create("anxious", "2024-12-05T18:00:00Z", notes="Before")

        updated = self.store.update(entry.id, EntryUpdate(notes="After"))

        assert updated.notes == "After"
        assert updated.emotion == Emotion.ANXIOUS
        assert updated.date == entry.date
        assert updated.created_at == entry.created_at
        assert updated.updated_at > entry.updated_at

    def test_update_emotion_and_date(self):
        entry = self.store.create("anxious", "2024-12-05T18:00:00Z", notes="Keep")

        updated = self.store.update(
            entry.id, EntryUpdate(emotion="calm", date="2024-12-06T07:00:00Z")
        )

        assert updated.emotion == Emotion.CALM
        assert updated.date == "2024-12-06T07:00:00.000Z"
        assert updated.notes == "Keep"

    def test_update_missing_entry(self):
        with pytest.raises(NotFoundError):
            self.store.update("missing", EntryUpdate(notes="x"))

    def test_delete_cascades_media(self):
        """Test that deleting an entry removes all of its media rows."""
        entry = self.store.create("excited", "2024-12-10T12:00:00Z")
        other = self.store.create("calm", "2024-12-11T12:00:00Z")
        self.store.attach_media(entry.id, "/uploads/a.png", MediaKind.PHOTO, 120)
        self.store.attach_media(entry.id, "/uploads/b.ogg", "voice", 300)
        kept = self.store.attach_media(other.id, "/uploads/c.png", "photo", 50)

        self.store.delete(entry.id)

        assert self.store.list_media(entry.id) == []
        assert self.store.list_media(other.id) == [kept]
        remaining = self.database.fetch_one("SELECT COUNT(*) AS n FROM media_files")
        assert remaining["n"] == 1

        with pytest.raises(NotFoundError):
            self.store.get(entry.id)

    def test_delete_missing_entry(self):
        with pytest.raises(NotFoundError):
            self.store.delete("missing")

    def test_attach_media_requires_existing_entry(self):
        with pytest.raises(ForeignKeyViolation):
            self.store.attach_media("missing", "/uploads/a.png", "photo", 10)

    def test_attach_media_rejects_unknown_kind(self):
        entry = self.store.create("happy", "2024-12-10T12:00:00Z")
        with pytest.raises(ValidationError):
            self.store.attach_media(entry.id, "/uploads/a.mp4", "video", 10)

    def test_delete_media(self):
        entry = self.store.create("peaceful", "2024-12-10T12:00:00Z")
        media = self.store.attach_media(entry.id, "/uploads/a.png", "photo", 10)

        deleted = self.store.delete_media(media.id)

        assert deleted.file_path == "/uploads/a.png"
        assert self.store.list_media(entry.id) == []
        with pytest.raises(NotFoundError):
            self.store.delete_media(media.id)

    def test_emotion_counts(self):
        for emotion in ("sad", "happy", "happy", "calm"):
            self.store.create(emotion, "2024-12-10T12:00:00Z")

        assert self.store.emotion_counts() == [("happy", 2), ("calm", 1), ("sad", 1)]
