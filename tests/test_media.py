"""
Tests for on-disk media storage.
"""

import io
import shutil
import tempfile
from pathlib import Path

import pytest

from mood_journal.errors import ValidationError
from mood_journal.media import MediaStorage, media_kind_for
from mood_journal.models import MediaKind


class RecordingStream(io.BytesIO):
    """BytesIO that remembers the sizes it was asked to read."""

    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.requested: list[int] = []

    def read(self, size: int | None = -1) -> bytes:
        self.requested.append(size)
        return super().read(size)


class TestMediaStorage:
    def setup_method(self):
        self.tmpdir = Path(tempfile.mkdtemp())
        self.storage = MediaStorage(self.tmpdir / "uploads", max_bytes=16)

    def teardown_method(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_read_stops_past_limit(self):
        """Test that an oversized stream is rejected after a bounded read."""
        stream = RecordingStream(b"x" * 10_000)

        with pytest.raises(ValidationError):
            self.storage.read(stream)

        assert stream.requested == [17]
        assert stream.tell() == 17

    def test_read_accepts_file_at_limit(self):
        assert self.storage.read(io.BytesIO(b"y" * 16)) == b"y" * 16

    def test_read_rejects_empty_stream(self):
        with pytest.raises(ValidationError):
            self.storage.read(io.BytesIO(b""))

    def test_save_and_remove(self):
        public_path = self.storage.save(b"voice", "memo 1.ogg")

        assert public_path.startswith("/uploads/")
        assert public_path.endswith("_memo_1.ogg")
        assert self.storage.remove(public_path) is True
        assert self.storage.remove(public_path) is False
        assert list((self.tmpdir / "uploads").iterdir()) == []

    def test_media_kind_for(self):
        assert media_kind_for("image/webp") == MediaKind.PHOTO
        assert media_kind_for("audio/mpeg") == MediaKind.VOICE
        with pytest.raises(ValidationError):
            media_kind_for("video/mp4")
        with pytest.raises(ValidationError):
            media_kind_for(None)
