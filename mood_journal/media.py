"""
On-disk storage of uploaded media files.

Files are written under the configured upload directory and referenced from
the database by their public path (``/uploads/<filename>``). Writing a file
and recording its metadata row are not transactional.
"""

import re
import secrets
import time
from pathlib import Path
from typing import BinaryIO

from .errors import ValidationError
from .logger import logger
from .models import MediaKind

PUBLIC_PREFIX = "/uploads"

ALLOWED_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "audio/mpeg",
        "audio/wav",
        "audio/ogg",
        "audio/mp4",
        "audio/webm",
    }
)

_UNSAFE = re.compile(r"[^a-zA-Z0-9]")


def media_kind_for(content_type: str | None) -> MediaKind:
    """
    Classify an upload by MIME type.

    Raises:
        ValidationError: The type is not an accepted image or audio format
    """
    if content_type not in ALLOWED_MIME_TYPES:
        raise ValidationError(
            "Invalid file type. Only images and audio files are allowed."
        )
    return MediaKind.PHOTO if content_type.startswith("image/") else MediaKind.VOICE


def unique_filename(original_name: str) -> str:
    """``<millis>_<random>_<sanitized stem><ext>`` for an uploaded file."""
    original = Path(original_name or "upload")
    stem = _UNSAFE.sub("_", original.stem) or "upload"
    return f"{int(time.time() * 1000)}_{secrets.token_hex(6)}_{stem}{original.suffix}"


class MediaStorage:
    """Upload directory on local disk."""

    def __init__(self, root: str | Path, max_bytes: int) -> None:
        self.root = Path(root)
        self.max_bytes = max_bytes

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def check_size(self, content: bytes) -> None:
        """Raise ValidationError when ``content`` is empty or over the limit."""
        if not content:
            raise ValidationError("No file uploaded")
        if len(content) > self.max_bytes:
            raise ValidationError(
                f"File too large: limit is {self.max_bytes} bytes"
            )

    def read(self, fileobj: BinaryIO) -> bytes:
        """
        Read an upload stream, stopping one byte past the size limit.

        Raises:
            ValidationError: The stream is empty or larger than the limit
        """
        content = fileobj.read(self.max_bytes + 1)
        self.check_size(content)
        return content

    def save(self, content: bytes, original_name: str) -> str:
        """
        Write an upload to disk.

        Args:
            content: Raw file bytes
            original_name: Client-supplied file name

        Returns:
            Public path of the stored file

        Raises:
            ValidationError: The file is empty or larger than the limit
        """
        self.check_size(content)
        self.ensure_root()
        filename = unique_filename(original_name)
        (self.root / filename).write_bytes(content)
        logger.info(f"Stored upload {filename} ({len(content)} bytes)")
        return f"{PUBLIC_PREFIX}/{filename}"

    def remove(self, public_path: str) -> bool:
        """
        Remove the file behind a public path.

        Returns:
            True when a file was deleted, False when it was already gone
        """
        target = self.root / Path(public_path).name
        if not target.is_file():
            logger.warning(f"Media file already missing on disk: {public_path}")
            return False
        target.unlink()
        logger.info(f"Removed media file {target.name}")
        return True
