"""
Error taxonomy shared by the stores and the HTTP layer.
"""


class MoodJournalError(Exception):
    """Base class for all Mood Journal errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MoodJournalError):
    """Malformed input: unknown emotion, unparseable date, oversized notes."""


class NotFoundError(MoodJournalError):
    """The targeted record does not exist."""


class ForeignKeyViolation(MoodJournalError):
    """A media file references an entry that does not exist."""


class StorageError(MoodJournalError):
    """The underlying database engine failed."""
