"""
Shared data models for the Mood Journal service.

This module defines the core domain models used across multiple layers
of the application (stores, analytics, CLI, API).
"""

from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from .errors import ValidationError

MAX_NOTES_LENGTH = 500


class Emotion(str, Enum):
    """The closed set of emotion labels an entry can carry."""

    HAPPY = "happy"
    SAD = "sad"
    ANXIOUS = "anxious"
    CALM = "calm"
    EXCITED = "excited"
    STRESSED = "stressed"
    PEACEFUL = "peaceful"
    FRUSTRATED = "frustrated"
    CONTENT = "content"
    OVERWHELMED = "overwhelmed"


class MediaKind(str, Enum):
    """Kinds of media that can be attached to an entry."""

    PHOTO = "photo"
    VOICE = "voice"


# 5-point scale used for trend averaging
MOOD_SCORES: dict[str, int] = {
    Emotion.HAPPY.value: 5,
    Emotion.EXCITED.value: 5,
    Emotion.CONTENT.value: 4,
    Emotion.PEACEFUL.value: 4,
    Emotion.CALM.value: 3,
    Emotion.FRUSTRATED.value: 2,
    Emotion.STRESSED.value: 2,
    Emotion.ANXIOUS.value: 1,
    Emotion.SAD.value: 1,
    Emotion.OVERWHELMED.value: 1,
}
NEUTRAL_SCORE = 3

DEFAULT_SETTINGS: dict[str, str] = {
    "theme": "light",
    "notifications_enabled": "true",
    "reminder_time": "20:00",
    "first_day_of_week": "0",
    "data_retention_days": "365",
}


# MARK: - Records


class MoodEntry(BaseModel):
    """A single recorded mood."""

    id: str = Field(..., description="Opaque unique identifier")
    emotion: Emotion = Field(..., description="The recorded emotion")
    notes: str | None = Field(None, description="Free-text notes")
    date: str = Field(..., description="When the mood was experienced (ISO-8601)")
    created_at: str = Field(..., description="Server-assigned creation time")
    updated_at: str = Field(..., description="Server-assigned last update time")


class MediaFile(BaseModel):
    """A photo or voice recording attached to an entry."""

    id: str
    entry_id: str
    file_path: str
    file_type: MediaKind
    file_size: int
    created_at: str


class Setting(BaseModel):
    """A single user preference."""

    key: str
    value: str
    updated_at: str | None = None


class EntryUpdate(BaseModel):
    """Partial update of an entry; only fields that were set are applied."""

    emotion: Emotion | None = None
    notes: str | None = Field(None, max_length=MAX_NOTES_LENGTH)
    date: str | None = None

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                parse_timestamp(value)
            except ValidationError as e:
                raise ValueError(e.message) from None
        return value


# MARK: - Analytics Results


class MoodTrendPoint(BaseModel):
    date: str
    avg_mood: float
    entry_count: int


class EmotionShare(BaseModel):
    emotion: str
    count: int
    percentage: float


class WordCount(BaseModel):
    word: str
    count: int


class StreakData(BaseModel):
    current_streak: int = 0
    longest_streak: int = 0
    total_entries: int = 0


class DailySummaryRow(BaseModel):
    day: str
    emotion: str
    entry_count: int
    combined_notes: str | None = None


class TrendsReport(BaseModel):
    """Everything the trends view needs, computed for one date window."""

    moodTrends: list[MoodTrendPoint]
    emotionBreakdown: list[EmotionShare]
    wordFrequency: list[WordCount]
    streakData: StreakData


# MARK: - Validation Helpers


def parse_emotion(value: str | Emotion) -> Emotion:
    """Return the Emotion for ``value`` or raise ValidationError."""
    try:
        return Emotion(value)
    except ValueError:
        raise ValidationError(f"Unknown emotion: {value!r}") from None


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 date or datetime string.

    A trailing ``Z`` is accepted as UTC. Values with an offset come back
    converted to UTC, values without one come back naive. Raises
    ValidationError when the value cannot be parsed or its UTC equivalent
    falls outside years 1-9999.
    """
    if not isinstance(value, str) or not value:
        raise ValidationError(f"Invalid date: {value!r}")
    text = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        raise ValidationError(f"Invalid date: {value!r}") from None
    return parsed


def utc_day(value: str) -> date:
    """Calendar day of ``value``, converted to UTC when it carries an offset."""
    return parse_timestamp(value).date()


def canonical_timestamp(value: str) -> str:
    """
    Normalize a timestamp to UTC ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Values without an offset are taken as UTC. Stored dates share this one
    shape so that comparing them as text orders them in time.
    """
    parsed = parse_timestamp(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def validate_notes(notes: str | None) -> str | None:
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(
            f"Notes must be at most {MAX_NOTES_LENGTH} characters"
        )
    return notes


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string with a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="microseconds").replace("+00:00", "Z")
