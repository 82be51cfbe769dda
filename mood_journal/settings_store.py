"""
User preference storage for the Mood Journal service.
"""

from collections.abc import Callable

from .database import Database
from .errors import NotFoundError, ValidationError
from .logger import logger
from .models import DEFAULT_SETTINGS, Setting, utc_now


class SettingsStore:
    """
    Key/value store of user preferences.

    Values are stored as strings; the application interprets their typed
    meaning per key. Keys that were never set fall back to DEFAULT_SETTINGS.
    """

    def __init__(
        self,
        database: Database,
        defaults: dict[str, str] | None = None,
        clock: Callable[[], str] = utc_now,
    ) -> None:
        self._db = database
        self._defaults = dict(DEFAULT_SETTINGS if defaults is None else defaults)
        self._clock = clock

    def initialize(self) -> int:
        """
        Seed default values for keys that are not stored yet.

        Existing values are never overwritten, so calling this more than once
        is harmless.

        Returns:
            Number of defaults that were inserted
        """
        now = self._clock()
        inserted = 0
        with self._db.connect() as conn:
            for key, value in self._defaults.items():
                cursor = conn.execute(
                    "INSERT OR IGNORE INTO user_settings (key, value, updated_at) VALUES (?, ?, ?)",
                    (key, value, now),
                )
                inserted += cursor.rowcount
        if inserted:
            logger.info(f"Seeded {inserted} default settings")
        return inserted

    def get(self, key: str) -> str:
        """
        Current value for ``key``, or its default when never set.

        Raises:
            NotFoundError: The key is neither stored nor has a default
        """
        row = self._db.fetch_one("SELECT value FROM user_settings WHERE key = ?", (key,))
        if row is not None:
            return row["value"]
        if key in self._defaults:
            return self._defaults[key]
        raise NotFoundError(f"Setting not found: {key}")

    def set(self, key: str, value: str) -> Setting:
        """Insert or overwrite ``key`` and refresh its ``updated_at``."""
        if not key:
            raise ValidationError("Setting key cannot be empty")
        now = self._clock()
        self._db.execute(
            """
            INSERT INTO user_settings (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, value, now),
        )
        logger.info(f"Setting {key} updated")
        return Setting(key=key, value=value, updated_at=now)

    def get_all(self) -> list[Setting]:
        """Snapshot of every setting, with defaults filled in for missing keys."""
        rows = self._db.fetch_all("SELECT * FROM user_settings ORDER BY key")
        stored = {row["key"]: Setting.model_validate(row) for row in rows}
        for key, value in self._defaults.items():
            stored.setdefault(key, Setting(key=key, value=value))
        return sorted(stored.values(), key=lambda setting: setting.key)
