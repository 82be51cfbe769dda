"""
Tests for the command-line tools.
"""

import httpx
import pytest
from typer.testing import CliRunner

from mood_journal.cli import app, format_entry, format_stats, request_json
from mood_journal.config import get_settings
from mood_journal.database import Database
from mood_journal.models import MoodEntry
from mood_journal.settings_store import SettingsStore

runner = CliRunner()


class TestCLI:
    def test_init_db(self, tmp_path, monkeypatch):
        """Test that init-db creates the schema and seeds defaults once."""
        db_path = tmp_path / "data" / "journal.db"
        monkeypatch.setenv("MOOD_JOURNAL_DATABASE_PATH", str(db_path))
        get_settings.cache_clear()
        try:
            first = runner.invoke(app, ["init-db"])
            second = runner.invoke(app, ["init-db"])
        finally:
            get_settings.cache_clear()

        assert first.exit_code == 0, first.output
        assert "5 default settings added" in first.output
        assert "0 default settings added" in second.output
        assert SettingsStore(Database(db_path)).get("theme") == "light"

    def test_connection_error_exits_nonzero(self):
        result = runner.invoke(app, ["entries", "--url", "http://127.0.0.1:9"])
        assert result.exit_code == 1
        assert "Could not connect" in result.output

    def test_format_entry(self):
        entry = MoodEntry(
            id="a" * 32,
            emotion="calm",
            notes="Tea on the balcony",
            date="2024-12-20T10:00:00.000Z",
            created_at="2024-12-20T10:00:01.000000Z",
            updated_at="2024-12-20T10:00:01.000000Z",
        )
        assert format_entry(entry) == f"2024-12-20  {'calm':<12} Tea on the balcony"

    def test_format_stats(self):
        lines = format_stats(
            {
                "streakData": {"current_streak": 2, "longest_streak": 5, "total_entries": 9},
                "emotionBreakdown": [{"emotion": "happy", "count": 9, "percentage": 100.0}],
            }
        )
        assert lines[0] == "Current streak: 2 day(s)"
        assert lines[1] == "Longest streak: 5 day(s)"
        assert "happy" in lines[3]


class TestRequestJson:
    async def test_returns_decoded_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/entries"
            return httpx.Response(200, json={"success": True, "data": []})

        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            result = await request_json(client, "GET", "/api/entries")

        assert result == {"success": True, "data": []}

    async def test_raises_on_error_status(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(404, json={"success": False, "error": "nope"})
        )
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            with pytest.raises(httpx.HTTPStatusError):
                await request_json(client, "GET", "/api/entries/missing")
