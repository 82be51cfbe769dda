"""
FastAPI server for the Mood Journal service.

This module implements the HTTP API for mood entries, media uploads,
analytics and user settings. Every response uses the same envelope:
``{"success": true, "data": ...}`` on success and
``{"success": false, "error": "..."}`` on failure.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Generic, Literal, TypeVar

from fastapi import FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import analytics
from .analytics import Analytics, day_bounds, period_range
from .config import Settings, get_settings
from .database import Database
from .errors import (
    ForeignKeyViolation,
    MoodJournalError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .logger import logger
from .media import PUBLIC_PREFIX, MediaStorage, media_kind_for
from .models import (
    MAX_NOTES_LENGTH,
    DailySummaryRow,
    Emotion,
    EmotionShare,
    EntryUpdate,
    MediaFile,
    MediaKind,
    MoodEntry,
    Setting,
    TrendsReport,
    parse_timestamp,
)
from .settings_store import SettingsStore
from .store import EntryStore

MAX_FILES_PER_UPLOAD = 5

T = TypeVar("T")


# API Request/Response Schemas
class ApiResponse(BaseModel, Generic[T]):
    """Success envelope."""

    success: bool = True
    data: T


class EntriesPage(ApiResponse[list[MoodEntry]]):
    total: int = Field(..., description="Number of entries matching the query")


class EntryCreate(BaseModel):
    """Payload for entry creation."""

    emotion: Emotion
    notes: str | None = Field(None, max_length=MAX_NOTES_LENGTH)
    date: str = Field(..., description="ISO-8601 timestamp of the mood")
    photoPath: str | None = None
    voicePath: str | None = None

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        try:
            parse_timestamp(value)
        except ValidationError as e:
            raise ValueError(e.message) from None
        return value


class EntryDetail(MoodEntry):
    media_files: list[MediaFile] = Field(default_factory=list)


class UploadedFile(MediaFile):
    original_name: str | None = None


class DailySummaryData(BaseModel):
    dailySummary: list[DailySummaryRow]


class DailyEmotionsData(BaseModel):
    dailyDistribution: dict[str, dict[str, int]]


class EmotionPieResult(BaseModel):
    pieData: list[EmotionShare]
    totalEntries: int
    date: str


class SettingValue(BaseModel):
    value: str


class SettingItem(BaseModel):
    key: str = Field(..., min_length=1)
    value: str


class SettingsBatch(BaseModel):
    settings: list[SettingItem]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": message}
    )


def _required_range(start: str | None, end: str | None) -> tuple[str, str]:
    if not start or not end:
        raise ValidationError("startDate and endDate are required")
    return day_bounds(start, end)


def create_app(
    database: Database | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Create a FastAPI application backed by the given database.

    Args:
        database: Database to use; defaults to the configured database path
        settings: Application settings; defaults to the environment

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    database = database or Database(settings.database_path)

    entry_store = EntryStore(database)
    settings_store = SettingsStore(database)
    stats = Analytics(entry_store)
    media_storage = MediaStorage(settings.upload_dir, settings.max_upload_bytes)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for FastAPI application."""
        # Startup
        database.initialize()
        settings_store.initialize()
        media_storage.ensure_root()
        logger.info(f"{settings.app_name} v{settings.app_version} started")
        yield
        logger.info(f"{settings.app_name} stopped")

    app = FastAPI(
        title=settings.app_name,
        description="A personal mood journal with analytics",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.mount(
        PUBLIC_PREFIX,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )

    # MARK: - Error Handlers

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, exc.message)

    @app.exception_handler(ForeignKeyViolation)
    async def handle_foreign_key(request: Request, exc: ForeignKeyViolation) -> JSONResponse:
        return _error(400, exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, exc.message)

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
        return _error(500, "Server internal error")

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return _error(500, "Server internal error")

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        logger.debug(f"Rejected {request.method} {request.url.path}: {details}")
        return _error(400, f"Invalid request: {details}")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    # MARK: - Health

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "mood-journal"}

    @app.get("/api/health")
    async def health() -> dict[str, bool | str]:
        return {"success": True, "message": "ok"}

    # MARK: - Entries

    @app.get("/api/entries")
    def list_entries(
        startDate: str | None = None,
        endDate: str | None = None,
        emotion: Emotion | None = None,
        limit: int = Query(20, ge=1, le=100),
        offset: int = Query(0, ge=0),
    ) -> EntriesPage:
        """
        List entries.

        A ``startDate``/``endDate`` pair selects a date range (date-only values
        cover whole days), ``emotion`` filters by emotion, and otherwise the
        most recent entries are paginated with ``limit``/``offset``.
        """
        if startDate and endDate:
            entries = entry_store.list_by_date_range(*day_bounds(startDate, endDate))
            return EntriesPage(data=entries, total=len(entries))
        if emotion is not None:
            entries = entry_store.list_by_emotion(emotion)
            return EntriesPage(data=entries, total=len(entries))
        entries = entry_store.list_entries(limit=limit, offset=offset)
        return EntriesPage(data=entries, total=entry_store.count())

    @app.get("/api/entries/{entry_id}")
    def get_entry(entry_id: str) -> ApiResponse[EntryDetail]:
        entry = entry_store.get(entry_id)
        detail = EntryDetail(
            **entry.model_dump(), media_files=entry_store.list_media(entry_id)
        )
        return ApiResponse[EntryDetail](data=detail)

    @app.post("/api/entries", status_code=201)
    def create_entry(payload: EntryCreate) -> ApiResponse[MoodEntry]:
        """
        Create an entry, optionally attaching already-uploaded media paths.
        """
        entry = entry_store.create(
            emotion=payload.emotion, date=payload.date, notes=payload.notes
        )
        if payload.photoPath:
            entry_store.attach_media(entry.id, payload.photoPath, MediaKind.PHOTO, 0)
        if payload.voicePath:
            entry_store.attach_media(entry.id, payload.voicePath, MediaKind.VOICE, 0)
        return ApiResponse[MoodEntry](data=entry)

    @app.put("/api/entries/{entry_id}")
    def update_entry(entry_id: str, changes: EntryUpdate) -> ApiResponse[MoodEntry]:
        updated = entry_store.update(entry_id, changes)
        return ApiResponse[MoodEntry](data=updated)

    @app.delete("/api/entries/{entry_id}")
    def delete_entry(entry_id: str) -> dict[str, bool]:
        """Delete an entry, its media rows and the media files on disk."""
        media = entry_store.list_media(entry_id)
        entry_store.delete(entry_id)
        for media_file in media:
            media_storage.remove(media_file.file_path)
        return {"success": True}

    # MARK: - Uploads

    def _store_uploads(entry_id: str, uploads: list[UploadFile]) -> list[UploadedFile]:
        """
        Validate every upload, then write the files and their rows.

        Nothing is written unless all uploads pass the type and size checks.
        If a row cannot be recorded, the files and rows written so far by
        this call are removed again.
        """
        entry_store.get(entry_id)
        accepted = [
            (upload, media_kind_for(upload.content_type), media_storage.read(upload.file))
            for upload in uploads
        ]

        stored: list[UploadedFile] = []
        try:
            for upload, kind, content in accepted:
                public_path = media_storage.save(content, upload.filename or "")
                try:
                    media = entry_store.attach_media(
                        entry_id, public_path, kind, len(content)
                    )
                except MoodJournalError:
                    media_storage.remove(public_path)
                    raise
                stored.append(
                    UploadedFile(**media.model_dump(), original_name=upload.filename)
                )
        except MoodJournalError:
            for media in stored:
                try:
                    entry_store.delete_media(media.id)
                except NotFoundError:
                    pass
                media_storage.remove(media.file_path)
            raise
        return stored

    @app.post("/api/upload")
    def upload_file(
        file: UploadFile = File(...), entryId: str = Form(...)
    ) -> ApiResponse[UploadedFile]:
        """Store one photo or voice recording for an entry."""
        return ApiResponse[UploadedFile](data=_store_uploads(entryId, [file])[0])

    @app.post("/api/upload/multiple")
    def upload_files(
        files: list[UploadFile] = File(...), entryId: str = Form(...)
    ) -> ApiResponse[list[UploadedFile]]:
        if len(files) > MAX_FILES_PER_UPLOAD:
            raise ValidationError(
                f"At most {MAX_FILES_PER_UPLOAD} files can be uploaded at once"
            )
        return ApiResponse[list[UploadedFile]](data=_store_uploads(entryId, files))

    @app.get("/api/upload/entry/{entry_id}")
    def list_entry_media(entry_id: str) -> ApiResponse[list[MediaFile]]:
        return ApiResponse[list[MediaFile]](data=entry_store.list_media(entry_id))

    @app.delete("/api/upload/{media_id}")
    def delete_media(media_id: str) -> dict[str, bool | str]:
        media = entry_store.delete_media(media_id)
        media_storage.remove(media.file_path)
        return {"success": True, "message": "File deleted successfully"}

    # MARK: - Analytics

    @app.get("/api/analytics/trends")
    def get_trends(
        period: Literal["week", "month", "year"] | None = None,
        startDate: str | None = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
        endDate: str | None = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    ) -> ApiResponse[TrendsReport]:
        """
        Trend, breakdown, word frequency and streaks for a window.

        An explicit ``startDate``/``endDate`` pair wins over ``period``.
        """
        if startDate and endDate:
            start, end = day_bounds(startDate, endDate)
        else:
            start, end = period_range(period)
        return ApiResponse[TrendsReport](data=stats.trends(start, end))

    @app.get("/api/analytics/emotions")
    def get_emotion_stats() -> ApiResponse[list[EmotionShare]]:
        return ApiResponse[list[EmotionShare]](data=stats.emotion_breakdown())

    @app.get("/api/analytics/daily-summary")
    def get_daily_summary(
        startDate: str | None = None, endDate: str | None = None
    ) -> ApiResponse[DailySummaryData]:
        entries = entry_store.list_by_date_range(*_required_range(startDate, endDate))
        summary = DailySummaryData(dailySummary=analytics.daily_summary(entries))
        return ApiResponse[DailySummaryData](data=summary)

    @app.get("/api/analytics/daily-emotions")
    def get_daily_emotions(
        startDate: str | None = None,
        endDate: str | None = None,
        date: str | None = None,
    ) -> ApiResponse[DailyEmotionsData]:
        entries = entry_store.list_by_date_range(*_required_range(startDate, endDate))
        distribution = analytics.daily_emotion_distribution(entries, target_date=date)
        return ApiResponse[DailyEmotionsData](
            data=DailyEmotionsData(dailyDistribution=distribution)
        )

    @app.get("/api/analytics/emotion-pie")
    def get_emotion_pie(
        startDate: str | None = None,
        endDate: str | None = None,
        date: str | None = None,
    ) -> ApiResponse[EmotionPieResult]:
        """Emotion shares for one day (``date``) or a date range."""
        if date:
            entries = entry_store.list_by_date_range(*day_bounds(date, date))
            label = date
        elif startDate and endDate:
            entries = entry_store.list_by_date_range(*day_bounds(startDate, endDate))
            label = f"{startDate} to {endDate}"
        else:
            raise ValidationError(
                "Either date or both startDate and endDate are required"
            )
        result = EmotionPieResult(
            pieData=analytics.emotion_pie_data(entries),
            totalEntries=len(entries),
            date=label,
        )
        return ApiResponse[EmotionPieResult](data=result)

    # MARK: - Settings

    @app.get("/api/settings")
    def get_all_settings() -> ApiResponse[list[Setting]]:
        return ApiResponse[list[Setting]](data=settings_store.get_all())

    @app.put("/api/settings")
    def update_settings(batch: SettingsBatch) -> ApiResponse[list[Setting]]:
        for item in batch.settings:
            settings_store.set(item.key, item.value)
        return ApiResponse[list[Setting]](data=settings_store.get_all())

    @app.get("/api/settings/{key}")
    def get_setting(key: str) -> ApiResponse[Setting]:
        return ApiResponse[Setting](data=Setting(key=key, value=settings_store.get(key)))

    @app.put("/api/settings/{key}")
    def update_setting(key: str, payload: SettingValue) -> ApiResponse[Setting]:
        return ApiResponse[Setting](data=settings_store.set(key, payload.value))

    return app


# Default app instance for uvicorn
app = create_app()


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "mood_journal.server:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
