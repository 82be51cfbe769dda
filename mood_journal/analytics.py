"""
Analytics over recorded mood entries.

The functions in this module are pure: they take entries and return
aggregates, and hold no state between calls. ``Analytics`` binds them to an
EntryStore for the views that read the store directly.
"""

import calendar
import re
from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

from .models import (
    MOOD_SCORES,
    NEUTRAL_SCORE,
    DailySummaryRow,
    EmotionShare,
    MoodEntry,
    MoodTrendPoint,
    StreakData,
    TrendsReport,
    WordCount,
    utc_day,
)
from .store import EntryStore

TOP_WORDS = 50
MIN_WORD_LENGTH = 3
PERIODS = ("week", "month", "year")

_NON_WORD = re.compile(r"[^\w\s]")


def round_half_up(value: float, places: int = 2) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def mood_score(emotion: str) -> int:
    """Numeric 1-5 score of an emotion; unknown labels score as neutral."""
    return MOOD_SCORES.get(emotion, NEUTRAL_SCORE)


def _shares(counts: Iterable[tuple[str, int]], total: int) -> list[EmotionShare]:
    if total == 0:
        return []
    return [
        EmotionShare(
            emotion=emotion,
            count=count,
            percentage=round_half_up(count / total * 100),
        )
        for emotion, count in counts
    ]


# MARK: - Aggregates


def mood_trend(entries: Iterable[MoodEntry]) -> list[MoodTrendPoint]:
    """
    Average mood score and entry count per calendar day, oldest day first.

    Days are taken from each entry's ``date`` converted to UTC.
    """
    scores: dict[date, list[int]] = defaultdict(list)
    for entry in entries:
        scores[utc_day(entry.date)].append(mood_score(entry.emotion.value))

    return [
        MoodTrendPoint(
            date=day.isoformat(),
            avg_mood=round_half_up(sum(day_scores) / len(day_scores)),
            entry_count=len(day_scores),
        )
        for day, day_scores in sorted(scores.items())
    ]


def emotion_pie_data(entries: Sequence[MoodEntry]) -> list[EmotionShare]:
    """Count and percentage share per emotion within ``entries``."""
    counts = Counter(entry.emotion.value for entry in entries)
    return _shares(counts.most_common(), len(entries))


def word_frequency(entries: Iterable[MoodEntry], top: int = TOP_WORDS) -> list[WordCount]:
    """
    Most frequent words across the entries' notes.

    Notes are lower-cased, stripped of anything that is neither a word
    character nor whitespace, and split on whitespace; words shorter than
    three characters are dropped. Equal counts keep first-encountered order,
    which is not a stable contract.
    """
    counts: Counter[str] = Counter()
    for entry in entries:
        if not entry.notes:
            continue
        words = _NON_WORD.sub("", entry.notes.lower()).split()
        counts.update(word for word in words if len(word) >= MIN_WORD_LENGTH)
    return [WordCount(word=word, count=count) for word, count in counts.most_common(top)]


def streak_data(entries: Sequence[MoodEntry], today: date | None = None) -> StreakData:
    """
    Current and longest runs of consecutive days with at least one entry.

    A day is the leading ``YYYY-MM-DD`` of ``date``. The current streak counts
    backwards from ``today`` (UTC by default) and stops at the first gap.
    """
    if not entries:
        return StreakData()

    days = {date.fromisoformat(entry.date[:10]) for entry in entries}
    today = today or datetime.now(timezone.utc).date()

    current = 0
    check = today
    while check in days:
        current += 1
        check -= timedelta(days=1)

    longest = 0
    run = 0
    previous: date | None = None
    for day in sorted(days):
        if previous is not None and day - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = day

    return StreakData(
        current_streak=current,
        longest_streak=longest,
        total_entries=len(entries),
    )


def daily_emotion_distribution(
    entries: Iterable[MoodEntry], target_date: str | None = None
) -> dict[str, dict[str, int]]:
    """
    Entry counts per calendar day and emotion.

    Args:
        entries: Entries to bucket
        target_date: Optional ``YYYY-MM-DD``; only that day is kept

    Returns:
        Mapping of day to a mapping of emotion to count
    """
    distribution: dict[str, dict[str, int]] = {}
    for entry in entries:
        day = utc_day(entry.date).isoformat()
        if target_date and day != target_date:
            continue
        by_emotion = distribution.setdefault(day, {})
        by_emotion[entry.emotion.value] = by_emotion.get(entry.emotion.value, 0) + 1
    return distribution


def daily_summary(entries: Iterable[MoodEntry]) -> list[DailySummaryRow]:
    """One row per day and emotion with the joined notes, newest day first."""
    groups: dict[tuple[str, str], list[MoodEntry]] = defaultdict(list)
    for entry in entries:
        groups[(utc_day(entry.date).isoformat(), entry.emotion.value)].append(entry)

    rows = [
        DailySummaryRow(
            day=day,
            emotion=emotion,
            entry_count=len(group),
            combined_notes=" ".join(e.notes for e in group if e.notes) or None,
        )
        for (day, emotion), group in groups.items()
    ]
    rows.sort(key=lambda row: row.emotion)
    rows.sort(key=lambda row: row.day, reverse=True)
    return rows


# MARK: - Date Windows


def _months_back(day: date, months: int) -> date:
    month_index = day.year * 12 + day.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def _iso(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def period_range(period: str | None, now: datetime | None = None) -> tuple[str, str]:
    """
    Resolve a period token into ``(start, end)`` ISO-8601 boundaries.

    ``week`` is the last seven days, ``month`` and ``year`` start at midnight
    UTC of the same day one month or year earlier, and no period means the
    last thirty days. The end is always ``now``.
    """
    now = now or datetime.now(timezone.utc)
    if period == "week":
        start = now - timedelta(days=7)
    elif period == "month":
        start = datetime.combine(_months_back(now.date(), 1), time(), timezone.utc)
    elif period == "year":
        start = datetime.combine(_months_back(now.date(), 12), time(), timezone.utc)
    else:
        start = now - timedelta(days=30)
    return _iso(start), _iso(now)


def day_bounds(start: str, end: str) -> tuple[str, str]:
    """
    Widen date-only boundaries to cover whole days.

    Full timestamps pass through unchanged.
    """
    if "T" not in start:
        start = f"{start}T00:00:00.000Z"
    if "T" not in end:
        end = f"{end}T23:59:59.999Z"
    return start, end


# MARK: - Store-bound Views


class Analytics:
    """Aggregates computed from the current contents of an EntryStore."""

    def __init__(self, store: EntryStore) -> None:
        self._store = store

    def mood_trend(self, start: str, end: str) -> list[MoodTrendPoint]:
        return mood_trend(self._store.list_by_date_range(start, end))

    def emotion_breakdown(self) -> list[EmotionShare]:
        """Count and share per emotion across the whole store."""
        counts = self._store.emotion_counts()
        return _shares(counts, sum(count for _, count in counts))

    def streak_data(self, today: date | None = None) -> StreakData:
        return streak_data(self._store.list_all(), today=today)

    def trends(self, start: str, end: str, today: date | None = None) -> TrendsReport:
        """Trend, breakdown, word frequency and streaks for one window."""
        entries = self._store.list_by_date_range(start, end)
        return TrendsReport(
            moodTrends=mood_trend(entries),
            emotionBreakdown=self.emotion_breakdown(),
            wordFrequency=word_frequency(entries),
            streakData=self.streak_data(today=today),
        )
