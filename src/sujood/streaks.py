from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
import logging
from typing import Dict, Iterable, List, Optional, Set

from sujood.models import (
    OBLIGATORY_PRAYERS,
    CompletionRecord,
    DailyStats,
    Prayer,
    PrayerStatus,
    Streak,
)
from sujood.prayer_times import Clock, SystemClock
from sujood.records import RecordStore

_ONE_DAY = timedelta(days=1)


def full_days(records: Iterable[CompletionRecord]) -> Set[date]:
    """Dates on which all five obligation prayers were done on time.

    Qada make-ups and Sunrise never count.
    """
    done: Dict[date, Set[Prayer]] = defaultdict(set)
    for record in records:
        if record.is_qada or record.prayer not in OBLIGATORY_PRAYERS:
            continue
        if record.status is PrayerStatus.DONE:
            done[record.date].add(record.prayer)
    required = set(OBLIGATORY_PRAYERS)
    return {day for day, prayers in done.items() if prayers >= required}


def calculate_streak(records: Iterable[CompletionRecord], today: date) -> Streak:
    days = full_days(records)
    if not days:
        return Streak(current=0, best=0)

    # An unfinished today does not break a streak that ends yesterday.
    cursor = today if today in days else today - _ONE_DAY
    current = 0
    while cursor in days:
        current += 1
        cursor -= _ONE_DAY

    return Streak(current=current, best=_best_run(sorted(days)))


def _best_run(ordered: List[date]) -> int:
    best = 0
    run = 0
    previous: Optional[date] = None
    for day in ordered:
        run = run + 1 if previous is not None and day - previous == _ONE_DAY else 1
        best = max(best, run)
        previous = day
    return best


def daily_stats(
    records: Iterable[CompletionRecord], start: date, end: date
) -> List[DailyStats]:
    done: Dict[date, int] = defaultdict(int)
    total: Dict[date, int] = defaultdict(int)
    for record in records:
        if record.is_qada or not start <= record.date <= end:
            continue
        total[record.date] += 1
        if record.status is PrayerStatus.DONE:
            done[record.date] += 1
    return [
        DailyStats(date=day, prayers_done=done[day], prayers_total=total[day])
        for day in sorted(total)
    ]


class StreakAnalyzer:
    def __init__(self, record_store: RecordStore, clock: Optional[Clock] = None) -> None:
        self._records = record_store
        self._clock = clock or SystemClock()
        self._logger = logging.getLogger(self.__class__.__name__)

    def calculate(self) -> Streak:
        # Recomputed from the full history on every request; never cached.
        streak = calculate_streak(self._records.records(), self._clock.now().date())
        self._logger.debug("Streak current=%s best=%s", streak.current, streak.best)
        return streak

    def weekly_grid(self, days: int = 7) -> List[DailyStats]:
        end = self._clock.now().date()
        start = end - timedelta(days=days - 1)
        return daily_stats(self._records.records(), start, end)
