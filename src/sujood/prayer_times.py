from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
import logging
from threading import Lock
from typing import Dict, Optional, Tuple

from sujood.context import PrayerContext
from sujood.day_cache import DayCache
from sujood.errors import CalculationError
from sujood.models import OBLIGATORY_PRAYERS, PRAYER_ORDER, Prayer, SixTimes
from sujood.projector import project
from sujood.providers import AstronomicalProvider

NextPrayer = Tuple[Prayer, int]

_MIDNIGHT = time(0, 0, 0)
_LAST_SECOND = time(23, 59, 59)


class Clock:
    def now(self) -> datetime:  # pragma: no cover - interface only
        raise NotImplementedError


class SystemClock(Clock):
    """Wall clock, optionally pinned to a fixed UTC offset instead of the host zone."""

    def __init__(self, utc_offset_minutes: Optional[int] = None) -> None:
        self._utc_offset_minutes = utc_offset_minutes

    def now(self) -> datetime:
        if self._utc_offset_minutes is None:
            return datetime.now()
        utc_now = datetime.now(timezone.utc).replace(tzinfo=None)
        return utc_now + timedelta(minutes=self._utc_offset_minutes)


class PrayerScheduleResolver:
    def __init__(
        self,
        *,
        context: PrayerContext,
        provider: AstronomicalProvider,
        cache: DayCache,
        clock: Optional[Clock] = None,
    ) -> None:
        self._context = context
        self._provider = provider
        self._cache = cache
        self._clock = clock or SystemClock(context.utc_offset_minutes)
        # Guards the cache get/store pair so concurrent callers never double-compute.
        self._lock = Lock()
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def context(self) -> PrayerContext:
        return self._context

    @property
    def clock(self) -> Clock:
        return self._clock

    def times_for_date(self, day: date) -> SixTimes:
        ctx = self._context
        # Provider failures surface unchanged; nothing is retried or guessed here.
        instants = self._provider.compute(
            ctx.latitude, ctx.longitude, ctx.method, ctx.madhab, day
        )

        local: Dict[Prayer, time] = {}
        for prayer in PRAYER_ORDER:
            instant = instants.get(prayer)
            if instant is None:
                raise CalculationError(f"Provider returned no {prayer.value} time for {day.isoformat()}")
            local[prayer] = project(instant, ctx.utc_offset_minutes)

        times = SixTimes.from_mapping(local)
        if not times.is_ordered():
            raise CalculationError(
                f"Prayer times out of order for {day.isoformat()}: {times.to_dict()}"
            )
        return times

    def get_cached_or_compute(self, day: date) -> SixTimes:
        with self._lock:
            cached = self._cache.get(day)
            if cached is not None:
                return cached
            times = self.times_for_date(day)
            self._cache.store(day, times)
            self._logger.debug("Cached prayer times for %s", day.isoformat())
            return times

    def ensure_cached(self, days_ahead: int) -> None:
        if days_ahead < 0:
            raise ValueError(f"days_ahead must be non-negative, got {days_ahead}")
        today = self._clock.now().date()
        filled = 0
        for offset in range(days_ahead + 1):
            day = today + timedelta(days=offset)
            with self._lock:
                if self._cache.get(day) is not None:
                    continue
                # A failure leaves earlier days stored; the next call resumes the gaps.
                self._cache.store(day, self.times_for_date(day))
            filled += 1
        self._logger.info(
            "Prayer cache warm through %s (%s new days)",
            (today + timedelta(days=days_ahead)).isoformat(),
            filled,
        )

    def get_next_prayer(self, now_date: date, now_time: time) -> NextPrayer:
        today_times = self.get_cached_or_compute(now_date)
        for prayer in OBLIGATORY_PRAYERS:
            at = today_times.time_of(prayer)
            if at > now_time:
                return prayer, _seconds_between(now_time, at)

        # Every prayer of today has passed: the next one is tomorrow's Fajr.
        tomorrow_times = self.get_cached_or_compute(now_date + timedelta(days=1))
        remaining_today = _seconds_between(now_time, _LAST_SECOND)
        midnight_to_fajr = _seconds_between(_MIDNIGHT, tomorrow_times.fajr)
        return Prayer.FAJR, remaining_today + midnight_to_fajr + 1

    def next_prayer_now(self) -> NextPrayer:
        now = self._clock.now()
        return self.get_next_prayer(now.date(), now.time())


def _seconds_between(start: time, end: time) -> int:
    anchor = date(2000, 1, 1)
    delta = datetime.combine(anchor, end) - datetime.combine(anchor, start)
    # Truncate toward zero, like whole-second countdowns.
    return int(delta.total_seconds())
