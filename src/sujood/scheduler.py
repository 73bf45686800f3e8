from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from sujood.errors import CalculationError
from sujood.models import Prayer
from sujood.prayer_times import PrayerScheduleResolver

TickHandler = Callable[[Optional[Prayer], int], None]

TICK_JOB_ID = "countdown_tick"
REFRESH_JOB_ID = "refresh_daily"


@dataclass
class CountdownScheduler:
    """Drives the interactive countdown and the daily cache top-up.

    The ticks are cooperative polling: each one calls straight into the
    resolver, which holds no per-tick state.
    """

    scheduler: BackgroundScheduler
    resolver: PrayerScheduleResolver
    handler: TickHandler
    days_ahead: int = 7
    misfire_grace_seconds: int = 60

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(self.__class__.__name__)

    def start(self) -> None:
        # Keep scheduler startup explicit so tests can inject paused schedulers.
        if not self.scheduler.running:
            self.scheduler.start()

    def schedule_tick(self, interval_seconds: float = 0.5) -> None:
        self.scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=interval_seconds),
            id=TICK_JOB_ID,
            replace_existing=True,
            misfire_grace_time=self.misfire_grace_seconds,
            coalesce=True,
            max_instances=1,
        )

    def schedule_refresh_job(self, *, hour: int = 0, minute: int = 5) -> None:
        # Daily refresh keeps the rolling cache window ahead of the calendar.
        self.scheduler.add_job(
            self.refresh,
            trigger=CronTrigger(hour=hour, minute=minute),
            id=REFRESH_JOB_ID,
            replace_existing=True,
            misfire_grace_time=self.misfire_grace_seconds,
            coalesce=True,
            max_instances=1,
        )

    def tick(self) -> None:
        try:
            prayer, seconds = self.resolver.next_prayer_now()
        except CalculationError as exc:
            self._logger.error("Countdown refresh failed: %s", exc)
            self.handler(None, 0)
            return
        self.handler(prayer, seconds)

    def refresh(self) -> None:
        try:
            self.resolver.ensure_cached(self.days_ahead)
        except CalculationError as exc:
            # The job retries tomorrow; already-stored days remain usable.
            self._logger.error("Daily cache refresh failed: %s", exc)
