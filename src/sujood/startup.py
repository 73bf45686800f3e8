from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

from sujood.cache_store import CacheStore
from sujood.config import AppConfig
from sujood.context import PrayerContext
from sujood.day_cache import DayCache
from sujood.errors import CalculationError
from sujood.prayer_api import AladhanClient
from sujood.prayer_times import Clock, PrayerScheduleResolver, SystemClock
from sujood.providers import AstronomicalProvider, build_provider
from sujood.records import RecordStore
from sujood.streaks import StreakAnalyzer


@dataclass
class Services:
    resolver: PrayerScheduleResolver
    cache: DayCache
    records: RecordStore
    streaks: StreakAnalyzer


def build_services(
    config: AppConfig,
    context: PrayerContext,
    *,
    provider: Optional[AstronomicalProvider] = None,
    clock: Optional[Clock] = None,
) -> Services:
    logger = logging.getLogger("Startup")
    clock = clock or SystemClock(context.utc_offset_minutes)

    cache = DayCache(CacheStore(config.cache.dir))
    # Reconfiguration invalidates every cached day; do it before any lookup.
    if cache.bind(context):
        logger.info("Cache invalidated for new context %s", context.fingerprint)

    if provider is None:
        client = None
        if config.provider.kind == "aladhan":
            client = AladhanClient(
                base_url=config.provider.base_url,
                timeout_seconds=config.provider.timeout_seconds,
                max_retries=config.provider.max_retries,
            )
        provider = build_provider(config.provider.kind, client)

    resolver = PrayerScheduleResolver(
        context=context, provider=provider, cache=cache, clock=clock
    )
    records = RecordStore(CacheStore(config.records.dir), now_provider=clock.now)
    return Services(
        resolver=resolver,
        cache=cache,
        records=records,
        streaks=StreakAnalyzer(records, clock=clock),
    )


def warm_cache(resolver: PrayerScheduleResolver, days_ahead: int) -> bool:
    """Pre-fill the rolling window; failures are logged and left for the next run."""
    logger = logging.getLogger("Startup")
    try:
        resolver.ensure_cached(days_ahead)
    except CalculationError as exc:
        logger.warning("Cache warm-up stopped early: %s", exc)
        return False
    return True
