from __future__ import annotations

import argparse
from datetime import date, timedelta
import logging
import os
from pathlib import Path
import threading
from typing import Iterable, Optional

from sujood.config import AppConfig, ConfigError, ConfigLoader
from sujood.errors import CalculationError, InvalidContext
from sujood.formatting import format_duration, format_pages, format_time, progress_bar
from sujood.logging_utils import LoggerFactory
from sujood.models import DhikrFrequency, DhikrType, Prayer, PrayerStatus
from sujood.startup import Services, build_services, warm_cache

# Commands that show prayer times pre-warm the rolling cache first.
_WARM_COMMANDS = {"times", "next", "watch"}

_DAILY_ADHKAR = {"morning": "Morning Adhkar", "evening": "Evening Adhkar"}


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        config_dir = Path(args.config) if args.config else None
        config = ConfigLoader(root_dir=config_dir).load()
    except ConfigError as exc:
        LoggerFactory.configure_root()
        logging.getLogger("sujood").error("Config error: %s", exc)
        return 2

    log_path = os.getenv("SUJOOD_LOG_PATH") or config.logging.file_path
    LoggerFactory.configure_root(log_file=log_path)
    logger = logging.getLogger("sujood")

    try:
        context = config.context()
    except InvalidContext as exc:
        logger.error("Invalid location settings: %s", exc)
        return 2

    services = build_services(config, context)
    if args.command in _WARM_COMMANDS:
        warm_cache(services.resolver, config.cache.days_ahead)

    try:
        return _dispatch(args, config, services)
    except CalculationError as exc:
        logger.error("Prayer time calculation failed: %s", exc)
        return 1
    except ValueError as exc:
        logger.error("%s", exc)
        return 2


def _dispatch(args: argparse.Namespace, config: AppConfig, services: Services) -> int:
    if args.command == "times":
        return _cmd_times(config, services)
    if args.command == "next":
        return _cmd_next(services)
    if args.command == "mark":
        return _cmd_mark(services, args.prayer, args.missed, args.date)
    if args.command == "qada":
        return _cmd_qada(services, args.action, getattr(args, "prayer", None))
    if args.command == "stats":
        return _cmd_stats(services, args.week)
    if args.command == "cache":
        return _cmd_cache(config, services, args.action, getattr(args, "days", None))
    if args.command == "watch":
        return _cmd_watch(config, services, args.interval)
    if args.command == "dhikr":
        return _cmd_dhikr(services, args)
    if args.command == "quran":
        return _cmd_quran(services, args.pages)
    if args.command == "export":
        return _cmd_export(config, services)
    raise ValueError(f"Unknown command: {args.command}")


def _cmd_times(config: AppConfig, services: Services) -> int:
    now = services.resolver.clock.now()
    times = services.resolver.get_cached_or_compute(now.date())
    next_prayer, seconds = services.resolver.get_next_prayer(now.date(), now.time())
    # After Isha the next prayer is tomorrow's Fajr, so nothing on today's list is marked.
    rolled_over = next_prayer is Prayer.FAJR and times.fajr <= now.time()
    title = config.location.name or "Prayer Times"
    print(f"{title} ({now.date().isoformat()})")
    for prayer, at in times.items():
        marker = "*" if prayer is next_prayer and not rolled_over else " "
        print(f"{marker} {prayer.display_name:<8} {format_time(at)}")
    _print_next(next_prayer, seconds)
    return 0


def _cmd_next(services: Services) -> int:
    _print_next(*services.resolver.next_prayer_now())
    return 0


def _print_next(prayer: Prayer, seconds: int) -> None:
    print(f"Next: {prayer.display_name} in {format_duration(seconds)}")


def _cmd_mark(services: Services, prayer_name: str, missed: bool, day: Optional[date]) -> int:
    prayer = Prayer.parse(prayer_name)
    day = day or services.resolver.clock.now().date()
    records = services.records
    records.ensure_day(day)
    if missed:
        records.mark(prayer, day, PrayerStatus.MISSED)
        records.add_qada(prayer, day)
        print(f"{prayer.display_name} marked as missed and added to the qada queue")
    else:
        records.mark(prayer, day, PrayerStatus.DONE)
        print(f"{prayer.display_name} marked as done")
    return 0


def _cmd_qada(services: Services, action: str, prayer_name: Optional[str]) -> int:
    records = services.records
    if action == "list":
        queue = records.qada_queue()
        if not queue:
            print("No qada prayers outstanding")
            return 0
        print(f"Qada queue ({len(queue)} prayers)")
        for entry in queue:
            print(f"  {entry.prayer.display_name} - {entry.original_date.isoformat()}")
        return 0
    if action == "add":
        prayer = Prayer.parse(prayer_name or "")
        records.add_qada(prayer, services.resolver.clock.now().date())
        print(f"Added {prayer.display_name} to the qada queue")
        return 0
    entry = records.complete_oldest_qada()
    if entry is None:
        print("No qada prayers in queue")
    else:
        print(f"Completed qada {entry.prayer.display_name} from {entry.original_date.isoformat()}")
    return 0


def _cmd_stats(services: Services, week: bool) -> int:
    streak = services.streaks.calculate()
    print(f"Current streak: {streak.current} days")
    print(f"Best streak: {streak.best} days")
    print(f"Qada outstanding: {services.records.count_pending_qada()}")
    print(f"Quran (7d): {format_pages(_quran_week(services))} pages")
    if week:
        for stats in services.streaks.weekly_grid():
            bar = progress_bar(stats.prayers_done, 5, 10)
            print(f"  {stats.date.isoformat()} {bar} {stats.prayers_done}/{stats.prayers_total}")
    return 0


def _quran_week(services: Services) -> float:
    today = services.resolver.clock.now().date()
    return services.records.quran_total(today - timedelta(days=6), today)


def _cmd_dhikr(services: Services, args: argparse.Namespace) -> int:
    records = services.records
    today = services.resolver.clock.now().date()
    if args.action == "list":
        logs = records.dhikr_log(today)
        print("Adhkar")
        for definition in records.dhikr_definitions():
            log = logs.get(definition.id)
            if log is not None and log.completed:
                status = "done"
            elif definition.dhikr_type is DhikrType.COUNTER:
                status = f"{log.count if log is not None else 0}/{definition.target_count}"
            else:
                status = "pending"
            print(f"  {definition.name:<30} {status}")
        return 0
    if args.action == "add":
        definition = records.add_dhikr(
            args.name,
            dhikr_type=DhikrType(args.type),
            target_count=args.target,
            frequency=DhikrFrequency(args.freq),
        )
        print(f"Added dhikr: {definition.name}")
        return 0

    if args.action == "mark":
        definition, log = records.toggle_dhikr(args.name, today, args.count)
    else:
        definition, log = records.toggle_dhikr(_DAILY_ADHKAR[args.action], today)
    if definition.dhikr_type is DhikrType.CHECKBOX:
        print(f"{definition.name}: {'done' if log.completed else 'unmarked'}")
    else:
        suffix = " (complete)" if log.completed else ""
        print(f"{definition.name}: {log.count}/{definition.target_count}{suffix}")
    return 0


def _cmd_quran(services: Services, pages: float) -> int:
    today = services.resolver.clock.now().date()
    total = services.records.log_quran(today, pages)
    print(f"Logged {format_pages(pages)} pages, today's total: {format_pages(total)}")
    return 0


def _cmd_export(config: AppConfig, services: Services) -> int:
    today = services.resolver.clock.now().date()
    streak = services.streaks.calculate()
    print("# sujood weekly summary")
    print(f"# {today.isoformat()}")
    print()
    print(f"Location: {config.location.name or 'Unnamed'}")
    print(f"Method:   {services.resolver.context.method.value}")
    print()
    print("## Prayer completion (last 7 days)")
    for stats in services.streaks.weekly_grid():
        print(f"  {stats.date.isoformat()}  {stats.prayers_done}/5  {progress_bar(stats.prayers_done, 5, 5)}")
    print()
    print("## Summary")
    print(f"  Streak:     {streak.current} days (best: {streak.best})")
    print(f"  Qada owed:  {services.records.count_pending_qada()}")
    print(f"  Quran (7d): {format_pages(_quran_week(services))} pages")
    return 0


def _cmd_cache(config: AppConfig, services: Services, action: str, days: Optional[int]) -> int:
    if action == "clear":
        removed = services.cache.clear_all()
        print(f"Cleared {removed} cached days")
        return 0
    days_ahead = config.cache.days_ahead if days is None else days
    services.resolver.ensure_cached(days_ahead)
    print(f"Cache holds {len(services.cache.dates())} days")
    return 0


def _cmd_watch(config: AppConfig, services: Services, interval: float) -> int:
    # Import APScheduler only for the interactive mode.
    from apscheduler.schedulers.background import BackgroundScheduler

    from sujood.scheduler import CountdownScheduler

    def show(prayer: Optional[Prayer], seconds: int) -> None:
        if prayer is None:
            print("\rNext prayer unavailable          ", end="", flush=True)
        else:
            print(f"\rNext: {prayer.display_name} in {format_duration(seconds)}    ", end="", flush=True)

    countdown = CountdownScheduler(
        scheduler=BackgroundScheduler(),
        resolver=services.resolver,
        handler=show,
        days_ahead=config.cache.days_ahead,
    )
    countdown.schedule_tick(interval_seconds=interval)
    countdown.schedule_refresh_job()
    countdown.start()
    stop = threading.Event()
    try:
        stop.wait()
    except KeyboardInterrupt:
        print()
    finally:
        countdown.scheduler.shutdown(wait=False)
    return 0


def _parse_args(argv: Optional[Iterable[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sujood", description="Prayer times, countdown and streak tracking"
    )
    parser.add_argument("--config", help="Directory containing config.yml")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("times", help="Show today's prayer times and the next prayer")
    sub.add_parser("next", help="Show the next prayer and its countdown")

    mark = sub.add_parser("mark", help="Mark a prayer as done or missed")
    mark.add_argument("prayer", help="fajr, zuhr, asr, maghrib or isha")
    mark.add_argument("--missed", action="store_true", help="Mark missed and queue a qada")
    mark.add_argument("--date", type=date.fromisoformat, help="Day to mark (YYYY-MM-DD)")

    qada = sub.add_parser("qada", help="Qada queue management")
    qada_sub = qada.add_subparsers(dest="action", required=True)
    qada_sub.add_parser("list", help="Show the qada queue")
    qada_add = qada_sub.add_parser("add", help="Add a prayer to the qada queue")
    qada_add.add_argument("prayer")
    qada_sub.add_parser("complete", help="Complete the oldest qada prayer")

    dhikr = sub.add_parser("dhikr", help="Dhikr tracking")
    dhikr_sub = dhikr.add_subparsers(dest="action", required=True)
    dhikr_sub.add_parser("morning", help="Toggle today's morning adhkar")
    dhikr_sub.add_parser("evening", help="Toggle today's evening adhkar")
    dhikr_mark = dhikr_sub.add_parser("mark", help="Toggle or increment a dhikr by name")
    dhikr_mark.add_argument("name")
    dhikr_mark.add_argument("--count", type=int, help="Add this count to a counter dhikr")
    dhikr_add = dhikr_sub.add_parser("add", help="Add a custom dhikr")
    dhikr_add.add_argument("name")
    dhikr_add.add_argument("--type", choices=[t.value for t in DhikrType], default=DhikrType.CHECKBOX.value)
    dhikr_add.add_argument("--target", type=int, default=1, help="Target count for counter adhkar")
    dhikr_add.add_argument(
        "--freq", choices=[f.value for f in DhikrFrequency], default=DhikrFrequency.DAILY.value
    )
    dhikr_sub.add_parser("list", help="Show today's adhkar")

    quran = sub.add_parser("quran", help="Log Quran pages read today")
    quran.add_argument("pages", type=float)

    stats = sub.add_parser("stats", help="Show streaks, qada and Quran totals")
    stats.add_argument("--week", action="store_true", help="Include the last 7 days")

    sub.add_parser("export", help="Print a weekly text summary")

    cache = sub.add_parser("cache", help="Prayer time cache management")
    cache_sub = cache.add_subparsers(dest="action", required=True)
    warm = cache_sub.add_parser("warm", help="Compute missing days ahead")
    warm.add_argument("--days", type=int, help="Days ahead of today to fill")
    cache_sub.add_parser("clear", help="Drop every cached day")

    watch = sub.add_parser("watch", help="Live countdown to the next prayer")
    watch.add_argument("--interval", type=float, default=0.5, help="Refresh interval in seconds")

    return parser.parse_args(argv)


if __name__ == "__main__":
    raise SystemExit(main())
