from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path

from sujood.config import ConfigLoader
from sujood.errors import CalculationError
from sujood.models import Prayer
from sujood.startup import build_services, warm_cache


class FixedNow:
    def __init__(self, now: datetime) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now


class FakeProvider:
    def __init__(self, fail_from: date | None = None) -> None:
        self._fail_from = fail_from
        self.calls = []

    def compute(self, latitude, longitude, method, madhab, day):
        self.calls.append(day)
        if self._fail_from is not None and day >= self._fail_from:
            raise CalculationError("out of range")
        hours = [5, 6, 12, 15, 18, 19]
        return {
            prayer: datetime(day.year, day.month, day.day, hour, 0, tzinfo=timezone.utc)
            for prayer, hour in zip(Prayer, hours)
        }


def _config(tmp_path: Path, offset: int = 0):
    (tmp_path / "config.yml").write_text(
        f"""
location:
  latitude: 21.42
  longitude: 39.83
  calc_method: "UmmAlQura"
  madhab: "Shafi"
  timezone_offset_minutes: {offset}
cache:
  dir: "{tmp_path / 'cache'}"
records:
  dir: "{tmp_path / 'records'}"
""",
        encoding="utf-8",
    )
    return ConfigLoader(root_dir=tmp_path).load()


def test_warm_cache_fills_window(tmp_path: Path) -> None:
    config = _config(tmp_path)
    services = build_services(
        config, config.context(), provider=FakeProvider(), clock=FixedNow(datetime(2025, 1, 1, 4, 0))
    )

    assert warm_cache(services.resolver, 2) is True
    assert services.cache.dates() == [date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 3)]


def test_warm_cache_failure_is_reported_not_raised(tmp_path: Path) -> None:
    config = _config(tmp_path)
    provider = FakeProvider(fail_from=date(2025, 1, 2))
    services = build_services(
        config, config.context(), provider=provider, clock=FixedNow(datetime(2025, 1, 1, 4, 0))
    )

    assert warm_cache(services.resolver, 3) is False
    assert services.cache.dates() == [date(2025, 1, 1)]


def test_reconfigured_context_clears_cache_on_startup(tmp_path: Path) -> None:
    clock = FixedNow(datetime(2025, 1, 1, 4, 0))
    config = _config(tmp_path)
    services = build_services(config, config.context(), provider=FakeProvider(), clock=clock)
    warm_cache(services.resolver, 1)

    moved = _config(tmp_path, offset=180)
    services = build_services(moved, moved.context(), provider=FakeProvider(), clock=clock)

    assert services.cache.dates() == []
