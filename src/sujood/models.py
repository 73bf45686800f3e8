from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple

from sujood.errors import CacheCorruption


class Prayer(str, Enum):
    FAJR = "fajr"
    SUNRISE = "sunrise"
    ZUHR = "zuhr"
    ASR = "asr"
    MAGHRIB = "maghrib"
    ISHA = "isha"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, name: str) -> "Prayer":
        key = name.strip().lower()
        if key in ("dhuhr", "dhuhur"):
            key = "zuhr"
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown prayer: {name}") from None


# Canonical order; Sunrise is informational and never gets a completion record.
PRAYER_ORDER: Tuple[Prayer, ...] = tuple(Prayer)
OBLIGATORY_PRAYERS: Tuple[Prayer, ...] = (
    Prayer.FAJR,
    Prayer.ZUHR,
    Prayer.ASR,
    Prayer.MAGHRIB,
    Prayer.ISHA,
)


class PrayerStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"
    MISSED = "missed"


TIME_FORMAT = "%H:%M"


def parse_hhmm(raw: object) -> time:
    if not isinstance(raw, str):
        raise CacheCorruption(f"Expected HH:MM string, got {raw!r}")
    try:
        return datetime.strptime(raw, TIME_FORMAT).time()
    except ValueError as exc:
        raise CacheCorruption(f"Bad time {raw!r}: {exc}") from exc


@dataclass(frozen=True)
class SixTimes:
    """Local wall-clock times of one calendar day, minute precision."""

    fajr: time
    sunrise: time
    zuhr: time
    asr: time
    maghrib: time
    isha: time

    def time_of(self, prayer: Prayer) -> time:
        return getattr(self, prayer.value)

    def items(self) -> Iterator[Tuple[Prayer, time]]:
        for prayer in PRAYER_ORDER:
            yield prayer, self.time_of(prayer)

    def is_ordered(self) -> bool:
        values = [value for _, value in self.items()]
        return all(earlier < later for earlier, later in zip(values, values[1:]))

    def to_dict(self) -> Dict[str, str]:
        return {prayer.value: value.strftime(TIME_FORMAT) for prayer, value in self.items()}

    @classmethod
    def from_mapping(cls, times: Dict[Prayer, time]) -> "SixTimes":
        return cls(**{prayer.value: times[prayer] for prayer in PRAYER_ORDER})

    @classmethod
    def from_dict(cls, payload: Dict[str, object]) -> "SixTimes":
        # Strict parsing so a damaged cache row is detected instead of half-read.
        values = {}
        for prayer in PRAYER_ORDER:
            if prayer.value not in payload:
                raise CacheCorruption(f"Missing time for {prayer.value}")
            values[prayer.value] = parse_hhmm(payload[prayer.value])
        return cls(**values)


@dataclass(frozen=True)
class CompletionRecord:
    prayer: Prayer
    date: date
    status: PrayerStatus
    is_qada: bool = False


@dataclass(frozen=True)
class QadaEntry:
    id: int
    prayer: Prayer
    original_date: date
    completed: bool = False
    completed_at: Optional[str] = None


@dataclass(frozen=True)
class Streak:
    current: int = 0
    best: int = 0


@dataclass(frozen=True)
class DailyStats:
    date: date
    prayers_done: int
    prayers_total: int

    def completion_ratio(self) -> float:
        if self.prayers_total == 0:
            return 0.0
        return self.prayers_done / self.prayers_total


class DhikrType(str, Enum):
    CHECKBOX = "checkbox"
    COUNTER = "counter"


class DhikrFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


@dataclass(frozen=True)
class DhikrDef:
    id: int
    name: str
    dhikr_type: DhikrType
    frequency: DhikrFrequency
    target_count: int
    builtin: bool
    sort_order: int


@dataclass(frozen=True)
class DhikrLog:
    dhikr_id: int
    date: date
    count: int
    completed: bool
