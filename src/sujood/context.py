from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import math
from typing import Union

from sujood.errors import InvalidContext

MAX_OFFSET_MINUTES = 24 * 60


class CalculationMethod(str, Enum):
    MUSLIM_WORLD_LEAGUE = "MuslimWorldLeague"
    EGYPTIAN = "Egyptian"
    KARACHI = "Karachi"
    UMM_AL_QURA = "UmmAlQura"
    DUBAI = "Dubai"
    MOONSIGHTING_COMMITTEE = "MoonsightingCommittee"
    NORTH_AMERICA = "NorthAmerica"
    KUWAIT = "Kuwait"
    QATAR = "Qatar"
    SINGAPORE = "Singapore"
    TEHRAN = "Tehran"
    TURKEY = "Turkey"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Union[str, "CalculationMethod"]) -> "CalculationMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidContext(f"Unknown calculation method: {value!r}") from None


class Madhab(str, Enum):
    HANAFI = "Hanafi"
    SHAFI = "Shafi"

    @classmethod
    def parse(cls, value: Union[str, "Madhab"]) -> "Madhab":
        if isinstance(value, cls):
            return value
        if value == "Shafi'i":
            return cls.SHAFI
        try:
            return cls(value)
        except ValueError:
            raise InvalidContext(f"Unknown madhab: {value!r}") from None


@dataclass(frozen=True)
class PrayerContext:
    """Immutable location and calculation settings driving time computation.

    Validation happens here so an invalid method, madhab, coordinate or offset
    is a construction-time failure rather than a mid-operation one.
    """

    latitude: float
    longitude: float
    method: CalculationMethod
    madhab: Madhab
    utc_offset_minutes: int

    def __post_init__(self) -> None:
        _check_coordinate("latitude", self.latitude, 90.0)
        _check_coordinate("longitude", self.longitude, 180.0)
        # Frozen dataclass: coerce string identifiers in place.
        object.__setattr__(self, "method", CalculationMethod.parse(self.method))
        object.__setattr__(self, "madhab", Madhab.parse(self.madhab))
        offset = self.utc_offset_minutes
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise InvalidContext(f"UTC offset must be whole minutes, got {offset!r}")
        if abs(offset) > MAX_OFFSET_MINUTES:
            raise InvalidContext(f"UTC offset out of range: {offset} minutes")

    @property
    def fingerprint(self) -> str:
        return (
            f"{self.latitude:.6f},{self.longitude:.6f},"
            f"{self.method.value},{self.madhab.value},{self.utc_offset_minutes}"
        )


def _check_coordinate(name: str, value: object, limit: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidContext(f"{name} must be a number, got {value!r}")
    if math.isnan(value) or not -limit <= value <= limit:
        raise InvalidContext(f"{name} out of range: {value}")
