from __future__ import annotations

from datetime import date, datetime, timezone
import logging
from typing import Any, Dict, Optional, Protocol

from sujood.context import CalculationMethod, Madhab
from sujood.errors import CalculationError
from sujood.models import PRAYER_ORDER, Prayer
from sujood.prayer_api import AladhanClient, ApiError

UtcInstants = Dict[Prayer, datetime]


class AstronomicalProvider(Protocol):
    def compute(
        self,
        latitude: float,
        longitude: float,
        method: CalculationMethod,
        madhab: Madhab,
        day: date,
    ) -> UtcInstants:  # pragma: no cover - interface only
        ...


# adhanpy enum member names for each supported method.
_ADHAN_METHOD_NAMES = {
    CalculationMethod.MUSLIM_WORLD_LEAGUE: "MUSLIM_WORLD_LEAGUE",
    CalculationMethod.EGYPTIAN: "EGYPTIAN",
    CalculationMethod.KARACHI: "KARACHI",
    CalculationMethod.UMM_AL_QURA: "UMM_AL_QURA",
    CalculationMethod.DUBAI: "DUBAI",
    CalculationMethod.MOONSIGHTING_COMMITTEE: "MOON_SIGHTING_COMMITTEE",
    CalculationMethod.NORTH_AMERICA: "NORTH_AMERICA",
    CalculationMethod.KUWAIT: "KUWAIT",
    CalculationMethod.QATAR: "QATAR",
    CalculationMethod.SINGAPORE: "SINGAPORE",
}

# (fajr, isha) twilight angles for methods adhanpy has no preset for.
_CUSTOM_ANGLES = {
    CalculationMethod.TEHRAN: (17.7, 14.0),
    CalculationMethod.TURKEY: (18.0, 17.0),
    CalculationMethod.OTHER: (0.0, 0.0),
}

# Attribute names on adhanpy's PrayerTimes result.
_ADHAN_ATTRIBUTES = {
    Prayer.FAJR: "fajr",
    Prayer.SUNRISE: "sunrise",
    Prayer.ZUHR: "dhuhr",
    Prayer.ASR: "asr",
    Prayer.MAGHRIB: "maghrib",
    Prayer.ISHA: "isha",
}


class AdhanProvider:
    """Local astronomical calculation backed by adhanpy."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(self.__class__.__name__)

    def compute(
        self,
        latitude: float,
        longitude: float,
        method: CalculationMethod,
        madhab: Madhab,
        day: date,
    ) -> UtcInstants:
        # Imported lazily so the HTTP provider works without adhanpy installed.
        from adhanpy.PrayerTimes import PrayerTimes
        from adhanpy.calculation import CalculationMethod as AdhanMethod
        from adhanpy.calculation.CalculationParameters import CalculationParameters
        from adhanpy.calculation.Madhab import Madhab as AdhanMadhab

        if method in _CUSTOM_ANGLES:
            fajr_angle, isha_angle = _CUSTOM_ANGLES[method]
            parameters = CalculationParameters(fajr_angle=fajr_angle, isha_angle=isha_angle)
        else:
            adhan_method = getattr(AdhanMethod, _ADHAN_METHOD_NAMES[method], None)
            if adhan_method is None:
                raise CalculationError(f"Calculation method {method.value} is not supported by adhanpy")
            parameters = CalculationParameters(method=adhan_method)
        parameters.madhab = AdhanMadhab.HANAFI if madhab is Madhab.HANAFI else AdhanMadhab.SHAFI

        instants: UtcInstants = {}
        try:
            # No time_zone: adhanpy then reports UTC instants.
            result = PrayerTimes(
                (latitude, longitude),
                datetime(day.year, day.month, day.day),
                calculation_parameters=parameters,
            )
            for prayer, attribute in _ADHAN_ATTRIBUTES.items():
                value = getattr(result, attribute, None)
                if not isinstance(value, datetime):
                    raise CalculationError(f"No {prayer.value} time for {day.isoformat()}")
                if value.tzinfo is None:
                    value = value.replace(tzinfo=timezone.utc)
                instants[prayer] = value.astimezone(timezone.utc)
        except (ArithmeticError, ValueError, TypeError) as exc:
            # Polar days and nights leave the solar hour angle undefined.
            raise CalculationError(
                f"Prayer calculation failed for {day.isoformat()} at ({latitude}, {longitude}): {exc}"
            ) from exc
        self._logger.debug("Computed %s with %s/%s", day.isoformat(), method.value, madhab.value)
        return instants


# Method ids understood by the Aladhan timings API.
_ALADHAN_METHOD_IDS = {
    CalculationMethod.KARACHI: 1,
    CalculationMethod.NORTH_AMERICA: 2,
    CalculationMethod.MUSLIM_WORLD_LEAGUE: 3,
    CalculationMethod.UMM_AL_QURA: 4,
    CalculationMethod.EGYPTIAN: 5,
    CalculationMethod.TEHRAN: 7,
    CalculationMethod.KUWAIT: 9,
    CalculationMethod.QATAR: 10,
    CalculationMethod.SINGAPORE: 11,
    CalculationMethod.TURKEY: 13,
    CalculationMethod.MOONSIGHTING_COMMITTEE: 15,
    CalculationMethod.DUBAI: 16,
}

# The API's custom method, configured through methodSettings.
_ALADHAN_CUSTOM_METHOD = 99

_ALADHAN_KEYS = {
    Prayer.FAJR: "Fajr",
    Prayer.SUNRISE: "Sunrise",
    Prayer.ZUHR: "Dhuhr",
    Prayer.ASR: "Asr",
    Prayer.MAGHRIB: "Maghrib",
    Prayer.ISHA: "Isha",
}


class AladhanProvider:
    """Remote calculation through the Aladhan timings API."""

    def __init__(self, client: AladhanClient) -> None:
        self._client = client

    def compute(
        self,
        latitude: float,
        longitude: float,
        method: CalculationMethod,
        madhab: Madhab,
        day: date,
    ) -> UtcInstants:
        method_id = _ALADHAN_METHOD_IDS.get(method)
        method_settings = None
        if method_id is None:
            fajr_angle, isha_angle = _CUSTOM_ANGLES[method]
            method_id = _ALADHAN_CUSTOM_METHOD
            method_settings = f"{fajr_angle:g},null,{isha_angle:g}"
        payload = self._client.get_timings(
            day=day,
            latitude=latitude,
            longitude=longitude,
            method=method_id,
            school=1 if madhab is Madhab.HANAFI else 0,
            method_settings=method_settings,
        )
        return timings_from_api(payload)


def timings_from_api(payload: Dict[str, Any]) -> UtcInstants:
    # We keep parsing strict so we surface upstream schema issues early.
    data: Optional[Any] = payload.get("data")
    timings = data.get("timings") if isinstance(data, dict) else None
    if not isinstance(timings, dict):
        raise ApiError("API payload is missing data.timings")

    instants: UtcInstants = {}
    for prayer in PRAYER_ORDER:
        raw = timings.get(_ALADHAN_KEYS[prayer])
        if not isinstance(raw, str):
            raise ApiError(f"API payload is missing {_ALADHAN_KEYS[prayer]}")
        try:
            instants[prayer] = datetime.fromisoformat(raw)
        except ValueError as exc:
            raise ApiError(f"Bad timestamp for {_ALADHAN_KEYS[prayer]}: {raw!r}") from exc
    return instants


def build_provider(kind: str, client: Optional[AladhanClient] = None) -> AstronomicalProvider:
    if kind == "adhan":
        return AdhanProvider()
    if kind == "aladhan":
        if client is None:
            raise ValueError("The aladhan provider needs an HTTP client")
        return AladhanProvider(client)
    raise ValueError(f"Unknown provider kind: {kind}")
