from __future__ import annotations

from datetime import date, timedelta

import pytest

from sujood.context import CalculationMethod, Madhab, PrayerContext
from sujood.errors import CalculationError
from sujood.models import Prayer
from sujood.providers import AdhanProvider, build_provider

MAKKAH = (21.4225, 39.8262)
ISLAMABAD = (33.6938, 73.0651)


@pytest.mark.parametrize("method", list(CalculationMethod), ids=lambda m: m.value)
def test_every_method_yields_six_utc_instants(method: CalculationMethod) -> None:
    context = PrayerContext(
        latitude=MAKKAH[0], longitude=MAKKAH[1], method=method, madhab=Madhab.SHAFI, utc_offset_minutes=180
    )

    instants = AdhanProvider().compute(
        context.latitude, context.longitude, context.method, context.madhab, date(2025, 3, 1)
    )

    assert set(instants) == set(Prayer)
    for instant in instants.values():
        assert instant.utcoffset() == timedelta(0)


def test_hanafi_asr_is_later_than_shafi() -> None:
    provider = AdhanProvider()
    day = date(2025, 6, 1)

    shafi = provider.compute(*ISLAMABAD, CalculationMethod.KARACHI, Madhab.SHAFI, day)
    hanafi = provider.compute(*ISLAMABAD, CalculationMethod.KARACHI, Madhab.HANAFI, day)

    assert hanafi[Prayer.ASR] > shafi[Prayer.ASR]
    assert hanafi[Prayer.FAJR] == shafi[Prayer.FAJR]


def test_custom_angles_move_fajr() -> None:
    provider = AdhanProvider()
    day = date(2025, 6, 1)

    tehran = provider.compute(*ISLAMABAD, CalculationMethod.TEHRAN, Madhab.SHAFI, day)
    turkey = provider.compute(*ISLAMABAD, CalculationMethod.TURKEY, Madhab.SHAFI, day)

    # 18 degrees below the horizon comes before 17.7.
    assert turkey[Prayer.FAJR] < tehran[Prayer.FAJR]


def test_polar_night_is_a_calculation_error() -> None:
    with pytest.raises(CalculationError):
        AdhanProvider().compute(89.5, 0.0, CalculationMethod.MUSLIM_WORLD_LEAGUE, Madhab.SHAFI, date(2025, 12, 21))


def test_build_provider_defaults_to_local_calculation() -> None:
    assert isinstance(build_provider("adhan"), AdhanProvider)
