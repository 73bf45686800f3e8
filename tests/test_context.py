from __future__ import annotations

import pytest

from sujood.context import CalculationMethod, Madhab, PrayerContext
from sujood.errors import InvalidContext


def _context(**overrides) -> PrayerContext:
    values = dict(
        latitude=21.4225,
        longitude=39.8262,
        method="UmmAlQura",
        madhab="Shafi",
        utc_offset_minutes=180,
    )
    values.update(overrides)
    return PrayerContext(**values)


def test_string_identifiers_are_coerced_to_enums() -> None:
    ctx = _context(madhab="Shafi'i")

    assert ctx.method is CalculationMethod.UMM_AL_QURA
    assert ctx.madhab is Madhab.SHAFI


@pytest.mark.parametrize(
    "overrides",
    [
        {"method": "Jafari"},
        {"madhab": "Maliki"},
        {"latitude": 90.5},
        {"longitude": -180.01},
        {"latitude": float("nan")},
        {"utc_offset_minutes": 1441},
        {"utc_offset_minutes": 5.5},
        {"latitude": "north"},
    ],
)
def test_invalid_values_fail_at_construction(overrides) -> None:
    with pytest.raises(InvalidContext):
        _context(**overrides)


def test_full_day_offset_is_accepted() -> None:
    assert _context(utc_offset_minutes=-1440).utc_offset_minutes == -1440


def test_fingerprint_tracks_every_field() -> None:
    base = _context()

    assert base.fingerprint == _context().fingerprint
    assert base.fingerprint != _context(madhab="Hanafi").fingerprint
    assert base.fingerprint != _context(utc_offset_minutes=240).fingerprint
    assert base.fingerprint != _context(latitude=24.0).fingerprint
