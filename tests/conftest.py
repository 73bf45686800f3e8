import sys
from pathlib import Path

import pytest


def pytest_sessionstart(session):
    """Ensure src/ is on sys.path for local test runs."""
    repo_root = Path(__file__).resolve().parents[1]
    src_path = repo_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture
def context():
    from sujood.context import PrayerContext

    # UTC offset zero keeps fake UTC instants equal to the expected local times.
    return PrayerContext(
        latitude=33.6938,
        longitude=73.0651,
        method="MuslimWorldLeague",
        madhab="Hanafi",
        utc_offset_minutes=0,
    )
