from __future__ import annotations

from datetime import datetime, time, timedelta, timezone


def project(utc_instant: datetime, utc_offset_minutes: int) -> time:
    """Convert a UTC instant into a local time of day at minute precision.

    Naive instants are taken to be UTC already. The shift is plain arithmetic
    so offsets of a full day, which ``datetime.timezone`` rejects, still work.
    """
    if utc_instant.tzinfo is not None:
        utc_instant = utc_instant.astimezone(timezone.utc).replace(tzinfo=None)
    local = utc_instant + timedelta(minutes=utc_offset_minutes)
    return local.time().replace(second=0, microsecond=0)
