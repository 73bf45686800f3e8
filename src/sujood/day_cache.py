from __future__ import annotations

from datetime import date
import logging
from typing import List, Optional

from sujood.cache_store import CacheStore
from sujood.context import PrayerContext
from sujood.errors import CacheCorruption
from sujood.models import SixTimes

_DAY_PREFIX = "day_"
_CONTEXT_KEY = "context"


class DayCache:
    """Per-date store of local prayer times.

    Entries carry no reference to the context that produced them, so any
    change of location, method, madhab or offset must clear the cache.
    ``bind`` does this automatically by remembering the last fingerprint.
    """

    def __init__(self, store: CacheStore) -> None:
        self._store = store
        self._logger = logging.getLogger(self.__class__.__name__)

    def get(self, day: date) -> Optional[SixTimes]:
        payload = self._store.read(self._key(day))
        if payload is None:
            return None
        try:
            times = payload.get("times")
            if not isinstance(times, dict):
                raise CacheCorruption("Entry has no times mapping")
            return SixTimes.from_dict(times)
        except CacheCorruption as exc:
            # Treated as a miss; the resolver recomputes and overwrites it.
            self._logger.warning("Ignoring corrupt cache entry for %s: %s", day.isoformat(), exc)
            return None

    def store(self, day: date, times: SixTimes) -> None:
        self._store.write(self._key(day), {"date": day.isoformat(), "times": times.to_dict()})

    def clear_all(self) -> int:
        removed = self._store.delete_prefix(_DAY_PREFIX)
        self._logger.info("Cleared %s cached days", removed)
        return removed

    def dates(self) -> List[date]:
        return [date.fromisoformat(key[len(_DAY_PREFIX):]) for key in self._store.keys(_DAY_PREFIX)]

    def bind(self, context: PrayerContext) -> bool:
        """Clear the cache if it was filled for a different context.

        Returns True when entries were invalidated.
        """
        recorded = self._store.read(_CONTEXT_KEY)
        fingerprint = context.fingerprint
        if recorded is not None and recorded.get("fingerprint") == fingerprint:
            return False
        # Entries written under no recorded fingerprint are of unknown origin too.
        changed = bool(self._store.keys(_DAY_PREFIX))
        if changed:
            self._logger.info("Prayer context changed; clearing cached days")
            self.clear_all()
        self._store.write(_CONTEXT_KEY, {"fingerprint": fingerprint})
        return changed

    def __contains__(self, day: date) -> bool:
        return self.get(day) is not None

    def _key(self, day: date) -> str:
        return f"{_DAY_PREFIX}{day.isoformat()}"
