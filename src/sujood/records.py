from __future__ import annotations

from datetime import date, datetime
import logging
import math
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from sujood.cache_store import CacheStore
from sujood.models import (
    OBLIGATORY_PRAYERS,
    CompletionRecord,
    DhikrDef,
    DhikrFrequency,
    DhikrLog,
    DhikrType,
    Prayer,
    PrayerStatus,
    QadaEntry,
)

_DAY_PREFIX = "prayers_"
_QADA_KEY = "qada"
_ADHKAR_KEY = "adhkar"
_DHIKR_LOG_PREFIX = "dhikr_"
_QURAN_KEY = "quran"

# Every fresh store starts with these; custom adhkar sort after them.
_BUILTIN_ADHKAR = (
    ("Morning Adhkar", DhikrType.CHECKBOX, 1),
    ("Evening Adhkar", DhikrType.CHECKBOX, 1),
    ("Post-Salah Tasbih", DhikrType.COUNTER, 99),
)
_CUSTOM_SORT_START = 100


class RecordStore:
    """Completion records, one JSON document per date, plus qada, adhkar and Quran logs."""

    def __init__(
        self,
        store: CacheStore,
        now_provider: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._now_provider = now_provider
        self._logger = logging.getLogger(self.__class__.__name__)

    def ensure_day(self, day: date) -> None:
        statuses = self._read_day(day)
        missing = [p for p in OBLIGATORY_PRAYERS if p.value not in statuses]
        if not missing:
            return
        for prayer in missing:
            statuses[prayer.value] = PrayerStatus.PENDING.value
        self._write_day(day, statuses)

    def mark(self, prayer: Prayer, day: date, status: PrayerStatus) -> None:
        if prayer not in OBLIGATORY_PRAYERS:
            raise ValueError(f"{prayer.display_name} is not tracked")
        statuses = self._read_day(day)
        for other in OBLIGATORY_PRAYERS:
            statuses.setdefault(other.value, PrayerStatus.PENDING.value)
        statuses[prayer.value] = status.value
        self._write_day(day, statuses)
        self._logger.info("Marked %s on %s as %s", prayer.value, day.isoformat(), status.value)

    def get_completion_status(self, prayer: Prayer, day: date) -> PrayerStatus:
        raw = self._read_day(day).get(prayer.value)
        if raw is None:
            return PrayerStatus.PENDING
        return PrayerStatus(raw)

    def records_for(self, day: date) -> List[CompletionRecord]:
        statuses = self._read_day(day)
        return [
            CompletionRecord(prayer=prayer, date=day, status=PrayerStatus(statuses[prayer.value]))
            for prayer in OBLIGATORY_PRAYERS
            if prayer.value in statuses
        ]

    def records(self) -> Iterator[CompletionRecord]:
        for key in self._store.keys(_DAY_PREFIX):
            yield from self.records_for(date.fromisoformat(key[len(_DAY_PREFIX):]))
        # Completed make-ups are reported so analytics can see and skip them.
        for entry in self._qada_entries():
            if entry.completed:
                yield CompletionRecord(
                    prayer=entry.prayer,
                    date=entry.original_date,
                    status=PrayerStatus.DONE,
                    is_qada=True,
                )

    def add_qada(self, prayer: Prayer, original_date: date) -> QadaEntry:
        if prayer not in OBLIGATORY_PRAYERS:
            raise ValueError(f"{prayer.display_name} cannot be owed as qada")
        payload = self._read_qada()
        entry_id = int(payload.get("next_id", 1))
        payload["entries"].append(
            {
                "id": entry_id,
                "prayer": prayer.value,
                "original_date": original_date.isoformat(),
                "completed": False,
                "completed_at": None,
            }
        )
        payload["next_id"] = entry_id + 1
        self._store.write(_QADA_KEY, payload)
        return QadaEntry(id=entry_id, prayer=prayer, original_date=original_date)

    def qada_queue(self) -> List[QadaEntry]:
        pending = [entry for entry in self._qada_entries() if not entry.completed]
        return sorted(pending, key=lambda entry: (entry.original_date, entry.id))

    def complete_oldest_qada(self) -> Optional[QadaEntry]:
        queue = self.qada_queue()
        if not queue:
            return None
        oldest = queue[0]
        completed_at = self._now_provider().isoformat(timespec="seconds")
        payload = self._read_qada()
        for raw in payload["entries"]:
            if raw["id"] == oldest.id:
                raw["completed"] = True
                raw["completed_at"] = completed_at
        self._store.write(_QADA_KEY, payload)
        return QadaEntry(
            id=oldest.id,
            prayer=oldest.prayer,
            original_date=oldest.original_date,
            completed=True,
            completed_at=completed_at,
        )

    def count_pending_qada(self) -> int:
        return len(self.qada_queue())

    def dhikr_definitions(self) -> List[DhikrDef]:
        definitions = [
            _dhikr_def(raw) for raw in self._read_adhkar()["definitions"] if raw.get("active", True)
        ]
        return sorted(definitions, key=lambda d: (d.sort_order, d.id))

    def find_dhikr(self, name: str) -> Optional[DhikrDef]:
        wanted = name.strip().lower()
        for definition in self.dhikr_definitions():
            if definition.name.lower() == wanted:
                return definition
        return None

    def add_dhikr(
        self,
        name: str,
        dhikr_type: DhikrType = DhikrType.CHECKBOX,
        target_count: int = 1,
        frequency: DhikrFrequency = DhikrFrequency.DAILY,
    ) -> DhikrDef:
        name = name.strip()
        if not name:
            raise ValueError("Dhikr name must not be empty")
        if target_count < 1:
            raise ValueError(f"Dhikr target must be at least 1, got {target_count}")
        payload = self._read_adhkar()
        definitions = payload["definitions"]
        if any(str(raw["name"]).lower() == name.lower() for raw in definitions):
            raise ValueError(f"Dhikr '{name}' already exists")

        custom_orders = [int(raw["sort_order"]) for raw in definitions if not raw.get("builtin")]
        entry_id = int(payload["next_id"])
        raw = {
            "id": entry_id,
            "name": name,
            "type": dhikr_type.value,
            "frequency": frequency.value,
            "target_count": target_count,
            "builtin": False,
            "sort_order": max(custom_orders, default=_CUSTOM_SORT_START) + 1,
            "active": True,
        }
        definitions.append(raw)
        payload["next_id"] = entry_id + 1
        self._store.write(_ADHKAR_KEY, payload)
        self._logger.info("Added %s dhikr %s", dhikr_type.value, name)
        return _dhikr_def(raw)

    def dhikr_log(self, day: date) -> Dict[int, DhikrLog]:
        payload = self._store.read(self._dhikr_key(day)) or {}
        entries = payload.get("entries")
        if not isinstance(entries, dict):
            return {}
        return {
            int(dhikr_id): DhikrLog(
                dhikr_id=int(dhikr_id),
                date=day,
                count=int(raw.get("count", 0)),
                completed=bool(raw.get("completed")),
            )
            for dhikr_id, raw in entries.items()
        }

    def upsert_dhikr_log(self, dhikr_id: int, day: date, count: int, completed: bool) -> DhikrLog:
        key = self._dhikr_key(day)
        payload = self._store.read(key) or {}
        entries = payload.get("entries")
        if not isinstance(entries, dict):
            entries = {}
        entries[str(dhikr_id)] = {"count": count, "completed": completed}
        self._store.write(key, {"date": day.isoformat(), "entries": entries})
        return DhikrLog(dhikr_id=dhikr_id, date=day, count=count, completed=completed)

    def toggle_dhikr(
        self, name: str, day: date, count: Optional[int] = None
    ) -> Tuple[DhikrDef, DhikrLog]:
        """Flip a checkbox dhikr, or add ``count`` (default 1) to a counter dhikr."""
        definition = self.find_dhikr(name)
        if definition is None:
            raise ValueError(f"Dhikr '{name}' not found")
        current = self.dhikr_log(day).get(definition.id)

        if definition.dhikr_type is DhikrType.CHECKBOX:
            done = not (current is not None and current.completed)
            log = self.upsert_dhikr_log(definition.id, day, 1, done)
        else:
            added = 1 if count is None else count
            if added < 1:
                raise ValueError(f"Dhikr count must be positive, got {added}")
            total = (current.count if current is not None else 0) + added
            log = self.upsert_dhikr_log(definition.id, day, total, total >= definition.target_count)
        return definition, log

    def log_quran(self, day: date, pages: float) -> float:
        """Add pages read on ``day`` and return that day's total."""
        if not math.isfinite(pages) or pages <= 0:
            raise ValueError(f"Pages read must be a positive number, got {pages}")
        payload = self._read_quran()
        key = day.isoformat()
        payload["pages"][key] = float(payload["pages"].get(key, 0.0)) + pages
        self._store.write(_QURAN_KEY, payload)
        return payload["pages"][key]

    def quran_pages(self, day: date) -> float:
        return float(self._read_quran()["pages"].get(day.isoformat(), 0.0))

    def quran_total(self, start: date, end: date) -> float:
        pages = self._read_quran()["pages"]
        return sum(
            float(value) for key, value in pages.items() if start <= date.fromisoformat(key) <= end
        )

    def _read_adhkar(self) -> Dict[str, Any]:
        payload = self._store.read(_ADHKAR_KEY)
        if payload is not None and isinstance(payload.get("definitions"), list):
            return payload
        definitions = [
            {
                "id": index + 1,
                "name": name,
                "type": dhikr_type.value,
                "frequency": DhikrFrequency.DAILY.value,
                "target_count": target,
                "builtin": True,
                "sort_order": index,
                "active": True,
            }
            for index, (name, dhikr_type, target) in enumerate(_BUILTIN_ADHKAR)
        ]
        return {"next_id": len(definitions) + 1, "definitions": definitions}

    def _read_quran(self) -> Dict[str, Any]:
        payload = self._store.read(_QURAN_KEY) or {}
        pages = payload.get("pages")
        return {"pages": dict(pages) if isinstance(pages, dict) else {}}

    def _dhikr_key(self, day: date) -> str:
        return f"{_DHIKR_LOG_PREFIX}{day.isoformat()}"

    def _qada_entries(self) -> List[QadaEntry]:
        return [
            QadaEntry(
                id=int(raw["id"]),
                prayer=Prayer.parse(raw["prayer"]),
                original_date=date.fromisoformat(raw["original_date"]),
                completed=bool(raw.get("completed")),
                completed_at=raw.get("completed_at"),
            )
            for raw in self._read_qada()["entries"]
        ]

    def _read_qada(self) -> Dict[str, Any]:
        payload = self._store.read(_QADA_KEY) or {}
        entries = payload.get("entries")
        if not isinstance(entries, list):
            entries = []
        return {"next_id": payload.get("next_id", len(entries) + 1), "entries": entries}

    def _read_day(self, day: date) -> Dict[str, str]:
        payload = self._store.read(self._key(day)) or {}
        statuses = payload.get("prayers")
        if not isinstance(statuses, dict):
            return {}
        return dict(statuses)

    def _write_day(self, day: date, statuses: Dict[str, str]) -> None:
        self._store.write(self._key(day), {"date": day.isoformat(), "prayers": statuses})

    def _key(self, day: date) -> str:
        return f"{_DAY_PREFIX}{day.isoformat()}"


def _dhikr_def(raw: Dict[str, Any]) -> DhikrDef:
    return DhikrDef(
        id=int(raw["id"]),
        name=str(raw["name"]),
        dhikr_type=DhikrType(raw["type"]),
        frequency=DhikrFrequency(raw["frequency"]),
        target_count=int(raw["target_count"]),
        builtin=bool(raw.get("builtin")),
        sort_order=int(raw["sort_order"]),
    )
