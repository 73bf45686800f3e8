from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

import pytest

from sujood.cache_store import CacheStore
from sujood.models import CompletionRecord, DhikrType, Prayer, PrayerStatus
from sujood.records import RecordStore


def _store(tmp_path: Path) -> RecordStore:
    return RecordStore(CacheStore(tmp_path), now_provider=lambda: datetime(2025, 1, 10, 21, 0))


def test_unknown_rows_read_as_pending(tmp_path: Path) -> None:
    store = _store(tmp_path)

    assert store.get_completion_status(Prayer.FAJR, date(2025, 1, 1)) is PrayerStatus.PENDING


def test_ensure_day_keeps_existing_statuses(tmp_path: Path) -> None:
    store = _store(tmp_path)
    day = date(2025, 1, 1)
    store.mark(Prayer.ASR, day, PrayerStatus.DONE)

    store.ensure_day(day)

    assert store.get_completion_status(Prayer.ASR, day) is PrayerStatus.DONE
    assert [r.prayer for r in store.records_for(day)] == [
        Prayer.FAJR,
        Prayer.ZUHR,
        Prayer.ASR,
        Prayer.MAGHRIB,
        Prayer.ISHA,
    ]


def test_sunrise_cannot_be_marked(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        _store(tmp_path).mark(Prayer.SUNRISE, date(2025, 1, 1), PrayerStatus.DONE)


def test_qada_queue_orders_by_original_date(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.add_qada(Prayer.ISHA, date(2025, 1, 5))
    store.add_qada(Prayer.FAJR, date(2025, 1, 2))
    store.add_qada(Prayer.ASR, date(2025, 1, 2))

    queue = store.qada_queue()

    assert [(e.prayer, e.original_date) for e in queue] == [
        (Prayer.FAJR, date(2025, 1, 2)),
        (Prayer.ASR, date(2025, 1, 2)),
        (Prayer.ISHA, date(2025, 1, 5)),
    ]
    assert store.count_pending_qada() == 3


def test_complete_oldest_qada(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.add_qada(Prayer.ISHA, date(2025, 1, 5))
    store.add_qada(Prayer.FAJR, date(2025, 1, 2))

    done = store.complete_oldest_qada()

    assert done is not None
    assert done.prayer is Prayer.FAJR
    assert done.completed_at == "2025-01-10T21:00:00"
    assert [e.prayer for e in store.qada_queue()] == [Prayer.ISHA]


def test_complete_oldest_qada_on_empty_queue(tmp_path: Path) -> None:
    assert _store(tmp_path).complete_oldest_qada() is None


def test_records_report_completed_qada_separately(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.mark(Prayer.FAJR, date(2025, 1, 3), PrayerStatus.MISSED)
    store.add_qada(Prayer.FAJR, date(2025, 1, 3))
    store.complete_oldest_qada()

    records = list(store.records())

    assert CompletionRecord(Prayer.FAJR, date(2025, 1, 3), PrayerStatus.MISSED) in records
    assert CompletionRecord(Prayer.FAJR, date(2025, 1, 3), PrayerStatus.DONE, is_qada=True) in records


def test_builtin_adhkar_are_seeded(tmp_path: Path) -> None:
    names = [d.name for d in _store(tmp_path).dhikr_definitions()]

    assert names == ["Morning Adhkar", "Evening Adhkar", "Post-Salah Tasbih"]


def test_custom_dhikr_sorts_after_builtins_and_survives_reload(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.add_dhikr("Istighfar", DhikrType.COUNTER, target_count=100)
    store.add_dhikr("Salawat")

    reloaded = _store(tmp_path)

    assert [d.name for d in reloaded.dhikr_definitions()][-2:] == ["Istighfar", "Salawat"]
    assert reloaded.find_dhikr("ISTIGHFAR").target_count == 100
    assert reloaded.find_dhikr("missing") is None


def test_duplicate_dhikr_name_is_rejected(tmp_path: Path) -> None:
    store = _store(tmp_path)

    with pytest.raises(ValueError):
        store.add_dhikr("morning adhkar")
    with pytest.raises(ValueError):
        store.add_dhikr("Tahmid", DhikrType.COUNTER, target_count=0)


def test_checkbox_dhikr_toggles(tmp_path: Path) -> None:
    store = _store(tmp_path)
    day = date(2025, 1, 1)

    _, first = store.toggle_dhikr("Morning Adhkar", day)
    _, second = store.toggle_dhikr("Morning Adhkar", day)

    assert first.completed is True
    assert second.completed is False
    assert store.dhikr_log(day)[first.dhikr_id].completed is False


def test_counter_dhikr_completes_at_target(tmp_path: Path) -> None:
    store = _store(tmp_path)
    day = date(2025, 1, 1)

    _, log = store.toggle_dhikr("Post-Salah Tasbih", day, 33)
    assert (log.count, log.completed) == (33, False)

    _, log = store.toggle_dhikr("post-salah tasbih", day, 66)
    assert (log.count, log.completed) == (99, True)

    # Logs are kept per day.
    assert store.dhikr_log(date(2025, 1, 2)) == {}


def test_unknown_dhikr_cannot_be_marked(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        _store(tmp_path).toggle_dhikr("Witr", date(2025, 1, 1))


def test_quran_pages_accumulate_per_day(tmp_path: Path) -> None:
    store = _store(tmp_path)

    assert store.log_quran(date(2025, 1, 1), 2) == 2.0
    assert store.log_quran(date(2025, 1, 1), 0.5) == 2.5
    store.log_quran(date(2025, 1, 5), 4)
    store.log_quran(date(2025, 1, 9), 10)

    assert store.quran_pages(date(2025, 1, 1)) == 2.5
    assert store.quran_pages(date(2025, 1, 2)) == 0.0
    assert store.quran_total(date(2025, 1, 1), date(2025, 1, 7)) == 6.5


def test_quran_pages_must_be_positive(tmp_path: Path) -> None:
    store = _store(tmp_path)

    with pytest.raises(ValueError):
        store.log_quran(date(2025, 1, 1), 0)
    with pytest.raises(ValueError):
        store.log_quran(date(2025, 1, 1), float("nan"))
