"""Tests for HistoryEntry and HistoryStore."""

from __future__ import annotations

import json

import pytest

from calmly.backends import KeyValueBackend, MemoryBackend
from calmly.history import HISTORY_CAPACITY, HISTORY_KEY, HistoryEntry, HistoryStore, normalize_note
from calmly.moods import get_mood
from conftest import make_entry


class BrokenBackend(KeyValueBackend):
    def __init__(self, exc: Exception):
        self.exc = exc

    def read(self, key):
        raise self.exc

    def write(self, key, value):
        raise self.exc


# ---- normalize_note ----


@pytest.mark.parametrize("raw", ["", "   ", "\n\t", None])
def test_blank_notes_become_none(raw):
    assert normalize_note(raw) is None


def test_note_is_trimmed():
    assert normalize_note("  ok  ") == "ok"


# ---- HistoryEntry ----


def test_entry_for_mood_copies_value():
    e = HistoryEntry.for_mood(get_mood("anxious"), "  breathing helped \n", "2026-03-01T10:00:00+00:00")
    assert e.mood_id == "anxious"
    assert e.value == 1.5
    assert e.note == "breathing helped"


def test_entry_serialized_field_names():
    e = HistoryEntry("2026-03-01T10:00:00+00:00", "sad", 2, None)
    assert e.to_dict() == {"ts": "2026-03-01T10:00:00+00:00", "mood": "sad", "value": 2, "note": None}
    assert HistoryEntry.from_dict(e.to_dict()) == e


@pytest.mark.parametrize(
    "raw",
    [
        "string",
        {"mood": "sad", "value": 2, "note": None},
        {"ts": "x", "value": 2, "note": None},
        {"ts": "x", "mood": "sad", "value": "2", "note": None},
        {"ts": "x", "mood": "sad", "value": True, "note": None},
        {"ts": "x", "mood": "sad", "value": 2, "note": 5},
        {"ts": "x", "mood": "sad", "value": float("nan"), "note": None},
        {"ts": "x", "mood": "sad", "value": float("inf"), "note": None},
    ],
)
def test_entry_from_dict_rejects_bad_shapes(raw):
    with pytest.raises(ValueError):
        HistoryEntry.from_dict(raw)


# ---- append / cap ----


def test_append_is_newest_first(store):
    store.append(make_entry(1, value=1))
    store.append(make_entry(2, value=2))
    assert [e.value for e in store.all()] == [2, 1]


@pytest.mark.parametrize("n", [0, 1, 59, 60, 61, 150])
def test_cap_invariant(store, n):
    for i in range(n):
        store.append(make_entry(i, value=i))
    entries = store.all()
    assert len(entries) == min(n, HISTORY_CAPACITY)
    assert [e.value for e in entries] == list(range(n - 1, max(-1, n - 61), -1))


def test_cap_applies_to_persisted_log(store, backend):
    for i in range(75):
        store.append(make_entry(i, value=i))
    stored = json.loads(backend.raw[HISTORY_KEY])
    assert len(stored) == 60
    assert stored[0]["value"] == 74
    assert stored[-1]["value"] == 15


def test_every_append_writes(store, backend):
    store.append(make_entry(1))
    store.append(make_entry(2))
    assert backend.writes == 2


def test_custom_capacity():
    s = HistoryStore(MemoryBackend(), capacity=3)
    for i in range(5):
        s.append(make_entry(i, value=i))
    assert [e.value for e in s.all()] == [4, 3, 2]


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        HistoryStore(MemoryBackend(), capacity=0)


# ---- load ----


def test_load_round_trips_through_backend(backend):
    first = HistoryStore(backend)
    first.append(make_entry(1, value=4, note="good day"))
    first.append(make_entry(2, value=2))

    second = HistoryStore(backend)
    assert second.load() == first.all()


def test_load_missing_key_is_empty():
    assert HistoryStore(MemoryBackend()).load() == ()


@pytest.mark.parametrize(
    "payload",
    [
        "not json at all",
        '{"ts": "2026-01-01"}',
        "[1, 2, 3]",
        '[{"ts": "2026-01-01T10:00:00", "mood": "sad", "value": "high", "note": null}]',
        "null",
        "[" * 200000 + "]" * 200000,
        '[{"ts": "2026-01-01T10:00:00", "mood": "sad", "value": NaN, "note": null}]',
        '[{"ts": "2026-01-01T10:00:00", "mood": "sad", "value": -Infinity, "note": null}]',
    ],
    ids=["text", "object", "numbers", "string-value", "null", "deep-nesting", "nan", "infinity"],
)
def test_load_malformed_is_empty_and_does_not_raise(payload):
    store = HistoryStore(MemoryBackend({HISTORY_KEY: payload}))
    assert store.load() == ()
    assert store.all() == ()


def test_load_read_error_is_empty():
    store = HistoryStore(BrokenBackend(OSError("disk gone")))
    assert store.load() == ()


def test_load_truncates_oversized_log():
    raw = [make_entry(i, value=i).to_dict() for i in range(80)]
    store = HistoryStore(MemoryBackend({HISTORY_KEY: json.dumps(raw)}))
    assert len(store.load()) == 60
    assert store.all()[0].value == 0


# ---- write failures ----


def test_write_failure_is_swallowed_and_memory_wins():
    store = HistoryStore(BrokenBackend(OSError("read-only fs")))
    store.append(make_entry(1, value=4))
    store.append(make_entry(2, value=3))
    assert [e.value for e in store.all()] == [3, 4]


# ---- clear ----


def test_clear(store, backend):
    store.append(make_entry(1))
    store.append(make_entry(2))
    assert store.clear() == 2
    assert store.all() == ()
    assert json.loads(backend.raw[HISTORY_KEY]) == []
