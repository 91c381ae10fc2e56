"""Shared fixtures for calmly tests."""

from __future__ import annotations

import itertools
import random

import pytest

from calmly.backends import MemoryBackend
from calmly.history import HistoryEntry, HistoryStore
from calmly.scheduler import ManualScheduler
from calmly.session import SessionController


def make_entry(i: int, value: float = 3, note: str | None = None, mood: str = "okay") -> HistoryEntry:
    # one entry per day, naive timestamps are read as local time
    return HistoryEntry(
        timestamp=f"2026-01-{(i % 28) + 1:02d}T12:00:{i % 60:02d}",
        mood_id=mood,
        value=value,
        note=note,
    )


@pytest.fixture()
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture()
def store(backend) -> HistoryStore:
    s = HistoryStore(backend)
    s.load()
    return s


@pytest.fixture()
def sched() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def controller(store, sched) -> SessionController:
    ticks = itertools.count(1)
    return SessionController(
        store,
        sched,
        rng=random.Random(3),
        clock=lambda: f"2026-03-01T09:30:{next(ticks) % 60:02d}+00:00",
    )
