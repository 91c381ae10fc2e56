from __future__ import annotations

import pytest

from calmly.scheduler import ManualScheduler, TkScheduler


class FakeWidget:
    """Records after/after_cancel calls like a tk widget."""

    def __init__(self):
        self.jobs = {}
        self.cancelled = []
        self._n = 0

    def after(self, ms, fn):
        self._n += 1
        job = f"after#{self._n}"
        self.jobs[job] = (ms, fn)
        return job

    def after_cancel(self, job):
        self.cancelled.append(job)
        self.jobs.pop(job, None)

    def fire_all(self):
        for job, (_ms, fn) in list(self.jobs.items()):
            del self.jobs[job]
            fn()


# ---- ManualScheduler ----


def test_manual_fires_in_time_order():
    s = ManualScheduler()
    calls = []
    s.call_every(1000, lambda: calls.append(("a", s.now_ms)))
    s.call_every(1500, lambda: calls.append(("b", s.now_ms)))
    s.advance(3000)
    # ties break by scheduling order: b was re-armed for 3000 before a was
    assert calls == [("a", 1000), ("b", 1500), ("a", 2000), ("b", 3000), ("a", 3000)]
    assert s.now_ms == 3000


def test_manual_cancel_is_idempotent():
    s = ManualScheduler()
    calls = []
    task = s.call_every(1000, lambda: calls.append(1))
    s.advance(1000)
    task.cancel()
    task.cancel()
    s.advance(5000)
    assert calls == [1]
    assert s.pending == 0


def test_manual_cancel_from_inside_callback():
    s = ManualScheduler()
    calls = []

    def once():
        calls.append(1)
        task.cancel()

    task = s.call_every(500, once)
    s.advance(2000)
    assert calls == [1]


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        ManualScheduler().call_every(0, lambda: None)


# ---- TkScheduler ----


def test_tk_rearms_each_tick():
    w = FakeWidget()
    calls = []
    TkScheduler(w).call_every(1000, lambda: calls.append(1))
    assert len(w.jobs) == 1
    w.fire_all()
    w.fire_all()
    assert calls == [1, 1]
    assert len(w.jobs) == 1


def test_tk_cancel_calls_after_cancel():
    w = FakeWidget()
    calls = []
    task = TkScheduler(w).call_every(1000, lambda: calls.append(1))
    task.cancel()
    task.cancel()
    assert len(w.cancelled) == 1
    assert w.jobs == {}
    assert calls == []
