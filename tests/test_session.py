"""Tests for the session state machine."""

from __future__ import annotations

import pytest

from calmly.errors import PreconditionError
from calmly.exercises import BreathingRunner, ExerciseKind, GroundingRunner
from calmly.moods import get_mood
from calmly.session import TRANSITIONS, Action, Screen, SessionController
from conftest import make_entry


def _to_closing(c: SessionController, mood="okay", kind="affirmation") -> None:
    c.pick_mood(mood)
    c.choose_exercise(kind)
    c.finish_exercise()


# ---- transition table ----


def test_initial_state(controller):
    assert controller.screen is Screen.HOME
    assert controller.session.empty
    assert controller.runner is None


def test_navigation_allowed_from_every_screen():
    for screen in Screen:
        assert TRANSITIONS[(screen, Action.NAVIGATE_HOME)] is Screen.HOME
        assert TRANSITIONS[(screen, Action.NAVIGATE_HISTORY)] is Screen.HISTORY


def test_pick_mood_goes_to_support(controller):
    controller.pick_mood(get_mood("happy"))
    assert controller.screen is Screen.SUPPORT
    assert controller.session.mood.value == 4


def test_pick_mood_only_from_home(controller):
    controller.pick_mood("happy")
    with pytest.raises(PreconditionError):
        controller.pick_mood("sad")
    assert controller.session.mood.id.value == "happy"


def test_choose_exercise_without_mood_fails_fast(controller):
    with pytest.raises(PreconditionError):
        controller.choose_exercise(ExerciseKind.BREATHING)
    with pytest.raises(AssertionError):
        controller.choose_exercise("grounding")
    assert controller.screen is Screen.HOME
    assert controller.runner is None


def test_choose_exercise_starts_runner(controller, sched):
    controller.pick_mood("okay")
    runner = controller.choose_exercise("breathing")
    assert isinstance(runner, BreathingRunner)
    assert controller.screen is Screen.EXERCISE
    assert controller.session.exercise_kind is ExerciseKind.BREATHING
    assert sched.pending == 2


def test_timer_completion_moves_to_closing(controller, sched):
    controller.pick_mood("okay")
    runner = controller.choose_exercise("meditation")
    sched.advance_seconds(120)
    assert controller.screen is Screen.CLOSING
    assert controller.runner is None
    assert runner.disposed
    assert sched.pending == 0


def test_grounding_walk_to_closing(controller):
    controller.pick_mood("angry")
    runner = controller.choose_exercise("grounding")
    assert isinstance(runner, GroundingRunner)
    with pytest.raises(PreconditionError):
        controller.finish_exercise()
    for _ in range(4):
        runner.next()
    controller.finish_exercise()
    assert controller.screen is Screen.CLOSING


def test_finish_exercise_outside_exercise(controller):
    with pytest.raises(PreconditionError):
        controller.finish_exercise()


def test_set_note_only_on_closing(controller):
    with pytest.raises(PreconditionError):
        controller.set_note("hi")


def test_save_only_on_closing(controller):
    controller.pick_mood("sad")
    with pytest.raises(PreconditionError):
        controller.save()


# ---- save ----


def test_save_blank_note_is_none(controller, store):
    _to_closing(controller)
    controller.set_note("   ")
    entry = controller.save()
    assert entry.note is None
    assert store.all()[0].note is None


def test_save_trims_note(controller, store):
    _to_closing(controller)
    controller.set_note("  ok  ")
    controller.save()
    assert store.all()[0].note == "ok"


def test_save_resets_session_and_goes_home(controller, store):
    _to_closing(controller, mood="happy")
    entry = controller.save(note="")
    assert controller.screen is Screen.HOME
    assert controller.session.empty
    assert entry.value == 4
    assert entry.timestamp == "2026-03-01T09:30:01+00:00"


def test_save_resets_even_if_append_raises(controller, store, monkeypatch):
    def boom(entry):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(store, "append", boom)
    _to_closing(controller)
    with pytest.raises(RuntimeError):
        controller.save(note="x")
    assert controller.screen is Screen.HOME
    assert controller.session.empty


# ---- abort navigation ----


def test_navigate_home_mid_exercise_discards(controller, store, sched):
    controller.pick_mood("sad")
    runner = controller.choose_exercise("breathing")
    sched.advance_seconds(5)
    controller.navigate_home()

    assert controller.screen is Screen.HOME
    assert controller.session.empty
    assert runner.disposed
    assert sched.pending == 0
    assert store.all() == ()

    # a late tick after the abort must not revive the runner
    sched.advance_seconds(120)
    assert controller.screen is Screen.HOME


def test_navigate_history_from_closing_drops_note(controller, store):
    _to_closing(controller)
    controller.set_note("unsaved")
    controller.navigate_history()
    assert controller.screen is Screen.HISTORY
    assert controller.session.empty
    assert store.all() == ()


def test_back_from_support(controller):
    controller.pick_mood("okay")
    controller.back()
    assert controller.screen is Screen.HOME
    assert controller.session.mood is None


def test_stale_completion_is_ignored(controller):
    controller.pick_mood("okay")
    old = controller.choose_exercise("affirmation")
    controller.navigate_home()
    controller.pick_mood("sad")
    controller.choose_exercise("grounding")
    controller._on_exercise_complete(old)
    assert controller.screen is Screen.EXERCISE


def test_history_screen_then_new_checkin(controller):
    controller.navigate_history()
    with pytest.raises(PreconditionError):
        controller.pick_mood("okay")
    controller.navigate_home()
    controller.pick_mood("okay")
    assert controller.screen is Screen.SUPPORT


# ---- observers ----


def test_listeners_see_transitions_and_ticks(controller, sched):
    seen = []
    unsubscribe = controller.subscribe(lambda c: seen.append(c.screen))
    controller.pick_mood("okay")
    controller.choose_exercise("meditation")
    sched.advance_seconds(2)
    assert seen == [Screen.SUPPORT, Screen.EXERCISE, Screen.EXERCISE, Screen.EXERCISE]
    unsubscribe()
    controller.navigate_home()
    assert len(seen) == 4


# ---- end to end ----


def test_sad_meditation_scenario(controller, store, sched):
    controller.pick_mood("sad")
    controller.choose_exercise("meditation")
    sched.advance_seconds(30)
    controller.finish_exercise()
    assert controller.screen is Screen.CLOSING

    controller.set_note("felt better")
    controller.save()

    entries = store.all()
    assert len(entries) == 1
    assert entries[0].value == 2
    assert entries[0].note == "felt better"
    assert entries[0].mood_id == "sad"


def test_many_sessions_respect_cap(controller, store):
    for i in range(3):
        store.append(make_entry(i))
    for _ in range(65):
        _to_closing(controller, mood="happy")
        controller.save()
    assert len(store.all()) == 60
    assert all(e.mood_id == "happy" for e in store.all())
