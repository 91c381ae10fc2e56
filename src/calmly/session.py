"""
Screen-level state machine for one check-in.

Flow: HOME -> SUPPORT -> EXERCISE -> CLOSING -> HOME, with HOME and HISTORY
reachable from anywhere as an abort (nothing saved).
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ._util import _now_iso
from .errors import PreconditionError
from .exercises import ExerciseKind, ExerciseRunner, create_runner
from .history import HistoryEntry, HistoryStore
from .moods import MoodOption, get_mood
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


class Screen(str, Enum):
    HOME = "home"
    SUPPORT = "support"
    EXERCISE = "exercise"
    CLOSING = "closing"
    HISTORY = "history"


class Action(str, Enum):
    PICK_MOOD = "pick_mood"
    CHOOSE_EXERCISE = "choose_exercise"
    EXERCISE_DONE = "exercise_done"
    SAVE = "save"
    NAVIGATE_HOME = "navigate_home"
    NAVIGATE_HISTORY = "navigate_history"


TRANSITIONS: dict[tuple[Screen, Action], Screen] = {
    (Screen.HOME, Action.PICK_MOOD): Screen.SUPPORT,
    (Screen.SUPPORT, Action.CHOOSE_EXERCISE): Screen.EXERCISE,
    (Screen.EXERCISE, Action.EXERCISE_DONE): Screen.CLOSING,
    (Screen.CLOSING, Action.SAVE): Screen.HOME,
}
for _screen in Screen:
    TRANSITIONS[(_screen, Action.NAVIGATE_HOME)] = Screen.HOME
    TRANSITIONS[(_screen, Action.NAVIGATE_HISTORY)] = Screen.HISTORY


@dataclass
class Session:
    mood: Optional[MoodOption] = None
    exercise_kind: Optional[ExerciseKind] = None
    note: str = ""

    @property
    def empty(self) -> bool:
        return self.mood is None and self.exercise_kind is None and not self.note

    def reset(self) -> None:
        self.mood = None
        self.exercise_kind = None
        self.note = ""


Listener = Callable[["SessionController"], None]


class SessionController:
    def __init__(
        self,
        store: HistoryStore,
        scheduler: Scheduler,
        rng: Optional[random.Random] = None,
        clock: Callable[[], str] = _now_iso,
    ):
        self.store = store
        self.scheduler = scheduler
        self.rng = rng
        self.clock = clock
        self.screen = Screen.HOME
        self.session = Session()
        self.runner: Optional[ExerciseRunner] = None
        self._listeners: list[Listener] = []

    # -------- observers --------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # -------- transitions --------

    def can(self, action: Action) -> bool:
        return (self.screen, action) in TRANSITIONS

    def _transition(self, action: Action) -> None:
        target = TRANSITIONS.get((self.screen, action))
        if target is None:
            raise PreconditionError(f"{action.value} is not allowed on the {self.screen.value} screen")
        logger.debug("%s --%s--> %s", self.screen.value, action.value, target.value)
        self.screen = target

    def _require_mood(self, action: Action) -> MoodOption:
        if self.session.mood is None:
            raise PreconditionError(f"{action.value} needs a mood; call pick_mood first")
        return self.session.mood

    def pick_mood(self, mood: MoodOption | str) -> None:
        if not isinstance(mood, MoodOption):
            mood = get_mood(mood)
        self._transition(Action.PICK_MOOD)
        self.session.mood = mood
        self._notify()

    def choose_exercise(self, kind: ExerciseKind | str) -> ExerciseRunner:
        self._require_mood(Action.CHOOSE_EXERCISE)
        kind = ExerciseKind.parse(kind)
        self._transition(Action.CHOOSE_EXERCISE)
        self.session.exercise_kind = kind
        self.runner = create_runner(
            kind,
            self.scheduler,
            on_complete=self._on_exercise_complete,
            rng=self.rng,
            on_update=self._on_exercise_update,
        )
        self.runner.start()
        self._notify()
        return self.runner

    def finish_exercise(self) -> None:
        """Forward a finish / finish-early / continue press to the active runner."""
        if self.screen is not Screen.EXERCISE or self.runner is None:
            raise PreconditionError("no exercise is running")
        self.runner.finish()

    def _on_exercise_update(self, runner: ExerciseRunner) -> None:
        if runner is self.runner:
            self._notify()

    def _on_exercise_complete(self, runner: ExerciseRunner) -> None:
        if runner is not self.runner or self.screen is not Screen.EXERCISE:
            # late signal from a runner we already let go of
            return
        self._dispose_runner()
        self._transition(Action.EXERCISE_DONE)
        self._notify()

    def _dispose_runner(self) -> None:
        if self.runner is not None:
            self.runner.dispose()
            self.runner = None

    def set_note(self, text: str) -> None:
        if self.screen is not Screen.CLOSING:
            raise PreconditionError("notes can only be edited on the closing screen")
        self.session.note = text or ""

    def save(self, note: Optional[str] = None) -> HistoryEntry:
        if note is not None:
            self.set_note(note)
        mood = self._require_mood(Action.SAVE)
        if self.screen is not Screen.CLOSING:
            raise PreconditionError(f"save is not allowed on the {self.screen.value} screen")

        entry = HistoryEntry.for_mood(mood, self.session.note, self.clock())
        try:
            self.store.append(entry)
            logger.info("Saved check-in: %s (%s)", entry.mood_id, entry.value)
        finally:
            self.session.reset()
            self._transition(Action.SAVE)
            self._notify()
        return entry

    def navigate_home(self) -> None:
        self._abort(Action.NAVIGATE_HOME)

    def navigate_history(self) -> None:
        self._abort(Action.NAVIGATE_HISTORY)

    back = navigate_home

    def _abort(self, action: Action) -> None:
        if not self.session.empty:
            logger.info("Check-in abandoned on %s screen; nothing saved", self.screen.value)
        self._dispose_runner()
        self.session.reset()
        self._transition(action)
        self._notify()
