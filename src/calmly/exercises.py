from __future__ import annotations

import logging
import random
from enum import Enum
from typing import Callable, Optional

from .errors import PreconditionError
from .scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)


class ExerciseKind(str, Enum):
    BREATHING = "breathing"
    GROUNDING = "grounding"
    MEDITATION = "meditation"
    AFFIRMATION = "affirmation"

    @classmethod
    def parse(cls, raw: "ExerciseKind | str") -> "ExerciseKind":
        if isinstance(raw, ExerciseKind):
            return raw
        s = str(raw).strip().lower()
        if s == "quote":
            return cls.AFFIRMATION
        return cls(s)

    @property
    def label(self) -> str:
        return _KIND_TEXT[self][0]

    @property
    def description(self) -> str:
        return _KIND_TEXT[self][1]


_KIND_TEXT = {
    ExerciseKind.BREATHING: ("Breathing", "1-minute guided breathing"),
    ExerciseKind.GROUNDING: ("5-4-3-2-1 Grounding", "5-4-3-2-1 sensory grounding"),
    ExerciseKind.MEDITATION: ("Mini Meditation", "2-minute mini meditation"),
    ExerciseKind.AFFIRMATION: ("Affirmation", "Get an affirmation"),
}

BREATHING_SECONDS = 60
BREATH_PHASE_MS = 4000
BREATH_PHASES = ("Inhale", "Hold", "Exhale", "Hold")
MEDITATION_SECONDS = 120

GROUNDING_STEPS = (
    "Name 5 things you can SEE.",
    "Name 4 things you can TOUCH.",
    "Name 3 things you can HEAR.",
    "Name 2 things you can SMELL.",
    "Name 1 thing you can TASTE.",
)

MEDITATION_GUIDANCE = (
    "Close your eyes gently. Notice your breath.",
    "Inhale slowly through the nose. Exhale softly through the mouth.",
    "Let thoughts pass like clouds. Keep returning to the breath.",
    "On each exhale, release a little tension in your body.",
)

QUOTES = (
    "You are stronger than you think.",
    "One step at a time is still progress.",
    "This feeling is temporary. You are not.",
    "Breathe. You’ve done hard things before.",
    "You deserve rest, kindness, and patience.",
    "Small wins count. Today counts.",
)

Callback = Callable[["ExerciseRunner"], None]


class ExerciseRunner:
    """
    Base for the four exercises.

    Lifecycle:
      - start() schedules any timers and returns the runner itself (the handle)
      - finish() requests completion; on_complete fires exactly once
      - dispose() cancels every scheduled task; safe to repeat
    A disposed runner never calls on_complete or on_update again.
    """

    kind: ExerciseKind

    def __init__(
        self,
        scheduler: Scheduler,
        on_complete: Optional[Callback] = None,
        on_update: Optional[Callback] = None,
    ):
        self.scheduler = scheduler
        self.on_complete = on_complete
        self.on_update = on_update
        self.started = False
        self.completed = False
        self.disposed = False
        self._tasks: list[ScheduledTask] = []

    @property
    def active(self) -> bool:
        return self.started and not (self.completed or self.disposed)

    def start(self) -> "ExerciseRunner":
        if self.started:
            raise PreconditionError(f"{self.kind.value} runner already started")
        if self.disposed:
            raise PreconditionError(f"{self.kind.value} runner was disposed")
        self.started = True
        self._on_start()
        logger.debug("started %s", self.kind.value)
        return self

    def _on_start(self) -> None:
        pass

    def _every(self, interval_ms: int, fn: Callable[[], None]) -> None:
        self._tasks.append(self.scheduler.call_every(interval_ms, fn))

    def finish(self) -> None:
        self._complete("finished early")

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        self._cancel_tasks()

    def _cancel_tasks(self) -> None:
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()

    def _complete(self, reason: str) -> None:
        if not self.active:
            return
        self.completed = True
        self._cancel_tasks()
        logger.info("%s complete (%s)", self.kind.value, reason)
        if self.on_complete is not None:
            self.on_complete(self)

    def _changed(self) -> None:
        if self.on_update is not None and not self.disposed:
            self.on_update(self)


class _CountdownRunner(ExerciseRunner):
    duration_seconds = 60

    def __init__(self, scheduler, on_complete=None, on_update=None):
        super().__init__(scheduler, on_complete, on_update)
        self.seconds_left = self.duration_seconds

    def _on_start(self) -> None:
        self._every(1000, self._tick)

    def _tick(self) -> None:
        if not self.active:
            return
        self.seconds_left = max(0, self.seconds_left - 1)
        self._changed()
        if self.seconds_left == 0:
            self._complete("time up")


class BreathingRunner(_CountdownRunner):
    kind = ExerciseKind.BREATHING
    duration_seconds = BREATHING_SECONDS

    def __init__(self, scheduler, on_complete=None, on_update=None):
        super().__init__(scheduler, on_complete, on_update)
        self._phase_index = 0

    @property
    def phase(self) -> str:
        return BREATH_PHASES[self._phase_index]

    @property
    def scale(self) -> float:
        if self.phase == "Inhale":
            return 1.2
        if self.phase == "Exhale":
            return 0.8
        return 1.0

    def _on_start(self) -> None:
        super()._on_start()
        self._every(BREATH_PHASE_MS, self._next_phase)

    def _next_phase(self) -> None:
        if not self.active:
            return
        self._phase_index = (self._phase_index + 1) % len(BREATH_PHASES)
        self._changed()


class MeditationRunner(_CountdownRunner):
    kind = ExerciseKind.MEDITATION
    duration_seconds = MEDITATION_SECONDS
    guidance = MEDITATION_GUIDANCE


class GroundingRunner(ExerciseRunner):
    kind = ExerciseKind.GROUNDING
    steps = GROUNDING_STEPS

    def __init__(self, scheduler, on_complete=None, on_update=None):
        super().__init__(scheduler, on_complete, on_update)
        self.cursor = 0

    @property
    def last_index(self) -> int:
        return len(self.steps) - 1

    @property
    def prompt(self) -> str:
        return self.steps[self.cursor]

    @property
    def can_go_back(self) -> bool:
        return self.cursor > 0

    @property
    def can_finish(self) -> bool:
        return self.cursor == self.last_index

    def back(self) -> None:
        if not self.active:
            return
        self.cursor = max(0, self.cursor - 1)
        self._changed()

    def next(self) -> None:
        if not self.active:
            return
        self.cursor = min(self.last_index, self.cursor + 1)
        self._changed()

    def finish(self) -> None:
        if not self.can_finish:
            raise PreconditionError(
                f"grounding can only finish on the last prompt (at {self.cursor + 1}/{len(self.steps)})"
            )
        self._complete("all prompts done")


class AffirmationRunner(ExerciseRunner):
    kind = ExerciseKind.AFFIRMATION
    pool = QUOTES

    def __init__(self, scheduler, on_complete=None, on_update=None, rng: Optional[random.Random] = None):
        super().__init__(scheduler, on_complete, on_update)
        # picked once; re-rendering reads the same quote
        self.quote = (rng or random.Random()).choice(self.pool)

    def finish(self) -> None:
        self._complete("continue")


_RUNNERS: dict[ExerciseKind, type[ExerciseRunner]] = {
    ExerciseKind.BREATHING: BreathingRunner,
    ExerciseKind.GROUNDING: GroundingRunner,
    ExerciseKind.MEDITATION: MeditationRunner,
    ExerciseKind.AFFIRMATION: AffirmationRunner,
}


def create_runner(
    kind: ExerciseKind | str,
    scheduler: Scheduler,
    on_complete: Optional[Callback] = None,
    rng: Optional[random.Random] = None,
    on_update: Optional[Callback] = None,
) -> ExerciseRunner:
    kind = ExerciseKind.parse(kind)
    cls = _RUNNERS[kind]
    if cls is AffirmationRunner:
        return AffirmationRunner(scheduler, on_complete, on_update, rng=rng)
    return cls(scheduler, on_complete, on_update)
