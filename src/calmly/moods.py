from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import UnknownMoodError


class MoodId(str, Enum):
    HAPPY = "happy"
    OKAY = "okay"
    SAD = "sad"
    ANGRY = "angry"
    ANXIOUS = "anxious"


@dataclass(frozen=True)
class MoodOption:
    id: MoodId
    label: str
    symbol: str
    value: float  # higher = more positive
    support_message: str
    color: str = "#f1f5f9"


MOODS: tuple[MoodOption, ...] = (
    MoodOption(
        MoodId.HAPPY, "Happy", "😊", 4,
        "Love that energy! Want to keep the good vibes going?",
        color="#d1fae5",
    ),
    MoodOption(
        MoodId.OKAY, "Okay", "😐", 3,
        "Feeling neutral is totally fine. Let's do a tiny recharge.",
        color="#e0f2fe",
    ),
    MoodOption(
        MoodId.SAD, "Sad", "😢", 2,
        "It's okay to feel low. You're not alone. Want something gentle?",
        color="#dbeafe",
    ),
    MoodOption(
        MoodId.ANGRY, "Angry", "😡", 1,
        "That sounds tough. Let's release some tension safely.",
        color="#ffedd5",
    ),
    MoodOption(
        MoodId.ANXIOUS, "Anxious", "😰", 1.5,
        "Anxiety can feel heavy. Let's try a calm, steady exercise.",
        color="#f3e8ff",
    ),
)

_BY_ID = {m.id: m for m in MOODS}


def get_mood(mood_id: MoodId | str) -> MoodOption:
    """Look up a catalog entry by enum or its string value (case-insensitive)."""
    try:
        key = MoodId(str(mood_id.value if isinstance(mood_id, MoodId) else mood_id).strip().lower())
    except ValueError:
        raise UnknownMoodError(mood_id) from None
    return _BY_ID[key]


def mood_ids() -> list[str]:
    return [m.id.value for m in MOODS]
