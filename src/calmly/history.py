from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Any, Optional

from .backends import KeyValueBackend
from .moods import MoodOption

logger = logging.getLogger(__name__)

HISTORY_KEY = "calmly_history"
HISTORY_CAPACITY = 60


class MalformedEntry(ValueError):
    pass


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: str  # ISO 8601
    mood_id: str
    value: float
    note: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"ts": self.timestamp, "mood": self.mood_id, "value": self.value, "note": self.note}

    @classmethod
    def from_dict(cls, raw: Any) -> "HistoryEntry":
        if not isinstance(raw, dict):
            raise MalformedEntry(f"entry is not an object: {raw!r}")
        ts = raw.get("ts")
        mood = raw.get("mood")
        value = raw.get("value")
        note = raw.get("note")
        if not isinstance(ts, str) or not ts:
            raise MalformedEntry(f"bad ts: {ts!r}")
        if not isinstance(mood, str) or not mood:
            raise MalformedEntry(f"bad mood: {mood!r}")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedEntry(f"bad value: {value!r}")
        if not math.isfinite(value):
            raise MalformedEntry(f"value is not finite: {value!r}")
        if note is not None and not isinstance(note, str):
            raise MalformedEntry(f"bad note: {note!r}")
        return cls(timestamp=ts, mood_id=mood, value=value, note=note)

    @classmethod
    def for_mood(cls, mood: MoodOption, note: Optional[str], timestamp: str) -> "HistoryEntry":
        # value is frozen at save time, later catalog edits never rewrite history
        return cls(timestamp=timestamp, mood_id=mood.id.value, value=mood.value, note=normalize_note(note))


def normalize_note(raw: Optional[str]) -> Optional[str]:
    note = (raw or "").strip()
    return note or None


def parse_log(payload: Any) -> tuple[HistoryEntry, ...]:
    """Decode a stored array; any shape problem rejects the whole payload."""
    if not isinstance(payload, list):
        raise MalformedEntry(f"history is not a list: {type(payload).__name__}")
    return tuple(HistoryEntry.from_dict(item) for item in payload)


class HistoryStore:
    """
    Newest-first log of completed check-ins, capped at ``capacity``.

    The in-memory log is authoritative: read problems degrade to an empty
    log and write problems are logged, neither is raised to callers.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        key: str = HISTORY_KEY,
        capacity: int = HISTORY_CAPACITY,
    ):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.backend = backend
        self.key = key
        self.capacity = capacity
        self._entries: tuple[HistoryEntry, ...] = ()
        self._lock = threading.Lock()

    def load(self) -> tuple[HistoryEntry, ...]:
        try:
            payload = self.backend.read(self.key)
        except (OSError, ValueError, RecursionError) as e:
            logger.warning("Could not read history (%s); starting empty", e)
            payload = None

        entries: tuple[HistoryEntry, ...] = ()
        if payload is not None:
            try:
                entries = parse_log(payload)
            except MalformedEntry as e:
                logger.warning("Ignoring malformed history: %s", e)
                entries = ()

        with self._lock:
            self._entries = entries[: self.capacity]
            return self._entries

    def all(self) -> tuple[HistoryEntry, ...]:
        with self._lock:
            return self._entries

    def __len__(self) -> int:
        return len(self.all())

    def append(self, entry: HistoryEntry) -> None:
        with self._lock:
            self._entries = ((entry,) + self._entries)[: self.capacity]
            snapshot = self._entries
        self._persist(snapshot)

    def clear(self) -> int:
        with self._lock:
            dropped = len(self._entries)
            self._entries = ()
        self._persist(())
        return dropped

    def _persist(self, entries: tuple[HistoryEntry, ...]) -> None:
        try:
            self.backend.write(self.key, [e.to_dict() for e in entries])
        except (OSError, TypeError, ValueError) as e:
            logger.warning("History write failed, keeping %d entries in memory only: %s", len(entries), e)
