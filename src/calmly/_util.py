"""Shared low-level helpers used by cli.py, gui.py and the core modules."""

from __future__ import annotations

from datetime import datetime


def _now_local() -> datetime:
    return datetime.now().astimezone()


def _now_iso() -> str:
    return _now_local().isoformat(timespec="seconds")


def _fmt_time(dt: datetime) -> str:
    # Windows-safe formatting
    try:
        return dt.strftime("%-I:%M %p")
    except ValueError:
        return dt.strftime("%I:%M %p").lstrip("0")


def _dt_from_entry_ts(ts: str) -> datetime | None:
    s = str(ts or "").strip()
    if s.endswith("Z"):
        # browser-style toISOString()
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=_now_local().tzinfo)
    return dt.astimezone()
