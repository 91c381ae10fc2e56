from __future__ import annotations

import argparse
import logging
import os
import stat
from typing import Any

from ._util import _dt_from_entry_ts, _fmt_time, _now_iso
from .backends import JsonFileBackend
from .chart import CHART_LIMIT, project, sparkline
from .errors import UnknownMoodError
from .help_link import HELP_URL, open_urgent_help
from .history import HistoryEntry, HistoryStore
from .moods import MOODS, get_mood, mood_ids
from .paths import describe_source, resolve_data_path
from .safety import assert_safe_data_path
from .storage import read_json_file

LOG_LEVEL_ENV = "CALMLY_LOG_LEVEL"


# -------------------------
# Helpers
# -------------------------

def _configure_logging(verbose: bool) -> None:
    if verbose:
        level = logging.DEBUG
    else:
        name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
        level = getattr(logging, name, None)
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _open_store(args: argparse.Namespace) -> HistoryStore:
    store = HistoryStore(JsonFileBackend(args.data_path))
    store.load()
    return store


def _mood_label(mood_id: str) -> str:
    try:
        m = get_mood(mood_id)
    except UnknownMoodError:
        return mood_id
    return f"{m.symbol} {m.label}"


def _entry_line(e: HistoryEntry) -> str:
    dt = _dt_from_entry_ts(e.timestamp)
    when = f"{dt.date().isoformat()} {_fmt_time(dt)}" if dt else e.timestamp
    line = f"{when} — {_mood_label(e.mood_id)} (value {e.value:g})"
    if e.note:
        line += f" ({e.note})"
    return line


# -------------------------
# Check-in
# -------------------------

def cmd_checkin(args: argparse.Namespace) -> None:
    try:
        mood = get_mood(args.mood)
    except UnknownMoodError:
        raise SystemExit(f"--mood must be one of: {', '.join(mood_ids())}")

    store = _open_store(args)
    entry = HistoryEntry.for_mood(mood, args.note, _now_iso())
    store.append(entry)

    print(f"{mood.symbol} Logged {mood.label} @ {entry.timestamp}")
    print(f"   {mood.support_message}")


def cmd_moods(args: argparse.Namespace) -> None:
    for m in MOODS:
        print(f"{m.symbol} {m.id.value:<8} value={m.value:g}  {m.support_message}")


# -------------------------
# History
# -------------------------

def cmd_history_list(args: argparse.Namespace) -> None:
    entries = _open_store(args).all()
    if not entries:
        print("No entries yet. Do a quick session and it will show up here.")
        return

    print("=== Check-in history (newest first) ===")
    for e in entries[: args.limit]:
        print(_entry_line(e))


def cmd_history_chart(args: argparse.Namespace) -> None:
    points = project(_open_store(args).all(), args.limit)
    if not points:
        print("No entries yet. Do a quick session and it will show up here.")
        return

    print(f"Mood trend (last {len(points)}, oldest → newest)")
    print(sparkline(p.value for p in points))
    print(f"{points[0].label} → {points[-1].label}")
    if args.details:
        for p in points:
            line = f"#{p.index} — {p.label} — mood value: {p.value:g}"
            if p.note:
                line += f" — {p.note}"
            print(line)


def cmd_history_reset(args: argparse.Namespace) -> None:
    if not args.yes:
        raise SystemExit("Refusing to reset without --yes (this deletes check-in history).")
    dropped = _open_store(args).clear()
    print(f"🧹 History reset: deleted {dropped} entries.")


# -------------------------
# Core commands
# -------------------------

def cmd_gui(args: argparse.Namespace) -> None:
    # tkinter is optional on some Linux installs; only import it when asked
    from .gui import run_app

    run_app(args.data_path)


def cmd_urgent(args: argparse.Namespace) -> None:
    if not open_urgent_help():
        print(f"Open this link for help: {HELP_URL}")


def cmd_where(args: argparse.Namespace) -> None:
    print(args.data_path)
    print(f"↳ using {describe_source(args.data_arg, args.profile)}")


def cmd_doctor(args: argparse.Namespace) -> None:
    print("=== Calmly Doctor ===")

    assert_safe_data_path(args.data_path, args.allow_repo_data_path)
    print("✅ Data path safety guard: OK")

    data: dict[str, Any] = read_json_file(args.data_path)
    print(f"✅ JSON readable: OK ({len(data)} keys)")

    store = _open_store(args)
    print(f"📒 History entries: {len(store)}/{store.capacity}")

    try:
        perms = stat.S_IMODE(args.data_path.stat().st_mode)
        print(f"🔐 File permissions: {oct(perms)} (target 0o600)")
    except FileNotFoundError:
        print("⚠️ Data file missing (it is created on the first check-in)")

    print("=== Done ===")


def main(argv=None) -> None:
    p = argparse.ArgumentParser(prog="calmly", description="Calmly guided self-check-in")
    p.add_argument("--data", default=None, help="Path to data JSON (overrides env/default)")
    p.add_argument("--profile", default=None, help="Profile name (e.g. dev/test)")
    p.add_argument("--allow-repo-data-path", action="store_true", help="Override safety guard (not recommended)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    p.set_defaults(func=cmd_gui)

    sub = p.add_subparsers(dest="cmd")
    sub.add_parser("gui", help="Open the check-in window (default)").set_defaults(func=cmd_gui)
    sub.add_parser("moods", help="List mood options").set_defaults(func=cmd_moods)
    sub.add_parser("urgent", help="Open the urgent help link").set_defaults(func=cmd_urgent)
    sub.add_parser("where", help="Show which data file is active and why").set_defaults(func=cmd_where)
    sub.add_parser("doctor", help="Run safety + health checks").set_defaults(func=cmd_doctor)

    checkin = sub.add_parser("checkin", help="Log a mood without running an exercise")
    checkin.add_argument("--mood", required=True, help=f"One of: {', '.join(mood_ids())}")
    checkin.add_argument("--note", default=None)
    checkin.set_defaults(func=cmd_checkin)

    # ---- history ----
    history = sub.add_parser("history", help="Saved check-ins")
    history_sub = history.add_subparsers(dest="history_cmd", required=True)

    history_list = history_sub.add_parser("list", help="List entries, newest first")
    history_list.add_argument("--limit", type=int, default=60)
    history_list.set_defaults(func=cmd_history_list)

    history_chart = history_sub.add_parser("chart", help="Trend sparkline of recent entries")
    history_chart.add_argument("--limit", type=int, default=CHART_LIMIT)
    history_chart.add_argument("--details", action="store_true", help="Also print each chart point")
    history_chart.set_defaults(func=cmd_history_chart)

    history_reset = history_sub.add_parser("reset", help="Delete ALL history (requires --yes)")
    history_reset.add_argument("--yes", action="store_true", help="Confirm destructive reset")
    history_reset.set_defaults(func=cmd_history_reset)

    args = p.parse_args(argv)
    _configure_logging(args.verbose)

    args.data_arg = args.data
    args.data_path = resolve_data_path(args.data, args.profile)

    if args.func is not cmd_where:
        assert_safe_data_path(args.data_path, args.allow_repo_data_path)

    args.func(args)


if __name__ == "__main__":
    main()
