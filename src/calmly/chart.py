"""Chart projection of the history log."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from ._util import _dt_from_entry_ts
from .history import HistoryEntry

CHART_LIMIT = 20

# axis used by the trend chart
Y_MIN = 0.5
Y_MAX = 4.5
Y_TICKS = (1, 1.5, 2, 3, 4)


@dataclass(frozen=True)
class ChartPoint:
    index: int  # 1-based, oldest first
    value: float
    label: str
    note: Optional[str] = None


def format_label(ts: str) -> str:
    dt = _dt_from_entry_ts(ts)
    if dt is None:
        return str(ts)
    return dt.date().isoformat()


def project(log: Sequence[HistoryEntry], limit: int = CHART_LIMIT) -> list[ChartPoint]:
    """
    Take the ``limit`` newest entries of a newest-first log and return them
    oldest-first, numbered 1..N.
    """
    if limit <= 0:
        return []
    recent = list(log[:limit])
    recent.reverse()
    return [
        ChartPoint(index=i, value=e.value, label=format_label(e.timestamp), note=e.note)
        for i, e in enumerate(recent, start=1)
    ]


AXIS_LABEL_MAX = 7


def axis_labels(points: Sequence[ChartPoint], max_labels: int = AXIS_LABEL_MAX) -> dict[int, str]:
    """
    x-axis text keyed by point index. Every point gets its date while they
    fit; beyond that only the first and last are labelled.
    """
    if not points:
        return {}
    if len(points) <= max_labels:
        return {p.index: p.label for p in points}
    return {points[0].index: points[0].label, points[-1].index: points[-1].label}


def point_tooltip(point: ChartPoint) -> str:
    text = f"Entry {point.index}\n{point.label}\nmood value: {point.value:g}"
    if point.note:
        text += f"\n{point.note}"
    return text


def sparkline(values: Iterable[float], vmin: float = Y_MIN, vmax: float = Y_MAX) -> str:
    blocks = "▁▂▃▄▅▆▇█"
    span = max(1e-9, vmax - vmin)
    out = []
    for v in values:
        x = (float(v) - vmin) / span
        idx = int(round(x * (len(blocks) - 1)))
        idx = max(0, min(len(blocks) - 1, idx))
        out.append(blocks[idx])
    return "".join(out)
