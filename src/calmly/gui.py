from __future__ import annotations

import logging
import tkinter as tk
from pathlib import Path
from tkinter import ttk

from .backends import JsonFileBackend
from .chart import CHART_LIMIT, Y_MAX, Y_MIN, Y_TICKS, ChartPoint, axis_labels, point_tooltip, project
from .exercises import (
    AffirmationRunner,
    BreathingRunner,
    ExerciseKind,
    GroundingRunner,
    MeditationRunner,
)
from .help_link import EMERGENCY_NOTICE, open_urgent_help
from .history import HistoryStore
from .moods import MOODS
from .paths import resolve_data_path
from .safety import assert_safe_data_path
from .scheduler import TkScheduler
from .session import Screen, SessionController

logger = logging.getLogger(__name__)

SUBTITLE = "A gentle place to check in, breathe, and feel a little better. Not medical advice."
CIRCLE_RADIUS = 90
LINE_COLOR = "#0ea5e9"


class CalmlyApp(tk.Tk):
    def __init__(self, store: HistoryStore):
        super().__init__()
        self.title("Calmly")
        self.geometry("720x640")
        self.store = store
        self.controller = SessionController(store, TkScheduler(self))

        self._rendered: tuple[Screen, object] | None = None
        self._note_text: tk.Text | None = None
        self._graph_redraw_job: str | None = None
        self._graph_tooltip: tk.Toplevel | None = None

        self._build_header()
        self.body = ttk.Frame(self, padding=16)
        self.body.pack(fill="both", expand=True)
        self._build_footer()

        self.controller.subscribe(lambda _c: self._render())
        self._render()

    # -------- Crash guard --------

    def report_callback_exception(self, exc, val, tb):  # type: ignore[override]
        # never show technical failures to the user
        logger.error("Unhandled error in UI callback", exc_info=(exc, val, tb))

    def _safe_cmd(self, fn):
        def wrapped(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except Exception:
                logger.exception("UI action %s failed", getattr(fn, "__name__", fn))
                return None

        return wrapped

    # -------------------------
    # Chrome
    # -------------------------

    def _build_header(self) -> None:
        frm = ttk.Frame(self, padding=(16, 12, 16, 0))
        frm.pack(fill="x")

        top = ttk.Frame(frm)
        top.pack(fill="x")
        ttk.Label(top, text="Calmly", font=("TkDefaultFont", 18, "bold")).pack(side="left")

        btns = ttk.Frame(top)
        btns.pack(side="right")
        ttk.Button(btns, text="Home", command=self._safe_cmd(self.controller.navigate_home)).pack(side="left", padx=4)
        ttk.Button(btns, text="History", command=self._safe_cmd(self.controller.navigate_history)).pack(
            side="left", padx=4
        )
        ttk.Button(btns, text="Urgent help", command=self._safe_cmd(open_urgent_help)).pack(side="left", padx=4)

        ttk.Label(frm, text=SUBTITLE, foreground="#64748b").pack(anchor="w", pady=(4, 8))
        ttk.Separator(self).pack(fill="x")

    def _build_footer(self) -> None:
        ttk.Separator(self).pack(fill="x", side="bottom")
        foot = ttk.Frame(self, padding=10)
        foot.pack(fill="x", side="bottom")
        ttk.Label(foot, text=EMERGENCY_NOTICE, foreground="#64748b", wraplength=460).pack(side="left")
        ttk.Label(foot, text="♥ Be kind to yourself", foreground="#64748b").pack(side="right")

    # -------------------------
    # Rendering
    # -------------------------

    def _render(self) -> None:
        key = (self.controller.screen, self.controller.runner)
        if key == self._rendered:
            self._refresh_exercise()
            return
        self._rendered = key

        for child in self.body.winfo_children():
            child.destroy()
        self._note_text = None

        screen = self.controller.screen
        if screen is Screen.HOME:
            self._build_home()
        elif screen is Screen.SUPPORT:
            self._build_support()
        elif screen is Screen.EXERCISE:
            self._build_exercise()
        elif screen is Screen.CLOSING:
            self._build_closing()
        else:
            self._build_history()

    def _heading(self, text: str) -> None:
        ttk.Label(self.body, text=text, font=("TkDefaultFont", 14, "bold")).pack(anchor="w", pady=(0, 8))

    def _build_home(self) -> None:
        self._heading("How are you feeling today?")
        grid = ttk.Frame(self.body)
        grid.pack(fill="x")
        for col, m in enumerate(MOODS):
            tk.Button(
                grid,
                text=f"{m.symbol}\n{m.label}",
                font=("TkDefaultFont", 13),
                bg=m.color,
                relief="flat",
                padx=10,
                pady=10,
                command=self._safe_cmd(lambda m=m: self.controller.pick_mood(m)),
            ).grid(row=0, column=col, padx=4, sticky="nsew")
            grid.columnconfigure(col, weight=1)

    def _build_support(self) -> None:
        mood = self.controller.session.mood
        ttk.Button(self.body, text="← Back", command=self._safe_cmd(self.controller.back)).pack(anchor="w")

        box = tk.Frame(self.body, bg="#f8fafc", bd=1, relief="solid", padx=12, pady=12)
        box.pack(fill="x", pady=12)
        if mood is not None:
            tk.Label(
                box, text=f"{mood.symbol}  {mood.support_message}", bg="#f8fafc", wraplength=600, justify="left"
            ).pack(anchor="w")

        for kind in ExerciseKind:
            row = ttk.Frame(self.body)
            row.pack(fill="x", pady=4)
            ttk.Button(
                row,
                text=kind.label,
                width=22,
                command=self._safe_cmd(lambda k=kind: self.controller.choose_exercise(k)),
            ).pack(side="left")
            ttk.Label(row, text=kind.description, foreground="#64748b").pack(side="left", padx=8)

    # -------- Exercises --------

    def _build_exercise(self) -> None:
        runner = self.controller.runner
        finish = self._safe_cmd(self.controller.finish_exercise)

        if isinstance(runner, BreathingRunner):
            self._heading("Breathing Exercise")
            self._ex_status = tk.StringVar()
            ttk.Label(self.body, textvariable=self._ex_status, foreground="#64748b").pack()
            self._circle = tk.Canvas(self.body, width=260, height=260, highlightthickness=0)
            self._circle.pack(pady=12)
            self._ex_phase = tk.StringVar()
            ttk.Label(self.body, textvariable=self._ex_phase, font=("TkDefaultFont", 16, "bold")).pack(pady=(0, 12))
            ttk.Button(self.body, text="Finish early", command=finish).pack()

        elif isinstance(runner, MeditationRunner):
            self._heading("Mini Meditation")
            self._ex_status = tk.StringVar()
            ttk.Label(self.body, textvariable=self._ex_status, foreground="#64748b").pack(anchor="w", pady=(0, 8))
            for line in runner.guidance:
                ttk.Label(self.body, text=f"•  {line}").pack(anchor="w", pady=2)
            ttk.Button(self.body, text="Finish early", command=finish).pack(anchor="w", pady=12)

        elif isinstance(runner, GroundingRunner):
            self._heading("5-4-3-2-1 Grounding")
            ttk.Label(self.body, text="Look around and follow each step.", foreground="#64748b").pack(anchor="w")
            self._ex_status = tk.StringVar()
            box = tk.Frame(self.body, bg="#f8fafc", bd=1, relief="solid", padx=16, pady=24)
            box.pack(fill="x", pady=12)
            tk.Label(box, textvariable=self._ex_status, bg="#f8fafc", font=("TkDefaultFont", 13)).pack(anchor="w")
            row = ttk.Frame(self.body)
            row.pack(anchor="w")
            self._ex_back = ttk.Button(row, text="Back", command=self._safe_cmd(runner.back))
            self._ex_back.pack(side="left", padx=(0, 6))
            self._ex_next = ttk.Button(row, command=self._safe_cmd(self._grounding_forward))
            self._ex_next.pack(side="left")

        elif isinstance(runner, AffirmationRunner):
            self._heading("Affirmation")
            tk.Label(
                self.body,
                text=f"“{runner.quote}”",
                font=("TkDefaultFont", 18),
                wraplength=560,
                bg="#f0f9ff",
                padx=20,
                pady=24,
            ).pack(fill="x", pady=12)
            ttk.Button(self.body, text="Continue", command=finish).pack()

        self._refresh_exercise()

    def _grounding_forward(self) -> None:
        runner = self.controller.runner
        if isinstance(runner, GroundingRunner):
            if runner.can_finish:
                self.controller.finish_exercise()
            else:
                runner.next()

    def _refresh_exercise(self) -> None:
        runner = self.controller.runner
        if runner is None or runner.disposed:
            return

        if isinstance(runner, BreathingRunner):
            self._ex_status.set(f"Follow the circle. {runner.seconds_left}s left")
            self._ex_phase.set(runner.phase)
            r = CIRCLE_RADIUS * runner.scale
            self._circle.delete("all")
            self._circle.create_oval(130 - r, 130 - r, 130 + r, 130 + r, fill="#d1fae5", outline="#94a3b8")
        elif isinstance(runner, MeditationRunner):
            self._ex_status.set(f"Sit comfortably. Relax your shoulders. {runner.seconds_left}s left")
        elif isinstance(runner, GroundingRunner):
            self._ex_status.set(runner.prompt)
            self._ex_back.state(["!disabled"] if runner.can_go_back else ["disabled"])
            self._ex_next.configure(text="Finish" if runner.can_finish else "Next")

    # -------- Closing --------

    def _build_closing(self) -> None:
        self._heading("How do you feel now?")
        ttk.Label(
            self.body, text="Optional: add a short note about what helped or how you feel.", foreground="#64748b"
        ).pack(anchor="w")
        self._note_text = tk.Text(self.body, height=6, wrap="word")
        self._note_text.pack(fill="x", pady=10)
        self._note_text.focus_set()
        ttk.Button(self.body, text="Save & Finish", command=self._safe_cmd(self._save)).pack(anchor="e")

    def _save(self) -> None:
        note = self._note_text.get("1.0", "end") if self._note_text is not None else ""
        self.controller.save(note=note)

    # -------- History --------

    def _build_history(self) -> None:
        self._heading("Mood History")
        points = project(self.store.all(), CHART_LIMIT)
        if not points:
            ttk.Label(
                self.body, text="No entries yet. Do a quick session and it will show up here.", foreground="#64748b"
            ).pack(anchor="w")
            return

        self.graph_canvas = tk.Canvas(self.body, height=200, bg="white", highlightthickness=1)
        self.graph_canvas.pack(fill="x", pady=(0, 10))
        self.graph_canvas.bind("<Configure>", lambda _e: self._schedule_graph_redraw(points))

        list_frame = ttk.Frame(self.body, relief="sunken", borderwidth=1)
        list_frame.pack(fill="both", expand=True)
        lb = tk.Listbox(list_frame, height=8, borderwidth=0, highlightthickness=0)
        sb = ttk.Scrollbar(list_frame, orient="vertical", command=lb.yview)
        lb.configure(yscrollcommand=sb.set)
        sb.pack(side="right", fill="y")
        lb.pack(side="left", fill="both", expand=True)
        for p in points:
            line = f"#{p.index} — {p.label} — mood value: {p.value:g}"
            if p.note:
                line += f"   {p.note}"
            lb.insert("end", line)

    def _schedule_graph_redraw(self, points: list[ChartPoint]) -> None:
        if self._graph_redraw_job is not None:
            self.after_cancel(self._graph_redraw_job)
        self._graph_redraw_job = self.after(120, lambda: self._draw_chart(points))

    def _draw_chart(self, points: list[ChartPoint]) -> None:
        self._graph_redraw_job = None
        canvas = getattr(self, "graph_canvas", None)
        if canvas is None or not canvas.winfo_exists():
            return
        canvas.delete("all")
        self._graph_hide_tooltip()

        w = max(1, canvas.winfo_width())
        h = max(1, canvas.winfo_height())
        pad_l, pad_r, pad_t, pad_b = 40, 16, 14, 28
        plot_w = max(1, w - pad_l - pad_r)
        plot_h = max(1, h - pad_t - pad_b)

        def y_for(v: float) -> float:
            v = max(Y_MIN, min(Y_MAX, float(v)))
            return pad_t + (Y_MAX - v) * (plot_h / (Y_MAX - Y_MIN))

        def x_for(i: int) -> float:
            n = len(points)
            if n <= 1:
                return pad_l + plot_w / 2
            return pad_l + (i * plot_w / (n - 1))

        for tick in Y_TICKS:
            yy = y_for(tick)
            canvas.create_line(pad_l, yy, w - pad_r, yy, fill="#eeeeee")
            canvas.create_text(pad_l - 8, yy, text=f"{tick:g}", anchor="e", fill="#444")
        canvas.create_line(pad_l, y_for(Y_MIN), w - pad_r, y_for(Y_MIN), fill="#444")

        if len(points) >= 2:
            coords: list[float] = []
            for i, p in enumerate(points):
                coords.extend([x_for(i), y_for(p.value)])
            canvas.create_line(*coords, fill=LINE_COLOR, width=2, smooth=True)

        labels = axis_labels(points)
        for i, p in enumerate(points):
            x, y = x_for(i), y_for(p.value)
            dot = canvas.create_oval(x - 4, y - 4, x + 4, y + 4, outline="", fill=LINE_COLOR)
            canvas.tag_bind(dot, "<Enter>", lambda _e, t=point_tooltip(p): self._graph_show_tooltip(t))
            canvas.tag_bind(dot, "<Leave>", self._graph_hide_tooltip)

            label = labels.get(p.index)
            if label is not None:
                anchor = "center"
                if len(points) > 1 and i == 0:
                    anchor = "w"
                elif len(points) > 1 and i == len(points) - 1:
                    anchor = "e"
                canvas.create_text(x, h - 10, text=label, anchor=anchor, fill="#666", font=("TkDefaultFont", 8))

    def _graph_show_tooltip(self, text: str) -> None:
        self._graph_hide_tooltip()
        tip = tk.Toplevel(self)
        tip.wm_overrideredirect(True)
        tk.Label(tip, text=text, justify="left", background="#ffffe0", relief="solid", borderwidth=1, padx=6, pady=4).pack()
        tip.geometry(f"+{self.winfo_pointerx() + 12}+{self.winfo_pointery() - 10}")
        self._graph_tooltip = tip

    def _graph_hide_tooltip(self, _event=None) -> None:
        if self._graph_tooltip is not None:
            self._graph_tooltip.destroy()
        self._graph_tooltip = None


# -------------------------
# GUI Entrypoint
# -------------------------


def run_app(data_path: Path) -> None:
    store = HistoryStore(JsonFileBackend(data_path))
    store.load()
    app = CalmlyApp(store)
    app.mainloop()


def run_gui(argv=None) -> None:
    data_path = resolve_data_path(None, None)
    assert_safe_data_path(data_path, allow_repo_data_path=False)
    run_app(data_path)


if __name__ == "__main__":
    run_gui()
