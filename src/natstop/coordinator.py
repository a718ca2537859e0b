"""Render state for natstop: histories, labels, layout and view mode."""

import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from natstop.history import HISTORY_LENGTH, HistorySeries
from natstop.models import Snapshot
from natstop.options import DisplayOptions
from natstop.report import format_top_report, psize

SERIES_NAMES = ("connections", "memory", "in_msgs", "out_msgs", "in_bytes", "out_bytes")


class ViewState(Enum):
    """Top-level layouts."""

    TOP = "top"
    DASHBOARD = "dashboard"


@dataclass(slots=True, frozen=True)
class PanelHeights:
    """Dashboard panel heights in terminal rows."""

    cpu: int
    connections: int
    box: int
    line: int


def panel_heights(term_height: int) -> PanelHeights:
    """Split the terminal height between the dashboard panels."""
    term_height = max(term_height, 0)
    box = term_height // 3
    return PanelHeights(
        cpu=term_height // 7,
        connections=term_height // 5,
        box=box,
        line=box - box // 7,
    )


@dataclass(slots=True, frozen=True)
class Frame:
    """Everything the painter needs, copied out under the coordinator lock."""

    view: ViewState
    report: str
    cpu_percent: float
    labels: dict[str, str]
    series: dict[str, list[float]]
    heights: PanelHeights
    term_height: int


class RenderCoordinator:
    """
    Owns the render state and decides when a repaint is needed.

    ``consume`` may run on any thread; painting is left to whoever handles the
    ``redraw`` callback, which is called exactly once per state change.
    """

    def __init__(
        self,
        options: DisplayOptions,
        redraw: Callable[[], None],
        term_height: int = 24,
        history_length: int = HISTORY_LENGTH,
    ) -> None:
        self._options = options
        self._redraw = redraw
        self._lock = threading.Lock()
        self._view = ViewState.TOP
        self._term_height = term_height
        self._heights = panel_heights(term_height)
        self._series = {name: HistorySeries(history_length) for name in SERIES_NAMES}
        self._cpu_percent = 0.0
        self._report = format_top_report(Snapshot.empty(), options.snapshot())
        self._labels = {
            "cpu": "CPU: ",
            "connections": "Connections: ",
            "memory": "Memory: ",
            "in_msgs": "In: Msgs/Sec: ",
            "in_bytes": "In: Bytes/Sec: ",
            "out_msgs": "Out: Msgs/Sec: ",
            "out_bytes": "Out: Bytes/Sec: ",
        }

    @property
    def view(self) -> ViewState:
        with self._lock:
            return self._view

    @property
    def heights(self) -> PanelHeights:
        with self._lock:
            return self._heights

    def consume(self, snapshot: Snapshot) -> None:
        """Fold a new snapshot into the render state and request a repaint."""
        vitals = snapshot.vitals
        rates = snapshot.rates
        num_conns = snapshot.connz.num_connections
        # The top report is kept current in every view
        report = format_top_report(snapshot, self._options.snapshot())

        with self._lock:
            self._report = report
            self._cpu_percent = vitals.cpu

            self._series["connections"].append(float(num_conns))
            self._series["memory"].append(float(vitals.mem // 1024 // 1024))
            self._series["in_msgs"].append(rates.in_msgs_rate)
            self._series["out_msgs"].append(rates.out_msgs_rate)
            self._series["in_bytes"].append(rates.in_bytes_rate)
            self._series["out_bytes"].append(rates.out_bytes_rate)

            self._labels.update(
                cpu=f"CPU: {vitals.cpu:.1f}%",
                connections=f"Connections: {num_conns}/{vitals.max_connections}",
                memory=f"Memory: {psize(vitals.mem)}",
                in_msgs=f"In: Msgs/Sec: {rates.in_msgs_rate:.1f}",
                in_bytes=f"In: Bytes/Sec: {psize(max(rates.in_bytes_rate, 0))}",
                out_msgs=f"Out: Msgs/Sec: {rates.out_msgs_rate:.1f}",
                out_bytes=f"Out: Bytes/Sec: {psize(max(rates.out_bytes_rate, 0))}",
            )

        self._redraw()

    def resize(self, term_height: int) -> None:
        """Handle a terminal resize; panel heights only change in the dashboard."""
        with self._lock:
            self._term_height = term_height
            if self._view is ViewState.DASHBOARD:
                self._heights = panel_heights(term_height)
        self._redraw()

    def toggle_view(self) -> ViewState:
        """Switch between the top view and the dashboard and return the new view."""
        with self._lock:
            if self._view is ViewState.TOP:
                self._view = ViewState.DASHBOARD
                self._heights = panel_heights(self._term_height)
            else:
                self._view = ViewState.TOP
            view = self._view
        self._redraw()
        return view

    def frame(self) -> Frame:
        with self._lock:
            return Frame(
                view=self._view,
                report=self._report,
                cpu_percent=self._cpu_percent,
                labels=dict(self._labels),
                series={name: series.values() for name, series in self._series.items()},
                heights=self._heights,
                term_height=self._term_height,
            )
