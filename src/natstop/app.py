"""natstop - Main Textual application."""

import argparse
import logging
import sys
from queue import Empty, Queue

from textual import events, work
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.logging import TextualHandler
from textual.message import Message
from textual.widgets import ProgressBar, Sparkline, Static
from textual.worker import get_current_worker

from natstop import __version__
from natstop.coordinator import Frame, RenderCoordinator, ViewState
from natstop.keys import ClearPrompt, FlashNotice, InputStateMachine, Intent, Quit, ShowPrompt, ToggleView
from natstop.models import Snapshot
from natstop.monitor import Sampler
from natstop.options import (
    DEFAULT_CONNS,
    DEFAULT_DELAY,
    DEFAULT_HOST,
    DEFAULT_PORT,
    ConfigError,
    DisplayOptions,
)
from natstop.sorting import SortKey, parse_sort_key
from natstop.source import HttpMetricsSource, MetricsSource

logger = logging.getLogger(__name__)

CHART_PANELS = ("connections", "memory", "in_msgs", "in_bytes", "out_msgs", "out_bytes")
BOX_PANELS = ("memory", "in_msgs", "in_bytes", "out_msgs", "out_bytes")


class Redraw(Message):
    """Render state changed and the screen should be repainted."""


class ChartPanel(Vertical):
    """Bordered panel holding a single sparkline."""

    DEFAULT_CSS = """
    ChartPanel {
        border: round $primary;
        width: 1fr;
        height: 8;
    }

    ChartPanel > Sparkline {
        height: 1fr;
    }
    """

    def __init__(self, chart: str, title: str) -> None:
        """Initialize ChartPanel."""
        super().__init__(id=f"{chart}-panel")
        self.border_title = title
        self._chart = chart

    def compose(self) -> ComposeResult:
        """Compose the panel."""
        yield Sparkline([], id=f"{self._chart}-chart")


class NatsTopApp(App):
    """Main natstop application."""

    TITLE = "natstop"
    SUB_TITLE = "NATS Server Monitor"

    CSS = """
    Screen {
        layout: vertical;
        overflow: hidden;
    }

    #top-view {
        height: 1fr;
        width: 1fr;
    }

    #dashboard {
        display: none;
        height: 1fr;
        overflow: hidden;
    }

    #dashboard Horizontal {
        height: auto;
    }

    #dashboard-left {
        width: 1fr;
        height: auto;
    }

    #cpu-panel {
        border: round $success;
        height: 3;
    }

    #prompt {
        dock: bottom;
        height: 1;
        background: $surface;
    }
    """

    def __init__(self, options: DisplayOptions, source: MetricsSource) -> None:
        """Initialize the NatsTopApp."""
        super().__init__()
        self._options = options
        # Holds at most one snapshot so the sampler waits for a slow renderer
        self._channel: Queue[Snapshot] = Queue(maxsize=1)
        self._sampler = Sampler(source, options, self._channel)
        self._coordinator = RenderCoordinator(options, redraw=self._request_redraw)
        self._input = InputStateMachine(options)
        self._prompt_generation = 0

    @property
    def coordinator(self) -> RenderCoordinator:
        return self._coordinator

    @property
    def input_state(self) -> InputStateMachine:
        return self._input

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Static(self._coordinator.frame().report, id="top-view", markup=False)
        with Vertical(id="dashboard"):
            with Horizontal(id="dashboard-top"):
                with Vertical(id="dashboard-left"):
                    with Vertical(id="cpu-panel"):
                        yield ProgressBar(total=100, show_eta=False, id="cpu-gauge")
                    yield ChartPanel("connections", "Connections: ")
                yield ChartPanel("memory", "Memory: ")
            with Horizontal(id="dashboard-in"):
                yield ChartPanel("in_msgs", "In: Msgs/Sec: ")
                yield ChartPanel("in_bytes", "In: Bytes/Sec: ")
            with Horizontal(id="dashboard-out"):
                yield ChartPanel("out_msgs", "Out: Msgs/Sec: ")
                yield ChartPanel("out_bytes", "Out: Bytes/Sec: ")
        yield Static("", id="prompt", markup=False)

    def on_mount(self) -> None:
        """Start sampling once the widget tree exists."""
        self.query_one("#cpu-panel").border_title = "CPU: "
        self._coordinator.resize(self.size.height)
        self._sampler.start()
        self.consume_snapshots()

    @work(thread=True, exclusive=True, name="snapshot-consumer")
    def consume_snapshots(self) -> None:
        """Hand published snapshots to the coordinator as they arrive."""
        worker = get_current_worker()
        while not worker.is_cancelled:
            try:
                snapshot = self._channel.get(timeout=0.25)
            except Empty:
                continue
            self._coordinator.consume(snapshot)

    def _request_redraw(self) -> None:
        # Thread-safe: the paint itself always runs on the app's message loop
        self.post_message(Redraw())

    def on_redraw(self, message: Redraw) -> None:
        """Push the current render state into the widgets."""
        frame = self._coordinator.frame()
        try:
            top_view = self.query_one("#top-view", Static)
            dashboard = self.query_one("#dashboard", Vertical)
        except NoMatches:
            return  # Not mounted yet, or already shutting down

        top_view.display = frame.view is ViewState.TOP
        dashboard.display = frame.view is ViewState.DASHBOARD
        top_view.update(frame.report)
        if frame.view is ViewState.DASHBOARD:
            self._paint_dashboard(frame)

    def _paint_dashboard(self, frame: Frame) -> None:
        heights = frame.heights
        cpu_panel = self.query_one("#cpu-panel", Vertical)
        cpu_panel.border_title = frame.labels["cpu"]
        cpu_panel.styles.height = max(heights.cpu, 3)
        self.query_one("#cpu-gauge", ProgressBar).update(progress=int(frame.cpu_percent))

        for name in CHART_PANELS:
            panel = self.query_one(f"#{name}-panel", ChartPanel)
            panel.border_title = frame.labels[name]
            chart = panel.query_one(Sparkline)
            chart.data = frame.series[name]
            if name in BOX_PANELS:
                panel.styles.height = max(heights.box, 3)
                chart.styles.height = max(min(heights.line, heights.box - 2), 1)
            else:
                panel.styles.height = max(heights.connections, 3)

    def on_resize(self, event: events.Resize) -> None:
        """Recompute the layout for the new terminal size."""
        self._coordinator.resize(event.size.height)

    def on_key(self, event: events.Key) -> None:
        """Route key presses through the input state machine."""
        intents = self._input.handle(event.key, event.character)
        if intents:
            event.stop()
        for intent in intents:
            self._apply(intent)

    def _apply(self, intent: Intent) -> None:
        if isinstance(intent, ShowPrompt):
            self._set_prompt(intent.text)
        elif isinstance(intent, ClearPrompt):
            self._set_prompt("")
        elif isinstance(intent, FlashNotice):
            generation = self._set_prompt(intent.text)
            self.set_timer(intent.seconds, lambda: self._expire_notice(generation))
        elif isinstance(intent, ToggleView):
            self._coordinator.toggle_view()
        elif isinstance(intent, Quit):
            self.action_quit()

    def _set_prompt(self, text: str) -> int:
        self._prompt_generation += 1
        self.query_one("#prompt", Static).update(text)
        return self._prompt_generation

    def _expire_notice(self, generation: int) -> None:
        # A newer prompt replaced the notice; leave it alone
        if generation == self._prompt_generation:
            self._set_prompt("")

    def on_unmount(self) -> None:
        """Make sure the sampler thread does not outlive the app."""
        self._sampler.stop(timeout=1.0)

    def action_quit(self) -> None:
        """Stop sampling and exit; Textual restores the terminal."""
        self._sampler.stop(timeout=1.0)
        self.exit(return_code=0)


def configure_logging(level: str = "WARNING", log_file: str | None = None, tui: bool = False) -> None:
    """
    Configure the root logger.

    Before the app starts, records go to stderr. Once the app owns the
    terminal (``tui=True``) they are routed to ``log_file`` if given, else to
    the Textual devtools console, so background threads never draw over the
    screen.
    """
    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(log_file)
    elif tui:
        handler = TextualHandler(stderr=False)
    else:
        handler = logging.StreamHandler(sys.stderr)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[handler],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="natstop",
        description="top-like monitor for NATS servers",
    )
    parser.add_argument("-s", "--server", default=DEFAULT_HOST, help="The nats server host.")
    parser.add_argument(
        "-m", "--port", type=int, default=DEFAULT_PORT, help="The nats server monitoring port."
    )
    parser.add_argument(
        "-n", "--conns", type=int, default=DEFAULT_CONNS,
        help="Maximum number of connections to poll.",
    )
    parser.add_argument(
        "-d", "--delay", type=int, default=DEFAULT_DELAY, help="Refresh interval in seconds."
    )
    parser.add_argument(
        "--sort", default=SortKey.CID.value,
        help=f"Value for which to sort by the connections ({', '.join(k.value for k in SortKey)}).",
    )
    parser.add_argument("--log-file", help="Write logs to this file.")
    parser.add_argument(
        "--log-level", type=str.upper, default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: WARNING).",
    )
    parser.add_argument(
        "-v", "--version", action="version", version=f"natstop v{__version__}",
        help="Show natstop version",
    )
    return parser


def options_from_args(args: argparse.Namespace) -> DisplayOptions:
    """
    Build the display options from parsed arguments.

    Raises:
        ConfigError: If the configuration is unusable.
    """
    sort: SortKey | None
    try:
        sort = parse_sort_key(args.sort)
    except ValueError as exc:
        logger.warning("%s; connections will not be sorted", exc)
        sort = None

    return DisplayOptions(
        host=args.server,
        port=args.port,
        conns=args.conns,
        delay=args.delay,
        sort=sort,
    )


def main(argv: list[str] | None = None) -> int:
    """Entry point for natstop application."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        # --version and --help exit 0; usage errors are configuration errors
        return 0 if exc.code in (0, None) else 1

    configure_logging(args.log_level, args.log_file)
    try:
        options = options_from_args(args)
    except ConfigError as exc:
        parser.print_usage(sys.stderr)
        print(f"natstop: error: {exc}", file=sys.stderr)
        return 1

    with HttpMetricsSource(args.server, args.port) as source:
        app = NatsTopApp(options, source)
        configure_logging(args.log_level, args.log_file, tui=True)
        try:
            app.run()
        except Exception:
            configure_logging(args.log_level, args.log_file)
            logger.exception("could not run the terminal interface")
            return 1
    return app.return_code or 0


if __name__ == "__main__":
    sys.exit(main())
