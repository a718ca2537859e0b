"""Sampling engine for natstop."""

import contextvars
import dataclasses
import logging
import threading
import time
from collections.abc import Callable
from queue import Full, Queue

from natstop.models import ConnectionSnapshot, RateRecord, ServerVitals, Snapshot
from natstop.options import DisplayOptions
from natstop.source import MetricsError, MetricsSource

logger = logging.getLogger(__name__)


class RateCalculator:
    """
    Turns successive counter samples into per-second rates.

    Keeps the last successfully sampled counters as the baseline. The first
    sample only establishes the baseline and yields zero rates.
    """

    def __init__(self) -> None:
        self._last: ServerVitals | None = None
        self._last_time: float = 0.0

    def reset(self) -> None:
        self._last = None
        self._last_time = 0.0

    def update(self, vitals: ServerVitals, now: float) -> RateRecord:
        """
        Record a new sample and return the rates since the previous one.

        Args:
            vitals: The freshly fetched counters.
            now: Monotonic timestamp of the fetch, in seconds.
        """
        previous, previous_time = self._last, self._last_time
        self._last, self._last_time = vitals, now

        elapsed = now - previous_time
        if previous is None or elapsed <= 0:
            return RateRecord.zero()

        return RateRecord(
            in_msgs_rate=(vitals.in_msgs - previous.in_msgs) / elapsed,
            out_msgs_rate=(vitals.out_msgs - previous.out_msgs) / elapsed,
            in_bytes_rate=(vitals.in_bytes - previous.in_bytes) / elapsed,
            out_bytes_rate=(vitals.out_bytes - previous.out_bytes) / elapsed,
        )


class Sampler:
    """
    Background poller for a NATS server.

    Runs in a separate daemon thread: every ``delay`` seconds it fetches vitals
    and connections, derives rates and publishes a Snapshot on ``channel``.
    Fetch failures are logged and published as partial snapshots; they never
    stop the loop.
    """

    def __init__(
        self,
        source: MetricsSource,
        options: DisplayOptions,
        channel: Queue[Snapshot],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the Sampler.

        Args:
            source: Where vitals and connection data come from.
            options: Shared options; delay, limit and sort are read each cycle.
            channel: Queue the snapshots are published on. Give it a maxsize
                so a slow consumer paces the sampler.
            clock: Monotonic clock used to measure the real poll interval.
        """
        self._source = source
        self._options = options
        self._channel = channel
        self._clock = clock
        self._rates = RateCalculator()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """Check if the sampler thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sampling thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        # Counters from before a stop would span the idle gap
        self._rates.reset()
        # Run in a copy of the caller's context so context-bound log handlers
        # (Textual's active app) still see the records
        context = contextvars.copy_context()
        self._thread = threading.Thread(
            target=context.run,
            args=(self._poll_loop,),
            daemon=True,
            name="Sampler",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the sampling thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.wait(timeout=self._options.delay):
            try:
                snapshot = self.sample()
            except Exception:
                logger.exception("unexpected error while sampling")
                snapshot = dataclasses.replace(
                    Snapshot.empty(), errors=("unexpected error while sampling",)
                )
            self._publish(snapshot)

    def _publish(self, snapshot: Snapshot) -> None:
        # Blocks while the consumer is behind, but keeps noticing stop()
        while not self._stop_event.is_set():
            try:
                self._channel.put(snapshot, timeout=0.25)
                return
            except Full:
                continue

    def sample(self) -> Snapshot:
        """Run one fetch cycle and return the composed snapshot."""
        opts = self._options.snapshot()
        errors: list[str] = []

        vitals = ServerVitals.empty()
        rates = RateRecord.zero()
        try:
            vitals = self._source.fetch_server_vitals()
        except MetricsError as exc:
            logger.warning("%s", exc)
            errors.append(str(exc))
        else:
            rates = self._rates.update(vitals, self._clock())

        connz = ConnectionSnapshot.empty()
        try:
            connz = self._source.fetch_connections(opts.conns, opts.sort)
        except MetricsError as exc:
            logger.warning("%s", exc)
            errors.append(str(exc))

        return Snapshot(vitals=vitals, connz=connz, rates=rates, errors=tuple(errors))
