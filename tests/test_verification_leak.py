"""Verification Test: Memory Leak Check.

The dashboard keeps six chart histories alive for the whole session. Feed the
render coordinator far more snapshots than the history window holds and make
sure resident memory stays flat once the windows are full.
"""

import gc

import psutil

from fakes import make_conn, make_connz, make_vitals
from natstop.coordinator import RenderCoordinator
from natstop.history import HISTORY_LENGTH
from natstop.models import RateRecord, Snapshot
from natstop.options import DisplayOptions


def get_current_memory_mb() -> float:
    """Get current process memory usage in MB."""
    process = psutil.Process()
    return process.memory_info().rss / (1024 * 1024)


def make_snapshot(n: int) -> Snapshot:
    return Snapshot(
        vitals=make_vitals(in_msgs=n * 100, mem=(32 + n % 7) * 1024 * 1024),
        connz=make_connz([make_conn(cid, out_msgs=n) for cid in range(20)]),
        rates=RateRecord(float(n), float(n), float(n), float(n)),
    )


class TestMemoryLeakCheck:
    """Memory leak verification suite tests."""

    def test_histories_stay_bounded(self):
        coordinator = RenderCoordinator(DisplayOptions(), redraw=lambda: None)

        for n in range(5 * HISTORY_LENGTH):
            coordinator.consume(make_snapshot(n))

        frame = coordinator.frame()
        for name, series in frame.series.items():
            assert len(series) == HISTORY_LENGTH, name
        assert frame.series["in_msgs"][-1] == float(5 * HISTORY_LENGTH - 1)

    def test_rss_is_stable_after_warmup(self):
        """Test RSS growth over many cycles stays under 5MB once warmed up."""
        coordinator = RenderCoordinator(DisplayOptions(), redraw=lambda: None)
        for n in range(2 * HISTORY_LENGTH):
            coordinator.consume(make_snapshot(n))

        gc.collect()
        initial_memory = get_current_memory_mb()

        for n in range(20_000):
            coordinator.consume(make_snapshot(n))
            if n % 1000 == 0:
                coordinator.frame()

        gc.collect()
        memory_delta = get_current_memory_mb() - initial_memory
        assert memory_delta < 5.0, f"Memory grew by {memory_delta:.2f}MB"
