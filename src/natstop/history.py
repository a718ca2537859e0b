"""Bounded sample history backing the dashboard charts."""

from collections import deque

HISTORY_LENGTH = 150


class HistorySeries:
    """
    Moving window of numeric samples.

    Appending past ``maxlen`` evicts the oldest sample first, so the series
    always holds the most recent ``maxlen`` insertions in order.
    """

    def __init__(self, maxlen: int = HISTORY_LENGTH) -> None:
        if maxlen < 1:
            raise ValueError("maxlen must be at least 1")
        self._samples: deque[float] = deque(maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._samples.maxlen or 0

    def append(self, value: float) -> None:
        self._samples.append(value)

    def values(self) -> list[float]:
        """Copy of the samples, oldest first, for handing to a widget."""
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __repr__(self) -> str:
        return f"HistorySeries(maxlen={self.maxlen}, len={len(self)})"
