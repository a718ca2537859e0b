"""Runtime options shared by the sampler, the renderer and the key handler."""

import logging
import threading
from dataclasses import dataclass

from natstop.sorting import SortKey

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8222
DEFAULT_CONNS = 1024
DEFAULT_DELAY = 1


class ConfigError(ValueError):
    """Invalid startup configuration."""


@dataclass(slots=True, frozen=True)
class OptionValues:
    """Point-in-time copy of the display options."""

    host: str
    port: int
    conns: int
    delay: int
    sort: SortKey | None


class DisplayOptions:
    """
    Typed, lock-guarded option record.

    Readers take a consistent copy with ``snapshot()``. The only writers are
    ``set_sort()`` and ``set_conns()``, called when the user confirms a prompt.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        conns: int = DEFAULT_CONNS,
        delay: int = DEFAULT_DELAY,
        sort: SortKey | None = SortKey.CID,
    ) -> None:
        """
        Initialize and validate the options.

        Raises:
            ConfigError: If any value is out of range.
        """
        if not host:
            raise ConfigError("a server host is required")
        if not _is_int(port) or not 0 < port < 65536:
            raise ConfigError(f"invalid monitoring port: {port!r}")
        if not _is_int(delay) or delay < 1:
            raise ConfigError(f"could not use {delay!r} as a refreshing interval")
        if not _is_int(conns) or conns < 1:
            raise ConfigError(f"invalid connection limit: {conns!r}")

        self._lock = threading.Lock()
        self._host = host
        self._port = port
        self._conns = conns
        self._delay = delay
        self._sort = sort

    @property
    def delay(self) -> int:
        return self._delay

    @property
    def conns(self) -> int:
        with self._lock:
            return self._conns

    @property
    def sort(self) -> SortKey | None:
        with self._lock:
            return self._sort

    def snapshot(self) -> OptionValues:
        """Return a consistent copy of all options."""
        with self._lock:
            return OptionValues(
                host=self._host,
                port=self._port,
                conns=self._conns,
                delay=self._delay,
                sort=self._sort,
            )

    def set_sort(self, key: SortKey) -> None:
        with self._lock:
            self._sort = key
        logger.info("sorting connections by %s", key)

    def set_conns(self, conns: int) -> None:
        """
        Set the connection limit.

        Raises:
            ValueError: If ``conns`` is not a positive integer.
        """
        if not _is_int(conns) or conns < 1:
            raise ValueError(f"invalid connection limit: {conns!r}")
        with self._lock:
            self._conns = conns
        logger.info("connection limit set to %d", conns)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
