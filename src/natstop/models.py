"""Data models for natstop."""

from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class ServerVitals:
    """Server-wide counters as reported by the monitoring endpoint."""

    cpu: float  # 0.0 - 100.0 * core_count
    mem: int  # Bytes
    uptime: str
    slow_consumers: int
    version: str
    max_connections: int
    in_msgs: int
    out_msgs: int
    in_bytes: int
    out_bytes: int

    @classmethod
    def empty(cls) -> "ServerVitals":
        """Zeroed vitals used when the server could not be reached."""
        return cls(
            cpu=0.0,
            mem=0,
            uptime="",
            slow_consumers=0,
            version="",
            max_connections=0,
            in_msgs=0,
            out_msgs=0,
            in_bytes=0,
            out_bytes=0,
        )


@dataclass(slots=True, frozen=True)
class ConnectionRecord:
    """Immutable snapshot of a single client connection."""

    cid: int
    ip: str
    port: int
    subscriptions: int
    pending_bytes: int
    in_msgs: int  # Messages received from the client
    out_msgs: int  # Messages delivered to the client
    in_bytes: int
    out_bytes: int
    lang: str
    version: str

    @property
    def address(self) -> str:
        return f"{self.ip}:{self.port}"


@dataclass(slots=True, frozen=True)
class ConnectionSnapshot:
    """Connection list returned for one poll."""

    num_connections: int
    connections: tuple[ConnectionRecord, ...] = ()

    @classmethod
    def empty(cls) -> "ConnectionSnapshot":
        return cls(num_connections=0)


@dataclass(slots=True, frozen=True)
class RateRecord:
    """Per-second rates derived from two consecutive vitals samples."""

    in_msgs_rate: float
    out_msgs_rate: float
    in_bytes_rate: float
    out_bytes_rate: float

    @classmethod
    def zero(cls) -> "RateRecord":
        return cls(0.0, 0.0, 0.0, 0.0)


@dataclass(slots=True, frozen=True)
class Snapshot:
    """
    Everything captured in one poll cycle.

    A cycle where a fetch failed still produces a Snapshot: the failed part is
    zeroed and the reason is kept in ``errors``.
    """

    vitals: ServerVitals
    connz: ConnectionSnapshot
    rates: RateRecord
    errors: tuple[str, ...] = field(default=())

    @property
    def ok(self) -> bool:
        """True when both fetches of the cycle succeeded."""
        return not self.errors

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls(
            vitals=ServerVitals.empty(),
            connz=ConnectionSnapshot.empty(),
            rates=RateRecord.zero(),
        )
