"""HTTP client for the NATS server monitoring endpoints."""

import logging
from typing import Any, Protocol

import httpx

from natstop.models import ConnectionRecord, ConnectionSnapshot, ServerVitals
from natstop.sorting import SortKey

logger = logging.getLogger(__name__)


class MetricsError(Exception):
    """A monitoring endpoint could not be fetched or decoded."""


class MetricsSource(Protocol):
    """Anything that can produce vitals and connection data."""

    def fetch_server_vitals(self) -> ServerVitals: ...

    def fetch_connections(self, limit: int, sort: SortKey | None = None) -> ConnectionSnapshot: ...


class HttpMetricsSource:
    """
    Metrics source backed by the server's ``/varz`` and ``/connz`` endpoints.

    Every failure (connection refused, timeout, HTTP error status, invalid
    JSON) is reported as a MetricsError so callers only handle one type.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = 2.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the source.

        Args:
            host: Server host name or address.
            port: Monitoring port.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport, used by tests.
        """
        self._client = httpx.Client(
            base_url=f"http://{host}:{port}",
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpMetricsSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def fetch_server_vitals(self) -> ServerVitals:
        payload = self._get_json("/varz")
        try:
            return _parse_varz(payload)
        except (TypeError, ValueError, AttributeError) as exc:
            raise MetricsError(f"unexpected /varz payload: {exc}") from exc

    def fetch_connections(self, limit: int, sort: SortKey | None = None) -> ConnectionSnapshot:
        params: dict[str, str | int] = {"limit": limit}
        if sort is not None:
            params["sort"] = sort.value
        payload = self._get_json("/connz", params)
        try:
            return _parse_connz(payload)
        except (TypeError, ValueError, AttributeError) as exc:
            raise MetricsError(f"unexpected /connz payload: {exc}") from exc

    def _get_json(self, path: str, params: dict[str, str | int] | None = None) -> dict[str, Any]:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise MetricsError(f"could not get {path}: {exc}") from exc
        except ValueError as exc:
            raise MetricsError(f"could not decode {path}: {exc}") from exc

        if not isinstance(payload, dict):
            raise MetricsError(f"could not decode {path}: expected a JSON object")
        logger.debug("fetched %s", path)
        return payload


def _parse_varz(data: dict[str, Any]) -> ServerVitals:
    # Older servers nest the version under "info"
    version = data.get("version") or (data.get("info") or {}).get("version", "")
    max_conn = data.get("max_connections") or (data.get("options") or {}).get("max_connections", 0)
    return ServerVitals(
        cpu=float(data.get("cpu") or 0.0),
        mem=int(data.get("mem") or 0),
        uptime=str(data.get("uptime") or ""),
        slow_consumers=int(data.get("slow_consumers") or 0),
        version=str(version or ""),
        max_connections=int(max_conn or 0),
        in_msgs=int(data.get("in_msgs") or 0),
        out_msgs=int(data.get("out_msgs") or 0),
        in_bytes=int(data.get("in_bytes") or 0),
        out_bytes=int(data.get("out_bytes") or 0),
    )


def _parse_connz(data: dict[str, Any]) -> ConnectionSnapshot:
    connections = tuple(_parse_conn(conn) for conn in data.get("connections") or ())
    return ConnectionSnapshot(
        num_connections=int(data.get("num_connections") or len(connections)),
        connections=connections,
    )


def _parse_conn(conn: dict[str, Any]) -> ConnectionRecord:
    subs = conn.get("subscriptions")
    if subs is None:
        subs = conn.get("num_subscriptions", 0)
    return ConnectionRecord(
        cid=int(conn.get("cid") or 0),
        ip=str(conn.get("ip") or ""),
        port=int(conn.get("port") or 0),
        subscriptions=int(subs or 0),
        pending_bytes=int(conn.get("pending_bytes") or 0),
        in_msgs=int(conn.get("in_msgs") or 0),
        out_msgs=int(conn.get("out_msgs") or 0),
        in_bytes=int(conn.get("in_bytes") or 0),
        out_bytes=int(conn.get("out_bytes") or 0),
        lang=str(conn.get("lang") or ""),
        version=str(conn.get("version") or ""),
    )
