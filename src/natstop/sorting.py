"""Connection ordering for the top view."""

from collections.abc import Callable, Iterable
from enum import Enum

from natstop.models import ConnectionRecord


class SortKey(str, Enum):
    """Sort keys for the connection table, named as the server names them."""

    CID = "cid"
    SUBS = "subs"
    OUT_MSGS = "msgs_to"
    IN_MSGS = "msgs_from"
    OUT_BYTES = "bytes_to"
    IN_BYTES = "bytes_from"

    def __str__(self) -> str:
        return self.value


# Every volume metric sorts busiest first; cid is the only ascending key.
_METRICS: dict[SortKey, Callable[[ConnectionRecord], int]] = {
    SortKey.SUBS: lambda c: c.subscriptions,
    SortKey.OUT_MSGS: lambda c: c.out_msgs,
    SortKey.IN_MSGS: lambda c: c.in_msgs,
    SortKey.OUT_BYTES: lambda c: c.out_bytes,
    SortKey.IN_BYTES: lambda c: c.in_bytes,
}


def parse_sort_key(text: str) -> SortKey:
    """
    Parse a user-supplied sort key.

    Raises:
        ValueError: If ``text`` does not name a supported key.
    """
    try:
        return SortKey(text.strip())
    except ValueError:
        raise ValueError(f"not a valid option to sort by: {text!r}") from None


def sort_connections(
    connections: Iterable[ConnectionRecord],
    key: SortKey | None,
) -> list[ConnectionRecord]:
    """
    Return a new list of connections ordered by ``key``.

    Ties are broken by cid ascending so the order is total. ``key=None``
    keeps the order the server returned.
    """
    if key is None:
        return list(connections)
    if key is SortKey.CID:
        return sorted(connections, key=lambda c: c.cid)
    metric = _METRICS[key]
    return sorted(connections, key=lambda c: (-metric(c), c.cid))
