"""Text rendering of the top view."""

from natstop.models import Snapshot
from natstop.options import OptionValues
from natstop.sorting import sort_connections

_HEADER = "  {:<20} {:<8} {:<6}  {:<10}  {:<10}  {:<10}  {:<10}  {:<10}  {:<7}  {:<7}"


def psize(size: float) -> str:
    """Format a byte or message count as a short human-readable string."""
    if size < 1024:
        return f"{size:.0f}"
    for unit in ["K", "M", "G"]:
        size = size / 1024
        if size < 1024:
            return f"{size:.1f}{unit}"
    return f"{size / 1024:.1f}T"


def format_top_report(snapshot: Snapshot, options: OptionValues) -> str:
    """Build the full text of the top view for one snapshot."""
    vitals = snapshot.vitals
    rates = snapshot.rates

    lines = [
        f"nats-server version {vitals.version} (uptime: {vitals.uptime})",
        "Server:",
        f"  Load: CPU:  {vitals.cpu:.1f}%  Memory: {psize(vitals.mem)}  "
        f"Slow Consumers: {vitals.slow_consumers}",
        f"  In:   Msgs: {psize(vitals.in_msgs)}  Bytes: {psize(vitals.in_bytes)}  "
        f"Msgs/Sec: {rates.in_msgs_rate:.1f}  Bytes/Sec: {psize(max(rates.in_bytes_rate, 0))}",
        f"  Out:  Msgs: {psize(vitals.out_msgs)}  Bytes: {psize(vitals.out_bytes)}  "
        f"Msgs/Sec: {rates.out_msgs_rate:.1f}  Bytes/Sec: {psize(max(rates.out_bytes_rate, 0))}",
    ]
    if not snapshot.ok:
        lines.append(f"  Error: {'; '.join(snapshot.errors)}")

    lines.append("")
    lines.append(f"Connections: {snapshot.connz.num_connections}")
    lines.append(
        _HEADER.format(
            "HOST", "CID", "SUBS", "PENDING", "MSGS_TO", "MSGS_FROM",
            "BYTES_TO", "BYTES_FROM", "LANG", "VERSION",
        )
    )
    for conn in sort_connections(snapshot.connz.connections, options.sort):
        lines.append(
            _HEADER.format(
                conn.address,
                conn.cid,
                conn.subscriptions,
                conn.pending_bytes,
                psize(conn.out_msgs),
                psize(conn.in_msgs),
                psize(conn.out_bytes),
                psize(conn.in_bytes),
                conn.lang,
                conn.version,
            )
        )
    return "\n".join(lines)
