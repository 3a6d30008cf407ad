# mc4sv/report.py
import sys
from collections import namedtuple

# One per received datagram, dropped once reported.
ReceiveEvent = namedtuple("ReceiveEvent", ["address", "port", "length"])


class SessionStats:
    """Running totals for a receive session. Counters only ever grow."""

    def __init__(self):
        self.packets = 0
        self.bytes = 0

    def record(self, event):
        self.packets += 1
        self.bytes += max(event.length, 0)


class SessionReport:
    """
    Writes the per-packet lines and the final summary to `out`, and
    diagnostics to `err`.
    """

    def __init__(self, quiet=False, out=None, err=None):
        self.quiet = quiet
        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr

    def log_packet(self, event):
        """Prints one line for a received datagram unless in quiet mode."""
        if self.quiet:
            return
        print(
            f"received from {event.address}:{event.port} ({event.length})",
            file=self.out,
            flush=True,
        )

    def log_summary(self, stats):
        """Prints the totals after a blank line. Always printed, even when quiet."""
        print(
            f"\n{stats.packets} packets ({stats.bytes} byte) received.",
            file=self.out,
            flush=True,
        )

    def info(self, message):
        if not self.quiet:
            print(f"[INFO] {message}", file=self.err)

    def warning(self, message):
        print(f"[WARNING] {message}", file=self.err)
