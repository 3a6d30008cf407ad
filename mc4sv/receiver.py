# mc4sv/receiver.py
import select
import signal
import socket

from .errors import ReceiveError, SignalSetupError
from .report import ReceiveEvent, SessionStats

# Larger than any IPv4 UDP payload (65507), so datagrams are never truncated.
RECV_BUFSIZE = 65536


class CancellationToken:
    """
    A one-shot latch telling the receive loop to stop.

    The latch is backed by a socket pair so that the loop can wait on it
    with select() alongside the receiving socket. Only the first
    cancel() has any effect; its reason is kept.
    """

    def __init__(self):
        self._reader, self._writer = socket.socketpair()
        self._reader.setblocking(False)
        self._writer.setblocking(False)
        self.reason = None

    @property
    def cancelled(self):
        return self.reason is not None

    def cancel(self, reason="cancelled"):
        if self.reason is not None:
            return
        self.reason = reason
        self._writer.send(b"\0")

    def fileno(self):
        return self._reader.fileno()

    def close(self):
        self._reader.close()
        self._writer.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


class CancellationSources:
    """
    Installs the two triggers of a token: SIGINT, and a one-shot
    SIGALRM timer when `timeout` is non-zero. Both handlers do nothing
    but cancel the token; the loop observes it on its next wait.

    Used as a context manager. Leaving it disarms the timer and
    restores whatever handlers were installed before.
    """

    def __init__(self, token, timeout=0):
        self.token = token
        self.timeout = timeout
        self._previous = {}

    def _on_interrupt(self, signum, frame):
        self.token.cancel("interrupt")

    def _on_alarm(self, signum, frame):
        self.token.cancel("timeout")

    def install(self):
        try:
            self._previous[signal.SIGINT] = signal.signal(
                signal.SIGINT, self._on_interrupt
            )
            if self.timeout > 0:
                self._previous[signal.SIGALRM] = signal.signal(
                    signal.SIGALRM, self._on_alarm
                )
                signal.setitimer(signal.ITIMER_REAL, self.timeout)
        except (OSError, ValueError) as e:
            # ValueError: not called from the main thread.
            self.uninstall()
            raise SignalSetupError(f"could not install cancellation sources: {e}")

    def uninstall(self):
        if signal.SIGALRM in self._previous:
            signal.setitimer(signal.ITIMER_REAL, 0)
        for signum, handler in self._previous.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._previous.clear()

    def __enter__(self):
        self.install()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.uninstall()


def receive_loop(sock, token, report, stats=None, bufsize=RECV_BUFSIZE):
    """
    Receives datagrams from `sock` until `token` is cancelled.

    Each datagram is counted in `stats` and handed to
    `report.log_packet`. Once the token fires the loop returns without
    attempting another receive. Any receive failure raises ReceiveError.

    Returns the SessionStats.
    """
    if stats is None:
        stats = SessionStats()
    buffer = bytearray(bufsize)

    # The wait happens in select(); the read itself must never block,
    # or a readable-but-empty socket would hold off cancellation.
    sock.setblocking(False)

    while not token.cancelled:
        try:
            readable, _, _ = select.select([sock, token], [], [])
        except OSError as e:
            raise ReceiveError(f"select: {e}")

        if token.cancelled or token in readable:
            break

        try:
            nbytes, (address, port) = sock.recvfrom_into(buffer)
        except BlockingIOError:
            continue
        except OSError as e:
            raise ReceiveError(f"recvfrom: {e}")

        event = ReceiveEvent(address, port, nbytes)
        stats.record(event)
        report.log_packet(event)

    return stats
