# mc4sv/session.py
import socket

from .errors import InvalidMulticastAddress
from .group_socket import close_group_socket, open_group_socket
from .receiver import CancellationSources, CancellationToken, receive_loop
from .report import SessionReport, SessionStats
from .resolver import resolve_bind_addresses, resolve_interface_address


def run_session(config, out=None, err=None, membership=None):
    """
    Runs one receive session described by a SessionConfig.

    Resolves the interface and the bind address, joins the group, then
    receives until the timeout expires or SIGINT arrives, and prints
    the summary. The socket is closed on every path out of here once
    it has been opened.

    Returns the SessionStats. Fatal problems are raised as Mc4svError
    subclasses.
    """
    report = SessionReport(quiet=config.quiet, out=out, err=err)

    try:
        socket.inet_aton(config.group)
    except (OSError, ValueError):
        # ValueError: embedded NUL.
        raise InvalidMulticastAddress(f"{config.group}: invalid multicast group")

    interface_ip = None
    if config.interface:
        interface_ip = resolve_interface_address(config.interface)

    candidates = resolve_bind_addresses(config.service)
    handle = open_group_socket(
        candidates, config.group, interface_ip, membership=membership, report=report
    )

    stats = SessionStats()
    try:
        with CancellationToken() as token:
            with CancellationSources(token, config.timeout):
                receive_loop(handle.sock, token, report, stats)
                # Handlers stay installed so a second trigger is a no-op.
                report.info(f"Stopping: {token.reason}")
                report.log_summary(stats)
    finally:
        close_group_socket(handle, report)

    return stats
