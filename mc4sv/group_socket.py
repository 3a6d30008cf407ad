# mc4sv/group_socket.py
import socket

from .errors import GroupJoinError
from .kernel_ffi import INADDR_ANY, MembershipInterface


class GroupSocket:
    """
    A bound UDP socket holding one group membership. The membership
    exists from a successful join until close(); a socket never holds
    more than one.
    """

    def __init__(self, sock, group, interface, bind_address, membership):
        self.sock = sock
        self.group = group
        self.interface = interface
        self.bind_address = bind_address
        self.membership = membership
        self.closed = False

    def fileno(self):
        return self.sock.fileno()


def open_group_socket(candidates, group, interface=None, membership=None, report=None):
    """
    Tries each bind candidate in turn: create a socket, bind it, then
    join `group` on `interface` (None means the default interface).
    Returns a GroupSocket for the first candidate where all three steps
    succeed. Sockets from failed attempts are closed before moving on.

    Raises GroupJoinError naming the operation that failed last.
    """
    if membership is None:
        membership = MembershipInterface()

    cause, last_error = "socket", None
    for family, socktype, proto, sockaddr in candidates:
        try:
            sock = socket.socket(family, socktype, proto)
        except OSError as e:
            cause, last_error = "socket", e
            _warn(report, cause, sockaddr, e)
            continue

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(sockaddr)
        except OSError as e:
            cause, last_error = "bind", e
            _warn(report, cause, sockaddr, e)
            sock.close()
            continue

        try:
            membership.join(sock, group, interface)
        except OSError as e:
            cause, last_error = "join", e
            _warn(report, cause, sockaddr, e)
            sock.close()
            continue

        if report is not None:
            host, port = sockaddr[:2]
            report.info(
                f"Joined {group} on {interface or INADDR_ANY}, bound to {host}:{port}"
            )
        return GroupSocket(sock, group, interface, sockaddr, membership)

    raise GroupJoinError(cause, last_error)


def close_group_socket(handle, report=None):
    """
    Drops the group membership and closes the socket. The close always
    happens, even if leaving the group fails.
    """
    if handle.closed:
        return
    try:
        handle.membership.leave(handle.sock, handle.group, handle.interface)
    except OSError as e:
        if report is not None:
            report.warning(f"Could not leave {handle.group}: {e}")
    finally:
        handle.sock.close()
        handle.closed = True


def _warn(report, cause, sockaddr, error):
    if report is not None:
        host, port = sockaddr[:2]
        report.warning(f"{cause} failed for {host}:{port}: {error}")
