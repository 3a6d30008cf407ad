# mc4sv/resolver.py
import socket

from pyroute2 import IPRoute
from pyroute2.netlink.exceptions import NetlinkError

from .errors import InterfaceNotFound, ServiceResolutionError


def resolve_interface_address(if_name):
    """
    Returns the IPv4 address assigned to the interface named `if_name`.

    Addresses are dumped over netlink and matched on their label, which
    for IPv4 is the interface name (or an alias such as "eth0:1"). The
    match is exact, so "eth" never matches "eth0".
    """
    try:
        ip = IPRoute()
    except OSError as e:
        raise InterfaceNotFound(f"{if_name}: could not open netlink socket: {e}")

    try:
        for entry in ip.get_addr(family=socket.AF_INET):
            attrs = dict(entry["attrs"])
            if attrs.get("IFA_LABEL") != if_name:
                continue
            address = attrs.get("IFA_LOCAL") or attrs.get("IFA_ADDRESS")
            if address:
                return address
    except (NetlinkError, OSError) as e:
        raise InterfaceNotFound(f"{if_name}: could not list addresses: {e}")
    finally:
        ip.close()

    raise InterfaceNotFound(f"{if_name}: interface does not exist or is invalid")


def resolve_bind_addresses(service):
    """
    Resolves `service` (a name like "discard" or a numeric port) into
    passive IPv4/UDP candidates for bind().

    Returns a list of (family, type, proto, sockaddr) tuples in the
    order getaddrinfo returned them.
    """
    try:
        results = socket.getaddrinfo(
            None,
            service,
            socket.AF_INET,
            socket.SOCK_DGRAM,
            0,
            socket.AI_PASSIVE,
        )
    except (socket.gaierror, UnicodeError) as e:
        raise ServiceResolutionError(f"{service}: {e}")

    candidates = [
        (family, socktype, proto, sockaddr)
        for family, socktype, proto, _, sockaddr in results
        if family == socket.AF_INET and socktype == socket.SOCK_DGRAM
    ]
    if not candidates:
        raise ServiceResolutionError(f"{service}: no IPv4 datagram address")
    return candidates
