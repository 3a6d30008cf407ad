# mc4sv/kernel_ffi.py
import os
import socket
import sys

from cffi import FFI

# --- C-level Constants for setsockopt ---
# Source: <uapi/linux/in.h>
IPPROTO_IP = socket.IPPROTO_IP
IP_ADD_MEMBERSHIP = socket.IP_ADD_MEMBERSHIP  # Join a multicast group.
IP_DROP_MEMBERSHIP = socket.IP_DROP_MEMBERSHIP  # Leave a multicast group.

INADDR_ANY = "0.0.0.0"


class MembershipInterface:
    """
    Encapsulates the kernel's IPv4 group membership API via CFFI.

    Joining a group is a setsockopt(IP_ADD_MEMBERSHIP) on the receiving
    socket with a `struct ip_mreq` naming the group and the local
    interface address. Nothing else lives here: callers decide which
    socket and which addresses.
    """

    # Source: <uapi/linux/in.h>
    C_HEADER_CODE = """
        typedef unsigned int socklen_t;

        struct in_addr {
            unsigned int s_addr; // IP address in network byte order
        };

        /*
         * The ip_mreq struct names a multicast group and the local
         * interface (by address) on which to join or leave it.
         * INADDR_ANY lets the kernel pick the interface from its routes.
         */
        struct ip_mreq {
            struct in_addr imr_multiaddr; // Multicast group address.
            struct in_addr imr_interface; // Local IPv4 address of interface.
        };

        int setsockopt(int sockfd, int level, int optname, const void *optval,
                       socklen_t optlen);
    """

    def __init__(self):
        self.ffi = FFI()
        self.ffi.cdef(self.C_HEADER_CODE)
        self.libc = self.ffi.dlopen("c")

    def _check_call(self, description, ret_code):
        """Checks the return code of a C call and raises an OSError if it failed."""
        if ret_code < 0:
            errno = self.ffi.errno
            raise OSError(errno, f"[{description}] {os.strerror(errno)}")

    def _build_mreq(self, group_ip, interface_ip):
        mreq = self.ffi.new("struct ip_mreq *")
        # inet_aton gives network order bytes; s_addr stores them as-is.
        mreq.imr_multiaddr.s_addr = int.from_bytes(
            socket.inet_aton(group_ip), sys.byteorder
        )
        mreq.imr_interface.s_addr = int.from_bytes(
            socket.inet_aton(interface_ip or INADDR_ANY), sys.byteorder
        )
        return mreq

    def join(self, sock, group_ip, interface_ip=None):
        """
        Joins `group_ip` on the socket using IP_ADD_MEMBERSHIP.

        :param sock: A bound UDP socket.
        :param group_ip: The group address string (e.g., "224.0.0.1").
        :param interface_ip: Local interface address, or None for the
                             kernel's default interface.
        """
        mreq = self._build_mreq(group_ip, interface_ip)
        ret = self.libc.setsockopt(
            sock.fileno(),
            IPPROTO_IP,
            IP_ADD_MEMBERSHIP,
            mreq,
            self.ffi.sizeof("struct ip_mreq"),
        )
        self._check_call("IP_ADD_MEMBERSHIP", ret)

    def leave(self, sock, group_ip, interface_ip=None):
        """Leaves a group previously joined with join() using IP_DROP_MEMBERSHIP."""
        mreq = self._build_mreq(group_ip, interface_ip)
        ret = self.libc.setsockopt(
            sock.fileno(),
            IPPROTO_IP,
            IP_DROP_MEMBERSHIP,
            mreq,
            self.ffi.sizeof("struct ip_mreq"),
        )
        self._check_call("IP_DROP_MEMBERSHIP", ret)
