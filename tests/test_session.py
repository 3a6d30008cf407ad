# tests/test_session.py
import io
import os
import signal
import socket
import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from mc4sv.config import build_session_config
from mc4sv.errors import (
    GroupJoinError,
    InterfaceNotFound,
    InvalidMulticastAddress,
    ReceiveError,
    ServiceResolutionError,
)
from mc4sv.report import SessionReport
from mc4sv.session import run_session


def free_udp_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def send_later(port, sizes, delay=0.2):
    """Sends one datagram per size to 127.0.0.1:port from a fresh socket each."""

    def send():
        for size in sizes:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
                sender.sendto(b"z" * size, ("127.0.0.1", port))

    timer = threading.Timer(delay, send)
    timer.start()
    return timer


def test_session_counts_datagrams_until_timeout():
    """
    Three datagrams of 10, 0 and 1400 bytes arrive within a 1 second
    window; each gets a line, then the summary follows a blank line.
    """
    port = free_udp_port()
    config = build_session_config({"service": str(port), "timeout": 1})
    membership = MagicMock()
    out, err = io.StringIO(), io.StringIO()

    sender = send_later(port, (10, 0, 1400))
    start = time.monotonic()
    stats = run_session(config, out=out, err=err, membership=membership)
    elapsed = time.monotonic() - start
    sender.join()

    assert stats.packets == 3
    assert stats.bytes == 1410
    assert elapsed < 3

    lines = out.getvalue().split("\n")
    assert len(lines) == 6
    assert [line.split(" (")[1] for line in lines[:3]] == ["10)", "0)", "1400)"]
    assert all(line.startswith("received from 127.0.0.1:") for line in lines[:3])
    assert lines[3] == ""
    assert lines[4] == "3 packets (1410 byte) received."
    assert lines[5] == ""

    membership.join.assert_called_once()
    membership.leave.assert_called_once()
    assert "[INFO] Stopping: timeout" in err.getvalue()


def test_session_quiet_prints_only_summary():
    port = free_udp_port()
    config = build_session_config({"service": str(port), "timeout": 1, "quiet": True})
    out, err = io.StringIO(), io.StringIO()

    sender = send_later(port, (1, 2, 3, 4))
    run_session(config, out=out, err=err, membership=MagicMock())
    sender.join()

    assert out.getvalue() == "\n4 packets (10 byte) received.\n"
    assert err.getvalue() == ""


def test_session_ends_on_sigint():
    port = free_udp_port()
    config = build_session_config({"service": str(port), "timeout": 0})
    out, err = io.StringIO(), io.StringIO()

    timer = threading.Timer(0.3, os.kill, (os.getpid(), signal.SIGINT))
    timer.start()
    stats = run_session(config, out=out, err=err, membership=MagicMock())
    timer.join()

    assert stats.packets == 0
    assert out.getvalue() == "\n0 packets (0 byte) received.\n"
    assert "[INFO] Stopping: interrupt" in err.getvalue()


def test_session_rejects_bad_group():
    config = build_session_config({"group": "not-an-ip", "service": "5000"})

    with patch("mc4sv.session.open_group_socket") as mock_open:
        with pytest.raises(InvalidMulticastAddress, match="not-an-ip: invalid"):
            run_session(config, out=io.StringIO(), err=io.StringIO())
    mock_open.assert_not_called()


@patch("mc4sv.session.open_group_socket")
@patch("mc4sv.session.resolve_interface_address")
def test_session_unknown_interface_opens_no_socket(mock_resolve, mock_open):
    mock_resolve.side_effect = InterfaceNotFound(
        "bogus0: interface does not exist or is invalid"
    )
    config = build_session_config({"interface": "bogus0", "quiet": True})
    out = io.StringIO()

    with pytest.raises(InterfaceNotFound):
        run_session(config, out=out, err=io.StringIO())

    mock_resolve.assert_called_once_with("bogus0")
    mock_open.assert_not_called()
    assert out.getvalue() == ""


@patch("mc4sv.session.resolve_bind_addresses")
@patch("mc4sv.session.resolve_interface_address")
def test_session_joins_on_resolved_interface(mock_resolve, mock_bind):
    mock_resolve.return_value = "127.0.0.1"
    mock_bind.return_value = [
        (socket.AF_INET, socket.SOCK_DGRAM, 0, ("127.0.0.1", 0))
    ]
    membership = MagicMock()
    config = build_session_config(
        {"interface": "lo", "group": "239.1.2.3", "timeout": 1, "quiet": True}
    )

    run_session(config, out=io.StringIO(), err=io.StringIO(), membership=membership)

    join_args, _ = membership.join.call_args
    assert join_args[1:] == ("239.1.2.3", "127.0.0.1")
    mock_bind.assert_called_once_with("discard")


def test_session_join_failure():
    membership = MagicMock()
    membership.join.side_effect = OSError(19, "[IP_ADD_MEMBERSHIP] No such device")
    config = build_session_config({"service": str(free_udp_port())})
    out = io.StringIO()

    with pytest.raises(GroupJoinError, match="join"):
        run_session(config, out=out, err=io.StringIO(), membership=membership)
    assert out.getvalue() == ""


@patch("mc4sv.session.receive_loop")
def test_session_receive_failure_closes_socket_without_summary(mock_loop):
    mock_loop.side_effect = ReceiveError("recvfrom: Connection refused")
    membership = MagicMock()
    config = build_session_config({"service": str(free_udp_port()), "timeout": 5})
    out = io.StringIO()

    with pytest.raises(ReceiveError):
        run_session(config, out=out, err=io.StringIO(), membership=membership)

    assert out.getvalue() == ""
    membership.leave.assert_called_once()
    sock = membership.leave.call_args[0][0]
    assert sock.fileno() == -1
    assert signal.getitimer(signal.ITIMER_REAL)[0] == 0


def test_session_second_interrupt_during_wrap_up_keeps_summary():
    """
    SIGINT arriving after the timer already ended the loop, while the
    session is printing its wrap-up, is redundant: the summary is still
    printed and nothing is raised.
    """
    port = free_udp_port()
    config = build_session_config({"service": str(port), "timeout": 1})
    out, err = io.StringIO(), io.StringIO()
    real_info = SessionReport.info

    def info_then_interrupt(self, message):
        real_info(self, message)
        if message.startswith("Stopping"):
            os.kill(os.getpid(), signal.SIGINT)

    with patch.object(SessionReport, "info", info_then_interrupt):
        stats = run_session(config, out=out, err=err, membership=MagicMock())

    assert stats.packets == 0
    assert out.getvalue() == "\n0 packets (0 byte) received.\n"
    assert "[INFO] Stopping: timeout" in err.getvalue()


def test_session_rejects_group_with_nul():
    config = build_session_config({"group": "224.0.0.1\0", "service": "5000"})

    with patch("mc4sv.session.open_group_socket") as mock_open:
        with pytest.raises(InvalidMulticastAddress, match="invalid multicast group"):
            run_session(config, out=io.StringIO(), err=io.StringIO())
    mock_open.assert_not_called()


@patch("mc4sv.session.open_group_socket")
@patch("mc4sv.session.resolve_bind_addresses")
def test_session_empty_service_goes_to_resolver(mock_bind, mock_open):
    mock_bind.side_effect = ServiceResolutionError(": Servname not supported")
    config = build_session_config({"service": ""})

    with pytest.raises(ServiceResolutionError):
        run_session(config, out=io.StringIO(), err=io.StringIO())

    mock_bind.assert_called_once_with("")
    mock_open.assert_not_called()
