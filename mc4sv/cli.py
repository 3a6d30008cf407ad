# mc4sv/cli.py
import argparse
import sys

from .config import DEFAULT_GROUP, DEFAULT_SERVICE, build_session_config
from .errors import Mc4svError, UsageError
from .session import run_session

USAGE = "mc4sv [-i interface] [-q] [-t timeout] [mcast-group [service]]"


class UsageArgumentParser(argparse.ArgumentParser):
    """An ArgumentParser that reports bad usage as UsageError instead of exiting 2."""

    def error(self, message):
        raise UsageError(message)


def build_parser():
    parser = UsageArgumentParser(
        prog="mc4sv",
        usage=USAGE,
        description="Join an IPv4 multicast group and report the datagrams received.",
    )
    parser.add_argument(
        "-i",
        dest="interface",
        metavar="interface",
        help="Interface to join the group on (default: chosen by the kernel)",
    )
    parser.add_argument(
        "-q",
        dest="quiet",
        action="store_true",
        help="Do not print a line per received datagram",
    )
    parser.add_argument(
        "-t",
        dest="timeout",
        metavar="timeout",
        type=int,
        default=0,
        help="Stop after this many seconds, 0-3600 (default: 0, run until interrupted)",
    )
    parser.add_argument(
        "group",
        nargs="?",
        default=DEFAULT_GROUP,
        metavar="mcast-group",
        help=f"Multicast group to join (default: {DEFAULT_GROUP})",
    )
    parser.add_argument(
        "service",
        nargs="?",
        default=DEFAULT_SERVICE,
        help=f"Service name or UDP port to listen on (default: {DEFAULT_SERVICE})",
    )
    return parser


def parse_config(argv=None):
    """Parses argv into a SessionConfig. Raises UsageError on bad input."""
    args = build_parser().parse_args(argv)
    return build_session_config(
        {
            "group": args.group,
            "service": args.service,
            "interface": args.interface or None,
            "quiet": args.quiet,
            "timeout": args.timeout,
        }
    )


def main(argv=None):
    try:
        config = parse_config(argv)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        print(f"usage: {USAGE}", file=sys.stderr)
        sys.exit(1)

    try:
        run_session(config)
    except Mc4svError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
