"""
Command Line Entry Point

    wl-restart [[options] --] <compositor args>

Parses options, creates the listening socket, installs the signal relay and
hands control to the restart supervisor. Every fatal condition ends up in
main(), which reports it on stderr and returns 1.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional, Sequence

from result import Err, Ok

from wlrestart import supervisor
from wlrestart.data import (
    DEFAULT_MAX_RESTARTS, SocketError, SupervisorContext, UsageError, WrapperError
)
from wlrestart.signals import SignalRelay
from wlrestart.types import HandoffMode
from wlrestart.wlsocket import WaylandSocket

logger = logging.getLogger(__name__)

LOG_LEVEL_VAR = "WL_RESTART_LOG_LEVEL"

DESCRIPTION = (
    "compositor restart helper. restarts your compositor when it\n"
    "crashes and keeps the wayland socket alive."
)


class ArgumentParser(argparse.ArgumentParser):
    """Argument parser that raises UsageError instead of exiting with status 2."""

    def error(self, message):
        raise UsageError(f"{message}, see --help")


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid restart count '{value}'")
    if number < 0:
        raise argparse.ArgumentTypeError(f"restart count must not be negative: {number}")
    return number


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="wl-restart",
        usage="%(prog)s [[options] --] <compositor args>",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument(
        "-n", "--max-restarts",
        metavar="N",
        type=_non_negative_int,
        default=DEFAULT_MAX_RESTARTS,
        help=f"restart a maximum of N times (default {DEFAULT_MAX_RESTARTS})",
    )
    parser.add_argument(
        "--kde", dest="mode", action="store_const", const=HandoffMode.KDE,
        help="pass socket via cli options --socket and --wayland-fd (default)",
    )
    parser.add_argument(
        "--cli", dest="mode", action="store_const", const=HandoffMode.CLI,
        help="pass socket via cli options --wayland-socket and --wayland-fd",
    )
    parser.add_argument(
        "--env", dest="mode", action="store_const", const=HandoffMode.ENV,
        help="pass socket via env vars WAYLAND_SOCKET_NAME and WAYLAND_SOCKET_FD",
    )
    parser.add_argument(
        "--systemd", dest="mode", action="store_const", const=HandoffMode.SYSTEMD,
        help="pass socket via env vars LISTEN_PID, LISTEN_FDS, and LISTEN_FDNAMES",
    )
    parser.add_argument(
        "--no-restart-count", dest="export_restart_count", action="store_false",
        help="do not export WL_RESTART_COUNT to restarted compositors",
    )
    parser.add_argument("command", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
    parser.set_defaults(mode=HandoffMode.KDE)
    return parser


def parse_args(parser: ArgumentParser, argv: Sequence[str]) -> argparse.Namespace:
    """
    Parse wrapper options up to the first compositor argument.

    A compositor command starting with ``-`` has to follow an explicit ``--``.

    :raises UsageError: For unknown options or missing option arguments
    """
    argv = list(argv)
    args = parser.parse_args(argv)
    # REMAINDER keeps the separator on some Python versions
    if args.command and args.command[0] == "--":
        args.command = args.command[1:]

    command = args.command
    if command and command[0].startswith("-"):
        separated = len(argv) > len(command) and argv[-len(command) - 1] == "--"
        if not separated:
            parser.error(f"unrecognized option '{command[0]}'")
    return args


def configure_logging() -> None:
    level = os.environ.get(LOG_LEVEL_VAR, "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[List[str]] = None) -> int:
    configure_logging()
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    ctx: Optional[SupervisorContext] = None
    relay: Optional[SignalRelay] = None
    try:
        args = parse_args(parser, argv)
        if not args.command:
            parser.print_help()
            return 0

        opts = supervisor.options(
            max_restarts=args.max_restarts,
            mode=args.mode,
            export_restart_count=args.export_restart_count,
        )

        match WaylandSocket.acquire():
            case Ok(sock):
                resource = sock
            case Err(reason):
                raise SocketError(f"failed to create wayland socket: {reason}")

        ctx = SupervisorContext.from_options(resource, args.command, opts)
        relay = SignalRelay(ctx, opts)
        relay.install()
        logger.info(f"listening on {resource.display_name}")

        return supervisor.RestartSupervisor(ctx, opts).run()
    except WrapperError as e:
        logger.error(str(e))
        return 1
    finally:
        if ctx is not None:
            ctx.teardown()
        if relay is not None:
            relay.restore()
