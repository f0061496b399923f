"""
Compositor Launcher

Forks the compositor and replaces the child's image with the target program.
The parent gets the new pid back; the child either becomes the compositor or
dies with EXEC_FAILURE_STATUS, which the parent later reaps as a normal
nonzero exit.
"""

import logging
import os
import signal
from typing import Dict, Iterable, List

from wlrestart.data import SpawnError
from wlrestart.sigmask import unblock_signals
from wlrestart.types import HandoffMode
from wlrestart.wlsocket import ResourceHandle

logger = logging.getLogger(__name__)

# From <systemd/sd-daemon.h>, the first descriptor of the activation protocol
SD_LISTEN_FDS_START = 3

# Shell convention for "command not found / not executable"
EXEC_FAILURE_STATUS = 127

_RESET_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)

_INHERITED_IGNORES = tuple(
    getattr(signal, name) for name in ("SIGPIPE", "SIGXFSZ") if hasattr(signal, name)
)


def launch(
    argv: List[str],
    env_overrides: Dict[str, str],
    resource: ResourceHandle,
    mode: HandoffMode,
    reset_signals: Iterable[int] = _RESET_SIGNALS,
) -> int:
    """
    Start one compositor incarnation.

    :param argv: Full command line, argv[0] is looked up on PATH
    :param env_overrides: Variables added to the inherited environment
    :param resource: Listening socket the compositor inherits
    :param mode: Handoff convention, SYSTEMD moves the descriptor
    :param reset_signals: Signals restored to their default action and unblocked
        in the child
    :returns: pid of the child
    :raises SpawnError: If fork itself fails
    """
    env = dict(os.environ)
    env.update(env_overrides)
    fd = resource.fileno()
    reset_signals = tuple(reset_signals)

    try:
        pid = os.fork()
    except OSError as e:
        raise SpawnError(f"failed to fork compositor: {e.strerror}") from e

    if pid != 0:
        logger.debug(f"Spawned compositor {pid}: {argv}")
        return pid

    # Child. Never returns to the caller.
    try:
        for sig in reset_signals:
            signal.signal(sig, signal.SIG_DFL)
        # The interpreter ignores these at startup; exec would keep them ignored
        for sig in _INHERITED_IGNORES:
            signal.signal(sig, signal.SIG_DFL)
        # Only now may a signal held back across fork take effect
        unblock_signals(reset_signals)
        _prepare_child(env, fd, mode)
        os.execvpe(argv[0], argv, env)
    except OSError as e:
        logger.error(f"failed to start compositor {argv[0]!r}: {e.strerror}")
    finally:
        os._exit(EXEC_FAILURE_STATUS)


def _prepare_child(env: Dict[str, str], fd: int, mode: HandoffMode) -> None:
    if mode is not HandoffMode.SYSTEMD:
        os.set_inheritable(fd, True)
        return

    env["LISTEN_PID"] = str(os.getpid())
    if fd != SD_LISTEN_FDS_START:
        os.dup2(fd, SD_LISTEN_FDS_START)
        # Don't leak the socket under a second number
        os.close(fd)
    else:
        os.set_inheritable(fd, True)
