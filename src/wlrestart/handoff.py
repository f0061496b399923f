"""
Socket Handoff

Turns the operator's compositor command line into the final argv and
environment overlay that tell the compositor where the listening socket is.

    mode     argv additions                           env additions
    KDE      --socket <name> --wayland-fd <fd>        -
    CLI      --wayland-socket <name> --wayland-fd <fd> -
    ENV      -                                        WAYLAND_SOCKET_NAME, WAYLAND_SOCKET_FD
    SYSTEMD  -                                        LISTEN_FDNAMES, LISTEN_FDS=1
"""

import logging
from typing import Dict, List, Sequence, Tuple

from wlrestart.data import HandoffError
from wlrestart.types import HandoffMode
from wlrestart.wlsocket import ResourceHandle

logger = logging.getLogger(__name__)

_FLAG_NAMES = {
    HandoffMode.KDE: ("--socket", "--wayland-fd"),
    HandoffMode.CLI: ("--wayland-socket", "--wayland-fd"),
}

_ENV_NAMES = {
    HandoffMode.ENV: ("WAYLAND_SOCKET_NAME", "WAYLAND_SOCKET_FD"),
    HandoffMode.SYSTEMD: ("LISTEN_FDNAMES", "LISTEN_FDS"),
}


def format_fd(fd) -> str:
    """Render a descriptor number for the command line or environment."""
    if isinstance(fd, bool) or not isinstance(fd, int) or fd < 0:
        raise HandoffError(f"failed to convert fd to string: {fd!r}")
    return str(fd)


def build(
    template: Sequence[str],
    mode: HandoffMode,
    resource: ResourceHandle,
) -> Tuple[List[str], Dict[str, str]]:
    """
    Materialize the compositor command line for a handoff mode.

    :param template: Program and arguments given by the operator, not modified
    :param mode: Handoff convention
    :param resource: Listening socket to describe
    :returns: (argv, env_overrides)
    :raises HandoffError: If the descriptor cannot be rendered
    """
    argv = list(template)
    env: Dict[str, str] = {}
    name = resource.display_name

    match mode:
        case HandoffMode.KDE | HandoffMode.CLI:
            name_flag, fd_flag = _FLAG_NAMES[mode]
            argv += [name_flag, name, fd_flag, format_fd(resource.fileno())]
        case HandoffMode.ENV:
            name_var, fd_var = _ENV_NAMES[mode]
            env[name_var] = name
            env[fd_var] = format_fd(resource.fileno())
        case HandoffMode.SYSTEMD:
            # Activation passes a descriptor count, the number itself is fixed
            name_var, count_var = _ENV_NAMES[mode]
            env[name_var] = name
            env[count_var] = "1"
        case _:
            raise HandoffError(f"unknown handoff mode: {mode!r}")

    logger.debug(f"Handoff ({mode.value}): argv={argv} env={env}")
    return argv, env
