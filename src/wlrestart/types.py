"""
Supervisor Types

Handoff modes, the normalized termination outcomes produced by the reaper,
and the actions the restart policy can take for each of them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union


class HandoffMode(Enum):
    """How the compositor is told where the listening socket lives."""
    KDE = "kde"          # --socket <name> --wayland-fd <fd>
    CLI = "cli"          # --wayland-socket <name> --wayland-fd <fd>
    ENV = "env"          # WAYLAND_SOCKET_NAME / WAYLAND_SOCKET_FD
    SYSTEMD = "systemd"  # LISTEN_FDNAMES / LISTEN_FDS / LISTEN_PID


class Action(Enum):
    """What the supervisor does after a child lifecycle has been evaluated."""
    STOP = "stop"        # clean exit, supervisor terminates with status 0
    RESTART = "restart"  # crash, counted against the budget
    RESET = "reset"      # requested restart, counter back to zero


# =============================================================================
# Termination outcomes
# =============================================================================

@dataclass(frozen=True)
class Success:
    """Child exited with status 0."""

    def __str__(self):
        return "exited successfully"


@dataclass(frozen=True)
class Failed:
    """Child exited normally with a nonzero status."""
    exit_code: int

    def __str__(self):
        return f"exited with code {self.exit_code}"


@dataclass(frozen=True)
class Killed:
    """Child was terminated by a signal."""
    signal_number: int

    def __str__(self):
        return f"died with signal {self.signal_number}"


@dataclass(frozen=True)
class Reclaimed:
    """
    A signal handler took the child away before the wait could report on it.

    The handler has already requested termination, so this is treated exactly
    like a death by the reload signal.
    """

    def __str__(self):
        return "was reclaimed by a signal handler"


Outcome = Union[Success, Failed, Killed, Reclaimed]
