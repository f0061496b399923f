"""
Supervisor Data Types

The long-lived supervisor context, its configuration, and the exception
taxonomy shared by every component.
"""

import logging
import os
import signal
from dataclasses import dataclass
from typing import Optional, Tuple

from wlrestart.sigmask import blocked_signals
from wlrestart.wlsocket import ResourceHandle
from wlrestart.types import HandoffMode

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESTARTS = 10


@dataclass(frozen=True)
class SupervisorOptions:
    """Supervisor configuration, fixed for the lifetime of the process."""
    max_restarts: int = DEFAULT_MAX_RESTARTS
    mode: HandoffMode = HandoffMode.KDE
    export_restart_count: bool = True

    # Signal conventions
    reload_signal: int = signal.SIGHUP
    soft_reset_signal: int = signal.SIGTRAP
    quit_signals: Tuple[int, ...] = (signal.SIGINT, signal.SIGTERM)

    @property
    def relay_signals(self) -> Tuple[int, ...]:
        """Every signal the relay installs a handler for."""
        return (*self.quit_signals, self.reload_signal)


@dataclass
class SupervisorContext:
    """
    State carried across compositor restarts.

    ``tracked_pid`` is the only field signal handlers touch. It is None
    whenever no child is expected to be running, or once a handler has
    taken over the child.
    """
    resource: Optional[ResourceHandle]
    command_template: Tuple[str, ...]
    handoff_mode: HandoffMode = HandoffMode.KDE
    max_restarts: int = DEFAULT_MAX_RESTARTS
    tracked_pid: Optional[int] = None
    restart_count: int = 0

    # Written only by the supervisor, so a reclaimed child can still be collected
    launched_pid: Optional[int] = None
    # Held back while the context is being changed outside a handler
    relay_signals: Tuple[int, ...] = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)

    @classmethod
    def from_options(cls, resource: ResourceHandle, command, opts: SupervisorOptions) -> 'SupervisorContext':
        return cls(
            resource=resource,
            command_template=tuple(command),
            handoff_mode=opts.mode,
            max_restarts=opts.max_restarts,
            relay_signals=opts.relay_signals,
        )

    def teardown(self) -> None:
        """
        Shared exit path: release the socket and stop any tracked child.

        Safe to call more than once; the resource is released only the first
        time. The relay signals are blocked throughout, so a quit signal
        arriving mid-way runs its own teardown only after this one finished.
        """
        with blocked_signals(self.relay_signals):
            resource, self.resource = self.resource, None
            if resource is not None:
                resource.destroy()
                logger.debug(f"Released socket {resource.display_name}")

            pid, self.tracked_pid = self.tracked_pid, None
            if pid is not None:
                try:
                    os.kill(pid, signal.SIGTERM)
                except ProcessLookupError:
                    pass
                logger.debug(f"Sent SIGTERM to compositor {pid}")


# =============================================================================
# Errors
# =============================================================================

class WrapperError(Exception):
    """Base exception for fatal supervisor conditions."""
    pass


class UsageError(WrapperError):
    """Raised for bad flags, missing flag arguments, or unknown options."""
    pass


class SocketError(WrapperError):
    """Raised when the listening socket cannot be created."""
    pass


class HandoffError(WrapperError):
    """Raised when the socket cannot be described to the compositor."""
    pass


class SpawnError(WrapperError):
    """Raised when the compositor process cannot be forked."""
    pass


class WaitError(WrapperError):
    """Raised when waiting for the compositor fails for a non-transient reason."""
    pass


class UnclassifiableExitError(WrapperError):
    """Raised when neither an exit code nor a termination signal can be determined."""
    pass


class TooManyRestartsError(WrapperError):
    """Raised when the restart budget is exhausted."""
    pass
