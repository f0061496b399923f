"""
wl-restart

Compositor restart helper. Keeps a Wayland listening socket alive while the
compositor that serves it crashes and is restarted.
"""

from .data import (
    SupervisorContext, SupervisorOptions, WrapperError, UsageError, SocketError,
    HandoffError, SpawnError, WaitError, UnclassifiableExitError, TooManyRestartsError
)
from .types import HandoffMode, Action, Success, Failed, Killed, Reclaimed
from .supervisor import RestartSupervisor, options

__version__ = "0.1.0"

__all__ = [
    # Context and configuration
    'SupervisorContext',
    'SupervisorOptions',
    'options',
    'RestartSupervisor',

    # Handoff modes and outcomes
    'HandoffMode',
    'Action',
    'Success',
    'Failed',
    'Killed',
    'Reclaimed',

    # Errors
    'WrapperError',
    'UsageError',
    'SocketError',
    'HandoffError',
    'SpawnError',
    'WaitError',
    'UnclassifiableExitError',
    'TooManyRestartsError',
]
