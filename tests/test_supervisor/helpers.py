"""
Outcome sequences for supervisor tests.

Each helper returns a list of outcomes for ScriptedChild to replay.
"""

import signal

from wlrestart.types import Failed, Killed, Reclaimed, Success


def crashes(count, code=1):
    """``count`` consecutive nonzero exits."""
    return [Failed(code) for _ in range(count)]


def crash_then_succeed(count, code=1):
    return crashes(count, code) + [Success()]


def segfaults(count):
    return [Killed(signal.SIGSEGV) for _ in range(count)]


def reload():
    return Killed(signal.SIGHUP)


def soft_reset():
    return Killed(signal.SIGTRAP)


def reclaimed():
    return Reclaimed()
