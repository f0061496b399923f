"""
Signal Masking

Critical sections the relay handlers must not interrupt. Blocked signals stay
pending and are delivered, handlers and all, when the section ends.
"""

import signal
from contextlib import contextmanager
from typing import Iterable, Iterator


@contextmanager
def blocked_signals(signals: Iterable[int]) -> Iterator[None]:
    """Hold back ``signals`` for the calling thread until the block exits."""
    signals = set(signals)
    previous = signal.pthread_sigmask(signal.SIG_BLOCK, signals)
    try:
        yield
    finally:
        signal.pthread_sigmask(signal.SIG_SETMASK, previous)


def unblock_signals(signals: Iterable[int]) -> None:
    signal.pthread_sigmask(signal.SIG_UNBLOCK, set(signals))
