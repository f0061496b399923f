"""
Signal Relay

Handlers for quit-class and restart-class signals. The only supervisor state
they touch is ``SupervisorContext.tracked_pid``; everything else happens in the
main loop, which re-reads that field after every blocking call.

Python runs handlers on the main thread between bytecodes, so swapping the
pid out of the context in a single statement cannot interleave with the
reaper's snapshot of it.
"""

import logging
import os
import signal
from typing import Any, Callable, Dict, Union

from wlrestart.data import SupervisorContext, SupervisorOptions

logger = logging.getLogger(__name__)

Handler = Union[Callable[[int, Any], Any], int, None]


def signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


class SignalRelay:
    """
    Binds the quit and restart handlers to one supervisor context.

    The context is captured at construction and never rebound. Install the
    relay after the context owns its socket and before the first launch.
    """

    def __init__(self, ctx: SupervisorContext, opts: SupervisorOptions):
        self.ctx = ctx
        self.opts = opts
        self._previous: Dict[int, Handler] = {}

    @property
    def signals(self):
        return self.opts.relay_signals

    def install(self) -> None:
        for sig in self.opts.quit_signals:
            self._previous[sig] = signal.signal(sig, self.handle_quit)
        self._previous[self.opts.reload_signal] = signal.signal(
            self.opts.reload_signal, self.handle_restart
        )
        logger.debug(f"Signal handlers installed for {[signal_name(s) for s in self.signals]}")

    def restore(self) -> None:
        """Put back whatever handlers were active before install()."""
        while self._previous:
            sig, handler = self._previous.popitem()
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)

    def handle_quit(self, signum, frame) -> None:
        """Stop the compositor, release the socket and exit with status 1."""
        logger.info(f"signal {signal_name(signum)} received, quitting")
        self.ctx.teardown()
        raise SystemExit(1)

    def handle_restart(self, signum, frame) -> None:
        """Take the compositor away from the main loop and ask it to terminate."""
        logger.info(f"signal {signal_name(signum)} received, restarting compositor")
        pid, self.ctx.tracked_pid = self.ctx.tracked_pid, None
        if pid is None:
            return

        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            # Exited on its own, the reaper still collects it
            pass
