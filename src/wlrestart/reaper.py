"""
Compositor Reaper

Waits for the tracked compositor and normalizes how it went away into one of
Success, Failed, Killed or Reclaimed.
"""

import logging
import os

from wlrestart.data import SupervisorContext, UnclassifiableExitError, WaitError
from wlrestart.types import Failed, Killed, Outcome, Reclaimed, Success

logger = logging.getLogger(__name__)


def classify(status: int) -> Outcome:
    """
    Map a raw wait status to an outcome.

    :raises UnclassifiableExitError: If the status is neither an exit nor a
        termination signal
    """
    if os.WIFSIGNALED(status):
        return Killed(os.WTERMSIG(status))
    if os.WIFEXITED(status):
        code = os.WEXITSTATUS(status)
        return Success() if code == 0 else Failed(code)
    raise UnclassifiableExitError(f"failed to detect how compositor exited (status {status:#x})")


def reap(ctx: SupervisorContext) -> Outcome:
    """
    Block until the tracked compositor changes state.

    Interrupted waits are retried after re-reading ``ctx.tracked_pid``. If a
    signal handler cleared it in the meantime, before or during the wait, the
    result is Reclaimed, and a child that was never waited on is collected
    first so it does not linger as a zombie. ``ctx.tracked_pid`` is always
    None on return.

    :raises WaitError: If waiting fails for any reason other than an
        interruption or a child the handler already took away
    :raises UnclassifiableExitError: See classify()
    """
    try:
        pid = ctx.tracked_pid
        status = None
        while pid is not None:
            try:
                _, status = os.waitpid(pid, 0)
                break
            except InterruptedError:
                logger.debug(f"Wait for compositor {pid} interrupted")
            except ChildProcessError as e:
                if ctx.tracked_pid == pid:
                    raise WaitError(f"failed to wait for compositor: {e.strerror}") from e
                logger.debug(f"Compositor {pid} already taken by a signal handler")
            except OSError as e:
                raise WaitError(f"failed to wait for compositor: {e.strerror}") from e

            # A handler may have taken the compositor while we were blocked
            pid = ctx.tracked_pid

        if ctx.tracked_pid is None:
            if status is None:
                _collect(ctx.launched_pid)
            return Reclaimed()
        return classify(status)
    finally:
        ctx.tracked_pid = None


def _collect(pid) -> None:
    """Wait out a child a handler took before it was ever waited on."""
    if pid is None:
        return
    try:
        os.waitpid(pid, 0)
    except ChildProcessError:
        # Already collected
        return
    except OSError as e:
        raise WaitError(f"failed to wait for compositor: {e.strerror}") from e
    logger.debug(f"Collected reclaimed compositor {pid}")
