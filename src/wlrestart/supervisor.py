"""
Restart Supervisor

Main control loop: materialize the compositor command line once, then launch,
reap and evaluate until the compositor exits cleanly or the restart budget is
spent.

Restart policy, evaluated once per compositor lifecycle:

    Success                            -> stop (exit 0)
    Failed(code)                       -> restart_count += 1
    Killed(reload signal) / Reclaimed  -> restart_count = 0
    Killed(soft reset signal)          -> restart_count = 0
    Killed(any other signal)           -> restart_count += 1

The budget is checked at the top of every iteration.
"""

import logging
import signal
from typing import Callable, Dict, List

from wlrestart import handoff
from wlrestart.data import (
    DEFAULT_MAX_RESTARTS, SpawnError, SupervisorContext, SupervisorOptions,
    TooManyRestartsError, UnclassifiableExitError
)
from wlrestart.launcher import launch
from wlrestart.reaper import reap
from wlrestart.sigmask import blocked_signals
from wlrestart.signals import signal_name
from wlrestart.types import Action, Failed, HandoffMode, Killed, Outcome, Reclaimed, Success

logger = logging.getLogger(__name__)

RESTART_COUNT_VAR = "WL_RESTART_COUNT"

Launcher = Callable[..., int]
Reaper = Callable[[SupervisorContext], Outcome]


def options(
    max_restarts: int = DEFAULT_MAX_RESTARTS,
    mode: HandoffMode = HandoffMode.KDE,
    export_restart_count: bool = True,
    reload_signal: int = signal.SIGHUP,
    soft_reset_signal: int = signal.SIGTRAP,
    quit_signals=(signal.SIGINT, signal.SIGTERM),
) -> SupervisorOptions:
    """Build supervisor options, validating the restart budget."""
    if max_restarts < 0:
        raise ValueError(f"max_restarts must be non-negative, got {max_restarts}")
    return SupervisorOptions(
        max_restarts=max_restarts,
        mode=mode,
        export_restart_count=export_restart_count,
        reload_signal=reload_signal,
        soft_reset_signal=soft_reset_signal,
        quit_signals=tuple(quit_signals),
    )


def evaluate(ctx: SupervisorContext, outcome: Outcome, opts: SupervisorOptions) -> Action:
    """
    Apply the restart policy to one outcome, updating ``ctx.restart_count``.

    :raises UnclassifiableExitError: For anything that is not a known outcome
    """
    match outcome:
        case Success():
            logger.info("compositor exited successfully, quitting")
            return Action.STOP

        case Failed(exit_code=code) if code > 0:
            ctx.restart_count += 1
            logger.info(
                f"compositor exited with code {code}, "
                f"incrementing restart counter ({ctx.restart_count})"
            )
            return Action.RESTART

        case Reclaimed():
            ctx.restart_count = 0
            logger.info(f"compositor died with signal {signal_name(opts.reload_signal)}, restarting")
            return Action.RESET

        case Killed(signal_number=sig) if sig == opts.reload_signal:
            ctx.restart_count = 0
            logger.info(f"compositor died with signal {signal_name(sig)}, restarting")
            return Action.RESET

        case Killed(signal_number=sig) if sig == opts.soft_reset_signal:
            ctx.restart_count = 0
            logger.info(f"compositor died with signal {signal_name(sig)}, resetting counter")
            return Action.RESET

        case Killed(signal_number=sig) if sig > 0:
            ctx.restart_count += 1
            logger.info(
                f"compositor died with signal {signal_name(sig)}, "
                f"incrementing restart counter ({ctx.restart_count})"
            )
            return Action.RESTART

    raise UnclassifiableExitError(f"failed to detect how compositor exited: {outcome!r}")


class RestartSupervisor:
    """
    Drives one compositor through as many incarnations as the budget allows.

    The launcher and reaper are injectable so the policy can be exercised
    without forking.
    """

    def __init__(
        self,
        ctx: SupervisorContext,
        opts: SupervisorOptions,
        launcher: Launcher = launch,
        reaper: Reaper = reap,
    ):
        self.ctx = ctx
        self.opts = opts
        self.launcher = launcher
        self.reaper = reaper
        self.launches = 0

    @property
    def reset_signals(self):
        return self.opts.relay_signals

    def run(self) -> int:
        """
        Supervise until the compositor exits cleanly.

        The socket is released and any tracked compositor is terminated on
        every way out of this method.

        :returns: 0 once the compositor exits successfully
        :raises TooManyRestartsError: When the budget is exhausted
        :raises WrapperError: For any other fatal condition
        """
        ctx = self.ctx
        try:
            argv, env = handoff.build(ctx.command_template, ctx.handoff_mode, ctx.resource)

            while ctx.restart_count < ctx.max_restarts:
                self._spawn(argv, env)
                outcome = self.reaper(ctx)
                logger.debug(f"Compositor {outcome}")

                if evaluate(ctx, outcome, self.opts) is Action.STOP:
                    return 0

                if self.opts.export_restart_count:
                    env = {**env, RESTART_COUNT_VAR: str(ctx.restart_count)}

            raise TooManyRestartsError("too many restarts, quitting")
        finally:
            ctx.teardown()

    def _spawn(self, argv: List[str], env: Dict[str, str]) -> None:
        ctx = self.ctx
        if ctx.tracked_pid is not None:
            raise SpawnError(f"refusing to start compositor, pid {ctx.tracked_pid} is still tracked")

        # Relay signals wait until the new pid is tracked
        with blocked_signals(self.reset_signals):
            pid = self.launcher(
                argv, env, ctx.resource, ctx.handoff_mode, reset_signals=self.reset_signals
            )
            ctx.tracked_pid = ctx.launched_pid = pid
        self.launches += 1
        logger.info(f"started compositor {argv[0]} (pid {pid})")
