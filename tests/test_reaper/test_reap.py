# tests/test_reaper/test_reap.py
"""
Test waiting for the compositor and classifying how it went away.
"""

import os
import signal

import pytest

from tests.test_helpers.process_utils import sh
from wlrestart import reaper
from wlrestart.data import UnclassifiableExitError, WaitError
from wlrestart.launcher import launch
from wlrestart.reaper import classify, reap
from wlrestart.types import Failed, HandoffMode, Killed, Reclaimed, Success


def exited(code):
    return code << 8


def stopped(sig):
    return (sig << 8) | 0x7f


# ============================================================================
# classify()
# ============================================================================

def test_classify_zero_exit_is_success():
    assert classify(exited(0)) == Success()


@pytest.mark.parametrize("code", [1, 2, 127, 255])
def test_classify_nonzero_exit(code):
    assert classify(exited(code)) == Failed(code)


@pytest.mark.parametrize("sig", [signal.SIGTERM, signal.SIGSEGV, signal.SIGHUP, signal.SIGTRAP])
def test_classify_signal(sig):
    assert classify(int(sig)) == Killed(sig)


def test_classify_core_dump_keeps_signal():
    assert classify(int(signal.SIGABRT) | 0x80) == Killed(signal.SIGABRT)


def test_classify_stopped_is_fatal():
    with pytest.raises(UnclassifiableExitError, match="failed to detect how compositor exited"):
        classify(stopped(signal.SIGSTOP))


# ============================================================================
# reap() with real children
# ============================================================================

def spawn(ctx, script):
    ctx.tracked_pid = launch(list(sh(script)), {}, ctx.resource, HandoffMode.KDE)
    return ctx.tracked_pid


def test_reap_exit_code(live_socket, make_ctx):
    ctx = make_ctx(live_socket)
    spawn(ctx, "exit 3")

    assert reap(ctx) == Failed(3)
    assert ctx.tracked_pid is None


def test_reap_success(live_socket, make_ctx):
    ctx = make_ctx(live_socket)
    spawn(ctx, "exit 0")

    assert reap(ctx) == Success()
    assert ctx.tracked_pid is None


def test_reap_signal(live_socket, make_ctx):
    ctx = make_ctx(live_socket)
    spawn(ctx, "kill -s KILL $$")

    assert reap(ctx) == Killed(signal.SIGKILL)


def test_reap_untracked_is_reclaimed(fake_socket, make_ctx, monkeypatch):
    """Nothing to wait for when a handler already took the child."""
    def unexpected_wait(pid, options):
        raise AssertionError("waitpid must not be called")

    monkeypatch.setattr(reaper.os, "waitpid", unexpected_wait)
    ctx = make_ctx(fake_socket)

    assert reap(ctx) == Reclaimed()
    assert ctx.tracked_pid is None


def test_reclaimed_before_wait_collects_child(live_socket, make_ctx):
    """A child the handler took before the first wait does not stay a zombie."""
    ctx = make_ctx(live_socket)
    pid = spawn(ctx, "exit 0")
    ctx.launched_pid = pid
    ctx.tracked_pid = None

    assert reap(ctx) == Reclaimed()
    with pytest.raises(ChildProcessError):
        os.waitpid(pid, os.WNOHANG)


# ============================================================================
# reap() races, simulated
# ============================================================================

class ScriptedWait:
    """waitpid replacement running one step per call."""

    def __init__(self, ctx, steps):
        self.ctx = ctx
        self.steps = list(steps)
        self.calls = []

    def __call__(self, pid, options):
        self.calls.append(pid)
        return self.steps.pop(0)(self.ctx, pid)


def interrupted(ctx, pid):
    raise InterruptedError(4, "Interrupted system call")


def interrupted_and_taken(ctx, pid):
    ctx.tracked_pid = None
    raise InterruptedError(4, "Interrupted system call")


def already_reaped(ctx, pid):
    ctx.tracked_pid = None
    raise ChildProcessError(10, "No child processes")


def no_child(ctx, pid):
    raise ChildProcessError(10, "No child processes")


def taken_then_terminated(ctx, pid):
    ctx.tracked_pid = None
    return pid, int(signal.SIGTERM)


def returns(status):
    return lambda ctx, pid: (pid, status)


def install_wait(monkeypatch, ctx, *steps):
    wait = ScriptedWait(ctx, steps)
    monkeypatch.setattr(reaper.os, "waitpid", wait)
    return wait


def test_interrupted_wait_is_retried(fake_socket, make_ctx, monkeypatch):
    ctx = make_ctx(fake_socket)
    ctx.tracked_pid = 4242
    wait = install_wait(monkeypatch, ctx, interrupted, returns(exited(5)))

    assert reap(ctx) == Failed(5)
    assert wait.calls == [4242, 4242]


def test_interrupted_wait_after_handler_is_reclaimed(fake_socket, make_ctx, monkeypatch):
    ctx = make_ctx(fake_socket)
    ctx.tracked_pid = 4242
    wait = install_wait(monkeypatch, ctx, interrupted_and_taken)

    assert reap(ctx) == Reclaimed()
    assert wait.calls == [4242]


def test_already_reaped_by_handler_is_reclaimed(fake_socket, make_ctx, monkeypatch):
    ctx = make_ctx(fake_socket)
    ctx.tracked_pid = 4242
    install_wait(monkeypatch, ctx, already_reaped)

    assert reap(ctx) == Reclaimed()
    assert ctx.tracked_pid is None


def test_handler_during_wait_wins_over_real_status(fake_socket, make_ctx, monkeypatch):
    """The restart handler's SIGTERM shows up as Reclaimed, not as a crash."""
    ctx = make_ctx(fake_socket)
    ctx.tracked_pid = 4242
    install_wait(monkeypatch, ctx, taken_then_terminated)

    assert reap(ctx) == Reclaimed()


def test_missing_child_still_tracked_is_fatal(fake_socket, make_ctx, monkeypatch):
    ctx = make_ctx(fake_socket)
    ctx.tracked_pid = 4242
    install_wait(monkeypatch, ctx, no_child)

    with pytest.raises(WaitError, match="failed to wait for compositor"):
        reap(ctx)
    assert ctx.tracked_pid is None


def test_other_wait_errors_are_fatal(fake_socket, make_ctx, monkeypatch):
    def invalid(ctx, pid):
        raise OSError(22, "Invalid argument")

    ctx = make_ctx(fake_socket)
    ctx.tracked_pid = 4242
    install_wait(monkeypatch, ctx, invalid)

    with pytest.raises(WaitError, match="Invalid argument"):
        reap(ctx)
    assert ctx.tracked_pid is None


def test_unclassifiable_status_clears_pid(fake_socket, make_ctx, monkeypatch):
    ctx = make_ctx(fake_socket)
    ctx.tracked_pid = 4242
    install_wait(monkeypatch, ctx, returns(stopped(signal.SIGSTOP)))

    with pytest.raises(UnclassifiableExitError):
        reap(ctx)
    assert ctx.tracked_pid is None


def test_reclaimed_child_already_collected(fake_socket, make_ctx, monkeypatch):
    ctx = make_ctx(fake_socket)
    ctx.launched_pid = 4242
    wait = install_wait(monkeypatch, ctx, no_child)

    assert reap(ctx) == Reclaimed()
    assert wait.calls == [4242]
