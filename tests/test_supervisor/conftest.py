"""
Conftest for supervisor tests.
"""
import pytest

from tests.test_helpers.fakes import ScriptedChild
from wlrestart.supervisor import RestartSupervisor, options
from wlrestart.types import HandoffMode


@pytest.fixture
def scripted_supervisor(fake_socket, make_ctx):
    """
    Build a supervisor that replays outcomes instead of forking.

    Returns (supervisor, child) so tests can inspect what was launched.
    """
    def _build(outcomes, max_restarts=10, mode=HandoffMode.KDE, **opts):
        opts = options(max_restarts=max_restarts, mode=mode, **opts)
        ctx = make_ctx(fake_socket, mode=mode, max_restarts=max_restarts)
        child = ScriptedChild(outcomes)
        sup = RestartSupervisor(ctx, opts, launcher=child.launch, reaper=child.reap)
        return sup, child
    return _build
