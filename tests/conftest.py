import os
import signal

import pytest

from tests.test_helpers.fakes import FakeSocket
from wlrestart.data import SupervisorContext
from wlrestart.types import HandoffMode


@pytest.fixture
def fake_socket():
    """Socket double with a fake descriptor, for tests that never fork."""
    return FakeSocket()


@pytest.fixture
def live_socket():
    """Socket double backed by a real descriptor a forked child can inherit."""
    fd = os.open(os.devnull, os.O_RDONLY)
    yield FakeSocket(fd=fd)
    try:
        os.close(fd)
    except OSError:
        pass


@pytest.fixture
def make_ctx():
    def _make(resource, command=("compositor",), mode=HandoffMode.KDE, max_restarts=10):
        return SupervisorContext(
            resource=resource,
            command_template=tuple(command),
            handoff_mode=mode,
            max_restarts=max_restarts,
        )
    return _make


@pytest.fixture(autouse=True)
def preserve_signal_handlers():
    """Undo any handler a test installs for the supervisor's signals."""
    sigs = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)
    saved = {sig: signal.getsignal(sig) for sig in sigs}
    yield
    for sig, handler in saved.items():
        signal.signal(sig, handler if handler is not None else signal.SIG_DFL)
