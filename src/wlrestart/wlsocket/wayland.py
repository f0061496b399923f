"""
Wayland Listening Socket

Creates the compositor's listening socket in ``$XDG_RUNTIME_DIR`` the same way
libwayland does: pick the first free ``wayland-N`` name guarded by a lock
file, bind a unix stream socket next to it, and keep both until destroyed.
"""

import fcntl
import logging
import os
import socket
from pathlib import Path
from typing import Optional

from result import Err, Ok, Result

from wlrestart.wlsocket.core import ResourceHandle

logger = logging.getLogger(__name__)

# Same range libwayland's wl_display_add_socket_auto() tries
MAX_DISPLAYNO = 32
LISTEN_BACKLOG = 128


class WaylandSocket(ResourceHandle):
    """Listening unix socket plus its lock file."""

    def __init__(self, name: str, sock: socket.socket, lock_fd: int, runtime_dir: Path):
        self._name = name
        self._sock: Optional[socket.socket] = sock
        self._lock_fd: Optional[int] = lock_fd
        self._runtime_dir = runtime_dir

    @classmethod
    def acquire(cls, runtime_dir: Optional[str] = None) -> Result['WaylandSocket', str]:
        runtime_dir = runtime_dir or os.environ.get("XDG_RUNTIME_DIR")
        if not runtime_dir:
            return Err("XDG_RUNTIME_DIR is not set")

        base = Path(runtime_dir)
        if not base.is_dir():
            return Err(f"XDG_RUNTIME_DIR '{runtime_dir}' is not a directory")

        for displayno in range(MAX_DISPLAYNO + 1):
            name = f"wayland-{displayno}"
            lock_fd = cls._lock(base / f"{name}.lock")
            if lock_fd is None:
                continue

            try:
                sock = cls._bind(base / name)
            except OSError as e:
                os.close(lock_fd)
                logger.debug(f"Cannot bind {name}: {e}")
                continue

            logger.debug(f"Listening on {base / name}")
            return Ok(cls(name, sock, lock_fd, base))

        return Err(f"no free wayland socket name in {runtime_dir}")

    @staticmethod
    def _lock(path: Path) -> Optional[int]:
        """Take the lock file for a display name, or None if another server holds it."""
        try:
            fd = os.open(path, os.O_CREAT | os.O_RDWR | os.O_CLOEXEC, 0o660)
        except OSError as e:
            logger.debug(f"Cannot open lock file {path}: {e}")
            return None

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            os.close(fd)
            return None
        return fd

    @staticmethod
    def _bind(path: Path) -> socket.socket:
        # We hold the lock, so a leftover socket file belongs to a dead server
        try:
            path.unlink()
        except FileNotFoundError:
            pass

        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.bind(str(path))
            sock.listen(LISTEN_BACKLOG)
        except OSError:
            sock.close()
            raise
        sock.set_inheritable(True)
        return sock

    @property
    def display_name(self) -> str:
        return self._name

    @property
    def path(self) -> Path:
        return self._runtime_dir / self._name

    def fileno(self) -> int:
        if self._sock is None:
            raise ValueError(f"socket {self._name} has been destroyed")
        return self._sock.fileno()

    def destroy(self) -> None:
        if self._sock is None:
            return

        self._sock.close()
        self._sock = None
        for path in (self.path, self._runtime_dir / f"{self._name}.lock"):
            try:
                path.unlink()
            except FileNotFoundError:
                pass

        os.close(self._lock_fd)
        self._lock_fd = None
        logger.debug(f"Destroyed socket {self._name}")

    def __repr__(self):
        state = "closed" if self._sock is None else f"fd={self._sock.fileno()}"
        return f"WaylandSocket({self._name!r}, {state})"
