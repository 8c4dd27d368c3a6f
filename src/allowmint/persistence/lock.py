"""Data directory lock — one writer at a time across processes.

Every process that opens the same data directory (CLI invocations, a
long-running service) takes this lock around each load-mutate-persist
sequence. It is an advisory ``flock`` on a sidecar file, so it is
released by the kernel if the holder dies.
"""

from __future__ import annotations

import fcntl
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


class FileLock:
    """Exclusive advisory lock on a file.

    Usage:
        lock = FileLock(Path("data/.lock"))
        with lock.hold():
            ...  # no other holder runs here

    Not reentrant: each ``hold`` opens its own file description, so a
    nested ``hold`` on the same path blocks forever.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def hold(self) -> Iterator[None]:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "a") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
