"""
Advisory run lock.

Both engines assume at most one run of the same engine at a time. When the
scheduler cannot guarantee that, each CLI run holds an exclusive flock on a
per-engine lock file for its whole duration; a second run fails fast.
"""

import fcntl
import logging
import os
from pathlib import Path

from backup_guard.core.exceptions import LockUnavailableError

logger = logging.getLogger(__name__)

LOCK_PREFIX = ".backup-guard-"
LOCK_SUFFIX = ".lock"


def lock_path_for(lock_dir: Path, engine: str) -> Path:
    """Hidden, non-.backup lock file name, so enumeration never sees it."""
    return Path(lock_dir) / f"{LOCK_PREFIX}{engine}{LOCK_SUFFIX}"


class RunLock:
    """
    Exclusive, non-blocking advisory lock held for one engine run.

    Usage:
        with RunLock(lock_dir, "capture"):
            ...
    """

    def __init__(self, lock_dir: Path, engine: str):
        self.engine = engine
        self.path = lock_path_for(lock_dir, engine)
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            os.close(fd)
            raise LockUnavailableError(
                f"Another {self.engine} run is in progress",
                lock_path=str(self.path),
                engine=self.engine,
            ) from e

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode("ascii"))
        self._fd = fd
        logger.debug(f"Acquired run lock {self.path}")

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
        logger.debug(f"Released run lock {self.path}")

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
