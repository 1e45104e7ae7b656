"""Cross-process advisory lock backed by a marker file."""

import fcntl
import time
from collections.abc import Callable
from pathlib import Path
from typing import IO, TypeVar

from .errors import LockTimeoutError
from .logging_config import LOGGER

DEFAULT_LOCK_TIMEOUT = 60.0

T = TypeVar("T")


class PathLock:
    """Exclusive flock on a marker file, acquired with a bounded wait.

    Each PathLock owns its own open file description, so two instances on the
    same path exclude each other even within one process.
    """

    def __init__(
        self,
        path: Path,
        timeout: float = DEFAULT_LOCK_TIMEOUT,
        poll_interval: float = 0.1,
    ) -> None:
        self.path = path
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._handle: IO[str] | None = None

    @property
    def held(self) -> bool:
        return self._handle is not None

    def acquire(self) -> None:
        """Block until the lock is held or the timeout passes.

        Raises:
            LockTimeoutError: If the lock is still taken at the deadline or the
                marker file cannot be opened
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self.path, "a")
        except OSError as e:
            raise LockTimeoutError(f"lock acquisition failed for {self.path}: {e}") from e

        deadline = time.monotonic() + self.timeout
        while True:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    handle.close()
                    raise LockTimeoutError(
                        f"lock acquisition failed for {self.path}: "
                        f"timed out after {self.timeout}s"
                    ) from None
                time.sleep(self.poll_interval)
            except OSError as e:
                handle.close()
                raise LockTimeoutError(f"lock acquisition failed for {self.path}: {e}") from e

        self._handle = handle

    def release(self) -> None:
        if not self.held:
            return
        try:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "PathLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def with_lock(path: Path, timeout: float, fn: Callable[[], T]) -> T:
    """Run fn while holding the lock at path, releasing it however fn exits."""
    LOGGER.info("acquiring lock: %s (timeout %ss)", path, timeout)
    with PathLock(path, timeout=timeout):
        return fn()
