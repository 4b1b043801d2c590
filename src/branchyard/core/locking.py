"""Per-key exclusive locks that work across threads and processes.

Each key gets a process-local mutex plus an flock on a sidecar file, both
acquired without blocking. Contention is reported immediately so the caller
can surface BranchInUse or ActiveOperation instead of waiting.
"""

import fcntl
import logging
import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path

from branchyard.core.errors import WorkspaceError
from branchyard.core.naming import branch_key

logger = logging.getLogger(__name__)

_THREAD_MUTEXES: dict[str, threading.Lock] = {}
_THREAD_MUTEXES_GUARD = threading.Lock()


class LockBusy(Exception):
    """Raised when a lock is already held by another thread or process."""

    def __init__(self, lock_path: Path) -> None:
        super().__init__(f"Lock {lock_path} is held")
        self.lock_path = lock_path


def _thread_mutex(lock_path: Path) -> threading.Lock:
    key = str(lock_path.resolve())
    with _THREAD_MUTEXES_GUARD:
        mutex = _THREAD_MUTEXES.get(key)
        if mutex is None:
            mutex = threading.Lock()
            _THREAD_MUTEXES[key] = mutex
        return mutex


@contextmanager
def exclusive_lock(lock_path: Path) -> Iterator[None]:
    """Hold an exclusive, non-blocking lock on `lock_path`.

    Raises:
        LockBusy: If another thread or process already holds the lock
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    mutex = _thread_mutex(lock_path)
    if not mutex.acquire(blocking=False):
        raise LockBusy(lock_path)

    try:
        with lock_path.open("a") as handle:
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError as e:
                raise LockBusy(lock_path) from e
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    finally:
        mutex.release()


def is_locked(lock_path: Path) -> bool:
    """Probe whether someone currently holds `lock_path`."""
    if not lock_path.exists():
        return False
    try:
        with exclusive_lock(lock_path):
            return False
    except LockBusy:
        return True


class BranchLocks:
    """The single serialization point for structural changes, keyed by branch name.

    Operations on different branches never contend.
    """

    def __init__(self, locks_dir: Path) -> None:
        self._locks_dir = locks_dir

    def lock_path(self, branch: str) -> Path:
        return self._locks_dir / f"{branch_key(branch)}.lock"

    @contextmanager
    def hold(self, branch: str, busy: WorkspaceError) -> Iterator[None]:
        """Hold the lock for `branch` for the duration of the block.

        Args:
            branch: Branch name to serialize on
            busy: Error raised if another operation already holds the branch

        Raises:
            The `busy` error, when the branch lock is contended
        """
        stack = ExitStack()
        try:
            stack.enter_context(exclusive_lock(self.lock_path(branch)))
        except LockBusy as e:
            logger.debug("Branch lock contended: %s", branch)
            raise busy from e

        with stack:
            logger.debug("Branch lock acquired: %s", branch)
            yield
