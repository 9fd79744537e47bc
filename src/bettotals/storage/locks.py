"""Per-subject serialization for read-reconcile-write sequences.

Every mutation of a subject's record (apply, refresh) runs inside that
subject's lock so two observations can never both load the same
pre-update sums. Different subjects never contend.

- :class:`SubjectLocks`: in-process ``threading`` locks
- :class:`FileSubjectLocks`: ``fcntl`` advisory lock files, for several
  processes sharing one database
"""

from __future__ import annotations

import fcntl
import hashlib
import os
import threading
import time
from pathlib import Path
from typing import Any

from ..core.errors import StorageUnavailable
from ..observability.loguru_config import get_logger

logger = get_logger("storage")

__all__ = [
    "FileSubjectLocks",
    "SubjectLock",
    "SubjectLocks",
]


class SubjectLock:
    """Context manager holding one subject's ``threading.Lock``."""

    def __init__(self, registry: SubjectLocks, subject: str, timeout: float) -> None:
        self._registry = registry
        self.subject = subject
        self.timeout = timeout
        self._lock: threading.Lock | None = None

    def __enter__(self) -> SubjectLock:
        lock = self._registry._checkout(self.subject)
        if not lock.acquire(timeout=self.timeout):
            self._registry._checkin(self.subject)
            logger.error(f"Lock timeout for subject {self.subject} after {self.timeout}s")
            raise StorageUnavailable(
                f"Failed to acquire lock for subject {self.subject} after {self.timeout}s timeout"
            )
        self._lock = lock
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._lock is not None:
            self._lock.release()
            self._lock = None
            self._registry._checkin(self.subject)


class SubjectLocks:
    """Registry of in-process locks, one per subject.

    A subject's lock is dropped from the registry once no thread holds or
    waits on it, so the registry only grows with concurrent subjects.

    Example:
        >>> locks = SubjectLocks(timeout=2.0)
        >>> with locks.hold("alice"):
        ...     pass
    """

    def __init__(self, timeout: float = 10.0) -> None:
        self.timeout = timeout
        # subject -> [lock, holders and waiters]
        self._locks: dict[str, list[Any]] = {}
        self._registry_lock = threading.Lock()

    def _checkout(self, subject: str) -> threading.Lock:
        with self._registry_lock:
            entry = self._locks.get(subject)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[subject] = entry
            entry[1] += 1
            return entry[0]

    def _checkin(self, subject: str) -> None:
        with self._registry_lock:
            entry = self._locks[subject]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[subject]

    def hold(self, subject: str) -> SubjectLock:
        return SubjectLock(self, subject, self.timeout)

    def active_subjects(self) -> list[str]:
        """Subjects whose lock is currently held or awaited."""
        with self._registry_lock:
            return sorted(self._locks)


class FileSubjectLock:
    """Per-subject file lock context manager."""

    def __init__(self, lock_file: Path, subject: str, timeout: float) -> None:
        self.lock_file = lock_file
        self.subject = subject
        self.timeout = timeout
        self.lock_fd: int | None = None

    def __enter__(self) -> FileSubjectLock:
        """Acquire lock."""
        try:
            self.lock_fd = os.open(self.lock_file, os.O_CREAT | os.O_RDWR, 0o644)
        except OSError as exc:
            raise StorageUnavailable(f"Cannot open lock file {self.lock_file}: {exc}") from exc

        # Exclusive lock with timeout via LOCK_NB + retry
        start_time = time.monotonic()
        while True:
            try:
                fcntl.flock(self.lock_fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() - start_time > self.timeout:
                    os.close(self.lock_fd)
                    self.lock_fd = None
                    logger.error(f"File lock timeout for subject {self.subject} after {self.timeout}s")
                    raise StorageUnavailable(
                        f"Failed to acquire lock for subject {self.subject} "
                        f"after {self.timeout}s timeout"
                    )
                time.sleep(0.01)

        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Release lock."""
        if self.lock_fd is not None:
            try:
                fcntl.flock(self.lock_fd, fcntl.LOCK_UN)
            finally:
                os.close(self.lock_fd)
                self.lock_fd = None


class FileSubjectLocks:
    """Lock files under ``lock_dir``, shared by every process using it.

    Subjects are hashed into file names, so any string is a safe key.
    """

    def __init__(self, lock_dir: Path | str, timeout: float = 10.0) -> None:
        self.lock_dir = Path(lock_dir)
        self.timeout = timeout
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    def lock_path(self, subject: str) -> Path:
        digest = hashlib.sha256(subject.encode("utf-8")).hexdigest()[:32]
        return self.lock_dir / f"{digest}.lock"

    def hold(self, subject: str) -> FileSubjectLock:
        return FileSubjectLock(self.lock_path(subject), subject, self.timeout)
