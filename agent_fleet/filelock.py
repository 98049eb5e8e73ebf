"""Advisory per-document lock using fcntl."""

from __future__ import annotations

import fcntl
import logging
import time
from pathlib import Path


logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1


class FileLockTimeout(TimeoutError):
    """Raised when a FileLock cannot be acquired within the timeout period."""


class FileLock:
    """Exclusive lock on ``<document>.lock`` held for one read-modify-write.

    Args:
        path: Path to the lock file. Its parent directory is created on demand.
        timeout: Maximum seconds to wait for the lock. ``None`` blocks indefinitely.
    """

    def __init__(self, path: str | Path, timeout: float | None = None):
        self.path = Path(path)
        self.timeout = timeout
        self.fd = None

    @classmethod
    def for_document(cls, document: Path, timeout: float | None = None) -> FileLock:
        return cls(document.with_name(document.name + '.lock'), timeout=timeout)

    def __enter__(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.fd = open(self.path, 'w')
        if self.timeout is None:
            fcntl.lockf(self.fd, fcntl.LOCK_EX)
            return self

        deadline = time.monotonic() + self.timeout
        waited = False
        while True:
            try:
                fcntl.lockf(self.fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return self
            except OSError:
                if not waited:
                    logger.debug('Waiting for lock %s', self.path)
                    waited = True
                if time.monotonic() >= deadline:
                    self.fd.close()
                    self.fd = None
                    raise FileLockTimeout(f'Could not acquire lock on {self.path} within {self.timeout}s')
                time.sleep(POLL_INTERVAL)

    def __exit__(self, *exc):
        fcntl.lockf(self.fd, fcntl.LOCK_UN)
        self.fd.close()
        self.fd = None
