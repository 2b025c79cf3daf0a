import time
from contextlib import contextmanager
from threading import Lock
from typing import Hashable, Iterator

from backend.core import errors


class Deadline:
    """Wall-clock budget shared by every collaborator call of one request."""

    def __init__(self, timeout: float | None) -> None:
        self.timeout = timeout
        self._expires_at = None if timeout is None else time.monotonic() + timeout

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, operation: str) -> None:
        if self.expired():
            raise errors.CollaboratorUnavailable(operation=operation, timeout_seconds=self.timeout)


class KeyedLock:
    """One mutex per key, created on demand and dropped once nobody holds it."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[Hashable, Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @contextmanager
    def hold(self, key: Hashable, timeout: float | None = None) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1

        acquired = False
        try:
            acquired = lock.acquire(timeout=-1 if timeout is None else timeout)
            if not acquired:
                raise errors.CollaboratorUnavailable(operation='reservation_lock', timeout_seconds=timeout)
            yield
        finally:
            if acquired:
                lock.release()
            with self._guard:
                self._waiters[key] -= 1
                if not self._waiters[key]:
                    del self._waiters[key]
                    del self._locks[key]
