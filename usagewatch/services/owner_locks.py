import threading
from contextlib import contextmanager


class OwnerLocks:

    # One lock per owner id.
    # Passes take it non-blocking (a firing during a running pass is skipped);
    # guardian actions wait for it so they never interleave with a pass.

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def _lock_for(self, owner_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(owner_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[owner_id] = lock
            return lock

    @contextmanager
    def try_hold(self, owner_id: str):
        # yields False when another holder is active
        lock = self._lock_for(owner_id)
        acquired = lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()

    @contextmanager
    def hold(self, owner_id: str):
        lock = self._lock_for(owner_id)
        with lock:
            yield

    def is_busy(self, owner_id: str) -> bool:
        return self._lock_for(owner_id).locked()
