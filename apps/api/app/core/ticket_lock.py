from __future__ import annotations

from contextlib import contextmanager
import threading
from typing import Iterator

# ticket_id -> [lock, waiters]
_locks: dict[int, list] = {}
_registry_lock = threading.Lock()


@contextmanager
def ticket_lock(ticket_id: int) -> Iterator[None]:
    """Serialize commands on one ticket inside this process.

    The row is additionally loaded ``FOR UPDATE`` by the command, which covers
    other processes on databases that support it.
    """
    with _registry_lock:
        entry = _locks.get(ticket_id)
        if entry is None:
            entry = [threading.Lock(), 0]
            _locks[ticket_id] = entry
        entry[1] += 1
    lock = entry[0]
    lock.acquire()
    try:
        yield
    finally:
        lock.release()
        with _registry_lock:
            entry[1] -= 1
            if entry[1] == 0:
                _locks.pop(ticket_id, None)


def active_lock_count() -> int:
    with _registry_lock:
        return len(_locks)
