"""
Per-tournament write locks.

The engine assumes a single writer per tournament. Every service mutation
runs inside tournament_lock(tournament_id) so two requests in the same process
cannot both advance a round or score the same match.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

_registry_lock = threading.Lock()
_locks: Dict[int, threading.RLock] = {}


def lock_for(tournament_id: int) -> threading.RLock:
    with _registry_lock:
        lock = _locks.get(tournament_id)
        if lock is None:
            lock = threading.RLock()
            _locks[tournament_id] = lock
        return lock


@contextmanager
def tournament_lock(tournament_id: int) -> Iterator[None]:
    lock = lock_for(tournament_id)
    with lock:
        yield


def forget(tournament_id: int) -> None:
    """Drop the lock of a deleted tournament."""
    with _registry_lock:
        _locks.pop(tournament_id, None)
