"""
Serialization of capacity checks per (time slot, date) pair.

Counting a pair's reservations and inserting a new one must happen as one
step, otherwise two concurrent bookings at capacity - 1 both pass the count.
Inside one process a lock per pair does that; across processes sharing a
PostgreSQL database a transaction-scoped advisory lock on the same pair
does it too. The caller commits while still inside `hold()`.
"""

import logging
from contextlib import contextmanager
from datetime import date
from threading import Lock

from sqlalchemy import text
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def advisory_key(time_slot_id: int, day: date) -> int:
    """Stable 64-bit key for pg_advisory_xact_lock; ordinals stay below 10^7"""
    return time_slot_id * 10_000_000 + day.toordinal()


class SlotLocks:
    """
    Lock per (time slot, date) pair, kept only while someone holds or waits on it.

    Entries are reference counted under `_guard` and dropped when the last
    holder leaves, so the map never outgrows the pairs in flight.
    """

    def __init__(self):
        self._guard = Lock()
        self._locks: dict[tuple[int, date], Lock] = {}
        self._holders: dict[tuple[int, date], int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: tuple[int, date]) -> Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = Lock()
            self._holders[key] = self._holders.get(key, 0) + 1
            return lock

    def _checkin(self, key: tuple[int, date]) -> None:
        with self._guard:
            remaining = self._holders[key] - 1
            if remaining:
                self._holders[key] = remaining
            else:
                del self._holders[key]
                del self._locks[key]

    @contextmanager
    def hold(self, db: Session, time_slot_id: int, day: date):
        key = (time_slot_id, day)
        lock = self._checkout(key)
        try:
            with lock:
                if db.get_bind().dialect.name == "postgresql":
                    db.execute(
                        text("SELECT pg_advisory_xact_lock(:key)"),
                        {"key": advisory_key(time_slot_id, day)},
                    )
                logger.debug(f"Holding slot lock ({time_slot_id}, {day})")
                yield
        finally:
            self._checkin(key)


# Global lock registry shared by every request in this process
slot_locks = SlotLocks()
