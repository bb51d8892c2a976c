# bloodlink/services/v1/booking_locks.py
"""
In-process serialization of bookings per (blood bank, date), and of changes
to a single appointment.

Check-availability-then-write must not interleave for the same bank and day,
so each such pair gets its own asyncio.Lock; different banks or days never
wait on each other. Read-check-write on one appointment (the reschedule
counter, the status) is serialized by a lock keyed on its id, and recording
a donation by a lock on the donor. Locks are taken in the order donor,
appointment, then (bank, date). The partial unique index on
appointments and row locks on PostgreSQL back this up across processes.
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Hashable


class BookingLocks:
    def __init__(self) -> None:
        # Entries disappear once no coroutine holds or waits on the lock.
        self._locks: "weakref.WeakValueDictionary[Hashable, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def lock_for(self, blood_bank_id: str, on_date: date) -> asyncio.Lock:
        return self._lock(("slot", blood_bank_id, on_date))

    def appointment_lock(self, appointment_id: str) -> asyncio.Lock:
        return self._lock(("appointment", appointment_id))

    def donor_lock(self, donor_id: str) -> asyncio.Lock:
        return self._lock(("donor", donor_id))

    @asynccontextmanager
    async def hold(self, blood_bank_id: str, on_date: date) -> AsyncIterator[None]:
        async with self.lock_for(blood_bank_id, on_date):
            yield

    @asynccontextmanager
    async def hold_appointment(self, appointment_id: str) -> AsyncIterator[None]:
        async with self.appointment_lock(appointment_id):
            yield

    @asynccontextmanager
    async def hold_donor(self, donor_id: str) -> AsyncIterator[None]:
        async with self.donor_lock(donor_id):
            yield

    def __len__(self) -> int:
        return len(self._locks)


booking_locks = BookingLocks()

__all__ = ["BookingLocks", "booking_locks"]
