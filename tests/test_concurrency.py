import threading
from contextlib import contextmanager
from datetime import date, timedelta

import pytest
from conftest import MONDAY, make_service, make_time_slot, make_user

from app.domain.reservations.locking import SlotLocks, advisory_key
from app.domain.reservations.schemas import AdminReservationUpdate, ReservationCreate
from app.domain.reservations.service import SLOT_FULL_MESSAGE, ReservationAllocator
from app.models import Reservation, ReservationStatus, TimeSlot, User
from app.shared.errors import ValidationError


def booking(slot_id, service_id, day=MONDAY):
    return ReservationCreate(
        timeSlotId=slot_id,
        date=day.isoformat(),
        license="ABC-1234",
        serviceIds=[service_id],
    )


def run_concurrently(session_factory, user_ids, action, success):
    """Start one thread per user behind a barrier; collect `success` or the error message"""
    barrier = threading.Barrier(len(user_ids))
    outcomes = []
    outcomes_lock = threading.Lock()

    def attempt(index, user_id):
        session = session_factory()
        try:
            user = session.get(User, user_id)
            barrier.wait()
            try:
                action(ReservationAllocator(session), index, user)
                outcome = success
            except ValidationError as e:
                outcome = e.message
        finally:
            session.close()
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [
        threading.Thread(target=attempt, args=(index, user_id))
        for index, user_id in enumerate(user_ids)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes


def stored_count(db, slot_id, day=MONDAY):
    db.expire_all()
    return (
        db.query(Reservation)
        .filter(
            Reservation.time_slot_id == slot_id,
            Reservation.date == day,
            Reservation.status != ReservationStatus.CANCELLED.value,
        )
        .count()
    )


def make_customers(db, identities, count):
    return [
        make_user(db, identities, f"token-{i}", f"U-{i}", phone=f"09000000{i:02d}").id
        for i in range(count)
    ]


def test_concurrent_creates_never_exceed_capacity(db, identities, session_factory):
    capacity = 3
    attempts = 8
    slot = make_time_slot(db, capacity=capacity)
    service = make_service(db)
    user_ids = make_customers(db, identities, attempts)

    outcomes = run_concurrently(
        session_factory,
        user_ids,
        lambda allocator, index, user: allocator.create_reservation(
            booking(slot.id, service.id), user
        ),
        "booked",
    )

    assert len(outcomes) == attempts
    assert outcomes.count("booked") == capacity
    assert outcomes.count(SLOT_FULL_MESSAGE) == attempts - capacity
    assert stored_count(db, slot.id) == capacity


def test_concurrent_moves_never_exceed_capacity(db, identities, session_factory):
    attempts = 6
    source = make_time_slot(db, start_time="09:00", capacity=attempts)
    target = make_time_slot(db, start_time="11:00", capacity=1)
    service = make_service(db)
    user_ids = make_customers(db, identities, attempts)
    reservation_ids = [
        ReservationAllocator(db).create_reservation(
            booking(source.id, service.id), db.get(User, user_id)
        ).id
        for user_id in user_ids
    ]

    outcomes = run_concurrently(
        session_factory,
        user_ids,
        lambda allocator, index, user: allocator.update_reservation(
            reservation_ids[index], AdminReservationUpdate(timeSlotId=target.id), user
        ),
        "moved",
    )

    assert len(outcomes) == attempts
    assert outcomes.count("moved") == 1
    assert outcomes.count(SLOT_FULL_MESSAGE) == attempts - 1
    assert stored_count(db, target.id) == 1
    assert stored_count(db, source.id) == attempts - 1


class CapacityLoweringLocks(SlotLocks):
    """Lowers a slot's capacity from another session right after the lock is taken"""

    def __init__(self, session_factory, capacity):
        super().__init__()
        self.session_factory = session_factory
        self.capacity = capacity

    @contextmanager
    def hold(self, db, time_slot_id, day):
        with super().hold(db, time_slot_id, day):
            other = self.session_factory()
            try:
                other.get(TimeSlot, time_slot_id).capacity = self.capacity
                other.commit()
            finally:
                other.close()
            yield


def test_capacity_is_reread_under_the_lock(db, identities, session_factory):
    slot = make_time_slot(db, capacity=2)
    service = make_service(db)
    first, second = (db.get(User, user_id) for user_id in make_customers(db, identities, 2))
    ReservationAllocator(db).create_reservation(booking(slot.id, service.id), first)

    allocator = ReservationAllocator(db, locks=CapacityLoweringLocks(session_factory, 1))
    with pytest.raises(ValidationError) as excinfo:
        allocator.create_reservation(booking(slot.id, service.id), second)

    assert excinfo.value.message == SLOT_FULL_MESSAGE
    assert stored_count(db, slot.id) == 1


def test_lock_is_shared_per_pair_only():
    locks = SlotLocks()
    key = (1, MONDAY)
    lock = locks._checkout(key)
    assert locks._checkout(key) is lock
    assert locks._checkout((2, MONDAY)) is not lock
    assert locks._checkout((1, date(2030, 1, 14))) is not lock
    assert len(locks) == 3

    locks._checkin(key)
    assert len(locks) == 3
    locks._checkin(key)
    assert len(locks) == 2


def test_lock_map_is_emptied_after_many_pairs(db, customer):
    slot = make_time_slot(db, capacity=1)
    service = make_service(db)
    locks = SlotLocks()
    allocator = ReservationAllocator(db, locks=locks)

    for week in range(50):
        day = MONDAY + timedelta(weeks=week)
        reservation = allocator.create_reservation(booking(slot.id, service.id, day), customer)
        allocator.cancel_reservation(reservation.id, customer)

    assert len(locks) == 0


def test_lock_is_released_when_the_check_fails(db, customer):
    slot = make_time_slot(db, capacity=1)
    service = make_service(db)
    locks = SlotLocks()
    allocator = ReservationAllocator(db, locks=locks)
    allocator.create_reservation(booking(slot.id, service.id), customer)

    with pytest.raises(ValidationError):
        with locks.hold(db, slot.id, MONDAY):
            allocator._ensure_seat(slot, MONDAY)

    assert len(locks) == 0


def test_advisory_keys_do_not_collide_across_slots_and_dates():
    keys = {
        advisory_key(slot_id, day)
        for slot_id in (1, 2, 3)
        for day in (date(2030, 1, 7), date(2030, 1, 8), date(9999, 12, 31))
    }
    assert len(keys) == 9
