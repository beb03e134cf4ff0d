"""Reservation service - Capacity-checked booking and status lifecycle"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Reservation, ReservationStatus, TimeSlot, User, UserRole
from ...shared.errors import AuthorizationError, NotFoundError, ValidationError
from ...shared.validators import js_weekday, normalize_license, parse_calendar_date
from ..catalog.repository import ServiceRepository
from ..time_slots.repository import TimeSlotRepository
from .locking import SlotLocks, slot_locks
from .repository import ReservationRepository
from .schemas import ReservationCreate, ReservationUpdate

logger = logging.getLogger(__name__)

SLOT_FULL_MESSAGE = "This time slot is fully booked"
INVALID_SLOT_MESSAGE = "Invalid time slot"
INVALID_DATE_MESSAGE = "Invalid date format"

TERMINAL_STATUSES = {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}

# Allowed status moves; anything else is rejected
STATUS_TRANSITIONS = {
    ReservationStatus.PENDING: {
        ReservationStatus.CONFIRMED,
        ReservationStatus.COMPLETED,
        ReservationStatus.CANCELLED,
    },
    ReservationStatus.CONFIRMED: {
        ReservationStatus.COMPLETED,
        ReservationStatus.CANCELLED,
    },
    ReservationStatus.COMPLETED: set(),
    ReservationStatus.CANCELLED: set(),
}


def _is_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN.value


class ReservationAllocator:
    """
    Books (time slot, date) pairs without exceeding the slot's capacity.

    Every count-then-write runs inside `locks.hold()` for the target pair and
    commits before the lock is released.
    """

    def __init__(self, db: Session, locks: SlotLocks = slot_locks):
        self.db = db
        self.locks = locks
        self.repo = ReservationRepository()
        self.slots = TimeSlotRepository()
        self.services = ServiceRepository()

    def _ensure_can_access(self, reservation: Reservation, acting_user: User) -> None:
        if not _is_admin(acting_user) and reservation.user_id != acting_user.id:
            raise AuthorizationError("You can only access your own reservations")

    def _get_bookable_time_slot(self, time_slot_id: Optional[int]) -> TimeSlot:
        slot = self.slots.get_time_slot_by_id(self.db, time_slot_id) if time_slot_id else None
        if not slot or not slot.is_active:
            raise ValidationError(INVALID_SLOT_MESSAGE)
        return slot

    def _parse_date(self, value: Optional[str]) -> date:
        day = parse_calendar_date(value) if value else None
        if day is None:
            raise ValidationError(INVALID_DATE_MESSAGE)
        return day

    def _validate_service_ids(self, service_ids: Optional[list[int]]) -> list[int]:
        """Deduplicate in selection order and require every id to be an active service"""
        if not service_ids:
            raise ValidationError("Please select at least one service")
        unique_ids = list(dict.fromkeys(service_ids))
        found = self.services.get_active_services_by_ids(self.db, unique_ids)
        if len(found) != len(unique_ids):
            raise ValidationError("Service list contains nonexistent or disabled services")
        return unique_ids

    def _ensure_seat(
        self, slot: TimeSlot, day: date, exclude_id: Optional[int] = None
    ) -> None:
        count = self.repo.count_active_reservations(self.db, slot.id, day, exclude_id=exclude_id)
        if count >= slot.capacity:
            logger.info(f"Time slot {slot.id} on {day} is full ({count}/{slot.capacity})")
            raise ValidationError(SLOT_FULL_MESSAGE)

    def get_reserved_count(self, time_slot_id: int, day: date) -> int:
        return self.repo.count_active_reservations(self.db, time_slot_id, day)

    def get_reservations(self, acting_user: User) -> list[Reservation]:
        """Admins see every reservation, customers only their own"""
        user_id = None if _is_admin(acting_user) else acting_user.id
        return self.repo.get_reservations(self.db, user_id=user_id)

    def get_reservation(self, reservation_id: int, acting_user: User) -> Reservation:
        reservation = self.repo.get_reservation_by_id(self.db, reservation_id)
        if not reservation:
            raise NotFoundError("Reservation not found")
        self._ensure_can_access(reservation, acting_user)
        return reservation

    def create_reservation(self, data: ReservationCreate, acting_user: User) -> Reservation:
        slot = self._get_bookable_time_slot(data.timeSlotId)
        day = self._parse_date(data.date)
        if js_weekday(day) != slot.day_of_week:
            logger.warning(
                f"Reservation date {day} falls on weekday {js_weekday(day)}, "
                f"time slot {slot.id} is for weekday {slot.day_of_week}"
            )

        # Fail fast before validating the rest; rechecked under the lock
        self._ensure_seat(slot, day)

        if not data.license or not data.license.strip():
            raise ValidationError("License plate is required")
        service_ids = self._validate_service_ids(data.serviceIds)

        with self.locks.hold(self.db, slot.id, day):
            try:
                self.db.refresh(slot)
                self._ensure_seat(slot, day)
                reservation = self.repo.add_reservation(
                    self.db,
                    service_ids,
                    user_id=acting_user.id,
                    time_slot_id=slot.id,
                    date=day,
                    license=normalize_license(data.license),
                    user_memo=data.userMemo,
                    is_pickup=bool(data.isPickup),
                    status=ReservationStatus.PENDING.value,
                )
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        logger.info(
            f"Reservation {reservation.id} created by user {acting_user.id}: "
            f"slot={slot.id} date={day}"
        )
        return self.repo.get_reservation_by_id(self.db, reservation.id)

    def update_reservation(
        self, reservation_id: int, data: ReservationUpdate, acting_user: User
    ) -> Reservation:
        """
        Apply a role-scoped partial update.

        Moving to a different (time slot, date) pair re-checks capacity on the
        new pair, excluding this reservation. Completed and cancelled
        reservations only accept memo and plate edits.
        """
        reservation = self.get_reservation(reservation_id, acting_user)
        supplied = data.model_dump(exclude_unset=True)
        current_status = ReservationStatus(reservation.status)

        new_status = supplied.get("status")
        if new_status is not None and new_status != current_status:
            if new_status not in STATUS_TRANSITIONS[current_status]:
                raise ValidationError(
                    f"Cannot change status from {current_status.value} to {new_status.value}"
                )
        else:
            new_status = None

        moves_booking = any(supplied.get(k) is not None for k in ("timeSlotId", "date", "serviceIds"))
        if current_status in TERMINAL_STATUSES and moves_booking:
            raise ValidationError(
                f"A {current_status.value.lower()} reservation can no longer be rescheduled"
            )

        new_day = (
            self._parse_date(supplied["date"])
            if supplied.get("date") is not None
            else reservation.date
        )
        new_slot_id = supplied.get("timeSlotId") or reservation.time_slot_id
        service_ids = (
            self._validate_service_ids(supplied["serviceIds"])
            if supplied.get("serviceIds") is not None
            else None
        )
        if "license" in supplied and (not supplied["license"] or not supplied["license"].strip()):
            raise ValidationError("License plate is required")

        updates = {}
        if "userMemo" in supplied:
            updates["user_memo"] = supplied["userMemo"]
        if supplied.get("isPickup") is not None:
            updates["is_pickup"] = supplied["isPickup"]
        if "adminMemo" in supplied:
            updates["admin_memo"] = supplied["adminMemo"]
        if supplied.get("license"):
            updates["license"] = normalize_license(supplied["license"])
        if new_status is not None:
            updates["status"] = new_status.value

        moved = (new_slot_id, new_day) != (reservation.time_slot_id, reservation.date)
        if moved:
            slot = self._get_bookable_time_slot(new_slot_id)
            with self.locks.hold(self.db, slot.id, new_day):
                try:
                    self.db.refresh(slot)
                    self._ensure_seat(slot, new_day, exclude_id=reservation.id)
                    updates["time_slot_id"] = slot.id
                    updates["date"] = new_day
                    self._apply(reservation, updates, service_ids)
                    self.db.commit()
                except Exception:
                    self.db.rollback()
                    raise
        else:
            try:
                self._apply(reservation, updates, service_ids)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        logger.info(
            f"Reservation {reservation_id} updated by user {acting_user.id}: "
            f"{sorted(updates) + (['services'] if service_ids is not None else [])}"
        )
        self.db.expire_all()
        return self.repo.get_reservation_by_id(self.db, reservation_id)

    def _apply(
        self, reservation: Reservation, updates: dict, service_ids: Optional[list[int]]
    ) -> None:
        for key, value in updates.items():
            setattr(reservation, key, value)
        if service_ids is not None:
            self.repo.replace_services(self.db, reservation, service_ids)
        self.db.flush()

    def cancel_reservation(self, reservation_id: int, acting_user: User) -> Reservation:
        """Mark a reservation CANCELLED, freeing its seat; cancelling twice is a no-op"""
        reservation = self.get_reservation(reservation_id, acting_user)
        if reservation.status == ReservationStatus.CANCELLED.value:
            return reservation
        if reservation.status == ReservationStatus.COMPLETED.value:
            raise ValidationError("A completed reservation cannot be cancelled")

        reservation.status = ReservationStatus.CANCELLED.value
        self.db.commit()
        logger.info(f"Reservation {reservation_id} cancelled by user {acting_user.id}")
        return self.repo.get_reservation_by_id(self.db, reservation_id)

    def purge_reservation(self, reservation_id: int) -> dict:
        """Hard delete, admin only"""
        reservation = self.repo.get_reservation_by_id(self.db, reservation_id)
        if not reservation:
            raise NotFoundError("Reservation not found")
        self.repo.delete_reservation(self.db, reservation)
        logger.info(f"Reservation {reservation_id} purged")
        return {"message": "Reservation deleted successfully"}
