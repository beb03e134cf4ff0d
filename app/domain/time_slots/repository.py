"""Time slot repository - Database operations for weekly templates"""

from datetime import date
from typing import Optional

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from ...models import Reservation, ReservationStatus, TimeSlot


class TimeSlotRepository:
    """Repository for time slot database operations"""

    @staticmethod
    def get_time_slots(db: Session, active_only: bool = False) -> list[TimeSlot]:
        """Get templates ordered by weekday then start time"""
        query = db.query(TimeSlot)
        if active_only:
            query = query.filter(TimeSlot.is_active.is_(True))
        return query.order_by(TimeSlot.day_of_week.asc(), TimeSlot.start_time.asc()).all()

    @staticmethod
    def get_time_slot_by_id(db: Session, time_slot_id: int) -> Optional[TimeSlot]:
        return db.query(TimeSlot).filter(TimeSlot.id == time_slot_id).first()

    @staticmethod
    def get_time_slot_by_day_and_time(
        db: Session, day_of_week: int, start_time: str, exclude_id: Optional[int] = None
    ) -> Optional[TimeSlot]:
        """Find the template occupying a (weekday, start time) pair, active or not"""
        query = db.query(TimeSlot).filter(
            TimeSlot.day_of_week == day_of_week, TimeSlot.start_time == start_time
        )
        if exclude_id is not None:
            query = query.filter(TimeSlot.id != exclude_id)
        return query.first()

    @staticmethod
    def get_time_slots_with_reserved_count(
        db: Session, day_of_week: int, day: date
    ) -> list[tuple[TimeSlot, int]]:
        """Active templates of a weekday, each with its live non-cancelled count on `day`"""
        reserved_count = func.count(Reservation.id)
        rows = (
            db.query(TimeSlot, reserved_count)
            .outerjoin(
                Reservation,
                and_(
                    Reservation.time_slot_id == TimeSlot.id,
                    Reservation.date == day,
                    Reservation.status != ReservationStatus.CANCELLED.value,
                ),
            )
            .filter(TimeSlot.is_active.is_(True), TimeSlot.day_of_week == day_of_week)
            .group_by(TimeSlot.id)
            .order_by(TimeSlot.start_time.asc())
            .all()
        )
        return [(slot, int(count)) for slot, count in rows]

    @staticmethod
    def count_reservations(db: Session, time_slot_id: int) -> int:
        """Any reservation row, whatever its status, referencing the template"""
        return (
            db.query(func.count(Reservation.id))
            .filter(Reservation.time_slot_id == time_slot_id)
            .scalar()
        )

    @staticmethod
    def create_time_slot(db: Session, commit: bool = True, **slot_data) -> TimeSlot:
        slot = TimeSlot(**slot_data)
        db.add(slot)
        if commit:
            db.commit()
            db.refresh(slot)
        return slot

    @staticmethod
    def update_time_slot(db: Session, slot: TimeSlot, **updates) -> TimeSlot:
        for key, value in updates.items():
            if hasattr(slot, key):
                setattr(slot, key, value)

        db.commit()
        db.refresh(slot)
        return slot

    @staticmethod
    def delete_time_slot(db: Session, slot: TimeSlot) -> None:
        db.delete(slot)
        db.commit()
