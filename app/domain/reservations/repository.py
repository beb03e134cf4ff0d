"""Reservation repository - Database operations for reservations"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import Reservation, ReservationService, ReservationStatus, TimeSlot

OPEN_STATUSES = (ReservationStatus.PENDING.value, ReservationStatus.CONFIRMED.value)


def _with_relations(query):
    return query.options(
        joinedload(Reservation.time_slot),
        joinedload(Reservation.user),
        selectinload(Reservation.service_links).joinedload(ReservationService.service),
    )


class ReservationRepository:
    """Repository for reservation database operations"""

    @staticmethod
    def get_reservations(db: Session, user_id: Optional[int] = None) -> list[Reservation]:
        """Reservations ordered by template weekday then start time; one user's when user_id is set"""
        query = _with_relations(db.query(Reservation)).join(
            TimeSlot, Reservation.time_slot_id == TimeSlot.id
        )
        if user_id is not None:
            query = query.filter(Reservation.user_id == user_id)
        return query.order_by(
            TimeSlot.day_of_week.asc(),
            TimeSlot.start_time.asc(),
            Reservation.date.asc(),
            Reservation.id.asc(),
        ).all()

    @staticmethod
    def get_reservation_by_id(db: Session, reservation_id: int) -> Optional[Reservation]:
        return (
            _with_relations(db.query(Reservation))
            .filter(Reservation.id == reservation_id)
            .first()
        )

    @staticmethod
    def count_active_reservations(
        db: Session, time_slot_id: int, day: date, exclude_id: Optional[int] = None
    ) -> int:
        """Non-cancelled reservations holding a seat in (time_slot_id, day)"""
        query = db.query(func.count(Reservation.id)).filter(
            Reservation.time_slot_id == time_slot_id,
            Reservation.date == day,
            Reservation.status != ReservationStatus.CANCELLED.value,
        )
        if exclude_id is not None:
            query = query.filter(Reservation.id != exclude_id)
        return query.scalar()

    @staticmethod
    def add_reservation(db: Session, service_ids: list[int], **reservation_data) -> Reservation:
        """Stage a reservation with its service join rows; the caller commits"""
        reservation = Reservation(**reservation_data)
        reservation.service_links = [
            ReservationService(service_id=service_id, position=position)
            for position, service_id in enumerate(service_ids)
        ]
        db.add(reservation)
        db.flush()
        return reservation

    @staticmethod
    def replace_services(db: Session, reservation: Reservation, service_ids: list[int]) -> None:
        """Delete every join row, then recreate them in the new order"""
        reservation.service_links.clear()
        db.flush()
        for position, service_id in enumerate(service_ids):
            reservation.service_links.append(
                ReservationService(service_id=service_id, position=position)
            )
        db.flush()

    @staticmethod
    def get_open_reservations(db: Session) -> list[Reservation]:
        """PENDING/CONFIRMED reservations with their templates, for the auto-complete sweep"""
        return (
            db.query(Reservation)
            .options(joinedload(Reservation.time_slot))
            .filter(Reservation.status.in_(OPEN_STATUSES))
            .all()
        )

    @staticmethod
    def mark_completed(db: Session, reservation_ids: list[int]) -> int:
        """One multi-row UPDATE; rows that left PENDING/CONFIRMED meanwhile are untouched"""
        if not reservation_ids:
            return 0
        return (
            db.query(Reservation)
            .filter(Reservation.id.in_(reservation_ids), Reservation.status.in_(OPEN_STATUSES))
            .update(
                {Reservation.status: ReservationStatus.COMPLETED.value},
                synchronize_session=False,
            )
        )

    @staticmethod
    def delete_reservation(db: Session, reservation: Reservation) -> None:
        db.delete(reservation)
        db.commit()
