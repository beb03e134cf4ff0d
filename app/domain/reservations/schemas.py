"""Reservation domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel

from ...models import Reservation, ReservationStatus, UserRole
from ..catalog.schemas import ServiceResponse
from ..time_slots.schemas import TimeSlotResponse


class ReservationCreate(BaseModel):
    """Schema for booking a time slot on a calendar date"""

    timeSlotId: Optional[int] = None
    date: Optional[str] = None
    license: Optional[str] = None
    serviceIds: Optional[list[int]] = None
    userMemo: Optional[str] = None
    isPickup: Optional[bool] = False


class CustomerReservationUpdate(BaseModel):
    """Fields a customer may change on their own reservation"""

    timeSlotId: Optional[int] = None
    date: Optional[str] = None
    serviceIds: Optional[list[int]] = None
    userMemo: Optional[str] = None
    isPickup: Optional[bool] = None


class AdminReservationUpdate(CustomerReservationUpdate):
    """Fields an admin may change on any reservation"""

    status: Optional[ReservationStatus] = None
    adminMemo: Optional[str] = None
    license: Optional[str] = None


ReservationUpdate = Union[CustomerReservationUpdate, AdminReservationUpdate]


def scope_update_for_role(payload: AdminReservationUpdate, role: str) -> ReservationUpdate:
    """
    Narrow a parsed update body to what the caller's role may change.

    Customers get a CustomerReservationUpdate carrying only the fields they
    actually sent; admin-only fields in their body are dropped.
    """
    if role == UserRole.ADMIN.value:
        return payload

    allowed = set(CustomerReservationUpdate.model_fields)
    return CustomerReservationUpdate(**payload.model_dump(exclude_unset=True, include=allowed))


class ReservationUserSummary(BaseModel):
    id: int
    name: Optional[str] = None
    phone: Optional[str] = None
    pictureUrl: Optional[str] = None


class ReservationResponse(BaseModel):
    id: int
    userId: int
    timeSlotId: int
    date: str
    license: str
    status: ReservationStatus
    isPickup: bool
    userMemo: Optional[str] = None
    adminMemo: Optional[str] = None
    serviceIds: list[int]
    services: list[ServiceResponse]
    timeSlot: Optional[TimeSlotResponse] = None
    user: Optional[ReservationUserSummary] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, reservation: Reservation) -> "ReservationResponse":
        user = reservation.user
        return cls(
            id=reservation.id,
            userId=reservation.user_id,
            timeSlotId=reservation.time_slot_id,
            date=reservation.date.isoformat(),
            license=reservation.license,
            status=ReservationStatus(reservation.status),
            isPickup=reservation.is_pickup,
            userMemo=reservation.user_memo,
            adminMemo=reservation.admin_memo,
            serviceIds=reservation.service_ids,
            services=[ServiceResponse.from_model(s) for s in reservation.services],
            timeSlot=(
                TimeSlotResponse.from_model(reservation.time_slot) if reservation.time_slot else None
            ),
            user=(
                ReservationUserSummary(
                    id=user.id, name=user.name, phone=user.phone, pictureUrl=user.picture_url
                )
                if user
                else None
            ),
            createdAt=reservation.created_at,
            updatedAt=reservation.updated_at,
        )


class AutoCompleteResult(BaseModel):
    checked: int
    completed: int
