"""Reservation router - FastAPI endpoints for booking"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import Reservation, User
from ...services.notification_service import build_reservation_message, notify_reservation
from ...services.status_automation import auto_complete_reservations
from .schemas import (
    AdminReservationUpdate,
    AutoCompleteResult,
    ReservationCreate,
    ReservationResponse,
    scope_update_for_role,
)
from .service import ReservationAllocator

router = APIRouter(prefix="/reserve", tags=["Reservations"])


def get_reservation_allocator(db: Session = Depends(get_db)) -> ReservationAllocator:
    """Dependency injection for ReservationAllocator"""
    return ReservationAllocator(db)


def _schedule_notification(
    background_tasks: BackgroundTasks, reservation: Reservation, title: str
) -> None:
    if reservation.user and reservation.user.line_id:
        text = build_reservation_message(reservation, title)
        background_tasks.add_task(notify_reservation, reservation.user.line_id, text)


@router.get("", response_model=list[ReservationResponse])
async def get_reservations(
    current_user: User = Depends(get_current_user),
    allocator: ReservationAllocator = Depends(get_reservation_allocator),
):
    """All reservations for admins, the caller's own otherwise"""
    return [ReservationResponse.from_model(r) for r in allocator.get_reservations(current_user)]


@router.post("", response_model=ReservationResponse, status_code=201)
async def create_reservation(
    data: ReservationCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    allocator: ReservationAllocator = Depends(get_reservation_allocator),
):
    reservation = allocator.create_reservation(data, current_user)
    _schedule_notification(background_tasks, reservation, "Your reservation has been received")
    return ReservationResponse.from_model(reservation)


@router.post("/auto-complete", response_model=AutoCompleteResult)
async def run_auto_complete(
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Run the completion sweep now"""
    return AutoCompleteResult(**auto_complete_reservations(db))


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: int,
    current_user: User = Depends(get_current_user),
    allocator: ReservationAllocator = Depends(get_reservation_allocator),
):
    return ReservationResponse.from_model(allocator.get_reservation(reservation_id, current_user))


@router.put("/{reservation_id}", response_model=ReservationResponse)
async def update_reservation(
    reservation_id: int,
    data: AdminReservationUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    allocator: ReservationAllocator = Depends(get_reservation_allocator),
):
    """
    Partial update. Customers may change slot, date, services, memo and
    pickup on their own reservations; status, adminMemo and license in a
    customer body are ignored.
    """
    scoped = scope_update_for_role(data, current_user.role)
    reservation = allocator.update_reservation(reservation_id, scoped, current_user)
    _schedule_notification(background_tasks, reservation, "Your reservation has been updated")
    return ReservationResponse.from_model(reservation)


@router.delete("/{reservation_id}", response_model=ReservationResponse)
async def cancel_reservation(
    reservation_id: int,
    current_user: User = Depends(get_current_user),
    allocator: ReservationAllocator = Depends(get_reservation_allocator),
):
    """Cancel a reservation; the row is kept with status CANCELLED"""
    return ReservationResponse.from_model(
        allocator.cancel_reservation(reservation_id, current_user)
    )


@router.delete("/{reservation_id}/purge")
async def purge_reservation(
    reservation_id: int,
    _admin: User = Depends(require_admin),
    allocator: ReservationAllocator = Depends(get_reservation_allocator),
):
    return allocator.purge_reservation(reservation_id)
