"""Time slot router - FastAPI endpoints for the weekly template registry"""

import logging

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from .schemas import (
    AvailableTimeSlotResponse,
    TimeSlotCopyRequest,
    TimeSlotCopyResult,
    TimeSlotCreate,
    TimeSlotResponse,
    TimeSlotUpdate,
)
from .service import TimeSlotService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/time-slot", tags=["Time Slots"])


def get_time_slot_service(db: Session = Depends(get_db)) -> TimeSlotService:
    """Dependency injection for TimeSlotService"""
    return TimeSlotService(db)


# ============================================================================
# PUBLIC ROUTES
# ============================================================================


@router.get("/active", response_model=list[TimeSlotResponse])
async def get_active_time_slots(
    response: Response,
    service: TimeSlotService = Depends(get_time_slot_service),
):
    """Active templates for the booking flow"""
    response.headers["Cache-Control"] = "public, max-age=30, stale-while-revalidate=30"
    return service.get_active_time_slots()


@router.get("/available", response_model=list[AvailableTimeSlotResponse])
async def get_available_time_slots(
    response: Response,
    date: str = Query("", description="Calendar date, YYYY-MM-DD"),
    service: TimeSlotService = Depends(get_time_slot_service),
):
    """Templates for the weekday of `date` with live reservation counts"""
    response.headers["Cache-Control"] = "no-store"
    return service.get_available_time_slots(date)


# ============================================================================
# ADMIN ROUTES
# ============================================================================


@router.get("", response_model=list[TimeSlotResponse])
async def get_time_slots(
    _admin: User = Depends(require_admin),
    service: TimeSlotService = Depends(get_time_slot_service),
):
    """All templates, active or not"""
    return service.get_time_slots()


@router.post("/copy", response_model=TimeSlotCopyResult)
async def copy_time_slots(
    data: TimeSlotCopyRequest,
    _admin: User = Depends(require_admin),
    service: TimeSlotService = Depends(get_time_slot_service),
):
    """Copy one weekday's templates onto other weekdays"""
    return service.copy_day(data)


@router.get("/{time_slot_id}", response_model=TimeSlotResponse)
async def get_time_slot(
    time_slot_id: int,
    _admin: User = Depends(require_admin),
    service: TimeSlotService = Depends(get_time_slot_service),
):
    return TimeSlotResponse.from_model(service.get_time_slot(time_slot_id))


@router.post("", response_model=TimeSlotResponse, status_code=201)
async def create_time_slot(
    data: TimeSlotCreate,
    _admin: User = Depends(require_admin),
    service: TimeSlotService = Depends(get_time_slot_service),
):
    """Create a template"""
    return TimeSlotResponse.from_model(service.create_time_slot(data))


@router.put("/{time_slot_id}", response_model=TimeSlotResponse)
async def update_time_slot(
    time_slot_id: int,
    data: TimeSlotUpdate,
    _admin: User = Depends(require_admin),
    service: TimeSlotService = Depends(get_time_slot_service),
):
    """Update a template"""
    return TimeSlotResponse.from_model(service.update_time_slot(time_slot_id, data))


@router.delete("/{time_slot_id}")
async def delete_time_slot(
    time_slot_id: int,
    _admin: User = Depends(require_admin),
    service: TimeSlotService = Depends(get_time_slot_service),
):
    """Delete a template no reservation references"""
    return service.delete_time_slot(time_slot_id)
