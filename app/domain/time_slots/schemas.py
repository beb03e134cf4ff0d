"""Time slot domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ...models import TimeSlot


class TimeSlotCreate(BaseModel):
    """Schema for creating a weekly time slot template"""

    dayOfWeek: Optional[int] = None
    startTime: Optional[str] = None
    capacity: Optional[int] = None
    isActive: Optional[bool] = None


class TimeSlotUpdate(BaseModel):
    """Schema for updating a template; only supplied fields are applied"""

    dayOfWeek: Optional[int] = None
    startTime: Optional[str] = None
    capacity: Optional[int] = None
    isActive: Optional[bool] = None


class TimeSlotCopyRequest(BaseModel):
    """Clone every template of one weekday onto other weekdays"""

    sourceDay: int
    targetDays: list[int]


class TimeSlotCopyResult(BaseModel):
    created: int
    skipped: int


class TimeSlotResponse(BaseModel):
    """Schema for time slot response"""

    id: int
    dayOfWeek: int
    startTime: str
    capacity: int
    isActive: bool
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, slot: TimeSlot) -> "TimeSlotResponse":
        return cls(
            id=slot.id,
            dayOfWeek=slot.day_of_week,
            startTime=slot.start_time,
            capacity=slot.capacity,
            isActive=slot.is_active,
            createdAt=slot.created_at,
            updatedAt=slot.updated_at,
        )


class AvailableTimeSlotResponse(TimeSlotResponse):
    """A template evaluated against one calendar date"""

    date: str
    reservedCount: int
    remaining: int
    available: bool

    @classmethod
    def from_count(cls, slot: TimeSlot, day: str, reserved_count: int) -> "AvailableTimeSlotResponse":
        base = TimeSlotResponse.from_model(slot).model_dump()
        return cls(
            **base,
            date=day,
            reservedCount=reserved_count,
            remaining=max(slot.capacity - reserved_count, 0),
            available=reserved_count < slot.capacity,
        )
