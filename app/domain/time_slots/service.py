"""Time slot service - Business logic for the weekly template registry"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...cache import CacheNamespace, cache
from ...models import TimeSlot
from ...shared.errors import NotFoundError, ValidationError
from ...shared.validators import (
    is_valid_day_of_week,
    is_valid_time,
    js_weekday,
    parse_calendar_date,
)
from .repository import TimeSlotRepository
from .schemas import (
    AvailableTimeSlotResponse,
    TimeSlotCopyRequest,
    TimeSlotCopyResult,
    TimeSlotCreate,
    TimeSlotResponse,
    TimeSlotUpdate,
)

logger = logging.getLogger(__name__)

DAY_OF_WEEK_MESSAGE = "dayOfWeek must be an integer between 0 and 6 (0 = Sunday, 6 = Saturday)"
START_TIME_MESSAGE = "startTime must use the HH:mm format (e.g. 08:00, 13:30)"
CAPACITY_MESSAGE = "capacity must be greater than 0"
DUPLICATE_MESSAGE = "Time slot already exists"


class TimeSlotService:
    """Service layer for time slot business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TimeSlotRepository()

    def get_time_slots(self) -> list[dict]:
        """All templates (admin view), cached"""
        return cache.get_or_load(
            CacheNamespace.TIME_SLOTS,
            "all",
            lambda: [
                TimeSlotResponse.from_model(slot).model_dump(mode="json")
                for slot in self.repo.get_time_slots(self.db)
            ],
        )

    def get_active_time_slots(self) -> list[dict]:
        """Active templates (public view), cached"""
        return cache.get_or_load(
            CacheNamespace.TIME_SLOTS,
            "active",
            lambda: [
                TimeSlotResponse.from_model(slot).model_dump(mode="json")
                for slot in self.repo.get_time_slots(self.db, active_only=True)
            ],
        )

    def get_available_time_slots(self, date_str: str) -> list[AvailableTimeSlotResponse]:
        """Templates for the weekday of `date_str` with live reservation counts; never cached"""
        day = parse_calendar_date(date_str)
        if day is None:
            raise ValidationError("Invalid date, expected YYYY-MM-DD")

        rows = self.repo.get_time_slots_with_reserved_count(self.db, js_weekday(day), day)
        return [
            AvailableTimeSlotResponse.from_count(slot, day.isoformat(), count)
            for slot, count in rows
        ]

    def get_time_slot(self, time_slot_id: int) -> TimeSlot:
        slot = self.repo.get_time_slot_by_id(self.db, time_slot_id)
        if not slot:
            raise NotFoundError("Time slot not found")
        return slot

    def create_time_slot(self, data: TimeSlotCreate) -> TimeSlot:
        """Create a template after validating fields and the (weekday, start time) uniqueness"""
        if data.dayOfWeek is None:
            raise ValidationError("dayOfWeek is required")
        if not is_valid_day_of_week(data.dayOfWeek):
            raise ValidationError(DAY_OF_WEEK_MESSAGE)
        if not data.startTime:
            raise ValidationError("startTime is required")
        if not is_valid_time(data.startTime):
            raise ValidationError(START_TIME_MESSAGE)
        if data.capacity is not None and data.capacity <= 0:
            raise ValidationError(CAPACITY_MESSAGE)

        if self.repo.get_time_slot_by_day_and_time(self.db, data.dayOfWeek, data.startTime):
            raise ValidationError(DUPLICATE_MESSAGE)

        try:
            slot = self.repo.create_time_slot(
                self.db,
                day_of_week=data.dayOfWeek,
                start_time=data.startTime,
                capacity=data.capacity if data.capacity is not None else 1,
                is_active=data.isActive if data.isActive is not None else True,
            )
        except IntegrityError as e:
            # Lost a race against a concurrent create of the same pair
            self.db.rollback()
            raise ValidationError(DUPLICATE_MESSAGE) from e

        cache.invalidate(CacheNamespace.TIME_SLOTS)
        logger.info(f"Time slot {slot.id} created: day={slot.day_of_week} start={slot.start_time}")
        return slot

    def update_time_slot(self, time_slot_id: int, data: TimeSlotUpdate) -> TimeSlot:
        slot = self.get_time_slot(time_slot_id)
        supplied = data.model_dump(exclude_unset=True, exclude_none=True)

        if "dayOfWeek" in supplied and not is_valid_day_of_week(data.dayOfWeek):
            raise ValidationError(DAY_OF_WEEK_MESSAGE)
        if "startTime" in supplied and not is_valid_time(data.startTime):
            raise ValidationError(START_TIME_MESSAGE)
        if "capacity" in supplied and data.capacity <= 0:
            raise ValidationError(CAPACITY_MESSAGE)

        day_of_week = supplied.get("dayOfWeek", slot.day_of_week)
        start_time = supplied.get("startTime", slot.start_time)
        if self.repo.get_time_slot_by_day_and_time(
            self.db, day_of_week, start_time, exclude_id=slot.id
        ):
            raise ValidationError(DUPLICATE_MESSAGE)

        updates = {}
        if "dayOfWeek" in supplied:
            updates["day_of_week"] = data.dayOfWeek
        if "startTime" in supplied:
            updates["start_time"] = data.startTime
        if "capacity" in supplied:
            updates["capacity"] = data.capacity
        if "isActive" in supplied:
            updates["is_active"] = data.isActive

        try:
            slot = self.repo.update_time_slot(self.db, slot, **updates)
        except IntegrityError as e:
            self.db.rollback()
            raise ValidationError(DUPLICATE_MESSAGE) from e

        cache.invalidate(CacheNamespace.TIME_SLOTS)
        logger.info(f"Time slot {slot.id} updated: {sorted(updates)}")
        return slot

    def delete_time_slot(self, time_slot_id: int) -> dict:
        """Delete a template that no reservation references; deactivate it otherwise"""
        slot = self.get_time_slot(time_slot_id)

        reservation_count = self.repo.count_reservations(self.db, slot.id)
        if reservation_count > 0:
            logger.warning(
                f"Refused to delete time slot {slot.id}: {reservation_count} reservations reference it"
            )
            raise ValidationError(
                "Time slot has reservations and cannot be deleted; deactivate it instead"
            )

        self.repo.delete_time_slot(self.db, slot)
        cache.invalidate(CacheNamespace.TIME_SLOTS)
        logger.info(f"Time slot {time_slot_id} deleted")
        return {"message": "TimeSlot deleted successfully"}

    def copy_day(self, data: TimeSlotCopyRequest) -> TimeSlotCopyResult:
        """Clone the templates of sourceDay onto each target weekday, skipping occupied pairs"""
        if not is_valid_day_of_week(data.sourceDay):
            raise ValidationError(DAY_OF_WEEK_MESSAGE)
        if not data.targetDays:
            raise ValidationError("targetDays must not be empty")
        for day in data.targetDays:
            if not is_valid_day_of_week(day):
                raise ValidationError(DAY_OF_WEEK_MESSAGE)

        sources = [
            slot for slot in self.repo.get_time_slots(self.db) if slot.day_of_week == data.sourceDay
        ]
        created = 0
        skipped = 0
        for target in sorted(set(data.targetDays)):
            if target == data.sourceDay:
                continue
            for source in sources:
                if self.repo.get_time_slot_by_day_and_time(self.db, target, source.start_time):
                    skipped += 1
                    continue
                self.repo.create_time_slot(
                    self.db,
                    commit=False,
                    day_of_week=target,
                    start_time=source.start_time,
                    capacity=source.capacity,
                    is_active=source.is_active,
                )
                # Make the new row visible to the next existence check
                self.db.flush()
                created += 1

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ValidationError(DUPLICATE_MESSAGE) from e

        cache.invalidate(CacheNamespace.TIME_SLOTS)
        logger.info(
            f"Copied time slots of day {data.sourceDay} to {data.targetDays}: "
            f"created={created} skipped={skipped}"
        )
        return TimeSlotCopyResult(created=created, skipped=skipped)
