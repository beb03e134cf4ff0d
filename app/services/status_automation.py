"""
Automated status transitions for reservations
Marks PENDING/CONFIRMED reservations whose slot start has passed as COMPLETED
"""

import logging
from datetime import datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ..config import BUSINESS_TIMEZONE
from ..domain.reservations.repository import ReservationRepository
from ..models import Reservation

logger = logging.getLogger(__name__)


def reservation_start(reservation: Reservation, tz: ZoneInfo) -> datetime:
    """Absolute moment of `date + startTime` in the business timezone"""
    hour, minute = (int(part) for part in reservation.time_slot.start_time.split(":"))
    return datetime.combine(reservation.date, time(hour, minute), tzinfo=tz)


def auto_complete_reservations(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Complete every open reservation whose start time is in the past.

    All matching rows move in one UPDATE and one commit, so a failure leaves
    none of them changed. Running it again right after is a no-op.

    Returns:
        dict: {"checked": open reservations examined, "completed": rows updated}
    """
    tz = ZoneInfo(BUSINESS_TIMEZONE)
    now = now or datetime.now(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)

    try:
        candidates = ReservationRepository.get_open_reservations(db)
        due_ids = [r.id for r in candidates if reservation_start(r, tz) < now]

        completed = ReservationRepository.mark_completed(db, due_ids)
        db.commit()
    except Exception as e:
        logger.error(f"❌ Error auto-completing reservations: {str(e)}")
        db.rollback()
        raise

    summary = {"checked": len(candidates), "completed": completed}
    if completed:
        logger.info(f"📊 Auto-complete summary: {summary}")
    else:
        logger.debug("No reservations due for completion")
    return summary
