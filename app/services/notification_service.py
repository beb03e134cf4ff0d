"""
LINE push notifications
Sends a booking summary to the reservation owner after it is created or updated
"""

import logging
from typing import Optional

import httpx

from ..config import LINE_CHANNEL_ACCESS_TOKEN, LINE_PUSH_URL
from ..models import Reservation

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def build_reservation_message(reservation: Reservation, title: str) -> str:
    """
    Plain-text summary of a reservation

    Built while the request's session is still open; the background task
    only receives the resulting string.
    """
    slot = reservation.time_slot
    user = reservation.user
    weekday = WEEKDAY_NAMES[(reservation.date.weekday() + 1) % 7]
    service_names = ", ".join(s.name for s in reservation.services) or "-"

    lines = [
        title,
        f"Date: {reservation.date.isoformat()} ({weekday})",
        f"Time: {slot.start_time if slot else '-'}",
        f"Name: {(user.name if user else None) or '-'}",
        f"License: {reservation.license}",
        f"Services: {service_names}",
        f"Pickup: {'Yes' if reservation.is_pickup else 'No'}",
        f"Status: {reservation.status}",
    ]
    if reservation.user_memo:
        lines.append(f"Memo: {reservation.user_memo}")
    return "\n".join(lines)


async def push_line_message(
    line_id: str,
    text: str,
    access_token: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> tuple[bool, Optional[str]]:
    """
    Push a text message to one LINE user

    Returns:
        Tuple of (success: bool, error_message: Optional[str])
    """
    token = access_token or LINE_CHANNEL_ACCESS_TOKEN
    if not token:
        logger.debug("LINE_CHANNEL_ACCESS_TOKEN not set, skipping push message")
        return False, "Messaging not configured"
    if not line_id:
        return False, "No LINE recipient"

    try:
        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.post(
                LINE_PUSH_URL,
                headers={"Authorization": f"Bearer {token}"},
                json={"to": line_id, "messages": [{"type": "text", "text": text}]},
                timeout=10.0,
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ LINE push request failed: {str(e)}")
        return False, str(e)

    if response.status_code != 200:
        logger.warning(f"LINE push rejected: {response.status_code} {response.text}")
        return False, f"LINE API returned {response.status_code}"

    logger.info("✅ LINE push message sent")
    return True, None


async def notify_reservation(line_id: str, text: str) -> None:
    """Background task entry point; never raises"""
    try:
        await push_line_message(line_id, text)
    except Exception as e:
        logger.exception(f"Unexpected error sending reservation notification: {str(e)}")
