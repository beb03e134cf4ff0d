"""Shared validation utilities"""

import re
from datetime import date, datetime
from typing import Optional

# Taiwanese mobile number: 09 followed by 8 digits
PHONE_PATTERN = re.compile(r"^09\d{8}$")

# HH:mm on a 24h clock
TIME_PATTERN = re.compile(r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$")

# Accepted plate shapes after normalization; groups are the two halves around the dash
LICENSE_PATTERNS = (
    re.compile(r"^([A-Z]{2,4})-?(\d{4})$"),  # ABC-1234 / AB1234
    re.compile(r"^(\d{4})-?([A-Z]{2})$"),  # 1234-AA (older format)
    re.compile(r"^([A-Z]\d{3})-?([A-Z]\d{1,2})$"),  # A123-B4 (legacy format)
)


def normalize_license(license: Optional[str]) -> str:
    """Trim and uppercase a plate; None becomes an empty string"""
    if license is None:
        return ""
    return license.strip().upper()


def is_valid_license(license: str) -> bool:
    """Check an already-normalized plate against every accepted shape"""
    return any(pattern.match(license) for pattern in LICENSE_PATTERNS)


def validate_license(license: Optional[str]) -> str:
    """
    Normalize and validate a vehicle license plate.

    "abc1234", "ABC1234" and " ABC-1234 " all come back as "ABC-1234".

    Args:
        license: Plate as typed by the user

    Returns:
        Canonical plate: uppercase, dash between the two halves

    Raises:
        ValueError: If the plate matches none of the accepted formats
    """
    normalized = normalize_license(license)
    for pattern in LICENSE_PATTERNS:
        match = pattern.match(normalized)
        if match:
            return f"{match.group(1)}-{match.group(2)}"
    raise ValueError(
        "Invalid license plate, expected 2-4 letters and 4 digits (e.g. ABC-1234) "
        "or an older format such as 1234-AA"
    )


def is_valid_phone(phone: Optional[str]) -> bool:
    return bool(phone) and PHONE_PATTERN.match(phone) is not None


def is_valid_time(value: Optional[str]) -> bool:
    return bool(value) and TIME_PATTERN.match(value) is not None


def is_valid_day_of_week(day) -> bool:
    # bool is an int subclass; True must not pass as Monday
    return isinstance(day, int) and not isinstance(day, bool) and 0 <= day <= 6


def parse_calendar_date(value) -> Optional[date]:
    """
    Parse a calendar date from "YYYY-MM-DD" or a full ISO-8601 datetime.

    Returns None when the value can't be parsed.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    raw = value.strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def js_weekday(day: date) -> int:
    """Weekday with Sunday as 0, matching TimeSlot.day_of_week"""
    return (day.weekday() + 1) % 7
