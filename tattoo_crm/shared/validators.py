"""Shared validation utilities"""

import re
from datetime import date, datetime, timezone
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number (digits, optional leading +).

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    stripped = phone.strip()
    digits = re.sub(r"\D", "", stripped)
    if len(digits) < 8 or len(digits) > 15:
        raise ValueError("Phone number must contain 8 to 15 digits")

    return f"+{digits}" if stripped.startswith("+") else digits


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email format")
    return email


def validate_hhmm(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if not HHMM_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM format")
    return value


def parse_date(value: str) -> date:
    """Parse YYYY-MM-DD (or a full ISO timestamp) into a date"""
    try:
        return date.fromisoformat(value[:10])
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid date: {value!r}") from e


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC"""
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp into a naive UTC datetime"""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"Invalid datetime: {value!r}") from e
    return to_naive_utc(dt)
