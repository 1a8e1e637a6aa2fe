"""Shared validation utilities"""

import re
from datetime import date, datetime, time, timezone
from typing import Optional


def validate_indian_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize an Indian mobile number to E.164 format.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number (+91XXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)

    # Handle +91 / 0 prefixes
    if digits.startswith("91") and len(digits) == 12:
        digits = digits[2:]
    elif digits.startswith("0") and len(digits) == 11:
        digits = digits[1:]

    if len(digits) != 10 or digits[0] not in "6789":
        raise ValueError("Phone number must be a valid 10 digit Indian mobile number")

    return f"+91{digits}"


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

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_short_code(code: Optional[str]) -> Optional[str]:
    """Short codes are 2-10 uppercase letters or digits"""
    if not code:
        return code

    code = code.strip().upper()
    if not re.match(r"^[A-Z0-9]{2,10}$", code):
        raise ValueError("Short code must be 2-10 letters or digits")
    return code


def validate_clock(value: Optional[str]) -> Optional[str]:
    """Validate an HH:MM opening-hours string"""
    if not value:
        return value

    try:
        parsed = datetime.strptime(value.strip(), "%H:%M")
    except ValueError as e:
        raise ValueError("Time must be in HH:MM format") from e
    return parsed.strftime("%H:%M")


def parse_date_param(value: Optional[str], field_name: str = "date") -> Optional[date]:
    """Parse a YYYY-MM-DD query parameter"""
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError as e:
        raise ValueError(f"Invalid {field_name}, expected YYYY-MM-DD") from e


def parse_time_param(value: Optional[str], field_name: str = "time") -> Optional[time]:
    """Parse an HH:MM (or HH:MM:SS) query parameter"""
    if not value:
        return None
    try:
        return time.fromisoformat(value)
    except ValueError as e:
        raise ValueError(f"Invalid {field_name}, expected HH:MM") from e


def to_naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; aware inputs are converted, naive ones taken as UTC"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
