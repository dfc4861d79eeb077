"""
Phone number and one-time code utilities.

This module provides functions for:
- Normalizing mobile numbers to carry a country-code prefix
- Validating mobile number and code formats
- Generating fixed-width numeric codes
- Computing and checking challenge expiry
"""

import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

OTP_LENGTH = 6
OTP_TTL_MINUTES = 15
DEFAULT_COUNTRY_CODE = "+91"

_MOBILE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$", re.ASCII)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_mobile_number(mobile_number: str, default_country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """
    Ensure a mobile number carries a leading country-code prefix.

    Numbers already starting with ``+`` are returned unchanged; anything else
    gets ``default_country_code`` prefixed.
    """
    cleaned = mobile_number.strip()
    if cleaned.startswith("+"):
        return cleaned
    return f"{default_country_code}{cleaned}"


def is_valid_mobile_number(mobile_number: str) -> bool:
    """Check for an international number: optional ``+`` then 2-15 ASCII digits."""
    return bool(_MOBILE_PATTERN.fullmatch(mobile_number))


def is_valid_code(code: str, length: int = OTP_LENGTH) -> bool:
    """Check that ``code`` is exactly ``length`` ASCII digits."""
    return len(code) == length and code.isascii() and code.isdigit()


def generate_code(length: int = OTP_LENGTH) -> str:
    """Generate a uniformly random numeric code, zero-padded to ``length``."""
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def get_expiry_time(now: Optional[datetime] = None, minutes: int = OTP_TTL_MINUTES) -> datetime:
    """Expiry timestamp ``minutes`` after ``now``."""
    return (now or utc_now()) + timedelta(minutes=minutes)


def is_expired(expiry_time: datetime, now: Optional[datetime] = None) -> bool:
    """True only when ``now`` is strictly after ``expiry_time``."""
    return ensure_utc(now or utc_now()) > ensure_utc(expiry_time)
