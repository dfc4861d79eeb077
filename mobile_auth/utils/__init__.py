# Utilities module

from .otp_utils import (
    DEFAULT_COUNTRY_CODE,
    OTP_LENGTH,
    OTP_TTL_MINUTES,
    ensure_utc,
    generate_code,
    get_expiry_time,
    is_expired,
    is_valid_code,
    is_valid_mobile_number,
    normalize_mobile_number,
    utc_now,
)

__all__ = [
    "DEFAULT_COUNTRY_CODE",
    "OTP_LENGTH",
    "OTP_TTL_MINUTES",
    "ensure_utc",
    "generate_code",
    "get_expiry_time",
    "is_expired",
    "is_valid_code",
    "is_valid_mobile_number",
    "normalize_mobile_number",
    "utc_now",
]
