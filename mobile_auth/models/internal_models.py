"""Internal data models for the mobile OTP authentication service."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from mobile_auth.utils.otp_utils import OTP_LENGTH, is_valid_code


@dataclass
class User:
    """Identity keyed by a normalized mobile number."""

    id: int
    mobile_number: str  # Unique, always carries a country-code prefix
    created_at: datetime

    def __post_init__(self):
        """Validate that the stored number is normalized."""
        if not self.mobile_number.startswith("+"):
            raise ValueError(f"Mobile number must be normalized, got {self.mobile_number!r}")


@dataclass
class OtpChallenge:
    """Single standing one-time code for a user."""

    user_id: int
    mobile_number: str
    otp: str
    expiry_time: datetime
    created_at: datetime
    id: Optional[int] = None  # Database-generated ID

    def __post_init__(self):
        """Validate code width after initialization."""
        if not is_valid_code(self.otp):
            raise ValueError(f"OTP must be {OTP_LENGTH} digits")


@dataclass(frozen=True)
class IssuedChallenge:
    """Outcome of a challenge request."""

    user_id: int
    mobile_number: str
    is_new_user: bool
    expires_at: datetime
    code: Optional[str] = None  # Only populated in development mode


@dataclass(frozen=True)
class VerifiedSession:
    """Outcome of a successful challenge verification."""

    token: str
    user: User


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Identity attached to a request by the access gate."""

    user_id: int
    mobile_number: str
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
