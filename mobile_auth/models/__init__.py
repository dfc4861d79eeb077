"""Data models for the mobile OTP authentication service."""

from .api_models import (
    SendOtpRequest,
    SendOtpResponse,
    VerifyOtpRequest,
    VerifyOtpResponse,
    UserResponse,
    CurrentUserResponse,
    HealthResponse,
    ErrorResponse
)
from .internal_models import (
    User,
    OtpChallenge,
    IssuedChallenge,
    VerifiedSession,
    AuthenticatedIdentity
)

__all__ = [
    "SendOtpRequest",
    "SendOtpResponse",
    "VerifyOtpRequest",
    "VerifyOtpResponse",
    "UserResponse",
    "CurrentUserResponse",
    "HealthResponse",
    "ErrorResponse",
    "User",
    "OtpChallenge",
    "IssuedChallenge",
    "VerifiedSession",
    "AuthenticatedIdentity"
]
