"""Pydantic models for API requests and responses."""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class SendOtpRequest(BaseModel):
    """Request model for the send-otp endpoint."""

    mobileNumber: str = Field(..., max_length=32, description="Mobile number, with or without country code")


class SendOtpResponse(BaseModel):
    """Response model for the send-otp endpoint."""

    success: bool = Field(True, description="Whether the code was issued")
    message: str = Field(..., description="Human-readable result message")
    mobileNumber: str = Field(..., description="Normalized mobile number")
    isNewUser: bool = Field(..., description="Whether this request created the user")
    otp: Optional[str] = Field(None, description="Issued code (development mode only)")
    devMode: Optional[bool] = Field(None, description="Present when development mode is active")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "success": True,
            "message": "OTP sent successfully",
            "mobileNumber": "+919876543210",
            "isNewUser": True
        }
    })


class VerifyOtpRequest(BaseModel):
    """Request model for the verify-otp endpoint."""

    mobileNumber: str = Field(..., max_length=32, description="Mobile number used to request the code")
    otp: str = Field(..., max_length=16, description="Six-digit one-time code")


class UserResponse(BaseModel):
    """Public fields of a user identity."""

    id: int
    mobileNumber: str
    createdAt: datetime


class VerifyOtpResponse(BaseModel):
    """Response model for the verify-otp endpoint."""

    success: bool = Field(True, description="Whether verification succeeded")
    message: str = Field(..., description="Human-readable result message")
    token: str = Field(..., description="Signed session token")
    user: UserResponse

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "success": True,
            "message": "OTP verified successfully",
            "token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
            "user": {
                "id": 1,
                "mobileNumber": "+919876543210",
                "createdAt": "2024-01-01T12:00:00Z"
            }
        }
    })


class CurrentUserResponse(BaseModel):
    """Response model for the authenticated identity endpoint."""

    userId: int
    mobileNumber: str
    createdAt: datetime
    tokenExpiresAt: Optional[datetime] = None


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., description="Service health status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    version: str = Field(..., description="Service version")
    components: Optional[Dict[str, str]] = Field(None, description="Per-component status")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "status": "healthy",
            "timestamp": "2024-01-01T12:00:00Z",
            "version": "1.0.0"
        }
    })


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Error type or category")
    message: str = Field(..., description="Human-readable error message")
    correlation_id: str = Field(..., description="Request correlation ID for tracing")
    timestamp: datetime = Field(..., description="Error timestamp")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "error": "ValidationError",
            "message": "Invalid mobile number format",
            "correlation_id": "req_123456789",
            "timestamp": "2024-01-01T12:00:00Z"
        }
    })
