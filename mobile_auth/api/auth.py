"""
Authentication API endpoints for OTP challenges and session tokens.
"""

import time
from datetime import datetime, timezone
from typing import Dict, Any

import structlog
from fastapi import APIRouter, Depends, Request

from mobile_auth.api.deps import get_auth_service, get_container, get_current_identity
from mobile_auth.api.errors import get_correlation_id
from mobile_auth.exceptions import AuthServiceError
from mobile_auth.models.api_models import (
    SendOtpRequest,
    SendOtpResponse,
    VerifyOtpRequest,
    VerifyOtpResponse,
    UserResponse,
    CurrentUserResponse
)
from mobile_auth.models.internal_models import AuthenticatedIdentity
from mobile_auth.services.auth_service import AuthenticationService
from mobile_auth.services.container import ServiceContainer
from mobile_auth.observability import (
    trace_function,
    record_challenge_metrics,
    record_verification_metrics
)

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1/auth", tags=["authentication"])


@router.post("/send-otp", response_model=SendOtpResponse, response_model_exclude_none=True)
@trace_function("send_otp_endpoint")
async def send_otp(
    request: SendOtpRequest,
    http_request: Request,
    auth_service: AuthenticationService = Depends(get_auth_service)
) -> SendOtpResponse:
    """
    Issue a one-time code to a mobile number.

    Creates the user on first sight of the number and overwrites any
    previously issued code. In development mode the code is returned in the
    response instead of being sent.
    """
    correlation_id = get_correlation_id(http_request)
    start_time = time.time()

    logger.info("OTP request received", correlation_id=correlation_id)

    try:
        issued = await auth_service.issue_challenge(request.mobileNumber)
    except AuthServiceError as e:
        record_challenge_metrics(success=False, processing_time=time.time() - start_time)
        logger.warning(
            "OTP request rejected",
            error=e.error_type,
            message=e.message,
            correlation_id=correlation_id
        )
        raise

    record_challenge_metrics(
        success=True,
        processing_time=time.time() - start_time,
        is_new_user=issued.is_new_user
    )
    logger.info(
        "OTP issued",
        user_id=issued.user_id,
        is_new_user=issued.is_new_user,
        correlation_id=correlation_id
    )

    if issued.code is not None:
        return SendOtpResponse(
            message=f"OTP sent successfully (DEV MODE - Use test OTP: {issued.code})",
            mobileNumber=issued.mobile_number,
            isNewUser=issued.is_new_user,
            otp=issued.code,
            devMode=True
        )

    return SendOtpResponse(
        message="OTP sent successfully",
        mobileNumber=issued.mobile_number,
        isNewUser=issued.is_new_user
    )


@router.post("/verify-otp", response_model=VerifyOtpResponse)
@trace_function("verify_otp_endpoint")
async def verify_otp(
    request: VerifyOtpRequest,
    http_request: Request,
    auth_service: AuthenticationService = Depends(get_auth_service)
) -> VerifyOtpResponse:
    """
    Verify a one-time code and open a session.

    On success the code is consumed and a signed session token is returned
    together with the user's public fields.
    """
    correlation_id = get_correlation_id(http_request)
    start_time = time.time()

    try:
        session = await auth_service.verify_challenge(request.mobileNumber, request.otp)
    except AuthServiceError as e:
        record_verification_metrics(
            success=False,
            processing_time=time.time() - start_time,
            outcome=e.error_type
        )
        logger.warning(
            "OTP verification rejected",
            error=e.error_type,
            message=e.message,
            correlation_id=correlation_id
        )
        raise

    record_verification_metrics(
        success=True,
        processing_time=time.time() - start_time,
        outcome="verified"
    )
    logger.info("OTP verified", user_id=session.user.id, correlation_id=correlation_id)

    return VerifyOtpResponse(
        message="OTP verified successfully",
        token=session.token,
        user=UserResponse(
            id=session.user.id,
            mobileNumber=session.user.mobile_number,
            createdAt=session.user.created_at
        )
    )


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    auth_service: AuthenticationService = Depends(get_auth_service)
) -> CurrentUserResponse:
    """Return the identity behind the caller's bearer token."""
    user = await auth_service.get_identity_profile(identity)
    return CurrentUserResponse(
        userId=user.id,
        mobileNumber=user.mobile_number,
        createdAt=user.created_at,
        tokenExpiresAt=identity.expires_at
    )


@router.get("/health", response_model=Dict[str, Any])
async def auth_health_check(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    """
    Health check endpoint specific to authentication service.

    Returns:
        Dict with service health status and component checks
    """
    db_healthy = await container.db.health_check()

    return {
        "status": "healthy" if db_healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {
            "database": {
                "status": "healthy" if db_healthy else "unhealthy",
                "details": "Database connectivity check"
            },
            "token_service": {
                "status": "healthy",
                "details": {
                    "algorithm": container.tokens.algorithm,
                    "ttl_seconds": int(container.tokens.ttl.total_seconds())
                }
            }
        },
        "dev_mode": container.settings.dev_mode
    }
