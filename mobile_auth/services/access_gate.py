"""Bearer token extraction and verification for protected requests."""

import logging
from datetime import datetime, timezone
from typing import Mapping, Optional

from mobile_auth.exceptions import MalformedTokenError, UnauthenticatedError
from mobile_auth.models.internal_models import AuthenticatedIdentity
from mobile_auth.services.token_service import TokenService

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an ``Authorization`` header value.

    Accepts ``Bearer <token>`` (scheme is case-insensitive) as well as a bare
    token.

    Raises:
        UnauthenticatedError: If the header is missing or carries no token
    """
    if authorization is None:
        raise UnauthenticatedError("Authorization header is required")

    parts = authorization.strip().split(None, 1)
    if parts and parts[0].lower() == "bearer":
        token = parts[1].strip() if len(parts) > 1 else ""
    else:
        token = authorization.strip()

    if not token:
        raise UnauthenticatedError("Token is required")
    return token


def _get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is not None:
        return value
    for key, candidate in headers.items():
        if key.lower() == name:
            return candidate
    return None


def _timestamp(value) -> Optional[datetime]:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return None


class AccessGate:
    """Turns request headers into an authenticated identity or rejects them."""

    def __init__(self, token_service: TokenService):
        self.tokens = token_service

    def authenticate(self, headers: Mapping[str, str]) -> AuthenticatedIdentity:
        """
        Verify the bearer credential in ``headers``.

        Raises:
            UnauthenticatedError: If no credential was supplied
            TokenExpiredError: If the token has expired
            MalformedTokenError: If the token is invalid or lacks identity claims
        """
        token = extract_bearer_token(_get_header(headers, "authorization"))
        claims = self.tokens.verify_claims(token)

        user_id = claims.get("userId")
        mobile_number = claims.get("mobileNumber")
        if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(mobile_number, str):
            logger.warning("Token verified but identity claims are missing")
            raise MalformedTokenError("Invalid token")

        return AuthenticatedIdentity(
            user_id=user_id,
            mobile_number=mobile_number,
            issued_at=_timestamp(claims.get("iat")),
            expires_at=_timestamp(claims.get("exp"))
        )
