"""
Session token issuing and verification.

Tokens are HMAC-signed JWTs carrying the caller's payload plus ``iat`` and
``exp``. Nothing is persisted server-side; a token is valid while its
signature checks out and its expiry has not passed.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from mobile_auth.exceptions import MalformedTokenError, TokenConfigurationError, TokenExpiredError

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")
DEFAULT_TOKEN_TTL = timedelta(days=7)
REGISTERED_CLAIMS = ("iat", "exp")


class TokenService:
    """Issues and verifies signed, time-bounded session tokens."""

    def __init__(self, secret: str, ttl: timedelta = DEFAULT_TOKEN_TTL, algorithm: str = "HS256"):
        """
        Initialize the token service.

        Args:
            secret: Shared HMAC signing secret
            ttl: Validity window of issued tokens
            algorithm: JWT HMAC algorithm

        Raises:
            TokenConfigurationError: If the secret, window or algorithm is unusable
        """
        if not secret:
            raise TokenConfigurationError("JWT secret is not configured")
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise TokenConfigurationError(f"Unsupported JWT algorithm: {algorithm}")
        if ttl.total_seconds() <= 0:
            raise TokenConfigurationError("Token validity window must be positive")

        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

        logger.info(f"Token service initialized: algorithm={algorithm}, ttl={ttl}")

    def issue(self, payload: Dict[str, Any], now: Optional[datetime] = None) -> str:
        """
        Sign ``payload`` into a token expiring ``ttl`` after ``now``.

        Args:
            payload: Claims to embed, e.g. ``{"userId": 1, "mobileNumber": "+91..."}``
            now: Issue time, defaults to the current time

        Returns:
            Encoded token string
        """
        issued_at = int((now or datetime.now(timezone.utc)).timestamp())
        claims = dict(payload)
        claims["iat"] = issued_at
        claims["exp"] = issued_at + int(self.ttl.total_seconds())
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Validate signature and expiry, returning the original payload.

        Raises:
            TokenExpiredError: If the signature is valid but the token has expired
            MalformedTokenError: If the signature is invalid or the input is not a token
        """
        claims = self.verify_claims(token)
        return {key: value for key, value in claims.items() if key not in REGISTERED_CLAIMS}

    def verify_claims(self, token: str) -> Dict[str, Any]:
        """Like ``verify`` but keeps ``iat`` and ``exp``."""
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": list(REGISTERED_CLAIMS)}
            )
        except jwt.ExpiredSignatureError as e:
            logger.info("Rejected expired token")
            raise TokenExpiredError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected invalid token: {type(e).__name__}")
            raise MalformedTokenError("Invalid token") from e

    @staticmethod
    def decode(token: str) -> Optional[Dict[str, Any]]:
        """
        Read a token's claims without checking signature or expiry.

        For diagnostics only; never use the result to authorize anything.
        """
        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            return None
        return claims if isinstance(claims, dict) else None
