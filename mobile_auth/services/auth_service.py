"""
Authentication service for the mobile OTP challenge/response flow.

This module provides the core business logic for:
- Issuing one-time code challenges to mobile numbers
- Verifying submitted codes against the standing challenge
- Minting session tokens once a challenge is answered
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from mobile_auth.clients.sms_client import SmsSender, UnconfiguredSmsSender
from mobile_auth.clients.supabase_client import DatabaseManager
from mobile_auth.exceptions import UserNotFoundError, ValidationError
from mobile_auth.models.internal_models import (
    AuthenticatedIdentity,
    IssuedChallenge,
    OtpChallenge,
    User,
    VerifiedSession
)
from mobile_auth.services.challenge_strategies import (
    ChallengeVerifier,
    CodeGenerator,
    RandomCodeGenerator,
    StoredChallengeVerifier
)
from mobile_auth.services.token_service import TokenService
from mobile_auth.utils.otp_utils import (
    DEFAULT_COUNTRY_CODE,
    OTP_TTL_MINUTES,
    get_expiry_time,
    is_valid_code,
    is_valid_mobile_number,
    normalize_mobile_number,
    utc_now
)

logger = logging.getLogger(__name__)


class AuthenticationService:
    """
    Core authentication service handling challenge issue and verification.

    Collaborators are injected so production and development wiring differ
    only in the code generator and challenge verifier passed in.
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        token_service: TokenService,
        code_generator: Optional[CodeGenerator] = None,
        challenge_verifier: Optional[ChallengeVerifier] = None,
        sms_sender: Optional[SmsSender] = None,
        default_country_code: str = DEFAULT_COUNTRY_CODE,
        otp_ttl_minutes: int = OTP_TTL_MINUTES,
        expose_codes: bool = False,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize authentication service.

        Args:
            db_manager: Store access for users and challenges
            token_service: Signs session tokens
            code_generator: Source of challenge codes (random by default)
            challenge_verifier: Verification strategy (stored challenge by default)
            sms_sender: Delivery channel for codes
            default_country_code: Prefix for numbers given without ``+``
            otp_ttl_minutes: Challenge validity window
            expose_codes: Return issued codes to the caller instead of sending them
            clock: Returns the current UTC time
        """
        self.db = db_manager
        self.tokens = token_service
        self.code_generator = code_generator or RandomCodeGenerator()
        self.challenge_verifier = challenge_verifier or StoredChallengeVerifier(db_manager.otps)
        self.sms_sender = sms_sender or UnconfiguredSmsSender()
        self.default_country_code = default_country_code
        self.otp_ttl_minutes = otp_ttl_minutes
        self.expose_codes = expose_codes
        self.clock = clock

        logger.info(
            f"Authentication service initialized: ttl={otp_ttl_minutes}m, "
            f"country_code={default_country_code}, expose_codes={expose_codes}"
        )

    def normalize(self, mobile_number: str) -> str:
        return normalize_mobile_number(mobile_number, self.default_country_code)

    async def issue_challenge(self, mobile_number: Optional[str]) -> IssuedChallenge:
        """
        Issue a one-time code for a mobile number.

        Workflow:
        1. Validate and normalize the number
        2. Resolve or create the user
        3. Generate a code and overwrite the user's standing challenge
        4. Deliver the code (outside development mode)

        Raises:
            ValidationError: If the number is missing or malformed
            StoreUnavailableError: If the store cannot be reached
        """
        if not mobile_number or not mobile_number.strip():
            raise ValidationError("Mobile number is required")

        raw = mobile_number.strip()
        if not is_valid_mobile_number(raw):
            raise ValidationError("Invalid mobile number format")

        normalized = self.normalize(raw)
        user, is_new_user = await self.db.users.get_or_create_user(normalized)

        now = self.clock()
        code = self.code_generator.generate()
        challenge = OtpChallenge(
            user_id=user.id,
            mobile_number=normalized,
            otp=code,
            expiry_time=get_expiry_time(now, self.otp_ttl_minutes),
            created_at=now
        )
        await self.db.otps.upsert_challenge(challenge)

        logger.info(f"Issued challenge for user {user.id} (new_user={is_new_user})")

        await self._deliver(normalized, code)

        return IssuedChallenge(
            user_id=user.id,
            mobile_number=normalized,
            is_new_user=is_new_user,
            expires_at=challenge.expiry_time,
            code=code if self.expose_codes else None
        )

    async def verify_challenge(self, mobile_number: Optional[str], code: Optional[str]) -> VerifiedSession:
        """
        Verify a submitted code and mint a session token.

        Raises:
            ValidationError: If fields are missing or the code is not 6 digits
            UserNotFoundError: If no challenge was ever requested for the number
            ChallengeNotFoundError: If there is no standing challenge
            ChallengeExpiredError: If the standing challenge has expired
            InvalidCodeError: If the code does not match
        """
        if not mobile_number or not mobile_number.strip() or not code:
            raise ValidationError("Mobile number and OTP are required")

        if not is_valid_code(code):
            raise ValidationError("Invalid OTP format. OTP must be 6 digits")

        normalized = self.normalize(mobile_number.strip())
        user = await self.db.users.get_user_by_mobile(normalized)
        if user is None:
            raise UserNotFoundError("User not found. Please request OTP first")

        await self.challenge_verifier.verify(user, code, self.clock())

        token = self.tokens.issue(
            {"userId": user.id, "mobileNumber": user.mobile_number},
            now=self.clock()
        )
        logger.info(f"Verified challenge and issued session for user {user.id}")
        return VerifiedSession(token=token, user=user)

    async def get_identity_profile(self, identity: AuthenticatedIdentity) -> User:
        """Load the stored user behind an authenticated identity."""
        user = await self.db.users.get_user_by_id(identity.user_id)
        if user is None:
            raise UserNotFoundError("User not found")
        return user

    async def _deliver(self, mobile_number: str, code: str) -> None:
        """Hand the code to the SMS sender; failures never reach the caller."""
        try:
            delivered = await self.sms_sender.send_otp(mobile_number, code)
            if not delivered:
                logger.warning(f"OTP delivery to {mobile_number} did not succeed")
        except Exception as e:
            logger.error(f"OTP delivery to {mobile_number} failed: {e}")
