"""
Pluggable code generation and challenge verification.

Production wiring uses ``RandomCodeGenerator`` with ``StoredChallengeVerifier``.
Development mode swaps in ``FixedCodeGenerator`` and wraps the stored verifier
in ``FixedCodeVerifier`` so a well-known test code always works.
"""

import logging
import secrets
from datetime import datetime

from mobile_auth.clients.supabase_client import OtpRepository
from mobile_auth.exceptions import ChallengeExpiredError, ChallengeNotFoundError, InvalidCodeError
from mobile_auth.models.internal_models import User
from mobile_auth.utils.otp_utils import OTP_LENGTH, generate_code, is_expired, is_valid_code

logger = logging.getLogger(__name__)


class CodeGenerator:
    """Produces the code stored for a new challenge."""

    def generate(self) -> str:
        raise NotImplementedError


class RandomCodeGenerator(CodeGenerator):
    def __init__(self, length: int = OTP_LENGTH):
        self.length = length

    def generate(self) -> str:
        return generate_code(self.length)


class FixedCodeGenerator(CodeGenerator):
    """Always issues the same code."""

    def __init__(self, code: str):
        if not is_valid_code(code):
            raise ValueError(f"Fixed code must be {OTP_LENGTH} digits")
        self.code = code

    def generate(self) -> str:
        return self.code


class ChallengeVerifier:
    """
    Decides whether a submitted code proves possession of the number.

    Implementations return normally on success and raise one of
    ``ChallengeNotFoundError``, ``ChallengeExpiredError`` or
    ``InvalidCodeError`` otherwise.
    """

    async def verify(self, user: User, code: str, now: datetime) -> None:
        raise NotImplementedError


class StoredChallengeVerifier(ChallengeVerifier):
    """Checks the code against the user's standing challenge and consumes it."""

    def __init__(self, otps: OtpRepository):
        self.otps = otps

    async def verify(self, user: User, code: str, now: datetime) -> None:
        challenge = await self.otps.get_challenge(user.id, user.mobile_number)
        if challenge is None:
            raise ChallengeNotFoundError("OTP not found. Please request a new OTP")

        if is_expired(challenge.expiry_time, now):
            raise ChallengeExpiredError("OTP has expired. Please request a new OTP")

        if not secrets.compare_digest(challenge.otp, code):
            raise InvalidCodeError("Invalid OTP")

        # A concurrent verification may have deleted the row first
        if not await self.otps.consume_challenge(user.id, code):
            raise ChallengeNotFoundError("OTP not found. Please request a new OTP")


class FixedCodeVerifier(ChallengeVerifier):
    """
    Accepts ``test_code`` outright and defers every other code to ``fallback``.

    An accepted test code still clears the user's standing challenge, so a
    successful login leaves no live code behind in development mode either.
    """

    def __init__(self, test_code: str, fallback: StoredChallengeVerifier):
        self.test_code = test_code
        self.fallback = fallback

    async def verify(self, user: User, code: str, now: datetime) -> None:
        if secrets.compare_digest(code, self.test_code):
            logger.info(f"[DEV MODE] Accepting test OTP for {user.mobile_number}")
            await self.fallback.otps.consume_challenge(user.id, code)
            return
        await self.fallback.verify(user, code, now)
