"""
Process-wide service wiring.

``ServiceContainer`` is the single place where shared resources (the store
handle, the SMS client and the signing secret) are created, and the single
place where they are torn down.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from mobile_auth.clients.sms_client import (
    DevModeSmsSender,
    HttpSmsGateway,
    SmsSender,
    UnconfiguredSmsSender
)
from mobile_auth.clients.supabase_client import DatabaseManager, SupabaseClient
from mobile_auth.config import Settings
from mobile_auth.services.access_gate import AccessGate
from mobile_auth.services.auth_service import AuthenticationService
from mobile_auth.services.challenge_strategies import (
    FixedCodeGenerator,
    FixedCodeVerifier,
    RandomCodeGenerator,
    StoredChallengeVerifier
)
from mobile_auth.services.token_service import TokenService
from mobile_auth.utils.otp_utils import utc_now

logger = logging.getLogger(__name__)


def build_sms_sender(settings: Settings) -> SmsSender:
    """Pick the delivery channel for the configured mode."""
    if settings.dev_mode:
        return DevModeSmsSender()
    if settings.sms_gateway_url:
        return HttpSmsGateway(
            gateway_url=settings.sms_gateway_url,
            api_key=settings.sms_api_key,
            sender_id=settings.sms_sender_id,
            timeout=settings.sms_timeout_seconds
        )
    logger.warning("SMS_GATEWAY_URL is not set; OTPs will not be delivered")
    return UnconfiguredSmsSender()


class ServiceContainer:
    """Owns the shared resources and the services built on them."""

    def __init__(
        self,
        settings: Settings,
        db_manager: Optional[DatabaseManager] = None,
        sms_sender: Optional[SmsSender] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Build every service from ``settings``.

        Raises:
            TokenConfigurationError: If the signing configuration is unusable
        """
        self.settings = settings
        self.db = db_manager or DatabaseManager(
            SupabaseClient(settings.supabase_url, settings.supabase_key)
        )
        self.sms_sender = sms_sender or build_sms_sender(settings)
        self.tokens = TokenService(
            secret=settings.jwt_secret,
            ttl=settings.token_ttl,
            algorithm=settings.jwt_algorithm
        )
        self.access_gate = AccessGate(self.tokens)

        stored_verifier = StoredChallengeVerifier(self.db.otps)
        if settings.dev_mode:
            logger.warning("Development mode is active: the fixed test OTP is accepted")
            code_generator = FixedCodeGenerator(settings.test_otp)
            challenge_verifier = FixedCodeVerifier(settings.test_otp, stored_verifier)
        else:
            code_generator = RandomCodeGenerator()
            challenge_verifier = stored_verifier

        self.auth_service = AuthenticationService(
            db_manager=self.db,
            token_service=self.tokens,
            code_generator=code_generator,
            challenge_verifier=challenge_verifier,
            sms_sender=self.sms_sender,
            default_country_code=settings.default_country_code,
            otp_ttl_minutes=settings.otp_ttl_minutes,
            expose_codes=settings.dev_mode,
            clock=clock
        )

    async def startup(self) -> None:
        """Connect to the store; a failure here is retried on first use."""
        try:
            await self.db.connect()
        except Exception as e:
            logger.error(f"Initial database connection failed, will retry on first request: {e}")

    async def shutdown(self) -> None:
        await self.sms_sender.close()
        await self.db.close()
        logger.info("Service container shut down")
