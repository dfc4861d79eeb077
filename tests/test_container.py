"""
Tests for service wiring.
"""

from unittest.mock import AsyncMock

import pytest

from mobile_auth.clients.sms_client import DevModeSmsSender, HttpSmsGateway, UnconfiguredSmsSender
from mobile_auth.exceptions import StoreUnavailableError, TokenConfigurationError
from mobile_auth.services.challenge_strategies import (
    FixedCodeGenerator,
    FixedCodeVerifier,
    RandomCodeGenerator,
    StoredChallengeVerifier,
)
from mobile_auth.services.container import ServiceContainer, build_sms_sender


class TestBuildSmsSender:

    def test_dev_mode(self, dev_settings):
        assert isinstance(build_sms_sender(dev_settings), DevModeSmsSender)

    def test_gateway(self, settings):
        configured = settings.model_copy(update={"sms_gateway_url": "https://sms.example.test/otp"})
        sender = build_sms_sender(configured)
        assert isinstance(sender, HttpSmsGateway)
        assert sender.gateway_url == "https://sms.example.test/otp"

    def test_unconfigured(self, settings):
        assert isinstance(build_sms_sender(settings), UnconfiguredSmsSender)


class TestServiceContainer:

    def test_production_wiring(self, settings, database):
        container = ServiceContainer(settings, db_manager=database)

        service = container.auth_service
        assert isinstance(service.code_generator, RandomCodeGenerator)
        assert isinstance(service.challenge_verifier, StoredChallengeVerifier)
        assert service.expose_codes is False

    def test_dev_wiring(self, dev_settings, database):
        container = ServiceContainer(dev_settings, db_manager=database)

        service = container.auth_service
        assert isinstance(service.code_generator, FixedCodeGenerator)
        assert isinstance(service.challenge_verifier, FixedCodeVerifier)
        assert service.expose_codes is True

    def test_missing_secret_fails_fast(self, settings, database):
        with pytest.raises(TokenConfigurationError):
            ServiceContainer(settings.model_copy(update={"jwt_secret": ""}), db_manager=database)

    @pytest.mark.asyncio
    async def test_startup_tolerates_store_outage(self, settings, database):
        database.connect = AsyncMock(side_effect=StoreUnavailableError("Database is unavailable"))
        container = ServiceContainer(settings, db_manager=database)

        await container.startup()

        database.connect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shutdown_releases_resources(self, settings, database, sms_sender):
        container = ServiceContainer(settings, db_manager=database, sms_sender=sms_sender)

        await container.startup()
        await container.shutdown()

        assert database.connected is True
        assert database.closed is True
        assert sms_sender.closed is True
