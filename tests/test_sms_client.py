"""
Tests for SMS delivery channels.
"""

import json
import logging

import httpx
import pytest

from mobile_auth.clients.sms_client import DevModeSmsSender, HttpSmsGateway, UnconfiguredSmsSender

GATEWAY_URL = "https://sms.example.test/otp"


def make_gateway(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpSmsGateway(GATEWAY_URL, http_client=client, **kwargs)


class TestHttpSmsGateway:
    """Test cases for HttpSmsGateway."""

    @pytest.mark.asyncio
    async def test_successful_send(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"type": "success"})

        gateway = make_gateway(handler, api_key="key-123", sender_id="AUTHSV")

        assert await gateway.send_otp("+91 98765 43210", "048213") is True
        await gateway.close()

        assert len(requests) == 1
        request = requests[0]
        assert str(request.url) == GATEWAY_URL
        assert request.headers["authkey"] == "key-123"
        assert json.loads(request.content) == {
            "mobile": "919876543210",
            "otp": "048213",
            "sender": "AUTHSV"
        }

    @pytest.mark.asyncio
    async def test_optional_fields_are_omitted(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200)

        gateway = make_gateway(handler)
        await gateway.send_otp("+919876543210", "048213")

        assert "authkey" not in requests[0].headers
        assert json.loads(requests[0].content) == {"mobile": "919876543210", "otp": "048213"}

    @pytest.mark.asyncio
    async def test_gateway_error_status_returns_false(self):
        gateway = make_gateway(lambda request: httpx.Response(500, text="upstream failure"))

        assert await gateway.send_otp("+919876543210", "048213") is False

    @pytest.mark.asyncio
    async def test_network_error_returns_false(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway = make_gateway(handler)

        assert await gateway.send_otp("+919876543210", "048213") is False

    @pytest.mark.asyncio
    async def test_timeout_returns_false(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        gateway = make_gateway(handler)

        assert await gateway.send_otp("+919876543210", "048213") is False

    @pytest.mark.asyncio
    async def test_number_without_digits_is_skipped(self):
        calls = []
        gateway = make_gateway(lambda request: calls.append(request) or httpx.Response(200))

        assert await gateway.send_otp("   ", "048213") is False
        assert calls == []

    @pytest.mark.asyncio
    async def test_only_ascii_digits_are_sent(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200)

        gateway = make_gateway(handler)

        assert await gateway.send_otp("٩٨٧٦٥٤٣٢١٠", "048213") is False
        await gateway.send_otp("+91 ９８７６ 543210", "048213")

        assert len(requests) == 1
        assert json.loads(requests[0].content)["mobile"] == "91543210"


class TestFallbackSenders:

    @pytest.mark.asyncio
    async def test_unconfigured_sender_reports_undelivered(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert await UnconfiguredSmsSender().send_otp("+919876543210", "048213") is False

        assert "not delivered" in caplog.text
        assert "048213" not in caplog.text

    @pytest.mark.asyncio
    async def test_dev_mode_sender_logs_code(self, caplog):
        with caplog.at_level(logging.INFO):
            assert await DevModeSmsSender().send_otp("+919876543210", "123456") is True

        assert "[DEV MODE] Test OTP for +919876543210: 123456" in caplog.text
