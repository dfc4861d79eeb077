"""
SMS delivery for one-time codes.

Delivery is best effort: senders log failures and report them through their
return value instead of raising, so a broken gateway never fails a request.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


def _digits(mobile_number: str) -> str:
    return "".join(ch for ch in (mobile_number or "").strip() if ch.isascii() and ch.isdigit())


class SmsSender:
    """Interface for OTP delivery channels."""

    async def send_otp(self, mobile_number: str, otp: str) -> bool:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class UnconfiguredSmsSender(SmsSender):
    """Used when no gateway is configured; the code is never delivered."""

    async def send_otp(self, mobile_number: str, otp: str) -> bool:
        logger.warning(f"SMS gateway not configured; OTP for {mobile_number} was not delivered")
        return False


class DevModeSmsSender(SmsSender):
    """Development sink that writes the code to the log."""

    async def send_otp(self, mobile_number: str, otp: str) -> bool:
        logger.info(f"[DEV MODE] Test OTP for {mobile_number}: {otp}")
        return True


class HttpSmsGateway(SmsSender):
    """
    Generic JSON-over-HTTP SMS gateway.

    Posts ``{"mobile": ..., "otp": ..., "sender": ...}`` to the configured URL
    with the API key in the ``authkey`` header.
    """

    def __init__(
        self,
        gateway_url: str,
        api_key: Optional[str] = None,
        sender_id: Optional[str] = None,
        timeout: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.gateway_url = gateway_url
        self.api_key = api_key
        self.sender_id = sender_id
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def send_otp(self, mobile_number: str, otp: str) -> bool:
        mobile = _digits(mobile_number)
        if not mobile:
            logger.warning(f"SMS send skipped: invalid mobile number {mobile_number!r}")
            return False

        payload = {"mobile": mobile, "otp": otp}
        if self.sender_id:
            payload["sender"] = self.sender_id
        headers = {"accept": "application/json", "content-type": "application/json"}
        if self.api_key:
            headers["authkey"] = self.api_key

        try:
            response = await self._client.post(self.gateway_url, json=payload, headers=headers)
            response.raise_for_status()
            logger.info(f"OTP SMS accepted by gateway for {mobile_number}")
            return True
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout sending OTP SMS to {mobile_number}: {e}")
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"SMS gateway rejected OTP for {mobile_number}: "
                f"status={e.response.status_code} body={e.response.text[:200]}"
            )
        except httpx.HTTPError as e:
            logger.warning(f"SMS send failed for {mobile_number}: {e}")
        return False

    async def close(self) -> None:
        await self._client.aclose()
