"""Msegat SMS gateway client."""

import logging

import httpx

from restaurant_queue.clients.resilience import (
    APIError,
    SchemaChangeError,
    TransientAPIError,
    classify_response,
    msegat_breaker,
    resilient_request,
)
from restaurant_queue.models.settings import MsegatConfig

logger = logging.getLogger(__name__)


def strip_plus(mobile: str) -> str:
    """Gateways expect ``9665XXXXXXXX`` without the leading ``+``."""
    return mobile[1:] if mobile.startswith("+") else mobile


class MsegatClient:
    """Sends SMS through Msegat's JSON gateway.

    ``send`` never raises: transport and gateway errors are logged and
    reported as ``False``.

    Args:
        timeout: Per-request timeout in seconds.
    """

    SEND_URL = "https://www.msegat.com/gw/sendsms.php"

    def __init__(self, timeout: float = 15.0) -> None:
        self.timeout = timeout

    async def send(self, config: MsegatConfig, mobile: str, message: str) -> bool:
        """Send *message* to *mobile* (international format).

        Returns:
            True when Msegat answers with code ``"1"``.
        """
        if not config.user_name or not config.api_key or not config.user_sender:
            logger.warning("Msegat credentials are not configured. SMS not sent.")
            return False

        payload = {
            "userName": config.user_name,
            "apiKey": config.api_key,
            "userSender": config.user_sender,
            "numbers": strip_plus(mobile),
            "msg": message,
        }
        try:
            result = await msegat_breaker.call_async(self._post(payload))
        except (APIError, httpx.HTTPError, ValueError) as exc:
            logger.error("Failed to send SMS via Msegat: %s", exc)
            return False

        if str(result.get("code")) == "1":
            logger.info(
                "SMS sent to %s. Message ID: %s", mobile, result.get("messageId")
            )
            return True
        logger.error(
            "Msegat returned an error. Code: %s, Message: %s",
            result.get("code"),
            result.get("message"),
        )
        return False

    @resilient_request
    async def _post(self, payload: dict) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(self.SEND_URL, json=payload)
            except httpx.TimeoutException as exc:
                raise TransientAPIError(f"Msegat timed out: {exc}") from exc
        classify_response(response)
        data = response.json()
        if not isinstance(data, dict):
            raise SchemaChangeError(f"Expected JSON object from Msegat, got {type(data).__name__}")
        return data
