"""Karzoun WhatsApp gateway client."""

import logging

import httpx

from restaurant_queue.clients.msegat import strip_plus
from restaurant_queue.clients.resilience import (
    APIError,
    SchemaChangeError,
    TransientAPIError,
    classify_response,
    karzoun_breaker,
    resilient_request,
)
from restaurant_queue.models.settings import KarzounConfig

logger = logging.getLogger(__name__)


class KarzounClient:
    """Sends WhatsApp messages through the Karzoun form-encoded API.

    Args:
        timeout: Per-request timeout in seconds.
    """

    SEND_URL = "https://karzoun.app/api/send"

    def __init__(self, timeout: float = 15.0) -> None:
        self.timeout = timeout

    async def send(self, config: KarzounConfig, mobile: str, message: str) -> bool:
        """Send *message* to *mobile*; True when ``message_status`` is ``Success``."""
        if not config.appkey or not config.authkey:
            logger.warning("Karzoun credentials are not configured. WhatsApp message not sent.")
            return False

        form = {
            "appkey": config.appkey,
            "authkey": config.authkey,
            "to": strip_plus(mobile),
            "message": message,
        }
        try:
            result = await karzoun_breaker.call_async(self._post(form))
        except (APIError, httpx.HTTPError) as exc:
            logger.error("Failed to send WhatsApp via Karzoun: %s", exc)
            return False

        if result.get("message_status") == "Success":
            logger.info("WhatsApp message sent to %s.", mobile)
            return True
        details = result.get("body") or result.get("error") or result
        logger.error("Karzoun API error: %s", details)
        return False

    @resilient_request
    async def _post(self, form: dict) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(self.SEND_URL, data=form)
            except httpx.TimeoutException as exc:
                raise TransientAPIError(f"Karzoun timed out: {exc}") from exc
        classify_response(response)
        try:
            data = response.json()
        except ValueError as exc:
            raise SchemaChangeError(
                f"Karzoun returned non-JSON response: {response.text[:200]}"
            ) from exc
        if not isinstance(data, dict):
            raise SchemaChangeError(f"Expected JSON object from Karzoun, got {type(data).__name__}")
        return data
