"""Wait-time estimation: Gemini provider, per-branch cache and fallback formula."""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol
from zoneinfo import ZoneInfo

import httpx

from restaurant_queue.clients.cache import EstimationCache
from restaurant_queue.clients.resilience import (
    TransientAPIError,
    classify_response,
    gemini_breaker,
    resilient_request,
    validate_gemini_response_schema,
)
from restaurant_queue.engine.transitions import round_half_up
from restaurant_queue.models.booking import Booking
from restaurant_queue.models.branch import Branch

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*(-?\d+)")


@dataclass
class WaitTimeContext:
    """Everything a provider needs to estimate the wait for the next group."""

    branch: Branch
    current_time: datetime
    average_visit_duration: float
    queue_ahead: list[Booking] = field(default_factory=list)

    def current_wait_minutes(self) -> list[float]:
        """Minutes each group ahead has been waiting so far."""
        return [
            (self.current_time - b.created_at).total_seconds() / 60
            for b in self.queue_ahead
        ]


class EstimationProvider(Protocol):
    async def estimate(self, context: WaitTimeContext) -> object: ...


def build_prompt(context: WaitTimeContext, timezone: str = "Asia/Riyadh") -> str:
    """Render the operations-analyst prompt for *context*."""
    local = context.current_time.astimezone(ZoneInfo(timezone))
    waits = context.current_wait_minutes()
    avg_wait = sum(waits) / len(waits) if waits else 0.0
    max_wait = max(waits) if waits else 0.0

    return (
        "You are an expert restaurant operations analyst for a restaurant in "
        "Saudi Arabia. Your task is to provide an accurate wait time estimation.\n\n"
        "Here is the current situation:\n"
        f"- Branch Name: {context.branch.name}\n"
        f"- Branch Location: {context.branch.location} "
        "(Use this for context about traffic and peak times)\n"
        f"- Current Day and Time: {local.strftime('%A')}, {local.strftime('%I:%M %p')}\n"
        f"- Number of groups waiting ahead in the queue: {len(context.queue_ahead)}\n\n"
        "Historical & Real-time Dynamics:\n"
        "- The average dining time for a group at this branch is approximately "
        f"{context.average_visit_duration:.0f} minutes.\n"
        "- The average current wait time for groups already in the queue is "
        f"{avg_wait:.1f} minutes.\n"
        "- The maximum current wait time for a group in the queue is "
        f"{max_wait:.1f} minutes.\n\n"
        "Considering all this information, especially the time of day, the average "
        "visit duration, and the real-time queue dynamics, what is the estimated "
        "wait time in minutes for the NEXT group joining the queue?\n\n"
        "Provide only a single integer number representing the minutes. Do not "
        "include any other text, units, or explanations. For example: 35"
    )


def parse_minutes(text: str) -> int | None:
    """Parse the leading integer of a model reply, or None if there is none."""
    match = _LEADING_INT.match(text)
    if not match:
        return None
    return int(match.group(1))


class GeminiEstimationProvider:
    """Asks Gemini for a wait estimate via the ``generateContent`` REST API.

    Args:
        api_key: Google AI Studio API key.
        model: Gemini model name.
        timezone: Zone used to describe the current day/time in the prompt.
    """

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        timezone: str = "Asia/Riyadh",
        timeout: float = 20.0,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timezone = timezone
        self.timeout = timeout

    async def estimate(self, context: WaitTimeContext) -> int | None:
        """Return the model's estimate in minutes, or None for a non-numeric reply.

        Raises:
            APIError: On transport, HTTP or response-shape failures.
        """
        prompt = build_prompt(context, self.timezone)
        text = await gemini_breaker.call_async(self._generate(prompt))
        minutes = parse_minutes(text)
        if minutes is None:
            logger.error("Gemini returned a non-numeric response: %r", text)
        return minutes

    @resilient_request
    async def _generate(self, prompt: str) -> str:
        url = f"{self.BASE_URL}/{self.model}:generateContent"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    url,
                    headers={"x-goog-api-key": self.api_key},
                    json={"contents": [{"parts": [{"text": prompt}]}]},
                )
            except httpx.TimeoutException as exc:
                raise TransientAPIError(f"Gemini timed out: {exc}") from exc
        classify_response(response)
        return validate_gemini_response_schema(response.json()).strip()


def _coerce_minutes(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return round_half_up(value)


class WaitTimeEstimator:
    """Caches provider estimates per branch and falls back to a formula.

    Args:
        provider: Estimation backend, or None when not configured.
        cache: Per-branch cache; its TTL bounds how often the provider is hit.
        fallback_minutes_per_group: Minutes per group ahead when the provider
            cannot answer.
        min_minutes: Lower bound applied to provider answers.
    """

    def __init__(
        self,
        provider: EstimationProvider | None = None,
        cache: EstimationCache | None = None,
        fallback_minutes_per_group: int = 5,
        min_minutes: int = 5,
    ) -> None:
        self.provider = provider
        self.cache = cache or EstimationCache()
        self.fallback_minutes_per_group = fallback_minutes_per_group
        self.min_minutes = min_minutes

    def fallback(self, queue_length: int) -> int:
        return queue_length * self.fallback_minutes_per_group

    async def get_estimated_wait_time(self, context: WaitTimeContext) -> int:
        """Return an estimate in minutes. Never raises for provider failures."""
        branch_id = context.branch.id
        cached = self.cache.get(branch_id, context.current_time)
        if cached is not None:
            logger.debug(
                "Returning cached wait time for branch %s: %s minutes (hit rate %.0f%%)",
                branch_id, cached, self.cache.metrics.hit_rate * 100,
            )
            return cached

        queue_length = len(context.queue_ahead)
        if self.provider is None:
            return self.fallback(queue_length)

        try:
            raw = await self.provider.estimate(context)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Wait-time provider failed for branch %s: %s", branch_id, exc)
            return self.fallback(queue_length)

        minutes = _coerce_minutes(raw)
        if minutes is None:
            logger.warning("Wait-time provider gave no usable number for branch %s", branch_id)
            return self.fallback(queue_length)

        minutes = max(self.min_minutes, minutes)
        self.cache.set(branch_id, minutes, context.current_time)
        return minutes
