"""Periodic auto-departure of long-seated parties."""

import asyncio
import contextlib
import logging
from datetime import timedelta

from restaurant_queue.engine.booking_store import BookingStore
from restaurant_queue.models.booking import Booking, BookingUpdate
from restaurant_queue.models.enums import BookingStatus

logger = logging.getLogger(__name__)


class AutoDepartureSweeper:
    """Completes SEATED bookings seated longer than *threshold_minutes*.

    Completion goes through ``BookingStore.update_booking`` so it derives the
    same timestamps, duration and notifications as a staff action.
    """

    def __init__(
        self,
        store: BookingStore,
        interval_seconds: float = 60.0,
        threshold_minutes: float = 90.0,
    ) -> None:
        self.store = store
        self.interval_seconds = interval_seconds
        self.threshold = timedelta(minutes=threshold_minutes)
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> list[Booking]:
        """One sweep over a fresh snapshot. Returns the bookings completed."""
        now = self.store.now()
        seated = await self.store.list_bookings(statuses={BookingStatus.SEATED})
        completed: list[Booking] = []
        for booking in seated:
            if booking.seated_at is None or now - booking.seated_at <= self.threshold:
                continue
            updated = await self.store.update_booking(
                booking.id,
                BookingUpdate(status=BookingStatus.COMPLETED),
                expected_status=BookingStatus.SEATED,
            )
            if updated is not None:
                logger.info(
                    "Auto-completed booking %s after %s minutes",
                    updated.id, updated.visit_duration_minutes,
                )
                completed.append(updated)
        return completed

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:  # noqa: BLE001
                logger.exception("Auto-departure sweep failed")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Auto-departure sweeper started (every %ss, after %s)",
            self.interval_seconds, self.threshold,
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Auto-departure sweeper stopped")
