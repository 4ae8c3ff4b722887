"""The authoritative booking collection and its state-transition operations.

Every mutation (creation, status update, reminder marking, auto-departure)
runs under one ``asyncio.Lock``, so duplicate checks, counter increments and
reminder flags see a single consistent view. Notifications are rendered
inside the lock, against the committed state, and delivered afterwards as
background tasks; a failed delivery never undoes a transition.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from restaurant_queue.clients.estimation import WaitTimeContext, WaitTimeEstimator
from restaurant_queue.engine.notifications import NotificationDispatcher, OutgoingMessage
from restaurant_queue.engine.reminders import (
    queue_position,
    select_reminder_target,
    waiting_queue,
)
from restaurant_queue.engine.transitions import (
    POLICIES,
    CheckReminders,
    MarkServing,
    Notify,
    apply_transition,
)
from restaurant_queue.engine.validation import BookingValidationError, validate_booking_request
from restaurant_queue.models.booking import Booking, BookingRequest, BookingUpdate
from restaurant_queue.models.branch import Branch
from restaurant_queue.models.enums import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    BookingStatus,
    BookingType,
    TemplateKey,
)
from restaurant_queue.models.mobile import normalize_mobile
from restaurant_queue.models.settings import RestaurantSettings
from restaurant_queue.models.stats import QueueStatus
from restaurant_queue.storage.database import DatabaseManager

logger = logging.getLogger(__name__)

NOT_SERVING = "---"


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


class BranchInUseError(Exception):
    """A branch still has active bookings and cannot be deleted."""


class BookingStore:
    """Single writer for bookings, sequence counters and serving markers.

    Args:
        db: Initialized database manager.
        settings: Restaurant settings; read-only from the store's point of view.
        dispatcher: Notification renderer / deliverer.
        estimator: Wait-time estimator (cache + provider + fallback).
        clock: Returns the current UTC time. Injected for tests.
        timezone: Restaurant-local zone for opening hours and appointment days.
        default_visit_duration: Minutes assumed when a branch has no history.
    """

    def __init__(
        self,
        db: DatabaseManager,
        settings: RestaurantSettings | None = None,
        dispatcher: NotificationDispatcher | None = None,
        estimator: WaitTimeEstimator | None = None,
        clock: Callable[[], datetime] = utcnow,
        timezone: str = "Asia/Riyadh",
        default_visit_duration: float = 45.0,
    ) -> None:
        self.db = db
        self.settings = settings or RestaurantSettings()
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.estimator = estimator or WaitTimeEstimator()
        self.clock = clock
        self.tz = ZoneInfo(timezone)
        self.default_visit_duration = default_visit_duration
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()

    def now(self) -> datetime:
        return self.clock()

    # ── Creation ──────────────────────────────────────────────────────────

    async def _find_duplicate(self, request: BookingRequest) -> Booking | None:
        if request.booking_type == BookingType.WAITLIST:
            existing = await self.db.get_bookings(
                mobile=request.mobile,
                booking_type=BookingType.WAITLIST,
                statuses=ACTIVE_STATUSES,
            )
            return existing[0] if existing else None

        existing = await self.db.get_bookings(
            mobile=request.mobile,
            booking_type=BookingType.APPOINTMENT,
            statuses=[BookingStatus.CONFIRMED],
        )
        for booking in existing:
            if booking.appointment_date == request.appointment_date:
                return booking
        return None

    async def create_booking(self, request: BookingRequest) -> Booking | None:
        """Validate, dedupe, number and store a new booking.

        Returns:
            The created booking, or None when the customer already holds an
            active booking of the same kind.

        Raises:
            BookingValidationError: If the request breaks branch or
                restaurant rules. Nothing is written in that case.
        """
        async with self._lock:
            now = self.now()
            branch = await self.db.get_branch(request.branch_id)
            branch_bookings = await self.db.get_bookings(branch_id=request.branch_id)
            validate_booking_request(
                request, branch, self.settings, branch_bookings, now.astimezone(self.tz)
            )

            duplicate = await self._find_duplicate(request)
            if duplicate is not None:
                logger.warning(
                    "Duplicate active %s booking attempt for mobile %s (existing %s)",
                    request.booking_type, request.mobile, duplicate.id,
                )
                return None

            policy = POLICIES[request.booking_type]
            number = await self.db.next_sequence(policy.counter_name)
            booking = Booking(
                **request.model_dump(),
                id=policy.format_id(number),
                created_at=now,
                status=policy.initial_status,
            )
            await self.db.save_booking(booking)
            logger.info("Created %s booking %s at %s", booking.booking_type, booking.id, booking.branch_id)

            branch_bookings.append(booking)
            self._notify(booking, TemplateKey.BOOKING_CONFIRMATION, branch, branch_bookings)
            await self._check_reminders(booking.branch_id, branch)
        return booking

    # ── Transitions ───────────────────────────────────────────────────────

    async def update_booking(
        self,
        booking_id: str,
        update: BookingUpdate,
        expected_status: BookingStatus | None = None,
    ) -> Booking | None:
        """Apply *update* through the transition rules.

        Args:
            booking_id: Booking to change.
            update: Fields to change.
            expected_status: When given, the update is skipped unless the
                booking is still in this status.

        Returns:
            The updated booking, or None if the id is unknown or the
            expected status no longer holds.

        Raises:
            BookingValidationError: If the update changes the status of a
                cancelled, completed or no-show booking.
        """
        async with self._lock:
            prior = await self.db.get_booking(booking_id)
            if prior is None:
                logger.warning("Update for unknown booking %s ignored", booking_id)
                return None
            if expected_status is not None and prior.status != expected_status:
                logger.debug(
                    "Booking %s is %s, not %s; update skipped",
                    booking_id, prior.status, expected_status,
                )
                return None
            if update.status is not None and prior.status in TERMINAL_STATUSES:
                raise BookingValidationError(
                    f"Booking #{booking_id} is already {prior.status} and its status can no longer change."
                )

            transition = apply_transition(prior, update, self.now())
            booking = transition.booking
            await self.db.save_booking(booking)
            if update.status is not None and update.status != prior.status:
                logger.info("Booking %s: %s -> %s", booking_id, prior.status, update.status)

            branch = None
            if transition.effects:
                branch = await self.db.get_branch(booking.branch_id)
            for effect in transition.effects:
                if isinstance(effect, Notify):
                    snapshot = await self.db.get_bookings(branch_id=booking.branch_id)
                    self._notify(booking, effect.template_key, branch, snapshot)
                elif isinstance(effect, CheckReminders):
                    await self._check_reminders(effect.branch_id, branch)
                elif isinstance(effect, MarkServing):
                    await self.db.set_serving(effect.branch_id, effect.booking_id)
        return booking

    async def _check_reminders(self, branch_id: str, branch: Branch | None) -> Booking | None:
        """Send the turn reminder to the booking at the configured position.

        Caller must hold the lock.
        """
        snapshot = await self.db.get_bookings(branch_id=branch_id)
        threshold = self.settings.notifications.remind_when_queue_position_is
        target = select_reminder_target(waiting_queue(snapshot, branch_id), threshold)
        if target is None:
            return None

        self._notify(target, TemplateKey.TURN_REMINDER, branch, snapshot)
        target.reminder_sent = True
        await self.db.save_booking(target)
        logger.info("Turn reminder sent to booking %s at position %d", target.id, threshold)
        return target

    # ── Notifications ─────────────────────────────────────────────────────

    def _notify(
        self,
        booking: Booking,
        template_key: TemplateKey,
        branch: Branch | None,
        snapshot: list[Booking],
        override_message: str | None = None,
    ) -> None:
        messages = self.dispatcher.prepare(
            booking, template_key, branch, self.settings, snapshot, override_message
        )
        self._schedule(messages)

    def _schedule(self, messages: list[OutgoingMessage]) -> None:
        if not messages:
            return
        task = asyncio.create_task(self.dispatcher.deliver(messages))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain_notifications(self) -> None:
        """Wait until every scheduled delivery has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def send_direct_notification(self, booking_id: str, message: str) -> Booking | None:
        """Send a free-text staff message (``customerCall``) to a customer."""
        booking = await self.db.get_booking(booking_id)
        if booking is None:
            return None
        branch = await self.db.get_branch(booking.branch_id)
        snapshot = await self.db.get_bookings(branch_id=booking.branch_id)
        self._notify(booking, TemplateKey.CUSTOMER_CALL, branch, snapshot, override_message=message)
        return booking

    def update_settings(self, settings: RestaurantSettings) -> None:
        self.settings = settings

    # ── Queries ───────────────────────────────────────────────────────────

    async def get_booking(self, booking_id: str) -> Booking | None:
        return await self.db.get_booking(booking_id)

    async def list_bookings(
        self,
        branch_id: str = "all",
        statuses: set[BookingStatus] | frozenset[BookingStatus] | None = None,
        booking_type: BookingType | None = None,
    ) -> list[Booking]:
        return await self.db.get_bookings(
            branch_id=None if branch_id == "all" else branch_id,
            statuses=statuses,
            booking_type=booking_type,
        )

    async def find_active_booking_by_mobile(self, mobile: str) -> Booking | None:
        """First active booking of any type for *mobile*.

        Raises:
            ValueError: If *mobile* is not a valid Saudi number.
        """
        found = await self.db.get_bookings(
            mobile=normalize_mobile(mobile), statuses=ACTIVE_STATUSES
        )
        return found[0] if found else None

    async def currently_serving(self, branch_id: str) -> str:
        return await self.db.get_serving(branch_id) or NOT_SERVING

    async def get_average_visit_duration(self, branch_id: str) -> float:
        average = await self.db.get_average_visit_duration(branch_id)
        return self.default_visit_duration if average is None else average

    async def get_queue_status(self, booking_id: str) -> QueueStatus | None:
        booking = await self.db.get_booking(booking_id)
        if booking is None:
            return None
        snapshot = await self.db.get_bookings(branch_id=booking.branch_id)
        position = queue_position(snapshot, booking)
        return QueueStatus(
            booking=booking,
            position=position,
            queue_ahead=position - 1 if position else 0,
            now_serving=await self.currently_serving(booking.branch_id),
            estimated_wait_time=booking.estimated_wait_time,
        )

    # ── Wait-time estimation ──────────────────────────────────────────────

    async def estimate_wait_time(self, booking_id: str) -> int | None:
        """Estimate and persist the wait for a WAITING waitlist booking.

        A booking that already carries an estimate returns it unchanged. The
        estimator is awaited without holding the store lock.
        """
        booking = await self.db.get_booking(booking_id)
        if booking is None:
            return None
        if booking.estimated_wait_time is not None:
            return booking.estimated_wait_time
        if not booking.is_waiting_in_queue:
            return None

        branch = await self.db.get_branch(booking.branch_id)
        if branch is None:
            logger.warning("Booking %s references missing branch %s", booking.id, booking.branch_id)
            return None

        queue = waiting_queue(await self.db.get_bookings(branch_id=booking.branch_id), branch.id)
        ids = [b.id for b in queue]
        ahead = queue[: ids.index(booking.id)] if booking.id in ids else []
        context = WaitTimeContext(
            branch=branch,
            current_time=self.now(),
            average_visit_duration=await self.get_average_visit_duration(branch.id),
            queue_ahead=ahead,
        )
        minutes = await self.estimator.get_estimated_wait_time(context)
        await self.update_booking(booking_id, BookingUpdate(estimated_wait_time=minutes))
        return minutes

    # ── Branches ──────────────────────────────────────────────────────────

    async def delete_branch(self, branch_id: str) -> bool:
        """Delete a branch that has no active bookings.

        Archived bookings and staff users keep their reference to the id.

        Returns:
            False if the branch did not exist.

        Raises:
            BranchInUseError: If active bookings still reference the branch.
        """
        async with self._lock:
            branch = await self.db.get_branch(branch_id)
            if branch is None:
                return False
            active = await self.db.get_bookings(branch_id=branch_id, statuses=ACTIVE_STATUSES)
            if active:
                raise BranchInUseError(
                    f"Branch {branch.name} still has {len(active)} active booking(s)."
                )
            await self.db.delete_branch(branch_id)
            users = await self.db.get_users(branch_id=branch_id)
            logger.info(
                "Deleted branch %s; %d user(s) still reference it", branch_id, len(users)
            )
        return True
