"""Booking-type policies and the pure status-transition function.

``apply_transition`` never performs I/O: it returns the updated booking plus
a list of effects that the caller executes after committing the write.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from restaurant_queue.models.booking import Booking, BookingUpdate
from restaurant_queue.models.enums import BookingStatus, BookingType, TemplateKey


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class BookingTypePolicy:
    counter_name: str
    initial_status: BookingStatus
    requires_appointment: bool
    format_id: Callable[[int], str]


POLICIES: dict[BookingType, BookingTypePolicy] = {
    BookingType.WAITLIST: BookingTypePolicy(
        counter_name="waitlist",
        initial_status=BookingStatus.WAITING,
        requires_appointment=False,
        format_id=lambda n: f"{n:03d}",
    ),
    # "A0" is a literal prefix, so A09 is followed by A010
    BookingType.APPOINTMENT: BookingTypePolicy(
        counter_name="appointment",
        initial_status=BookingStatus.CONFIRMED,
        requires_appointment=True,
        format_id=lambda n: f"A0{n}",
    ),
}


# ── Effects ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Notify:
    template_key: TemplateKey


@dataclass(frozen=True)
class CheckReminders:
    branch_id: str


@dataclass(frozen=True)
class MarkServing:
    branch_id: str
    booking_id: str


Effect = Notify | CheckReminders | MarkServing


@dataclass
class Transition:
    booking: Booking
    effects: list[Effect] = field(default_factory=list)

    @property
    def notification(self) -> TemplateKey | None:
        for effect in self.effects:
            if isinstance(effect, Notify):
                return effect.template_key
        return None


def visit_duration_minutes(seated_at: datetime, completed_at: datetime) -> int:
    return round_half_up((completed_at - seated_at).total_seconds() / 60)


def apply_transition(prior: Booking, update: BookingUpdate, now: datetime) -> Transition:
    """Apply *update* to *prior* and derive timestamps and effects.

    Special cases, checked against the update's target status and the
    booking's prior status:

    - SEATED: ``seated_at = now``; notify ``bookingSeated``; mark serving.
    - COMPLETED from SEATED with ``seated_at``: set ``completed_at`` and
      ``visit_duration_minutes``; notify ``postVisitFeedback``.
    - CANCELLED: notify ``bookingCancelled``.

    Any update carrying a status re-checks the branch's turn reminders.
    """
    changes = update.model_dump(exclude_none=True)
    booking = prior.model_copy(update=changes)
    target = update.status
    effects: list[Effect] = []

    if target == BookingStatus.SEATED:
        booking.seated_at = now
        effects.append(Notify(TemplateKey.BOOKING_SEATED))
    elif (
        target == BookingStatus.COMPLETED
        and prior.status == BookingStatus.SEATED
        and prior.seated_at is not None
    ):
        booking.completed_at = now
        booking.visit_duration_minutes = visit_duration_minutes(prior.seated_at, now)
        effects.append(Notify(TemplateKey.POST_VISIT_FEEDBACK))
    elif target == BookingStatus.CANCELLED:
        effects.append(Notify(TemplateKey.BOOKING_CANCELLED))

    if target is not None:
        effects.append(CheckReminders(prior.branch_id))
    if target == BookingStatus.SEATED:
        effects.append(MarkServing(prior.branch_id, prior.id))

    return Transition(booking=booking, effects=effects)
