"""Checks a booking request against branch and restaurant configuration."""

from collections.abc import Iterable
from datetime import date, datetime, time

from restaurant_queue.engine.transitions import POLICIES
from restaurant_queue.models.booking import Booking, BookingRequest
from restaurant_queue.models.branch import Branch, SlotAvailability
from restaurant_queue.models.enums import BookingStatus, BookingType
from restaurant_queue.models.settings import RestaurantSettings

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


class BookingValidationError(ValueError):
    """A booking request was rejected before anything was written."""


def parse_clock_time(text: str) -> time:
    """Parse ``"01:00 PM"`` style times.

    Raises:
        ValueError: If the text is not ``hh:mm AM|PM``.
    """
    return datetime.strptime(text.strip().upper(), "%I:%M %p").time()


def sunday_based_weekday(day: date) -> int:
    """Weekday with Sunday = 0, as stored in ``available_days``."""
    return (day.weekday() + 1) % 7


def is_waitlist_open(branch: Branch, now_local: datetime) -> bool:
    """Whether the branch accepts waitlist joins at *now_local*.

    Missing hours mean always open; a closing time before the opening time
    is an overnight window. Unparseable hours count as closed.
    """
    if not branch.waitlist_opening_time or not branch.waitlist_closing_time:
        return True
    try:
        opening = parse_clock_time(branch.waitlist_opening_time)
        closing = parse_clock_time(branch.waitlist_closing_time)
    except ValueError:
        return False

    current = now_local.time().replace(tzinfo=None)
    if closing < opening:
        return current >= opening or current < closing
    return opening <= current < closing


def count_slot_bookings(
    bookings: Iterable[Booking], branch_id: str, day: date, slot_time: str
) -> int:
    return sum(
        1
        for b in bookings
        if b.branch_id == branch_id
        and b.status == BookingStatus.CONFIRMED
        and b.appointment_date == day
        and b.appointment_time == slot_time
    )


def available_slots(
    branch: Branch, day: date, bookings: Iterable[Booking]
) -> list[SlotAvailability]:
    """Each configured slot with its CONFIRMED count on *day*."""
    snapshot = list(bookings)
    result = []
    for slot in branch.appointment_settings.available_slots:
        booked = count_slot_bookings(snapshot, branch.id, day, slot.time)
        result.append(
            SlotAvailability(
                time=slot.time,
                capacity=slot.capacity,
                booked=booked,
                is_full=booked >= slot.capacity,
            )
        )
    return result


def _validate_appointment(
    request: BookingRequest, branch: Branch, bookings: Iterable[Booking], today: date
) -> None:
    if not branch.is_appointment_enabled:
        raise BookingValidationError(f"Appointments are not available at {branch.name}.")
    if request.appointment_date is None or not request.appointment_time:
        raise BookingValidationError("Please choose both a date and a time for the appointment.")

    appt = branch.appointment_settings
    if not appt.available_slots or not appt.available_days:
        raise BookingValidationError(f"{branch.name} has no appointment slots configured.")
    if request.appointment_date < today:
        raise BookingValidationError("Appointments cannot be booked in the past.")

    if sunday_based_weekday(request.appointment_date) not in appt.available_days:
        names = ", ".join(DAY_NAMES[d] for d in sorted(appt.available_days) if 0 <= d <= 6)
        raise BookingValidationError(
            f"Booking is not available on this day. Available days: {names}."
        )

    slot = next((s for s in appt.available_slots if s.time == request.appointment_time), None)
    if slot is None:
        raise BookingValidationError(
            f"{request.appointment_time} is not an appointment slot at {branch.name}."
        )
    booked = count_slot_bookings(bookings, branch.id, request.appointment_date, slot.time)
    if booked >= slot.capacity:
        raise BookingValidationError(
            f"The {slot.time} slot on {request.appointment_date.isoformat()} is full."
        )


def validate_booking_request(
    request: BookingRequest,
    branch: Branch | None,
    settings: RestaurantSettings,
    bookings: Iterable[Booking],
    now_local: datetime,
) -> None:
    """Raise ``BookingValidationError`` if *request* cannot be accepted.

    Args:
        request: The customer's booking input.
        branch: Target branch, or None if it does not exist.
        settings: Restaurant settings (booking switch, guest limit).
        bookings: Current bookings of the branch, for slot capacity.
        now_local: Current time in the restaurant's timezone.
    """
    if not settings.customer_ui.booking_enabled:
        raise BookingValidationError("Online booking is currently disabled.")
    if branch is None:
        raise BookingValidationError(f"Branch '{request.branch_id}' does not exist.")

    max_guests = settings.customer_ui.max_guests
    if request.guests > max_guests:
        raise BookingValidationError(f"A booking can have at most {max_guests} guests.")

    if POLICIES[request.booking_type].requires_appointment:
        _validate_appointment(request, branch, bookings, now_local.date())
        return

    if request.booking_type == BookingType.WAITLIST:
        if not branch.is_waitlist_enabled:
            raise BookingValidationError(f"The waitlist is not available at {branch.name}.")
        if not is_waitlist_open(branch, now_local):
            raise BookingValidationError(
                f"The waitlist is closed. It opens from {branch.waitlist_opening_time} "
                f"to {branch.waitlist_closing_time}."
            )
