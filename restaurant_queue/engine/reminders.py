"""Queue ordering and the "your turn is near" reminder rule."""

from collections.abc import Iterable

from restaurant_queue.models.booking import Booking


def waiting_queue(bookings: Iterable[Booking], branch_id: str) -> list[Booking]:
    """WAITING waitlist bookings of *branch_id*, oldest first."""
    queue = [b for b in bookings if b.branch_id == branch_id and b.is_waiting_in_queue]
    return sorted(queue, key=lambda b: b.created_at)


def queue_position(bookings: Iterable[Booking], booking: Booking) -> int | None:
    """1-based position of *booking* in its branch queue, or None."""
    for index, queued in enumerate(waiting_queue(bookings, booking.branch_id), start=1):
        if queued.id == booking.id:
            return index
    return None


def select_reminder_target(queue: list[Booking], threshold: int) -> Booking | None:
    """Return the booking at position *threshold* if it still needs a reminder."""
    if threshold < 1 or len(queue) < threshold:
        return None
    candidate = queue[threshold - 1]
    if candidate.reminder_sent:
        return None
    return candidate
