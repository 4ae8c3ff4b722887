"""MCP tools for the booking lifecycle: join, look up, move through statuses."""

import logging

from fastmcp import FastMCP

from restaurant_queue.engine.validation import available_slots
from restaurant_queue.models.booking import Booking, BookingRequest, BookingUpdate
from restaurant_queue.models.enums import (
    ACTIVE_STATUSES,
    BookingStatus,
    BookingType,
    SeatingArea,
)
from restaurant_queue.models.mobile import format_mobile_for_display
from restaurant_queue.server import get_store
from restaurant_queue.tools.date_utils import parse_appointment_date
from restaurant_queue.tools.error_messages import safe_tool_wrapper

logger = logging.getLogger(__name__)


def format_booking(booking: Booking) -> str:
    """One-line summary of a booking for tool output."""
    parts = [
        f"#{booking.id}",
        booking.name,
        format_mobile_for_display(booking.mobile),
        f"{booking.guests} guest(s)",
        booking.status.value,
    ]
    if booking.booking_type == BookingType.APPOINTMENT and booking.appointment_date:
        parts.append(f"{booking.appointment_date.isoformat()} {booking.appointment_time}")
    if booking.seating_area != SeatingArea.ANY:
        parts.append(booking.seating_area.value.lower())
    if booking.estimated_wait_time is not None:
        parts.append(f"~{booking.estimated_wait_time} min")
    return " | ".join(parts)


def register_booking_tools(mcp: FastMCP) -> None:  # noqa: C901
    """Register booking lifecycle tools on the MCP server."""

    @mcp.tool
    async def create_booking(
        branch_id: str,
        name: str,
        mobile: str,
        guests: int,
        booking_type: str = "WAITLIST",
        seating_area: str = "ANY",
        agreed_to_notifications: bool = True,
        appointment_date: str | None = None,
        appointment_time: str | None = None,
    ) -> str:
        """Add a customer to a branch's waitlist or book an appointment slot.

        Args:
            branch_id: Branch id, e.g. "branch1".
            name: Customer name.
            mobile: Saudi mobile, 05XXXXXXXX or +9665XXXXXXXX.
            guests: Party size.
            booking_type: "WAITLIST" or "APPOINTMENT".
            seating_area: "ANY", "INDOOR" or "OUTDOOR".
            agreed_to_notifications: Whether the customer accepts SMS/WhatsApp.
            appointment_date: For appointments, e.g. "2026-02-14", "tomorrow",
                "Thursday".
            appointment_time: For appointments, one of the branch slots,
                e.g. "07:00 PM".

        Returns:
            The new booking number, or why it could not be created.
        """
        store = get_store()

        async def _create() -> str:
            parsed_date = None
            if appointment_date:
                today = store.now().astimezone(store.tz).date()
                parsed_date = parse_appointment_date(appointment_date, today=today)
            request = BookingRequest(
                branch_id=branch_id,
                booking_type=booking_type.upper(),
                name=name,
                mobile=mobile,
                guests=guests,
                seating_area=seating_area.upper(),
                agreed_to_notifications=agreed_to_notifications,
                appointment_date=parsed_date,
                appointment_time=appointment_time,
            )
            booking = await store.create_booking(request)
            if booking is None:
                existing = await store.find_active_booking_by_mobile(request.mobile)
                ref = f" (#{existing.id})" if existing else ""
                return f"This mobile number already has an active booking{ref}."
            return f"Booking created: {format_booking(booking)}"

        return await safe_tool_wrapper(_create)

    @mcp.tool
    async def update_booking_status(booking_id: str, status: str) -> str:
        """Move a booking to a new status (staff action).

        Args:
            booking_id: Booking number, e.g. "007" or "A01".
            status: WAITING, CONFIRMED, SEATED, COMPLETED, CANCELLED or NO_SHOW.

        Returns:
            The updated booking, or an error.
        """
        store = get_store()

        async def _update() -> str:
            update = BookingUpdate(status=status.upper())
            booking = await store.update_booking(booking_id, update)
            if booking is None:
                return f"No booking #{booking_id} found."
            text = f"Updated: {format_booking(booking)}"
            if booking.visit_duration_minutes is not None and booking.status == BookingStatus.COMPLETED:
                text += f" (visit {booking.visit_duration_minutes} min)"
            return text

        return await safe_tool_wrapper(_update)

    @mcp.tool
    async def find_active_booking(mobile: str) -> str:
        """Find a customer's current (waiting, confirmed or seated) booking.

        Args:
            mobile: Saudi mobile, 05XXXXXXXX or +9665XXXXXXXX.

        Returns:
            The active booking, or a note that there is none.
        """
        store = get_store()

        async def _find() -> str:
            booking = await store.find_active_booking_by_mobile(mobile)
            if booking is None:
                return "No active booking for this mobile number."
            return format_booking(booking)

        return await safe_tool_wrapper(_find)

    @mcp.tool
    async def get_queue_status(booking_id: str) -> str:
        """Show a booking's place in the queue and who is being served.

        Args:
            booking_id: Booking number.

        Returns:
            Position, people ahead, the currently served number and the
            estimated wait.
        """
        store = get_store()
        status = await store.get_queue_status(booking_id)
        if status is None:
            return f"No booking #{booking_id} found."

        lines = [format_booking(status.booking), f"Now serving: {status.now_serving}"]
        if status.position is not None:
            lines.append(f"Position: {status.position} ({status.queue_ahead} ahead)")
        if status.estimated_wait_time is not None:
            lines.append(f"Estimated wait: {status.estimated_wait_time} min")
        return "\n".join(lines)

    @mcp.tool
    async def estimate_wait_time(booking_id: str) -> str:
        """Estimate how long a waiting customer still has to wait.

        The estimate is stored on the booking; later calls return it as is.

        Args:
            booking_id: Booking number of a WAITING waitlist booking.

        Returns:
            Estimated wait in minutes.
        """
        store = get_store()
        booking = await store.get_booking(booking_id)
        if booking is None:
            return f"No booking #{booking_id} found."
        minutes = await store.estimate_wait_time(booking_id)
        if minutes is None:
            return f"Booking #{booking_id} is not waiting in the queue."
        return f"Estimated wait for #{booking_id}: {minutes} minutes."

    @mcp.tool
    async def send_customer_message(booking_id: str, message: str | None = None) -> str:
        """Call a customer to the host stand via SMS/WhatsApp.

        Args:
            booking_id: Booking number.
            message: Custom text; placeholders like {customerName} are filled
                in. Defaults to the configured "customer call" template.

        Returns:
            Confirmation that the message was queued.
        """
        store = get_store()
        if message is None:
            booking = await store.get_booking(booking_id)
            if booking is None:
                return f"No booking #{booking_id} found."
            config = store.settings.notifications
            channel = config.msegat if config.msegat.enabled else config.karzoun
            message = channel.templates.customer_call
        booking = await store.send_direct_notification(booking_id, message)
        if booking is None:
            return f"No booking #{booking_id} found."
        if not store.settings.notifications.any_enabled:
            return "No notification channel is enabled; nothing was sent."
        if not booking.agreed_to_notifications:
            return f"{booking.name} did not agree to notifications; nothing was sent."
        return f"Message queued for {booking.name} (#{booking.id})."

    @mcp.tool
    async def list_current_bookings(
        branch_id: str = "all",
        booking_type: str | None = None,
    ) -> str:
        """List active bookings (waiting, confirmed, seated), oldest first.

        Args:
            branch_id: Branch id or "all".
            booking_type: Optional filter, "WAITLIST" or "APPOINTMENT".

        Returns:
            One line per booking, grouped by status.
        """
        store = get_store()
        kind = BookingType(booking_type.upper()) if booking_type else None
        bookings = await store.list_bookings(
            branch_id=branch_id, statuses=ACTIVE_STATUSES, booking_type=kind
        )
        if not bookings:
            return "No active bookings."

        lines: list[str] = []
        for status in (BookingStatus.WAITING, BookingStatus.CONFIRMED, BookingStatus.SEATED):
            group = [b for b in bookings if b.status == status]
            if not group:
                continue
            lines.append(f"{status.value} ({len(group)}):")
            lines.extend(f"- {format_booking(b)}" for b in group)
        return "\n".join(lines)

    @mcp.tool
    async def get_available_slots(branch_id: str, date: str) -> str:
        """Show appointment slots of a branch for a day with remaining capacity.

        Args:
            branch_id: Branch id.
            date: Day to check, e.g. "2026-02-14" or "tomorrow".

        Returns:
            Each slot with booked/capacity, or why none are offered.
        """
        store = get_store()

        async def _slots() -> str:
            branch = await store.db.get_branch(branch_id)
            if branch is None:
                return f"Branch '{branch_id}' does not exist."
            if not branch.is_appointment_enabled:
                return f"Appointments are not available at {branch.name}."
            today = store.now().astimezone(store.tz).date()
            day = parse_appointment_date(date, today=today)
            slots = available_slots(branch, day, await store.list_bookings(branch_id=branch.id))
            if not slots:
                return f"{branch.name} has no appointment slots configured."
            lines = [f"{branch.name}, {day.isoformat()}:"]
            for slot in slots:
                state = "full" if slot.is_full else f"{slot.capacity - slot.booked} left"
                lines.append(f"- {slot.time}: {slot.booked}/{slot.capacity} ({state})")
            return "\n".join(lines)

        return await safe_tool_wrapper(_slots)
