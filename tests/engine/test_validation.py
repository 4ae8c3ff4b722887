from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from restaurant_queue.engine.validation import (
    BookingValidationError,
    available_slots,
    is_waitlist_open,
    parse_clock_time,
    sunday_based_weekday,
    validate_booking_request,
)
from restaurant_queue.models.branch import AppointmentSettings, AppointmentSlot
from restaurant_queue.models.enums import BookingStatus, BookingType
from restaurant_queue.models.settings import CustomerUiSettings
from tests.factories import (
    make_appointment_request,
    make_booking,
    make_booking_request,
    make_branch,
    make_settings,
)

RIYADH = ZoneInfo("Asia/Riyadh")
# Monday 2025-03-10, 15:00 local
NOW = datetime(2025, 3, 10, 15, 0, tzinfo=RIYADH)
TOMORROW = date(2025, 3, 11)


def _at(hour: int, minute: int = 0) -> datetime:
    return NOW.replace(hour=hour, minute=minute)


def _confirmed(slot: str, day: date = TOMORROW, **overrides: object):
    fields: dict[str, object] = {
        "booking_type": BookingType.APPOINTMENT,
        "status": BookingStatus.CONFIRMED,
        "appointment_date": day,
        "appointment_time": slot,
    }
    fields.update(overrides)
    return make_booking(**fields)


class TestHelpers:
    def test_parse_clock_time(self):
        assert parse_clock_time("01:00 PM").hour == 13
        assert parse_clock_time(" 12:30 am ").hour == 0

    def test_parse_clock_time_invalid(self):
        with pytest.raises(ValueError):
            parse_clock_time("25:00")

    def test_sunday_based_weekday(self):
        assert sunday_based_weekday(date(2025, 3, 9)) == 0  # Sunday
        assert sunday_based_weekday(date(2025, 3, 15)) == 6  # Saturday


class TestIsWaitlistOpen:
    def test_inside_window(self):
        branch = make_branch(waitlist_opening_time="01:00 PM", waitlist_closing_time="11:00 PM")
        assert is_waitlist_open(branch, _at(15)) is True

    def test_before_opening(self):
        branch = make_branch(waitlist_opening_time="01:00 PM", waitlist_closing_time="11:00 PM")
        assert is_waitlist_open(branch, _at(12, 59)) is False

    def test_closing_is_exclusive(self):
        branch = make_branch(waitlist_opening_time="01:00 PM", waitlist_closing_time="11:00 PM")
        assert is_waitlist_open(branch, _at(23)) is False

    def test_overnight_window(self):
        branch = make_branch(waitlist_opening_time="06:00 PM", waitlist_closing_time="02:00 AM")
        assert is_waitlist_open(branch, _at(23, 30)) is True
        assert is_waitlist_open(branch, _at(1, 30)) is True
        assert is_waitlist_open(branch, _at(3)) is False

    def test_missing_hours_always_open(self):
        assert is_waitlist_open(make_branch(), _at(4)) is True

    def test_bad_hours_closed(self):
        branch = make_branch(waitlist_opening_time="noon", waitlist_closing_time="11:00 PM")
        assert is_waitlist_open(branch, _at(15)) is False


class TestAvailableSlots:
    def test_counts_confirmed_only(self):
        bookings = [
            _confirmed("07:00 PM"),
            _confirmed("07:00 PM", id="A02", status=BookingStatus.CANCELLED),
            _confirmed("09:00 PM", id="A03"),
            _confirmed("09:00 PM", id="A04", day=date(2025, 3, 12)),
        ]
        slots = available_slots(make_branch(), TOMORROW, bookings)
        assert [(s.time, s.booked, s.is_full) for s in slots] == [
            ("07:00 PM", 1, False),
            ("09:00 PM", 1, True),
        ]


class TestValidateBookingRequest:
    def test_valid_waitlist(self):
        validate_booking_request(make_booking_request(), make_branch(), make_settings(), [], NOW)

    def test_booking_disabled(self):
        settings = make_settings(customer_ui=CustomerUiSettings(booking_enabled=False))
        with pytest.raises(BookingValidationError, match="disabled"):
            validate_booking_request(make_booking_request(), make_branch(), settings, [], NOW)

    def test_missing_branch(self):
        with pytest.raises(BookingValidationError, match="does not exist"):
            validate_booking_request(make_booking_request(), None, make_settings(), [], NOW)

    def test_too_many_guests(self):
        settings = make_settings(customer_ui=CustomerUiSettings(max_guests=4))
        with pytest.raises(BookingValidationError, match="at most 4"):
            validate_booking_request(
                make_booking_request(guests=5), make_branch(), settings, [], NOW
            )

    def test_waitlist_disabled(self):
        with pytest.raises(BookingValidationError, match="waitlist is not available"):
            validate_booking_request(
                make_booking_request(),
                make_branch(is_waitlist_enabled=False),
                make_settings(),
                [],
                NOW,
            )

    def test_waitlist_closed(self):
        branch = make_branch(waitlist_opening_time="06:00 PM", waitlist_closing_time="11:00 PM")
        with pytest.raises(BookingValidationError, match="closed"):
            validate_booking_request(make_booking_request(), branch, make_settings(), [], NOW)

    def test_valid_appointment(self):
        validate_booking_request(
            make_appointment_request(appointment_date=TOMORROW),
            make_branch(),
            make_settings(),
            [],
            NOW,
        )

    def test_appointments_disabled(self):
        with pytest.raises(BookingValidationError, match="Appointments are not available"):
            validate_booking_request(
                make_appointment_request(appointment_date=TOMORROW),
                make_branch(is_appointment_enabled=False),
                make_settings(),
                [],
                NOW,
            )

    def test_appointment_needs_date_and_time(self):
        with pytest.raises(BookingValidationError, match="date and a time"):
            validate_booking_request(
                make_appointment_request(appointment_time=None),
                make_branch(),
                make_settings(),
                [],
                NOW,
            )

    def test_no_slots_configured(self):
        branch = make_branch(appointment_settings=AppointmentSettings())
        with pytest.raises(BookingValidationError, match="no appointment slots"):
            validate_booking_request(
                make_appointment_request(appointment_date=TOMORROW),
                branch,
                make_settings(),
                [],
                NOW,
            )

    def test_past_date(self):
        with pytest.raises(BookingValidationError, match="past"):
            validate_booking_request(
                make_appointment_request(appointment_date=date(2025, 3, 9)),
                make_branch(),
                make_settings(),
                [],
                NOW,
            )

    def test_day_not_available(self):
        branch = make_branch(
            appointment_settings=AppointmentSettings(
                available_slots=[AppointmentSlot(time="07:00 PM", capacity=2)],
                available_days=[4, 5],
            )
        )
        with pytest.raises(BookingValidationError, match="Thursday, Friday"):
            validate_booking_request(
                make_appointment_request(appointment_date=TOMORROW),
                branch,
                make_settings(),
                [],
                NOW,
            )

    def test_unknown_slot(self):
        with pytest.raises(BookingValidationError, match="not an appointment slot"):
            validate_booking_request(
                make_appointment_request(appointment_date=TOMORROW, appointment_time="08:00 PM"),
                make_branch(),
                make_settings(),
                [],
                NOW,
            )

    def test_slot_full(self):
        bookings = [_confirmed("07:00 PM"), _confirmed("07:00 PM", id="A02")]
        with pytest.raises(BookingValidationError, match="full"):
            validate_booking_request(
                make_appointment_request(appointment_date=TOMORROW),
                make_branch(),
                make_settings(),
                bookings,
                NOW,
            )
