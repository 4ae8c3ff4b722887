from datetime import UTC, datetime, timedelta

from restaurant_queue.models.booking import Booking, BookingRequest
from restaurant_queue.models.branch import AppointmentSettings, AppointmentSlot, Branch, User
from restaurant_queue.models.enums import BookingStatus, BookingType
from restaurant_queue.models.settings import (
    KarzounConfig,
    MsegatConfig,
    NotificationSettings,
    RestaurantSettings,
)

# Monday 2025-03-10, 15:00 in Riyadh
BASE_TIME = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


class FakeClock:
    """Mutable clock injected into BookingStore."""

    def __init__(self, now: datetime = BASE_TIME) -> None:
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


class RecordingSender:
    """NotificationSender double that records every message."""

    def __init__(self, result: bool = True, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.sent: list[tuple[str, str]] = []

    async def send(self, config, mobile: str, message: str) -> bool:  # type: ignore[no-untyped-def]
        self.sent.append((mobile, message))
        if self.error is not None:
            raise self.error
        return self.result


def make_branch(**overrides: object) -> Branch:
    defaults: dict = {
        "id": "branch1",
        "name": "Olaya",
        "location": "Riyadh, Olaya St",
        "review_url": "https://g.page/r/olaya",
        "is_waitlist_enabled": True,
        "waitlist_opening_time": None,
        "waitlist_closing_time": None,
        "is_appointment_enabled": True,
        "appointment_settings": AppointmentSettings(
            available_slots=[
                AppointmentSlot(time="07:00 PM", capacity=2),
                AppointmentSlot(time="09:00 PM", capacity=1),
            ],
            available_days=[0, 1, 2, 3, 4, 5, 6],
        ),
    }
    defaults.update(overrides)
    return Branch(**defaults)


def make_booking_request(**overrides: object) -> BookingRequest:
    defaults: dict = {
        "branch_id": "branch1",
        "booking_type": BookingType.WAITLIST,
        "name": "Sara",
        "mobile": "0512345678",
        "guests": 2,
    }
    defaults.update(overrides)
    return BookingRequest(**defaults)


def make_appointment_request(**overrides: object) -> BookingRequest:
    defaults: dict = {
        "booking_type": BookingType.APPOINTMENT,
        "appointment_date": BASE_TIME.date() + timedelta(days=1),
        "appointment_time": "07:00 PM",
    }
    defaults.update(overrides)
    return make_booking_request(**defaults)


def make_booking(**overrides: object) -> Booking:
    defaults: dict = {
        "id": "001",
        "created_at": BASE_TIME,
        "status": BookingStatus.WAITING,
        "branch_id": "branch1",
        "booking_type": BookingType.WAITLIST,
        "name": "Sara",
        "mobile": "+966512345678",
        "guests": 2,
    }
    defaults.update(overrides)
    return Booking(**defaults)


def make_user(**overrides: object) -> User:
    defaults: dict = {
        "id": "user1",
        "name": "Khalid",
        "mobile": "+966500000001",
        "branch_id": "all",
    }
    defaults.update(overrides)
    return User(**defaults)


def make_settings(notifications_enabled: bool = False, **overrides: object) -> RestaurantSettings:
    """Restaurant settings; with *notifications_enabled* both channels are on."""
    defaults: dict = {
        "restaurant_name": "Najd House",
        "whatsapp_number": "+966500000000",
    }
    if notifications_enabled:
        defaults["notifications"] = NotificationSettings(
            msegat=MsegatConfig(
                enabled=True, user_name="najd", api_key="sms-key", user_sender="NAJD"
            ),
            karzoun=KarzounConfig(enabled=True, appkey="app-key", authkey="auth-key"),
        )
    defaults.update(overrides)
    return RestaurantSettings(**defaults)
