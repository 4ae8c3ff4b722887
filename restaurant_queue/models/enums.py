from enum import StrEnum


class BookingStatus(StrEnum):
    WAITING = "WAITING"
    CONFIRMED = "CONFIRMED"
    SEATED = "SEATED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class BookingType(StrEnum):
    WAITLIST = "WAITLIST"
    APPOINTMENT = "APPOINTMENT"


class SeatingArea(StrEnum):
    ANY = "ANY"
    INDOOR = "INDOOR"
    OUTDOOR = "OUTDOOR"


class Role(StrEnum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"


class TemplateKey(StrEnum):
    BOOKING_CONFIRMATION = "bookingConfirmation"
    TURN_REMINDER = "turnReminder"
    BOOKING_SEATED = "bookingSeated"
    BOOKING_CANCELLED = "bookingCancelled"
    CUSTOMER_CALL = "customerCall"
    POST_VISIT_FEEDBACK = "postVisitFeedback"


class NotificationChannel(StrEnum):
    MSEGAT = "msegat"
    KARZOUN = "karzoun"


ACTIVE_STATUSES = frozenset(
    {BookingStatus.WAITING, BookingStatus.CONFIRMED, BookingStatus.SEATED}
)
TERMINAL_STATUSES = frozenset(
    {BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW}
)
