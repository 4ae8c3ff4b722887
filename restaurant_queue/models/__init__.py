from restaurant_queue.models.booking import Booking, BookingRequest, BookingUpdate
from restaurant_queue.models.branch import (
    AppointmentSettings,
    AppointmentSlot,
    Branch,
    SlotAvailability,
    User,
)
from restaurant_queue.models.enums import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    BookingStatus,
    BookingType,
    NotificationChannel,
    Role,
    SeatingArea,
    TemplateKey,
)
from restaurant_queue.models.settings import (
    CustomerUiSettings,
    KarzounConfig,
    MsegatConfig,
    NotificationSettings,
    NotificationTemplates,
    RestaurantSettings,
)
from restaurant_queue.models.stats import CustomerVisit, QueueStatus, WaitTimeBucket

__all__ = [
    "ACTIVE_STATUSES",
    "AppointmentSettings",
    "AppointmentSlot",
    "Booking",
    "BookingRequest",
    "BookingStatus",
    "BookingType",
    "BookingUpdate",
    "Branch",
    "CustomerUiSettings",
    "CustomerVisit",
    "KarzounConfig",
    "MsegatConfig",
    "NotificationChannel",
    "NotificationSettings",
    "NotificationTemplates",
    "QueueStatus",
    "RestaurantSettings",
    "Role",
    "SeatingArea",
    "SlotAvailability",
    "TERMINAL_STATUSES",
    "TemplateKey",
    "User",
    "WaitTimeBucket",
]
