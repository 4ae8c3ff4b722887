from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from restaurant_queue.models.enums import BookingStatus, BookingType, SeatingArea
from restaurant_queue.models.mobile import normalize_mobile


class BookingRequest(BaseModel):
    """Customer input for a new booking. Fields here never change afterwards."""

    branch_id: str
    booking_type: BookingType
    name: str = Field(min_length=1)
    mobile: str
    guests: int = Field(ge=1)
    seating_area: SeatingArea = SeatingArea.ANY
    agreed_to_notifications: bool = True
    appointment_date: date | None = None
    appointment_time: str | None = None

    @field_validator("mobile")
    @classmethod
    def _normalize_mobile(cls, value: str) -> str:
        return normalize_mobile(value)


class Booking(BookingRequest):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    status: BookingStatus
    estimated_wait_time: int | None = None
    reminder_sent: bool = False
    seated_at: datetime | None = None
    completed_at: datetime | None = None
    visit_duration_minutes: int | None = None

    @property
    def is_waiting_in_queue(self) -> bool:
        return (
            self.booking_type == BookingType.WAITLIST
            and self.status == BookingStatus.WAITING
        )


class BookingUpdate(BaseModel):
    """Partial update applied through the transition path."""

    status: BookingStatus | None = None
    estimated_wait_time: int | None = None
    reminder_sent: bool | None = None
