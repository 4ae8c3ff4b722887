from pydantic import BaseModel, ConfigDict, Field

from restaurant_queue.models.enums import Role


class AppointmentSlot(BaseModel):
    time: str  # "07:00 PM"
    capacity: int = Field(ge=0)


class AppointmentSettings(BaseModel):
    available_slots: list[AppointmentSlot] = []
    available_days: list[int] = []  # Sunday = 0 ... Saturday = 6


class Branch(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    location: str = ""
    image_url: str = ""
    google_maps_url: str | None = None
    review_url: str | None = None
    is_waitlist_enabled: bool = True
    waitlist_opening_time: str | None = "01:00 PM"
    waitlist_closing_time: str | None = "11:00 PM"
    is_appointment_enabled: bool = False
    appointment_settings: AppointmentSettings = Field(default_factory=AppointmentSettings)


class SlotAvailability(BaseModel):
    time: str
    capacity: int
    booked: int
    is_full: bool


class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    mobile: str
    role: Role = Role.STAFF
    branch_id: str = "all"
