from pydantic import BaseModel

from restaurant_queue.models.booking import Booking


class WaitTimeBucket(BaseModel):
    label: str
    value: int


class CustomerVisit(BaseModel):
    name: str
    mobile: str
    visit_count: int


class QueueStatus(BaseModel):
    booking: Booking
    position: int | None = None
    queue_ahead: int = 0
    now_serving: str = "---"
    estimated_wait_time: int | None = None
