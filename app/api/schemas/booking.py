from datetime import date
from pydantic import BaseModel, Field

from app.models.scheduling import Attendee, Interval


class BookingTimes(BaseModel):
    # Kept as strings: values without a zone marker are host-local wall-clock times
    host_id: int
    start_time: str
    end_time: str


class ValidateBookingRequest(BookingTimes):
    meeting_type_id: int
    attendees: list[Attendee] = Field(default_factory=list)
    exclude_booking_id: int | None = None


class CreateBookingRequest(BookingTimes):
    meeting_type_id: int
    attendees: list[Attendee] = Field(default_factory=list)


class ConflictCheckRequest(BookingTimes):
    exclude_booking_id: int | None = None
    display_tz: str | None = None


class EffectiveAvailabilityResponse(BaseModel):
    host_id: int
    timezone: str
    start_date: date
    end_date: date
    days: dict[str, list[Interval]]  # YYYY-MM-DD -> windows
