"""Ephemeral values produced by the scheduling engine. Never persisted."""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from app.models.availability_rule import RuleKind
from app.models.booking import BookingStatus


class Interval(BaseModel):
    """Half-open [start, end) between aware UTC instants."""

    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60

    def contains(self, start: datetime, end: datetime) -> bool:
        return self.start <= start and end <= self.end

    def intersects(self, start: datetime, end: datetime) -> bool:
        return self.start < end and self.end > start


class AvailabilityStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    NO_AVAILABILITY_CONFIGURED = "NO_AVAILABILITY_CONFIGURED"
    NO_AVAILABILITY_FOR_DAY = "NO_AVAILABILITY_FOR_DAY"


class ResolvedWindow(Interval):
    rule_id: int | None = None
    kind: RuleKind
    local_start: str  # HH:mm as configured
    local_end: str
    block_reason: str | None = None


class ResolvedWindows(BaseModel):
    day: date
    timezone: str
    status: AvailabilityStatus
    available: list[ResolvedWindow] = []
    blocked: list[ResolvedWindow] = []


class CandidateSlot(Interval):
    label: str
    confidence: float | None = None
    reason: str | None = None


class Attendee(BaseModel):
    email: str | None = None
    name: str | None = None


class WindowSummary(BaseModel):
    start_time: str
    end_time: str
    kind: RuleKind


class BookingConflict(Interval):
    type: Literal["booking"] = "booking"
    booking_id: int | None
    title: str
    status: BookingStatus
    attendees: list[dict] = []


class AvailabilityConflict(Interval):
    type: Literal["availability"] = "availability"
    reason: Literal["NO_AVAILABILITY_CONFIGURED", "OUTSIDE_AVAILABILITY_HOURS"]
    message: str
    availability_status: AvailabilityStatus
    available_windows: list[WindowSummary] = []


class BlockedTimeConflict(Interval):
    type: Literal["blocked_time"] = "blocked_time"
    blocked_start: str
    blocked_end: str
    reason: str
    rule_kind: RuleKind


Conflict = Annotated[
    Union[BookingConflict, AvailabilityConflict, BlockedTimeConflict],
    Field(discriminator="type"),
]


class ConflictResult(BaseModel):
    has_conflicts: bool
    conflicts: list[Conflict] = []
    suggestions: list[CandidateSlot] = []


class SuggestedChanges(BaseModel):
    start_utc: datetime | None = None
    end_utc: datetime | None = None
    duration_minutes: int | None = None


class BookingValidationResult(BaseModel):
    is_valid: bool
    errors: list[str] = []
    warnings: list[str] = []
    suggested_changes: SuggestedChanges | None = None
    start_utc: datetime | None = None
    end_utc: datetime | None = None
    conflicts: list[Conflict] = []


class AvailableSlotsResult(BaseModel):
    day: date
    host_timezone: str
    display_timezone: str
    availability_status: AvailabilityStatus
    available_slots: list[CandidateSlot] = []
    unavailable_slots: list[CandidateSlot] = []
    suggestions: list[CandidateSlot] = []


class SlotPreferences(BaseModel):
    preferred_days: list[int] | None = None  # 0 = Sunday
    preferred_time_start: str | None = None  # HH:mm
    preferred_time_end: str | None = None
    max_days_ahead: int | None = None
