from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    RESCHEDULED = "RESCHEDULED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


# Only these statuses hold a host's time
ACTIVE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.PENDING)


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    id: int | None = Field(default=None, primary_key=True)
    host_id: int = Field(foreign_key="users.id", index=True)
    meeting_type_id: int | None = Field(default=None, foreign_key="meeting_types.id")
    title: str = ""
    start_utc: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False, index=True))
    end_utc: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False))
    status: BookingStatus = Field(default=BookingStatus.PENDING, index=True)
    attendees: list[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(
        default_factory=_utc_naive_now, sa_column=Column(DateTime(timezone=False), nullable=False)
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class BookingPublic(SQLModel):
    id: int
    host_id: int
    meeting_type_id: int | None = None
    title: str
    start_utc: datetime
    end_utc: datetime
    status: BookingStatus
    attendees: list[dict]
    created_at: datetime
