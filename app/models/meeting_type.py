from sqlmodel import Field, SQLModel


class MeetingTypeRules(SQLModel):
    """Rule context a booking request is validated against."""

    duration_minutes: int = Field(gt=0)
    buffer_before: int = 0
    buffer_after: int = 0
    max_bookings_per_day: int | None = None
    required_notice_minutes: int | None = None
    max_attendees: int | None = None


class MeetingType(MeetingTypeRules, table=True):
    __tablename__ = "meeting_types"
    id: int | None = Field(default=None, primary_key=True)
    host_id: int = Field(foreign_key="users.id", index=True)
    name: str
    is_active: bool = True

    def rules(self) -> MeetingTypeRules:
        return MeetingTypeRules(
            duration_minutes=self.duration_minutes,
            buffer_before=self.buffer_before or 0,
            buffer_after=self.buffer_after or 0,
            max_bookings_per_day=self.max_bookings_per_day,
            required_notice_minutes=self.required_notice_minutes,
            max_attendees=self.max_attendees,
        )
