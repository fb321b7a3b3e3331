import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENV", "test")

from datetime import UTC, date, datetime, timedelta  # noqa: E402
from itertools import count  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from app.core.errors import HostNotFoundError  # noqa: E402
from app.models.availability_rule import AvailabilityRule, RuleKind  # noqa: E402
from app.models.booking import Booking, BookingStatus  # noqa: E402
from app.models.meeting_type import MeetingType  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.stores import SchedulingStores  # noqa: E402
from app.services.timezone_service import ensure_utc, intervals_overlap, local_day_bounds  # noqa: E402

NEW_YORK = "America/New_York"
HOST_ID = 1
UNCONFIGURED_HOST_ID = 2

# 2025-06-02 is a Monday; New York is on EDT (UTC-4)
MONDAY = date(2025, 6, 2)
SUNDAY = date(2025, 6, 1)


class InMemoryRuleStore:
    def __init__(self) -> None:
        self.rules: list[AvailabilityRule] = []
        self._ids = count(1)

    def add(self, host_id: int = HOST_ID, **fields) -> AvailabilityRule:
        rule = AvailabilityRule(id=next(self._ids), host_id=host_id, **fields)
        self.rules.append(rule)
        return rule

    def recurring(self, day_of_week: int, start: str, end: str, host_id: int = HOST_ID, **fields):
        return self.add(
            host_id, kind=RuleKind.RECURRING, day_of_week=day_of_week, start_time=start, end_time=end, **fields
        )

    def on_date(self, day: date, start: str, end: str, host_id: int = HOST_ID, **fields):
        return self.add(
            host_id, kind=RuleKind.DATE_SPECIFIC, specific_date=day, start_time=start, end_time=end, **fields
        )

    async def list_rules(self, host_id, *, day_of_week=None, specific_date=None):
        rules = [r for r in self.rules if r.host_id == host_id]
        if day_of_week is None and specific_date is None:
            return rules
        return [
            r
            for r in rules
            if (r.kind == RuleKind.RECURRING and r.day_of_week == day_of_week)
            or (r.kind == RuleKind.DATE_SPECIFIC and r.specific_date == specific_date)
        ]


class InMemoryBookingStore:
    def __init__(self) -> None:
        self.bookings: list[Booking] = []
        self._ids = count(100)

    def add(
        self,
        start_utc: datetime,
        end_utc: datetime,
        status: BookingStatus = BookingStatus.CONFIRMED,
        title: str = "Intro call",
        host_id: int = HOST_ID,
    ) -> Booking:
        booking = Booking(
            id=next(self._ids),
            host_id=host_id,
            title=title,
            start_utc=start_utc,
            end_utc=end_utc,
            status=status,
            attendees=[{"email": "guest@example.com", "name": "Guest"}],
        )
        self.bookings.append(booking)
        return booking

    def _active(self, host_id, exclude_id):
        return [
            b
            for b in self.bookings
            if b.host_id == host_id and b.is_active and (exclude_id is None or b.id != exclude_id)
        ]

    async def list_active_bookings(self, host_id, start_utc, end_utc, exclude_id=None):
        return [
            b
            for b in self._active(host_id, exclude_id)
            if intervals_overlap(b.start_utc, b.end_utc, start_utc, end_utc)
        ]

    async def count_active_bookings_on_date(self, host_id, day, tz_name, exclude_id=None):
        day_start, day_end = local_day_bounds(day, tz_name)
        return sum(
            1
            for b in self._active(host_id, exclude_id)
            if day_start <= ensure_utc(b.start_utc) < day_end
        )


class InMemoryHostDirectory:
    def __init__(self, timezones: dict[int, str]) -> None:
        self.timezones = timezones

    async def get_host_timezone(self, host_id: int) -> str:
        if host_id not in self.timezones:
            raise HostNotFoundError(host_id)
        return self.timezones[host_id]


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


@pytest.fixture
def stores() -> SchedulingStores:
    """Host 1 in New York, available Mondays 09:00-17:00. Host 2 in UTC with no rules."""
    rules = InMemoryRuleStore()
    rules.recurring(1, "09:00", "17:00")
    return SchedulingStores(
        rules=rules,
        bookings=InMemoryBookingStore(),
        hosts=InMemoryHostDirectory({HOST_ID: NEW_YORK, UNCONFIGURED_HOST_ID: "UTC"}),
    )


@pytest.fixture
def now() -> datetime:
    # Friday before MONDAY
    return utc(2025, 5, 30, 12, 0)


@pytest.fixture
def future_monday() -> date:
    """A Monday a few weeks out, for code paths that read the wall clock."""
    today = datetime.now(UTC).date()
    return today + timedelta(days=(7 - today.weekday()) % 7 + 28)


@pytest.fixture
async def session_maker():
    """SQLite-backed sessions seeded with host 1 (New York, Mondays 09:00-17:00) and host 2 (no timezone)."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        session.add(User(id=HOST_ID, email="host@example.com", full_name="Grace Hopper", timezone=NEW_YORK))
        session.add(User(id=UNCONFIGURED_HOST_ID, email="nobody@example.com"))
        await session.flush()
        session.add(MeetingType(id=1, host_id=HOST_ID, name="Intro call", duration_minutes=30))
        session.add(MeetingType(id=2, host_id=HOST_ID, name="Retired", duration_minutes=30, is_active=False))
        session.add(
            AvailabilityRule(
                host_id=HOST_ID, kind=RuleKind.RECURRING, day_of_week=1, start_time="09:00", end_time="17:00"
            )
        )
        await session.commit()
    yield maker
    await engine.dispose()
