"""SQLModel-backed implementations of the engine's store interfaces."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import DependencyUnavailableError, HostNotFoundError, MeetingTypeNotFoundError
from app.models.availability_rule import AvailabilityRule, RuleKind
from app.models.booking import ACTIVE_STATUSES, Booking
from app.models.meeting_type import MeetingType
from app.models.user import User
from app.services.stores import SchedulingStores
from app.services.timezone_service import local_day_bounds, to_naive_utc

logger = logging.getLogger(__name__)


@contextmanager
def _reading(dependency: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        logger.exception("%s read failed: %s", dependency, e)
        raise DependencyUnavailableError(dependency, type(e).__name__) from e


class SqlAvailabilityRuleStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_rules(
        self,
        host_id: int,
        *,
        day_of_week: int | None = None,
        specific_date: date | None = None,
    ) -> list[AvailabilityRule]:
        q = select(AvailabilityRule).where(AvailabilityRule.host_id == host_id)
        matches = []
        if day_of_week is not None:
            matches.append(
                and_(
                    AvailabilityRule.kind == RuleKind.RECURRING,
                    AvailabilityRule.day_of_week == day_of_week,
                )
            )
        if specific_date is not None:
            matches.append(
                and_(
                    AvailabilityRule.kind == RuleKind.DATE_SPECIFIC,
                    AvailabilityRule.specific_date == specific_date,
                )
            )
        if matches:
            q = q.where(or_(*matches))
        q = q.order_by(AvailabilityRule.start_time)
        with _reading("AvailabilityRuleStore"):
            result = await self.session.execute(q)
            return list(result.scalars().all())


class SqlBookingStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_active_bookings(
        self,
        host_id: int,
        start_utc: datetime,
        end_utc: datetime,
        exclude_id: int | None = None,
    ) -> list[Booking]:
        q = select(Booking).where(
            Booking.host_id == host_id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.start_utc < to_naive_utc(end_utc),
            Booking.end_utc > to_naive_utc(start_utc),
        )
        if exclude_id is not None:
            q = q.where(Booking.id != exclude_id)
        q = q.order_by(Booking.start_utc)
        with _reading("BookingStore"):
            result = await self.session.execute(q)
            return list(result.scalars().all())

    async def count_active_bookings_on_date(
        self,
        host_id: int,
        day: date,
        tz_name: str,
        exclude_id: int | None = None,
    ) -> int:
        day_start, day_end = local_day_bounds(day, tz_name)
        q = select(func.count()).select_from(Booking).where(
            Booking.host_id == host_id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.start_utc >= to_naive_utc(day_start),
            Booking.start_utc < to_naive_utc(day_end),
        )
        if exclude_id is not None:
            q = q.where(Booking.id != exclude_id)
        with _reading("BookingStore"):
            result = await self.session.execute(q)
            return int(result.scalar_one())


class SqlHostDirectory:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_host_timezone(self, host_id: int) -> str:
        with _reading("HostDirectory"):
            result = await self.session.execute(select(User.timezone).where(User.id == host_id))
            row = result.first()
        if row is None:
            raise HostNotFoundError(host_id)
        return row[0] or settings.default_timezone


def build_sql_stores(session: AsyncSession) -> SchedulingStores:
    return SchedulingStores(
        rules=SqlAvailabilityRuleStore(session),
        bookings=SqlBookingStore(session),
        hosts=SqlHostDirectory(session),
    )


async def get_meeting_type(session: AsyncSession, meeting_type_id: int, host_id: int) -> MeetingType:
    with _reading("MeetingTypeStore"):
        result = await session.execute(
            select(MeetingType).where(
                MeetingType.id == meeting_type_id,
                MeetingType.host_id == host_id,
                MeetingType.is_active == True,  # noqa: E712
            )
        )
        meeting_type = result.scalar_one_or_none()
    if not meeting_type:
        raise MeetingTypeNotFoundError(meeting_type_id)
    return meeting_type
