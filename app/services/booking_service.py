import logging
from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import BookingRuleViolationError, HostNotFoundError, TimeSlotUnavailableError
from app.models.booking import Booking, BookingStatus
from app.models.scheduling import Attendee
from app.models.user import User
from app.services.sql_stores import build_sql_stores, get_meeting_type
from app.services.timezone_service import to_naive_utc
from app.services.validation_service import validate_booking_request

logger = logging.getLogger(__name__)


async def _lock_host(session: AsyncSession, host_id: int) -> None:
    """Serialize booking writes per host for the rest of the transaction."""
    result = await session.execute(select(User.id).where(User.id == host_id).with_for_update())
    if result.first() is None:
        raise HostNotFoundError(host_id)


async def create_booking(
    session: AsyncSession,
    host_id: int,
    meeting_type_id: int,
    start_time: str | datetime,
    end_time: str | datetime,
    attendees: Sequence[Attendee],
    status: BookingStatus = BookingStatus.CONFIRMED,
) -> Booking:
    await _lock_host(session, host_id)
    meeting_type = await get_meeting_type(session, meeting_type_id, host_id)

    # Re-run the engine inside the locked transaction so the check sees committed bookings
    verdict = await validate_booking_request(
        build_sql_stores(session),
        host_id,
        meeting_type.rules(),
        start_time,
        end_time,
        attendees,
    )
    if verdict.conflicts:
        raise TimeSlotUnavailableError("Requested time is not available", verdict.errors)
    if not verdict.is_valid:
        raise BookingRuleViolationError("Booking request breaks meeting rules", verdict.errors)

    booking = Booking(
        host_id=host_id,
        meeting_type_id=meeting_type.id,
        title=meeting_type.name,
        start_utc=to_naive_utc(verdict.start_utc),
        end_utc=to_naive_utc(verdict.end_utc),
        status=status,
        attendees=[a.model_dump() for a in attendees],
    )
    session.add(booking)
    try:
        await session.flush()
    except IntegrityError as e:
        # The database exclusion constraint caught a concurrent overlapping insert
        logger.warning("Booking insert for host %s rejected by constraint: %s", host_id, e)
        raise TimeSlotUnavailableError("Requested time was booked concurrently") from e
    await session.refresh(booking)
    logger.info(
        "Booking %s created for host %s: %s - %s", booking.id, host_id, booking.start_utc, booking.end_utc
    )
    return booking
