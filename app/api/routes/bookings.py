from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_stores
from app.api.schemas.booking import (
    ConflictCheckRequest,
    CreateBookingRequest,
    ValidateBookingRequest,
)
from app.core.db import get_session
from app.models.booking import Booking, BookingPublic
from app.models.scheduling import BookingValidationResult, ConflictResult
from app.services.booking_service import create_booking
from app.services.scheduling_service import check_booking_conflicts, validate_booking_request
from app.services.sql_stores import get_meeting_type
from app.services.stores import SchedulingStores
from app.services.validation_service import normalize_time

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _to_public(b: Booking) -> BookingPublic:
    return BookingPublic(
        id=b.id,
        host_id=b.host_id,
        meeting_type_id=b.meeting_type_id,
        title=b.title,
        start_utc=b.start_utc,
        end_utc=b.end_utc,
        status=b.status,
        attendees=list(b.attendees or []),
        created_at=b.created_at,
    )


@router.post("/validate", response_model=BookingValidationResult)
async def validate_booking(
    body: ValidateBookingRequest,
    session: AsyncSession = Depends(get_session),
    stores: SchedulingStores = Depends(get_stores),
) -> BookingValidationResult:
    """Run every booking rule without creating anything. Errors block, warnings do not."""
    meeting_type = await get_meeting_type(session, body.meeting_type_id, body.host_id)
    return await validate_booking_request(
        stores,
        body.host_id,
        meeting_type.rules(),
        body.start_time,
        body.end_time,
        body.attendees,
        body.exclude_booking_id,
    )


@router.post("/conflicts", response_model=ConflictResult)
async def booking_conflicts(
    body: ConflictCheckRequest,
    stores: SchedulingStores = Depends(get_stores),
) -> ConflictResult:
    tz_name = await stores.hosts.get_host_timezone(body.host_id)
    return await check_booking_conflicts(
        stores,
        body.host_id,
        normalize_time(body.start_time, tz_name),
        normalize_time(body.end_time, tz_name),
        body.exclude_booking_id,
        display_tz=body.display_tz,
    )


@router.post("", response_model=BookingPublic, status_code=status.HTTP_201_CREATED)
async def book(
    body: CreateBookingRequest,
    session: AsyncSession = Depends(get_session),
) -> BookingPublic:
    booking = await create_booking(
        session,
        body.host_id,
        body.meeting_type_id,
        body.start_time,
        body.end_time,
        body.attendees,
    )
    return _to_public(booking)
