import logging
from datetime import UTC, date, datetime, timedelta
from typing import Sequence

from app.core.config import settings
from app.core.errors import InvalidSlotRequestError
from app.models.meeting_type import MeetingTypeRules
from app.models.scheduling import (
    Attendee,
    AvailableSlotsResult,
    BookingValidationResult,
    CandidateSlot,
    ConflictResult,
)
from app.services.availability_service import effective_windows, resolve_windows
from app.services.conflict_service import check_conflicts
from app.services.slot_service import generate_future_slots
from app.services.stores import SchedulingStores
from app.services.suggestion_service import suggest_alternatives
from app.services.timezone_service import (
    ensure_utc,
    get_timezone,
    intervals_overlap,
    local_day_bounds,
)
from app.services.validation_service import validate_booking_request as _validate

logger = logging.getLogger(__name__)


async def validate_booking_request(
    stores: SchedulingStores,
    host_id: int,
    meeting_type: MeetingTypeRules,
    start_time: str | datetime,
    end_time: str | datetime,
    attendees: Sequence[Attendee],
    exclude_booking_id: int | None = None,
    *,
    now: datetime | None = None,
) -> BookingValidationResult:
    return await _validate(
        stores, host_id, meeting_type, start_time, end_time, attendees, exclude_booking_id, now=now
    )


async def check_booking_conflicts(
    stores: SchedulingStores,
    host_id: int,
    start_utc: datetime,
    end_utc: datetime,
    exclude_booking_id: int | None = None,
    *,
    display_tz: str | None = None,
    now: datetime | None = None,
) -> ConflictResult:
    return await check_conflicts(
        stores, host_id, start_utc, end_utc, exclude_booking_id, display_tz=display_tz, now=now
    )


async def get_available_slots(
    stores: SchedulingStores,
    host_id: int,
    day: date,
    duration_minutes: int,
    display_tz: str | None = None,
    *,
    buffer_minutes: int = 0,
    now: datetime | None = None,
) -> AvailableSlotsResult:
    """Bookable and booked slots of ``duration_minutes`` on the host's local ``day``.

    Blocked time is left out entirely; slots taken by a booking are returned
    as unavailable with reason ``BOOKED`` so UIs can grey them out.
    """
    if duration_minutes <= 0:
        raise InvalidSlotRequestError("Slot duration must be positive")
    now = ensure_utc(now or datetime.now(UTC))
    tz_name = await stores.hosts.get_host_timezone(host_id)
    display_tz = display_tz or tz_name
    get_timezone(display_tz)

    resolved = await resolve_windows(stores, host_id, day, tz_name)
    windows = effective_windows(resolved)

    day_start, day_end = local_day_bounds(day, tz_name)
    bookings = await stores.bookings.list_active_bookings(host_id, day_start, day_end)

    available: list[CandidateSlot] = []
    unavailable: list[CandidateSlot] = []
    for window in windows:
        for slot in generate_future_slots(
            window.start, window.end, duration_minutes, now, display_tz=display_tz
        ):
            booked = any(
                intervals_overlap(slot.start, slot.end, b.start_utc, b.end_utc, buffer_minutes)
                for b in bookings
            )
            if booked:
                slot.reason = "BOOKED"
                unavailable.append(slot)
            else:
                available.append(slot)

    suggestions: list[CandidateSlot] = []
    if not available:
        suggestions = await suggest_alternatives(
            stores,
            host_id,
            day_start,
            day_start + timedelta(minutes=duration_minutes),
            tz_name,
            settings.max_suggestions,
            display_tz=display_tz,
            now=now,
        )

    logger.debug(
        "Host %s on %s: %d available, %d booked, %d suggestion(s)",
        host_id, day, len(available), len(unavailable), len(suggestions),
    )
    return AvailableSlotsResult(
        day=day,
        host_timezone=tz_name,
        display_timezone=display_tz,
        availability_status=resolved.status,
        available_slots=available,
        unavailable_slots=unavailable,
        suggestions=suggestions,
    )
