import logging
from datetime import UTC, datetime

from app.core.errors import InvalidSlotRequestError
from app.models.scheduling import (
    AvailabilityConflict,
    AvailabilityStatus,
    BlockedTimeConflict,
    BookingConflict,
    Conflict,
    ConflictResult,
    ResolvedWindows,
    WindowSummary,
)
from app.services.availability_service import resolve_windows
from app.services.stores import SchedulingStores
from app.services.suggestion_service import suggest_alternatives
from app.services.timezone_service import ensure_utc, local_date

logger = logging.getLogger(__name__)

_NO_AVAILABILITY_MESSAGES = {
    AvailabilityStatus.NO_AVAILABILITY_CONFIGURED: "No availability has been configured for this host",
    AvailabilityStatus.NO_AVAILABILITY_FOR_DAY: "No availability configured for this time slot",
}


async def find_booking_conflicts(
    stores: SchedulingStores,
    host_id: int,
    start_utc: datetime,
    end_utc: datetime,
    exclude_booking_id: int | None = None,
) -> list[BookingConflict]:
    bookings = await stores.bookings.list_active_bookings(
        host_id, start_utc, end_utc, exclude_booking_id
    )
    conflicts = []
    for booking in bookings:
        booking_start = ensure_utc(booking.start_utc)
        booking_end = ensure_utc(booking.end_utc)
        # Half-open: back-to-back bookings do not collide
        if not (booking_start < end_utc and booking_end > start_utc):
            continue
        if not booking.is_active:
            continue
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        conflicts.append(
            BookingConflict(
                start=booking_start,
                end=booking_end,
                booking_id=booking.id,
                title=booking.title,
                status=booking.status,
                attendees=list(booking.attendees or []),
            )
        )
    return conflicts


def find_availability_conflicts(
    resolved: ResolvedWindows, start_utc: datetime, end_utc: datetime
) -> list[AvailabilityConflict]:
    if not resolved.available:
        return [
            AvailabilityConflict(
                start=start_utc,
                end=end_utc,
                reason="NO_AVAILABILITY_CONFIGURED",
                message=_NO_AVAILABILITY_MESSAGES[resolved.status],
                availability_status=resolved.status,
            )
        ]
    if any(window.contains(start_utc, end_utc) for window in resolved.available):
        return []
    return [
        AvailabilityConflict(
            start=start_utc,
            end=end_utc,
            reason="OUTSIDE_AVAILABILITY_HOURS",
            message="Requested time is outside of available hours",
            availability_status=resolved.status,
            available_windows=[
                WindowSummary(start_time=w.local_start, end_time=w.local_end, kind=w.kind)
                for w in resolved.available
            ],
        )
    ]


def find_blocked_conflicts(
    resolved: ResolvedWindows, start_utc: datetime, end_utc: datetime
) -> list[BlockedTimeConflict]:
    return [
        BlockedTimeConflict(
            start=start_utc,
            end=end_utc,
            blocked_start=block.local_start,
            blocked_end=block.local_end,
            reason=block.block_reason or "Time blocked",
            rule_kind=block.kind,
        )
        for block in resolved.blocked
        if block.intersects(start_utc, end_utc)
    ]


async def check_conflicts(
    stores: SchedulingStores,
    host_id: int,
    start_utc: datetime,
    end_utc: datetime,
    exclude_booking_id: int | None = None,
    *,
    include_suggestions: bool = True,
    display_tz: str | None = None,
    now: datetime | None = None,
) -> ConflictResult:
    """Run every check for [start_utc, end_utc) and report all findings, not just the first."""
    start_utc = ensure_utc(start_utc)
    end_utc = ensure_utc(end_utc)
    if end_utc <= start_utc:
        raise InvalidSlotRequestError("End time must be after start time")
    tz_name = await stores.hosts.get_host_timezone(host_id)

    conflicts: list[Conflict] = []
    conflicts.extend(
        await find_booking_conflicts(stores, host_id, start_utc, end_utc, exclude_booking_id)
    )
    resolved = await resolve_windows(stores, host_id, local_date(start_utc, tz_name), tz_name)
    conflicts.extend(find_availability_conflicts(resolved, start_utc, end_utc))
    conflicts.extend(find_blocked_conflicts(resolved, start_utc, end_utc))

    suggestions = []
    if conflicts:
        logger.info(
            "Host %s: %d conflict(s) for %s - %s (%s)",
            host_id,
            len(conflicts),
            start_utc.isoformat(),
            end_utc.isoformat(),
            ", ".join(c.type for c in conflicts),
        )
        if include_suggestions:
            suggestions = await suggest_alternatives(
                stores,
                host_id,
                start_utc,
                end_utc,
                tz_name,
                display_tz=display_tz,
                now=now or datetime.now(UTC),
            )

    return ConflictResult(
        has_conflicts=bool(conflicts),
        conflicts=conflicts,
        suggestions=suggestions,
    )


def format_conflict_message(conflict: Conflict) -> str:
    """One user-facing sentence per conflict."""
    if isinstance(conflict, BookingConflict):
        return f"Time conflicts with existing booking: {conflict.title} ({conflict.status.value})"
    if isinstance(conflict, AvailabilityConflict):
        if conflict.reason == "NO_AVAILABILITY_CONFIGURED":
            return "No availability configured for this time slot"
        return "Requested time is outside of available hours"
    if isinstance(conflict, BlockedTimeConflict):
        return f"Time slot is blocked: {conflict.reason}"
    return "Time slot is not available"
