import logging
import math
import re
from datetime import UTC, datetime, timedelta
from typing import Sequence

from app.core.config import settings
from app.core.errors import InvalidTimeFormatError
from app.models.meeting_type import MeetingTypeRules
from app.models.scheduling import Attendee, BookingValidationResult, ConflictResult, SuggestedChanges
from app.services.conflict_service import check_conflicts, format_conflict_message
from app.services.stores import SchedulingStores
from app.services.timezone_service import ensure_utc, local_date, parse_local_time, to_zone

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_ZONE_MARKER_RE = re.compile(r"(Z|[+-]\d{2}:?\d{2})$", re.IGNORECASE)


def is_valid_email(email: str | None) -> bool:
    return bool(email) and bool(_EMAIL_RE.match(email))


def normalize_time(raw: str | datetime, host_tz: str) -> datetime:
    """Aware UTC instant for a raw request time.

    Strings without a zone marker are host-local wall-clock times. Zoned
    strings and datetimes are absolute; naive datetimes are UTC.
    """
    if isinstance(raw, datetime):
        return ensure_utc(raw)
    if not isinstance(raw, str):
        raise InvalidTimeFormatError(raw)
    value = raw.strip()
    if _ZONE_MARKER_RE.search(value):
        try:
            parsed = datetime.fromisoformat(value.replace("z", "Z"))
        except ValueError as e:
            raise InvalidTimeFormatError(raw) from e
        return ensure_utc(parsed)
    return parse_local_time(value, host_tz)


def _check_attendees(
    attendees: Sequence[Attendee], meeting_type: MeetingTypeRules, result: BookingValidationResult
) -> None:
    if meeting_type.max_attendees and len(attendees) > meeting_type.max_attendees:
        result.errors.append(
            f"Maximum {meeting_type.max_attendees} attendees allowed, but {len(attendees)} provided"
        )

    seen: set[str] = set()
    for attendee in attendees:
        if not is_valid_email(attendee.email):
            result.errors.append(f"Invalid email address: {attendee.email}")
        if not attendee.name or len(attendee.name.strip()) < 2:
            result.errors.append("Attendee name must be at least 2 characters long")
        if attendee.email:
            key = attendee.email.strip().lower()
            if key in seen:
                result.warnings.append(f"Duplicate attendee email: {attendee.email}")
            seen.add(key)


def _check_advance_notice(
    start_utc: datetime, required_notice_minutes: int | None, now: datetime
) -> str | None:
    if not required_notice_minutes:
        return None
    minutes_until = (start_utc - now).total_seconds() / 60
    if minutes_until < required_notice_minutes:
        hours_required = math.ceil(required_notice_minutes / 60)
        return f"This meeting type requires at least {hours_required} hours advance notice"
    return None


async def _check_daily_limit(
    stores: SchedulingStores,
    host_id: int,
    start_utc: datetime,
    tz_name: str,
    max_per_day: int | None,
    exclude_booking_id: int | None,
) -> str | None:
    if not max_per_day:
        return None
    count = await stores.bookings.count_active_bookings_on_date(
        host_id, local_date(start_utc, tz_name), tz_name, exclude_booking_id
    )
    if count >= max_per_day:
        return f"Daily booking limit of {max_per_day} has been reached for this date"
    return None


async def _check_buffer(
    stores: SchedulingStores,
    host_id: int,
    start_utc: datetime,
    end_utc: datetime,
    meeting_type: MeetingTypeRules,
    exclude_booking_id: int | None,
) -> str | None:
    before = meeting_type.buffer_before or 0
    after = meeting_type.buffer_after or 0
    if before <= 0 and after <= 0:
        return None
    nearby = await stores.bookings.list_active_bookings(
        host_id,
        start_utc - timedelta(minutes=before),
        end_utc + timedelta(minutes=after),
        exclude_booking_id,
    )
    if nearby:
        return (
            "Buffer time conflicts with existing booking. This meeting type requires "
            f"{before} minutes before and {after} minutes after."
        )
    return None


def _advisory_warnings(start_utc: datetime, end_utc: datetime, tz_name: str) -> list[str]:
    warnings = []
    hour = to_zone(start_utc, tz_name).hour
    if hour < settings.typical_hours_start or hour > settings.typical_hours_end:
        warnings.append("Booking is scheduled outside typical business hours")
    if end_utc - start_utc > timedelta(hours=settings.long_meeting_warning_hours):
        warnings.append(
            f"Meeting duration is unusually long (over {settings.long_meeting_warning_hours} hours)"
        )
    return warnings


async def validate_booking_request(
    stores: SchedulingStores,
    host_id: int,
    meeting_type: MeetingTypeRules,
    raw_start: str | datetime,
    raw_end: str | datetime,
    attendees: Sequence[Attendee],
    exclude_booking_id: int | None = None,
    *,
    now: datetime | None = None,
) -> BookingValidationResult:
    now = ensure_utc(now or datetime.now(UTC))
    tz_name = await stores.hosts.get_host_timezone(host_id)

    start_utc = normalize_time(raw_start, tz_name)
    end_utc = normalize_time(raw_end, tz_name)

    result = BookingValidationResult(is_valid=True)
    changes: SuggestedChanges | None = None

    if start_utc >= end_utc:
        result.errors.append("Start time must be before end time")

    actual_minutes = (end_utc - start_utc).total_seconds() / 60
    if abs(actual_minutes - meeting_type.duration_minutes) > settings.duration_tolerance_minutes:
        corrected_end = start_utc + timedelta(minutes=meeting_type.duration_minutes)
        logger.debug(
            "Host %s: end corrected from %s to %s (%d min meeting type)",
            host_id, end_utc.isoformat(), corrected_end.isoformat(), meeting_type.duration_minutes,
        )
        end_utc = corrected_end
        changes = SuggestedChanges(end_utc=end_utc, duration_minutes=meeting_type.duration_minutes)
    result.start_utc = start_utc
    result.end_utc = end_utc

    if start_utc < now:
        result.errors.append("Cannot book appointments for past dates")

    _check_attendees(attendees, meeting_type, result)

    notice_error = _check_advance_notice(start_utc, meeting_type.required_notice_minutes, now)
    if notice_error:
        result.errors.append(notice_error)

    limit_error = await _check_daily_limit(
        stores, host_id, start_utc, tz_name, meeting_type.max_bookings_per_day, exclude_booking_id
    )
    if limit_error:
        result.errors.append(limit_error)

    buffer_warning = await _check_buffer(
        stores, host_id, start_utc, end_utc, meeting_type, exclude_booking_id
    )
    if buffer_warning:
        result.warnings.append(buffer_warning)

    result.warnings.extend(_advisory_warnings(start_utc, end_utc, tz_name))

    # A zero-length request has already been reported above
    if start_utc < end_utc:
        conflict_result = await check_conflicts(
            stores, host_id, start_utc, end_utc, exclude_booking_id, now=now
        )
    else:
        conflict_result = ConflictResult(has_conflicts=False)
    if conflict_result.has_conflicts:
        result.conflicts = conflict_result.conflicts
        result.errors.extend(format_conflict_message(c) for c in conflict_result.conflicts)
        if conflict_result.suggestions:
            best = conflict_result.suggestions[0]
            changes = SuggestedChanges(
                start_utc=best.start,
                end_utc=best.end,
                duration_minutes=meeting_type.duration_minutes,
            )

    result.suggested_changes = changes
    result.is_valid = not result.errors
    if not result.is_valid:
        logger.info("Booking request for host %s rejected: %s", host_id, "; ".join(result.errors))
    return result
