from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import InvalidTimeFormatError, InvalidTimezoneError
from app.models.meeting_type import MeetingTypeRules
from app.models.scheduling import Attendee
from app.services.stores import SchedulingStores
from app.services.validation_service import is_valid_email, normalize_time, validate_booking_request
from conftest import HOST_ID, MONDAY, NEW_YORK, InMemoryHostDirectory, utc

ADA = Attendee(email="ada@example.com", name="Ada Lovelace")


def _intro(**overrides) -> MeetingTypeRules:
    return MeetingTypeRules(duration_minutes=30, **overrides)


async def test_valid_request_on_available_monday(stores, now):
    result = await validate_booking_request(
        stores, HOST_ID, _intro(), "2025-06-02T10:00", "2025-06-02T10:30", [ADA], now=now
    )
    assert result.is_valid
    assert result.errors == []
    assert result.warnings == []
    assert result.suggested_changes is None
    assert result.start_utc == utc(2025, 6, 2, 14, 0)
    assert result.end_utc == utc(2025, 6, 2, 14, 30)


async def test_zoned_and_local_inputs_agree(stores, now):
    local = await validate_booking_request(
        stores, HOST_ID, _intro(), "2025-06-02T10:00", "2025-06-02T10:30", [ADA], now=now
    )
    zoned = await validate_booking_request(
        stores, HOST_ID, _intro(), "2025-06-02T14:00:00Z", "2025-06-02T10:30:00-04:00", [ADA], now=now
    )
    assert (zoned.start_utc, zoned.end_utc) == (local.start_utc, local.end_utc)
    assert zoned.is_valid


async def test_overlapping_booking_rejects_request(stores, now):
    stores.bookings.add(utc(2025, 6, 2, 14, 0), utc(2025, 6, 2, 14, 30))
    result = await validate_booking_request(
        stores, HOST_ID, _intro(), "2025-06-02T10:15", "2025-06-02T10:45", [ADA], now=now
    )
    assert not result.is_valid
    assert result.errors == ["Time conflicts with existing booking: Intro call (CONFIRMED)"]
    assert [c.type for c in result.conflicts] == ["booking"]
    assert result.suggested_changes is not None
    assert result.suggested_changes.start_utc == utc(2025, 6, 2, 13, 0)
    assert result.suggested_changes.duration_minutes == 30


async def test_end_time_is_corrected_to_meeting_length(stores, now):
    result = await validate_booking_request(
        stores, HOST_ID, _intro(), "2025-06-02T10:00", "2025-06-02T11:00", [ADA], now=now
    )
    assert result.is_valid
    assert result.end_utc == utc(2025, 6, 2, 14, 30)
    assert result.suggested_changes.end_utc == utc(2025, 6, 2, 14, 30)
    assert result.suggested_changes.duration_minutes == 30


async def test_small_duration_drift_is_tolerated(stores, now):
    result = await validate_booking_request(
        stores, HOST_ID, _intro(), "2025-06-02T10:00", "2025-06-02T10:31", [ADA], now=now
    )
    assert result.suggested_changes is None
    assert result.end_utc == utc(2025, 6, 2, 14, 31)


async def test_start_after_end(stores, now):
    result = await validate_booking_request(
        stores, HOST_ID, _intro(), "2025-06-02T10:30", "2025-06-02T10:00", [ADA], now=now
    )
    assert not result.is_valid
    assert "Start time must be before end time" in result.errors


async def test_past_dates_are_rejected(stores):
    result = await validate_booking_request(
        stores, HOST_ID, _intro(), "2025-06-02T10:00", "2025-06-02T10:30", [ADA], now=utc(2025, 6, 3)
    )
    assert not result.is_valid
    assert "Cannot book appointments for past dates" in result.errors


async def test_advance_notice(stores):
    now = utc(2025, 6, 2, 14, 0)  # 10:00 in New York
    result = await validate_booking_request(
        stores,
        HOST_ID,
        _intro(required_notice_minutes=60),
        "2025-06-02T10:30",
        "2025-06-02T11:00",
        [ADA],
        now=now,
    )
    assert not result.is_valid
    assert result.errors == ["This meeting type requires at least 1 hours advance notice"]


async def test_advance_notice_rounds_hours_up(stores, now):
    result = await validate_booking_request(
        stores,
        HOST_ID,
        _intro(required_notice_minutes=90 * 60 + 1),
        "2025-06-02T10:00",
        "2025-06-02T10:30",
        [ADA],
        now=now,
    )
    assert "This meeting type requires at least 91 hours advance notice" in result.errors


async def test_attendee_rules(stores, now):
    attendees = [
        ADA,
        Attendee(email="not-an-email", name="Bob"),
        Attendee(email="ADA@example.com", name="A"),
    ]
    result = await validate_booking_request(
        stores,
        HOST_ID,
        _intro(max_attendees=2),
        "2025-06-02T10:00",
        "2025-06-02T10:30",
        attendees,
        now=now,
    )
    assert not result.is_valid
    assert result.errors == [
        "Maximum 2 attendees allowed, but 3 provided",
        "Invalid email address: not-an-email",
        "Attendee name must be at least 2 characters long",
    ]
    assert result.warnings == ["Duplicate attendee email: ADA@example.com"]


async def test_daily_limit(stores, now):
    stores.bookings.add(utc(2025, 6, 2, 19, 0), utc(2025, 6, 2, 19, 30))
    result = await validate_booking_request(
        stores,
        HOST_ID,
        _intro(max_bookings_per_day=1),
        "2025-06-02T10:00",
        "2025-06-02T10:30",
        [ADA],
        now=now,
    )
    assert result.errors == ["Daily booking limit of 1 has been reached for this date"]


async def test_daily_limit_counts_the_host_local_day(stores, now):
    # 01:00 UTC Tuesday is Monday evening in New York
    stores.bookings.add(utc(2025, 6, 3, 1, 0), utc(2025, 6, 3, 1, 30))
    result = await validate_booking_request(
        stores,
        HOST_ID,
        _intro(max_bookings_per_day=1),
        "2025-06-02T10:00",
        "2025-06-02T10:30",
        [ADA],
        now=now,
    )
    assert "Daily booking limit of 1 has been reached for this date" in result.errors


async def test_daily_limit_ignores_the_booking_being_rescheduled(stores, now):
    booking = stores.bookings.add(utc(2025, 6, 2, 14, 0), utc(2025, 6, 2, 14, 30))
    result = await validate_booking_request(
        stores,
        HOST_ID,
        _intro(max_bookings_per_day=1),
        "2025-06-02T10:15",
        "2025-06-02T10:45",
        [ADA],
        booking.id,
        now=now,
    )
    assert result.is_valid


async def test_buffer_overlap_is_only_a_warning(stores, now):
    stores.bookings.add(utc(2025, 6, 2, 14, 30), utc(2025, 6, 2, 15, 0))
    result = await validate_booking_request(
        stores,
        HOST_ID,
        _intro(buffer_after=15),
        "2025-06-02T10:00",
        "2025-06-02T10:30",
        [ADA],
        now=now,
    )
    assert result.is_valid
    assert result.warnings == [
        "Buffer time conflicts with existing booking. "
        "This meeting type requires 0 minutes before and 15 minutes after."
    ]


async def test_advisory_warnings(stores, now):
    tuesday = MONDAY + timedelta(days=1)
    stores.rules.on_date(tuesday, "00:00", "23:59")

    early = await validate_booking_request(
        stores, HOST_ID, _intro(), "2025-06-03T05:00", "2025-06-03T05:30", [ADA], now=now
    )
    assert early.is_valid
    assert early.warnings == ["Booking is scheduled outside typical business hours"]

    long = await validate_booking_request(
        stores,
        HOST_ID,
        MeetingTypeRules(duration_minutes=9 * 60),
        "2025-06-03T08:00",
        "2025-06-03T17:00",
        [ADA],
        now=now,
    )
    assert long.is_valid
    assert long.warnings == ["Meeting duration is unusually long (over 8 hours)"]


async def test_outside_availability_is_an_error(stores, now):
    result = await validate_booking_request(
        stores, HOST_ID, _intro(), "2025-06-02T08:00", "2025-06-02T08:30", [ADA], now=now
    )
    assert not result.is_valid
    assert result.errors == ["Requested time is outside of available hours"]
    assert result.suggested_changes.start_utc == utc(2025, 6, 2, 13, 0)


async def test_validation_is_idempotent(stores, now):
    stores.bookings.add(utc(2025, 6, 2, 14, 0), utc(2025, 6, 2, 14, 30))
    args = (stores, HOST_ID, _intro(buffer_before=10), "2025-06-02T10:15", "2025-06-02T11:00", [ADA])
    first = await validate_booking_request(*args, now=now)
    second = await validate_booking_request(*args, now=now)
    assert (first.is_valid, first.errors, first.warnings) == (second.is_valid, second.errors, second.warnings)


async def test_invalid_host_timezone_raises(stores, now):
    broken = SchedulingStores(
        rules=stores.rules,
        bookings=stores.bookings,
        hosts=InMemoryHostDirectory({HOST_ID: "Mars/Olympus"}),
    )
    with pytest.raises(InvalidTimezoneError):
        await validate_booking_request(
            broken, HOST_ID, _intro(), "2025-06-02T10:00", "2025-06-02T10:30", [ADA], now=now
        )


async def test_unparsable_time_raises(stores, now):
    with pytest.raises(InvalidTimeFormatError):
        await validate_booking_request(
            stores, HOST_ID, _intro(), "next monday", "2025-06-02T10:30", [ADA], now=now
        )


def test_normalize_time():
    assert normalize_time("2025-06-02T10:00", NEW_YORK) == utc(2025, 6, 2, 14, 0)
    assert normalize_time("2025-06-02T10:00:00+02:00", NEW_YORK) == utc(2025, 6, 2, 8, 0)
    assert normalize_time("2025-06-02T10:00:00z", NEW_YORK) == utc(2025, 6, 2, 10, 0)
    assert normalize_time(datetime(2025, 6, 2, 10, 0), NEW_YORK) == utc(2025, 6, 2, 10, 0)
    offset = datetime(2025, 6, 2, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert normalize_time(offset, NEW_YORK) == utc(2025, 6, 2, 10, 0)
    with pytest.raises(InvalidTimeFormatError):
        normalize_time("2025-06-02T25:00:00Z", NEW_YORK)
    with pytest.raises(InvalidTimeFormatError):
        normalize_time(1748872800, NEW_YORK)


@pytest.mark.parametrize(
    "email,expected",
    [
        ("ada@example.com", True),
        ("first.last+tag@sub.example.org", True),
        ("not-an-email", False),
        ("missing@tld", False),
        ("spaces in@example.com", False),
        ("", False),
        (None, False),
    ],
)
def test_is_valid_email(email, expected):
    assert is_valid_email(email) is expected
