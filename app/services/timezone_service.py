"""Wall-clock strings to aware UTC instants and back. Naive datetimes are UTC."""

import re
from datetime import UTC, date, datetime, time, timedelta

import pytz

from app.core.errors import InvalidTimeFormatError, InvalidTimezoneError

_LOCAL_DATETIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?$"
)
_LOCAL_TIME_RE = re.compile(r"^(\d{2}):(\d{2})(?::(\d{2}))?$")


def is_valid_timezone(tz_name: str | None) -> bool:
    return bool(tz_name) and tz_name in pytz.all_timezones_set


def get_timezone(tz_name: str) -> pytz.BaseTzInfo:
    try:
        return pytz.timezone(tz_name)
    except (pytz.UnknownTimeZoneError, AttributeError, TypeError) as e:
        raise InvalidTimezoneError(str(tz_name)) from e


def ensure_utc(dt: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert to naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return ensure_utc(dt).replace(tzinfo=None)


def localize(naive: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """Attach ``tz`` to a wall-clock time.

    A time skipped by a DST gap moves forward (02:30 -> 03:30 DST); an
    ambiguous time during fall-back resolves to the earlier occurrence.
    """
    try:
        return tz.localize(naive, is_dst=None)
    except pytz.NonExistentTimeError:
        return tz.normalize(tz.localize(naive, is_dst=False))
    except pytz.AmbiguousTimeError:
        return tz.localize(naive, is_dst=True)


def parse_local_time(local_datetime: str, tz_name: str) -> datetime:
    """Read ``YYYY-MM-DDTHH:mm[:ss]`` as wall-clock time in ``tz_name``.

    Returns the aware UTC instant. Seconds default to zero.
    """
    tz = get_timezone(tz_name)
    if not isinstance(local_datetime, str):
        raise InvalidTimeFormatError(local_datetime)
    match = _LOCAL_DATETIME_RE.match(local_datetime.strip())
    if not match:
        raise InvalidTimeFormatError(local_datetime)
    year, month, day, hour, minute, second = match.groups()
    try:
        naive = datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second or 0)
        )
    except ValueError as e:
        raise InvalidTimeFormatError(local_datetime) from e
    return localize(naive, tz).astimezone(UTC)


def format_in_zone(instant: datetime, tz_name: str, include_seconds: bool = False) -> str:
    local = ensure_utc(instant).astimezone(get_timezone(tz_name))
    # strftime does not zero-pad years before 1000
    text = f"{local.year:04d}-{local.month:02d}-{local.day:02d} {local.hour:02d}:{local.minute:02d}"
    if include_seconds:
        text += f":{local.second:02d}"
    return text


def to_zone(instant: datetime, tz_name: str) -> datetime:
    return ensure_utc(instant).astimezone(get_timezone(tz_name))


def zone_offset_minutes(tz_name: str, instant: datetime) -> int:
    """Signed UTC offset of ``tz_name`` in effect at ``instant``."""
    offset = to_zone(instant, tz_name).utcoffset()
    return int(offset.total_seconds() // 60)


def intervals_overlap(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime,
    buffer_minutes: int = 0,
) -> bool:
    """True if [start_a - buffer, end_a + buffer) intersects [start_b, end_b)."""
    buffer = timedelta(minutes=buffer_minutes)
    buffered_start = ensure_utc(start_a) - buffer
    buffered_end = ensure_utc(end_a) + buffer
    return buffered_start < ensure_utc(end_b) and buffered_end > ensure_utc(start_b)


def parse_clock(value: str | time) -> time:
    """``HH:mm`` or ``HH:mm:ss`` as a time of day."""
    if isinstance(value, time):
        return value
    match = _LOCAL_TIME_RE.match(str(value).strip())
    if not match:
        raise InvalidTimeFormatError(value)
    hour, minute, second = match.groups()
    try:
        return time(int(hour), int(minute), int(second or 0))
    except ValueError as e:
        raise InvalidTimeFormatError(value) from e


def combine_local(day: date, clock: str | time, tz_name: str) -> datetime:
    """UTC instant of wall-clock ``clock`` on ``day`` in ``tz_name``."""
    naive = datetime.combine(day, parse_clock(clock))
    return localize(naive, get_timezone(tz_name)).astimezone(UTC)


def local_date(instant: datetime, tz_name: str) -> date:
    return to_zone(instant, tz_name).date()


def day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def local_day_bounds(day: date, tz_name: str) -> tuple[datetime, datetime]:
    """UTC instants of local midnight on ``day`` and on the following day."""
    tz = get_timezone(tz_name)
    start = localize(datetime.combine(day, time.min), tz).astimezone(UTC)
    end = localize(datetime.combine(day + timedelta(days=1), time.min), tz).astimezone(UTC)
    return start, end


def timezone_label(tz_name: str, at: datetime | None = None) -> str:
    """User-facing label such as ``America/New_York (EST)``."""
    try:
        abbreviation = to_zone(at or datetime.now(UTC), tz_name).tzname()
    except InvalidTimezoneError:
        return tz_name
    return f"{tz_name} ({abbreviation or tz_name})"


def business_hours_for_date(
    instant: datetime,
    tz_name: str,
    business_start: str = "09:00",
    business_end: str = "17:00",
) -> tuple[datetime, datetime]:
    day = local_date(instant, tz_name)
    return combine_local(day, business_start, tz_name), combine_local(day, business_end, tz_name)
