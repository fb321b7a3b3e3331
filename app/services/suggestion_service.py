import logging
from datetime import UTC, date, datetime, timedelta
from typing import Sequence

from app.core.config import settings
from app.core.errors import InvalidSlotRequestError
from app.models.booking import Booking
from app.models.scheduling import CandidateSlot, Interval, SlotPreferences
from app.services.availability_service import effective_windows, resolve_windows
from app.services.slot_service import generate_future_slots
from app.services.stores import SchedulingStores
from app.services.timezone_service import (
    combine_local,
    day_of_week,
    ensure_utc,
    get_timezone,
    intervals_overlap,
    local_date,
    local_day_bounds,
    to_zone,
)

logger = logging.getLogger(__name__)

_DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def calculate_confidence(
    slot_start: datetime,
    tz_name: str,
    now: datetime,
    preferences: SlotPreferences | None = None,
) -> float:
    """Score in [0, 1]; higher means a more convenient slot for the host."""
    local = to_zone(slot_start, tz_name)
    hour = local.hour
    weekday = day_of_week(local.date())
    confidence = 0.5

    if 9 <= hour <= 17:
        confidence += 0.3
    elif 8 <= hour <= 18:
        confidence += 0.2
    elif 7 <= hour <= 19:
        confidence += 0.1

    if 1 <= weekday <= 5:
        confidence += 0.2
    if 2 <= weekday <= 4:
        confidence += 0.1

    if preferences and preferences.preferred_time_start and preferences.preferred_time_end:
        clock = local.strftime("%H:%M")
        if preferences.preferred_time_start <= clock <= preferences.preferred_time_end:
            confidence += 0.2

    hours_until = (ensure_utc(slot_start) - ensure_utc(now)).total_seconds() / 3600
    if hours_until < 2:
        confidence -= 0.3
    elif hours_until < 24:
        confidence -= 0.1
    elif hours_until > 7 * 24:
        confidence -= 0.1

    return round(max(0.0, min(1.0, confidence)), 2)


def slot_reason(slot_start: datetime, confidence: float, tz_name: str) -> str:
    local = to_zone(slot_start, tz_name)
    hour = local.hour
    day_name = _DAY_NAMES[day_of_week(local.date())]
    if confidence > 0.8:
        return f"Optimal time - {day_name} during business hours"
    if confidence > 0.6:
        part = "morning" if hour < 12 else "afternoon" if hour < 17 else "evening"
        return f"Good time - {day_name} {part}"
    if confidence > 0.4:
        return f"Available time - {day_name}"
    if hour < 8 or hour > 18:
        return "Available time - outside typical business hours"
    return "Available time - weekday"


def _clip(window: Interval, start_clock: str | None, end_clock: str | None, day: date, tz_name: str) -> Interval | None:
    start, end = window.start, window.end
    if start_clock:
        start = max(start, combine_local(day, start_clock, tz_name))
    if end_clock:
        end = min(end, combine_local(day, end_clock, tz_name))
    if start >= end:
        return None
    return Interval(start=start, end=end)


async def find_slots_on_date(
    stores: SchedulingStores,
    host_id: int,
    day: date,
    duration_minutes: int,
    tz_name: str,
    limit: int | None,
    now: datetime,
    display_tz: str | None = None,
    preferences: SlotPreferences | None = None,
) -> list[CandidateSlot]:
    """Free, scored slots on local ``day`` in chronological order, at most ``limit``."""
    resolved = await resolve_windows(stores, host_id, day, tz_name)
    windows = effective_windows(resolved)
    if not windows:
        return []

    day_start, day_end = local_day_bounds(day, tz_name)
    bookings: Sequence[Booking] = await stores.bookings.list_active_bookings(
        host_id, day_start, day_end
    )

    found: list[CandidateSlot] = []
    for window in windows:
        if preferences:
            window = _clip(
                window, preferences.preferred_time_start, preferences.preferred_time_end, day, tz_name
            )
            if window is None:
                continue
        for slot in generate_future_slots(
            window.start,
            window.end,
            duration_minutes,
            now,
            display_tz=display_tz or tz_name,
        ):
            if limit is not None and len(found) >= limit:
                return found
            if any(
                intervals_overlap(slot.start, slot.end, b.start_utc, b.end_utc) for b in bookings
            ):
                continue
            slot.confidence = calculate_confidence(slot.start, tz_name, now, preferences)
            slot.reason = slot_reason(slot.start, slot.confidence, tz_name)
            found.append(slot)
    return found


def _rank(suggestions: list[CandidateSlot], max_suggestions: int) -> list[CandidateSlot]:
    # sorted() is stable, so equal scores keep chronological order
    ranked = sorted(suggestions, key=lambda s: s.confidence or 0.0, reverse=True)
    return ranked[:max_suggestions]


async def suggest_alternatives(
    stores: SchedulingStores,
    host_id: int,
    original_start: datetime,
    original_end: datetime,
    tz_name: str,
    max_suggestions: int | None = None,
    *,
    display_tz: str | None = None,
    now: datetime | None = None,
) -> list[CandidateSlot]:
    """Free slots like [original_start, original_end), same day first, then the following days."""
    if max_suggestions is None:
        max_suggestions = settings.max_suggestions
    get_timezone(tz_name)
    if max_suggestions <= 0:
        return []
    now = ensure_utc(now or datetime.now(UTC))
    original_start = ensure_utc(original_start)
    duration_minutes = int((ensure_utc(original_end) - original_start).total_seconds() // 60)
    if duration_minutes <= 0:
        return []

    origin_day = local_date(original_start, tz_name)
    suggestions = await find_slots_on_date(
        stores,
        host_id,
        origin_day,
        duration_minutes,
        tz_name,
        min(settings.same_day_suggestions, max_suggestions),
        now,
        display_tz,
    )

    # Explicit day cursor; stops as soon as enough candidates are collected
    offset = 1
    while len(suggestions) < max_suggestions and offset <= settings.suggestion_search_days:
        remaining = max_suggestions - len(suggestions)
        suggestions.extend(
            await find_slots_on_date(
                stores,
                host_id,
                origin_day + timedelta(days=offset),
                duration_minutes,
                tz_name,
                min(settings.per_day_suggestions, remaining),
                now,
                display_tz,
            )
        )
        offset += 1

    logger.debug(
        "Found %d alternative(s) for host %s around %s", len(suggestions), host_id, original_start
    )
    return _rank(suggestions, max_suggestions)


async def get_smart_suggestions(
    stores: SchedulingStores,
    host_id: int,
    duration_minutes: int,
    preferences: SlotPreferences | None = None,
    user_tz: str = "UTC",
    max_suggestions: int = 10,
    *,
    now: datetime | None = None,
    start_day: date | None = None,
) -> list[CandidateSlot]:
    """Best slots from today (or ``start_day`` if later), honouring preferred days and time range."""
    preferences = preferences or SlotPreferences()
    get_timezone(user_tz)
    now = ensure_utc(now or datetime.now(UTC))
    tz_name = await stores.hosts.get_host_timezone(host_id)
    days_ahead = preferences.max_days_ahead or settings.smart_suggestion_days_ahead
    first_day = local_date(now, tz_name)
    if start_day is not None and start_day > first_day:
        first_day = start_day

    suggestions: list[CandidateSlot] = []
    for offset in range(days_ahead):
        if len(suggestions) >= max_suggestions:
            break
        day = first_day + timedelta(days=offset)
        if preferences.preferred_days is not None and day_of_week(day) not in preferences.preferred_days:
            continue
        suggestions.extend(
            await find_slots_on_date(
                stores,
                host_id,
                day,
                duration_minutes,
                tz_name,
                None,
                now,
                display_tz=user_tz,
                preferences=preferences,
            )
        )
    return _rank(suggestions, max_suggestions)


async def get_next_available_slot(
    stores: SchedulingStores,
    host_id: int,
    duration_minutes: int,
    user_tz: str = "UTC",
    *,
    now: datetime | None = None,
) -> CandidateSlot | None:
    suggestions = await get_smart_suggestions(
        stores, host_id, duration_minutes, None, user_tz, 1, now=now
    )
    return suggestions[0] if suggestions else None


async def get_available_slots_in_range(
    stores: SchedulingStores,
    host_id: int,
    start_date: date,
    end_date: date,
    duration_minutes: int,
    user_tz: str = "UTC",
    *,
    now: datetime | None = None,
) -> list[CandidateSlot]:
    """Ranked free slots on host-local days start_date..end_date inclusive."""
    if end_date < start_date:
        raise InvalidSlotRequestError("end_date must not be before start_date")
    now = ensure_utc(now or datetime.now(UTC))
    tz_name = await stores.hosts.get_host_timezone(host_id)
    first_day = max(start_date, local_date(now, tz_name))
    if first_day > end_date:
        return []
    preferences = SlotPreferences(max_days_ahead=(end_date - first_day).days + 1)
    return await get_smart_suggestions(
        stores,
        host_id,
        duration_minutes,
        preferences,
        user_tz,
        settings.range_suggestions,
        now=now,
        start_day=first_day,
    )
