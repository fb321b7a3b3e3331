import math
from collections.abc import Iterator
from datetime import datetime, timedelta

from app.core.config import settings
from app.core.errors import InvalidSlotRequestError
from app.models.scheduling import CandidateSlot
from app.services.timezone_service import ensure_utc, format_in_zone


def generate_slots(
    window_start: datetime,
    window_end: datetime,
    slot_duration_minutes: int,
    step_minutes: int | None = None,
    display_tz: str = "UTC",
) -> Iterator[CandidateSlot]:
    """Yield fixed-length slots inside [window_start, window_end].

    Slots start at window_start and advance by step_minutes, so they overlap
    when the step is shorter than the duration. The last slot ends at or
    before window_end. Pure: calling again with the same inputs restarts.
    """
    if step_minutes is None:
        step_minutes = settings.slot_step_minutes
    if slot_duration_minutes <= 0:
        raise InvalidSlotRequestError("Slot duration must be positive")
    if step_minutes <= 0:
        raise InvalidSlotRequestError("Slot step must be positive")
    window_start = ensure_utc(window_start)
    window_end = ensure_utc(window_end)
    duration = timedelta(minutes=slot_duration_minutes)
    step = timedelta(minutes=step_minutes)
    current = window_start
    while current + duration <= window_end:
        yield CandidateSlot(
            start=current,
            end=current + duration,
            label=format_in_zone(current, display_tz),
        )
        current += step


def first_slot_start(
    window_start: datetime, now: datetime, step_minutes: int | None = None
) -> datetime:
    """Earliest slot start on the window's step grid that is not before ``now``."""
    if step_minutes is None:
        step_minutes = settings.slot_step_minutes
    if step_minutes <= 0:
        raise InvalidSlotRequestError("Slot step must be positive")
    window_start = ensure_utc(window_start)
    now = ensure_utc(now)
    if now <= window_start:
        return window_start
    elapsed = (now - window_start).total_seconds() / 60
    steps = math.ceil(elapsed / step_minutes)
    return window_start + timedelta(minutes=steps * step_minutes)


def generate_future_slots(
    window_start: datetime,
    window_end: datetime,
    slot_duration_minutes: int,
    now: datetime,
    step_minutes: int | None = None,
    display_tz: str = "UTC",
) -> Iterator[CandidateSlot]:
    """generate_slots, skipping starts before ``now`` (rounded up to the step)."""
    start = first_slot_start(window_start, now, step_minutes)
    return generate_slots(start, window_end, slot_duration_minutes, step_minutes, display_tz)
