import logging
from datetime import date, timedelta

from app.core.errors import InvalidTimeFormatError
from app.models.availability_rule import AvailabilityRule
from app.models.scheduling import AvailabilityStatus, Interval, ResolvedWindow, ResolvedWindows
from app.services.stores import SchedulingStores
from app.services.timezone_service import combine_local, day_of_week, get_timezone, parse_clock

logger = logging.getLogger(__name__)


def _to_window(rule: AvailabilityRule, day: date, tz_name: str) -> ResolvedWindow | None:
    try:
        start_clock = parse_clock(rule.start_time)
        end_clock = parse_clock(rule.end_time)
    except InvalidTimeFormatError:
        logger.warning(
            "Skipping availability rule %s with unparsable bounds %r-%r",
            rule.id, rule.start_time, rule.end_time,
        )
        return None
    if start_clock >= end_clock:
        logger.warning(
            "Skipping availability rule %s: start %s is not before end %s",
            rule.id, rule.start_time, rule.end_time,
        )
        return None
    return ResolvedWindow(
        start=combine_local(day, start_clock, tz_name),
        end=combine_local(day, end_clock, tz_name),
        rule_id=rule.id,
        kind=rule.kind,
        local_start=rule.start_time,
        local_end=rule.end_time,
        block_reason=rule.block_reason if rule.is_blocked else None,
    )


async def resolve_windows(
    stores: SchedulingStores, host_id: int, day: date, tz_name: str
) -> ResolvedWindows:
    """Available and blocked UTC windows of ``host_id`` on local date ``day``."""
    get_timezone(tz_name)
    weekday = day_of_week(day)
    rules = await stores.rules.list_rules(host_id, day_of_week=weekday, specific_date=day)

    available: list[ResolvedWindow] = []
    blocked: list[ResolvedWindow] = []
    for rule in rules:
        if not rule.applies_to(weekday, day):
            continue
        window = _to_window(rule, day, tz_name)
        if window is None:
            continue
        (blocked if rule.is_blocked else available).append(window)

    available.sort(key=lambda w: w.start)
    blocked.sort(key=lambda w: w.start)

    if available:
        status = AvailabilityStatus.AVAILABLE
    else:
        # Messaging differs for a host that has never set up availability
        all_rules = await stores.rules.list_rules(host_id)
        if any(not r.is_blocked for r in all_rules):
            status = AvailabilityStatus.NO_AVAILABILITY_FOR_DAY
        else:
            status = AvailabilityStatus.NO_AVAILABILITY_CONFIGURED

    return ResolvedWindows(
        day=day,
        timezone=tz_name,
        status=status,
        available=available,
        blocked=blocked,
    )


def merge_intervals(intervals: list[Interval]) -> list[Interval]:
    """Join overlapping or adjacent intervals. Returns new, sorted intervals."""
    if not intervals:
        return []
    ordered = sorted(intervals, key=lambda i: i.start)
    merged = [Interval(start=ordered[0].start, end=ordered[0].end)]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                last.end = current.end
        else:
            merged.append(Interval(start=current.start, end=current.end))
    return merged


def subtract_interval(interval: Interval, block: Interval) -> list[Interval]:
    """Remove ``block`` from ``interval``; yields zero, one or two pieces."""
    if block.end <= interval.start or block.start >= interval.end:
        return [interval]
    pieces = []
    if block.start > interval.start:
        pieces.append(Interval(start=interval.start, end=block.start))
    if block.end < interval.end:
        pieces.append(Interval(start=block.end, end=interval.end))
    return pieces


def effective_windows(resolved: ResolvedWindows) -> list[Interval]:
    """Merged available time with every blocked window cut out."""
    intervals = merge_intervals(list(resolved.available))
    for block in resolved.blocked:
        remaining: list[Interval] = []
        for interval in intervals:
            remaining.extend(subtract_interval(interval, block))
        intervals = remaining
    return intervals


async def get_effective_availability(
    stores: SchedulingStores,
    host_id: int,
    start_date: date,
    end_date: date,
    tz_name: str | None = None,
) -> dict[str, list[Interval]]:
    """Effective windows per local day, keyed ``YYYY-MM-DD``; days without time are omitted."""
    if tz_name is None:
        tz_name = await stores.hosts.get_host_timezone(host_id)
    result: dict[str, list[Interval]] = {}
    current = start_date
    while current <= end_date:
        windows = effective_windows(await resolve_windows(stores, host_id, current, tz_name))
        if windows:
            result[current.isoformat()] = windows
        current += timedelta(days=1)
    return result
