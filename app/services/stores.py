"""Read interfaces the engine consumes. Implementations are injected by callers.

Every method is awaited and may raise DependencyUnavailableError; the engine
propagates it without retrying.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol, Sequence

from app.models.availability_rule import AvailabilityRule
from app.models.booking import Booking


class AvailabilityRuleStore(Protocol):
    async def list_rules(
        self,
        host_id: int,
        *,
        day_of_week: int | None = None,
        specific_date: date | None = None,
    ) -> Sequence[AvailabilityRule]:
        """Rules of ``host_id``; with filters, RECURRING rules on ``day_of_week``
        or DATE_SPECIFIC rules on ``specific_date``. Both flags included."""
        ...


class BookingStore(Protocol):
    async def list_active_bookings(
        self,
        host_id: int,
        start_utc: datetime,
        end_utc: datetime,
        exclude_id: int | None = None,
    ) -> Sequence[Booking]:
        """CONFIRMED/PENDING bookings overlapping [start_utc, end_utc)."""
        ...

    async def count_active_bookings_on_date(
        self,
        host_id: int,
        day: date,
        tz_name: str,
        exclude_id: int | None = None,
    ) -> int:
        """CONFIRMED/PENDING bookings starting on ``day`` in ``tz_name``."""
        ...


class HostDirectory(Protocol):
    async def get_host_timezone(self, host_id: int) -> str:
        ...


@dataclass(frozen=True)
class SchedulingStores:
    rules: AvailabilityRuleStore
    bookings: BookingStore
    hosts: HostDirectory
