from datetime import date

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_stores
from app.api.schemas.booking import EffectiveAvailabilityResponse
from app.core.errors import InvalidInputError
from app.models.scheduling import AvailableSlotsResult
from app.services.availability_service import get_effective_availability
from app.services.scheduling_service import get_available_slots
from app.services.stores import SchedulingStores

router = APIRouter(prefix="/slots", tags=["slots"])

# Upper bound on range queries
_MAX_RANGE_DAYS = 62


@router.get("/available", response_model=AvailableSlotsResult)
async def available_slots(
    host_id: int = Query(...),
    date_param: date = Query(..., alias="date"),
    duration: int = Query(..., gt=0, description="Slot length in minutes"),
    display_tz: str | None = Query(None, description="IANA zone for slot labels; defaults to the host's"),
    buffer: int = Query(0, ge=0, description="Minutes kept free around existing bookings"),
    stores: SchedulingStores = Depends(get_stores),
) -> AvailableSlotsResult:
    """Slots for the host's local date. Booked slots come back in unavailable_slots with reason BOOKED."""
    return await get_available_slots(
        stores, host_id, date_param, duration, display_tz, buffer_minutes=buffer
    )


@router.get("/effective", response_model=EffectiveAvailabilityResponse)
async def effective_availability(
    host_id: int = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    stores: SchedulingStores = Depends(get_stores),
) -> EffectiveAvailabilityResponse:
    if end_date < start_date:
        raise InvalidInputError("end_date must not be before start_date")
    if (end_date - start_date).days > _MAX_RANGE_DAYS:
        raise InvalidInputError(f"Date range is limited to {_MAX_RANGE_DAYS} days")
    tz_name = await stores.hosts.get_host_timezone(host_id)
    days = await get_effective_availability(stores, host_id, start_date, end_date, tz_name)
    return EffectiveAvailabilityResponse(
        host_id=host_id,
        timezone=tz_name,
        start_date=start_date,
        end_date=end_date,
        days=days,
    )
