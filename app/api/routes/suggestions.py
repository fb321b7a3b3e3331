from datetime import date

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_stores
from app.core.config import settings
from app.models.scheduling import CandidateSlot, SlotPreferences
from app.services.stores import SchedulingStores
from app.services.suggestion_service import (
    get_available_slots_in_range,
    get_next_available_slot,
    get_smart_suggestions,
    suggest_alternatives,
)
from app.services.validation_service import normalize_time

router = APIRouter(prefix="/suggestions", tags=["suggestions"])


@router.get("", response_model=list[CandidateSlot])
async def alternatives(
    host_id: int = Query(...),
    start_time: str = Query(..., description="Host-local unless it carries a zone marker"),
    end_time: str = Query(...),
    display_tz: str | None = Query(None),
    max_suggestions: int = Query(settings.max_suggestions, gt=0, le=50),
    stores: SchedulingStores = Depends(get_stores),
) -> list[CandidateSlot]:
    tz_name = await stores.hosts.get_host_timezone(host_id)
    return await suggest_alternatives(
        stores,
        host_id,
        normalize_time(start_time, tz_name),
        normalize_time(end_time, tz_name),
        tz_name,
        max_suggestions,
        display_tz=display_tz,
    )


@router.get("/smart", response_model=list[CandidateSlot])
async def smart_suggestions(
    host_id: int = Query(...),
    duration: int = Query(..., gt=0),
    user_tz: str = Query("UTC"),
    preferred_days: list[int] | None = Query(None, description="0 = Sunday ... 6 = Saturday"),
    preferred_time_start: str | None = Query(None, pattern=r"^\d{2}:\d{2}$"),
    preferred_time_end: str | None = Query(None, pattern=r"^\d{2}:\d{2}$"),
    max_days_ahead: int | None = Query(None, gt=0, le=90),
    max_suggestions: int = Query(10, gt=0, le=50),
    stores: SchedulingStores = Depends(get_stores),
) -> list[CandidateSlot]:
    preferences = SlotPreferences(
        preferred_days=preferred_days,
        preferred_time_start=preferred_time_start,
        preferred_time_end=preferred_time_end,
        max_days_ahead=max_days_ahead,
    )
    return await get_smart_suggestions(
        stores, host_id, duration, preferences, user_tz, max_suggestions
    )


@router.get("/next", response_model=CandidateSlot | None)
async def next_available(
    host_id: int = Query(...),
    duration: int = Query(..., gt=0),
    user_tz: str = Query("UTC"),
    stores: SchedulingStores = Depends(get_stores),
) -> CandidateSlot | None:
    return await get_next_available_slot(stores, host_id, duration, user_tz)


@router.get("/range", response_model=list[CandidateSlot])
async def slots_in_range(
    host_id: int = Query(...),
    start_date: date = Query(..., description="First host-local day"),
    end_date: date = Query(..., description="Last host-local day, inclusive"),
    duration: int = Query(..., gt=0),
    user_tz: str = Query("UTC"),
    stores: SchedulingStores = Depends(get_stores),
) -> list[CandidateSlot]:
    return await get_available_slots_in_range(
        stores, host_id, start_date, end_date, duration, user_tz
    )
