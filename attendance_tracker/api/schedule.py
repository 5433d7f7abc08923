from datetime import date

from fastapi import APIRouter, HTTPException

from attendance_tracker.api.deps import AdminOnly, CurrentIdentity, ServicesDep
from attendance_tracker.models.schedule import (
    WEEKDAYS,
    OverrideEntry,
    OverrideFlag,
    OverrideUpdate,
    ScheduleConfig,
    ScheduleUpdate,
)

router = APIRouter()


def _parse_date(date_str: str) -> str:
    try:
        return date.fromisoformat(date_str).isoformat()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format (YYYY-MM-DD)")


@router.get("/", response_model=ScheduleConfig)
async def get_schedule(identity: CurrentIdentity, services: ServicesDep):
    return await services.schedules.load_schedule()


@router.put("/", response_model=ScheduleConfig)
async def update_schedule(data: ScheduleUpdate, admin: AdminOnly, services: ServicesDep):
    """Replace the weekly timetable. Slot indices follow list order."""
    unknown = [day for day in data.days if day not in WEEKDAYS]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown weekdays: {unknown}")
    return await services.schedules.save_schedule(ScheduleConfig(days=data.days))


@router.get("/overrides/{date_str}", response_model=OverrideEntry)
async def get_overrides(date_str: str, identity: CurrentIdentity, services: ServicesDep):
    date_key = _parse_date(date_str)
    entry = await services.schedules.load_override(date_key)
    return entry or OverrideEntry(date=date_key)


@router.put("/overrides/{date_str}/{slot_index}", response_model=OverrideEntry)
async def set_override(date_str: str, slot_index: int, data: OverrideUpdate, admin: AdminOnly, services: ServicesDep):
    """Cancel (or restore) one lecture on one date."""
    date_key = _parse_date(date_str)
    if slot_index < 0:
        raise HTTPException(status_code=400, detail="Slot index must be non-negative")
    return await services.schedules.set_override(date_key, slot_index, OverrideFlag(**data.model_dump()))
