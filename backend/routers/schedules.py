from datetime import date, datetime, time
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

import crud
from database import get_db
from models import DoseStatus
from schemas import HistoryOut, MedicineOut, ScheduleOut
from services.dose_status import effective_status, record_outcome
from services.schedule_generator import day_bounds

router = APIRouter(tags=["schedules"])


def _to_date(s: str) -> date:
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        raise HTTPException(400, f"Bad date: {s}")


def _present(schedules, now: datetime) -> List[ScheduleOut]:
    ordered = sorted(schedules, key=lambda s: (s.scheduled_time, s.id))
    return [ScheduleOut.from_schedule(s, effective_status(s, now)) for s in ordered]


@router.get("/profiles/{profile_id}/schedules/today", response_model=List[ScheduleOut])
async def todays_schedules(profile_id: str, db: AsyncSession = Depends(get_db)):
    """Today's doses in time order, past pending ones reported as overdue."""
    now = datetime.now()
    schedules = await crud.get_schedules_in_range(db, profile_id, *day_bounds(now))
    return _present(schedules, now)


@router.get("/profiles/{profile_id}/history", response_model=HistoryOut)
async def history(
    profile_id: str,
    from_: str = Query(..., alias="from", description="YYYY-MM-DD"),
    to: str = Query(..., description="YYYY-MM-DD"),
    db: AsyncSession = Depends(get_db),
):
    """
    Doses in [from 00:00, to 23:59:59.999999] with the medicines they belong to.
    Read-only feed for report generation.
    """
    start = datetime.combine(_to_date(from_), time.min)
    end = datetime.combine(_to_date(to), time.max)
    if end < start:
        raise HTTPException(400, "'to' must be >= 'from'")

    schedules = await crud.get_schedules_in_range(db, profile_id, start, end)
    referenced = {s.medicine_id for s in schedules}
    medicines = [m for m in await crud.list_medicines_for_profile(db, profile_id) if m.id in referenced]
    return HistoryOut(
        profile_id=profile_id,
        start=start,
        end=end,
        schedules=_present(schedules, datetime.now()),
        medicines=[MedicineOut.model_validate(m) for m in medicines],
    )


@router.post("/schedules/{schedule_id}/take", response_model=ScheduleOut)
async def take_dose(schedule_id: str, db: AsyncSession = Depends(get_db)):
    schedule = await record_outcome(db, schedule_id, DoseStatus.TAKEN)
    return ScheduleOut.from_schedule(schedule, schedule.status)


@router.post("/schedules/{schedule_id}/skip", response_model=ScheduleOut)
async def skip_dose(schedule_id: str, db: AsyncSession = Depends(get_db)):
    schedule = await record_outcome(db, schedule_id, DoseStatus.SKIPPED)
    return ScheduleOut.from_schedule(schedule, schedule.status)
