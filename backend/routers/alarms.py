from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

import crud
from database import get_db
from models import DoseStatus
from schemas import ActiveProfileIn, AlarmOut, ScheduleOut
from services.dose_status import effective_status
from services.sweeper import AlarmSweeper, NotificationSweeper

router = APIRouter(prefix="/alarms", tags=["alarms"])


def _alarm_sweeper(request: Request) -> AlarmSweeper:
    return request.app.state.alarm_sweeper


def _notification_sweeper(request: Request) -> NotificationSweeper:
    return request.app.state.notification_sweeper


@router.put("/active-profile", response_model=ActiveProfileIn)
async def set_active_profile(
    body: ActiveProfileIn,
    alarms: AlarmSweeper = Depends(_alarm_sweeper),
    notifications: NotificationSweeper = Depends(_notification_sweeper),
    db: AsyncSession = Depends(get_db),
):
    """Point both sweepers at a profile (or stop them with null)."""
    if body.profile_id is not None and not await crud.get_profile(db, body.profile_id):
        raise HTTPException(404, f"Profile '{body.profile_id}' not found")
    alarms.start(body.profile_id)
    notifications.start(body.profile_id)
    return ActiveProfileIn(profile_id=body.profile_id)


@router.get("/current", response_model=AlarmOut)
async def current_alarm(alarms: AlarmSweeper = Depends(_alarm_sweeper), db: AsyncSession = Depends(get_db)):
    alarm = alarms.active_alarm
    if alarm is None:
        return AlarmOut()
    profile = await crud.get_profile(db, alarm.profile_id)
    return AlarmOut(
        schedule=ScheduleOut.from_schedule(alarm, effective_status(alarm, datetime.now())),
        profile_name=profile.name if profile else None,
    )


async def _acknowledge(alarms: AlarmSweeper, status: DoseStatus) -> ScheduleOut:
    if alarms.active_alarm is None:
        raise HTTPException(404, "No active alarm")
    schedule = await alarms.acknowledge(status)
    return ScheduleOut.from_schedule(schedule, schedule.status)


@router.post("/current/take", response_model=ScheduleOut)
async def take_alarm(alarms: AlarmSweeper = Depends(_alarm_sweeper)):
    return await _acknowledge(alarms, DoseStatus.TAKEN)


@router.post("/current/skip", response_model=ScheduleOut)
async def skip_alarm(alarms: AlarmSweeper = Depends(_alarm_sweeper)):
    return await _acknowledge(alarms, DoseStatus.SKIPPED)
