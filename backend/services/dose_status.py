# services/dose_status.py
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

import crud
from errors import InvalidTransitionError, NotFoundError
from models import DoseStatus, Schedule

RESOLVED = (DoseStatus.TAKEN, DoseStatus.SKIPPED)


def effective_status(schedule: Schedule, now: Optional[datetime] = None) -> DoseStatus:
    """Stored status, with a past PENDING dose shown as OVERDUE."""
    now = now or datetime.now()
    if schedule.status == DoseStatus.PENDING and schedule.scheduled_time < now:
        return DoseStatus.OVERDUE
    return schedule.status


async def record_outcome(
    db: AsyncSession,
    schedule_id: str,
    status: DoseStatus,
    now: Optional[datetime] = None,
) -> Schedule:
    """Take or skip a pending (or overdue) dose."""
    if status not in RESOLVED:
        raise InvalidTransitionError(f"A dose can only be marked taken or skipped, not {status.value}")
    now = now or datetime.now()
    taken_at = now if status == DoseStatus.TAKEN else None

    if not await crud.set_schedule_outcome(db, schedule_id, status, taken_at):
        schedule = await crud.get_schedule(db, schedule_id)
        if schedule is None:
            raise NotFoundError("Schedule", schedule_id)
        raise InvalidTransitionError(f"Dose {schedule_id} is already {schedule.status.value}")
    return await crud.get_schedule(db, schedule_id)
